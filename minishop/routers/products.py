from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query

from minishop.dependencies import PaginationParams, get_current_principal, get_product_service
from minishop.schemas import PagedResult, ProductCreate, ProductResponse, ProductUpdate
from minishop.security import Principal
from minishop.services.product_service import ProductService

router = APIRouter(prefix="/api/v1/products", tags=["products"])


@router.get("", response_model=PagedResult[ProductResponse])
async def list_products(
    pagination: PaginationParams = Depends(),
    service: ProductService = Depends(get_product_service),
):
    return await service.get_all(pagination.page, pagination.page_size)


@router.get("/search", response_model=PagedResult[ProductResponse])
async def search_products(
    term: str = Query("", description="Case-insensitive substring of the product name."),
    pagination: PaginationParams = Depends(),
    service: ProductService = Depends(get_product_service),
):
    return await service.search(term, pagination.page, pagination.page_size)


@router.get("/price", response_model=PagedResult[ProductResponse])
async def products_by_price(
    min_price: Decimal = Query(...),
    max_price: Decimal = Query(...),
    pagination: PaginationParams = Depends(),
    service: ProductService = Depends(get_product_service),
):
    return await service.get_by_price_range(
        min_price, max_price, pagination.page, pagination.page_size
    )


@router.get("/category/{category_id}", response_model=PagedResult[ProductResponse])
async def products_by_category(
    category_id: int,
    pagination: PaginationParams = Depends(),
    service: ProductService = Depends(get_product_service),
):
    return await service.get_by_category(category_id, pagination.page, pagination.page_size)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, service: ProductService = Depends(get_product_service)):
    product = await service.get_by_id(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product with ID {product_id} not found")
    return product


@router.post("", status_code=201, response_model=ProductResponse)
async def create_product(
    data: ProductCreate,
    service: ProductService = Depends(get_product_service),
    principal: Principal = Depends(get_current_principal),
):
    return await service.create(data)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    service: ProductService = Depends(get_product_service),
    principal: Principal = Depends(get_current_principal),
):
    return await service.update(product_id, data)


@router.delete("/{product_id}", status_code=204)
async def delete_product(
    product_id: int,
    service: ProductService = Depends(get_product_service),
    principal: Principal = Depends(get_current_principal),
):
    await service.delete(product_id)
