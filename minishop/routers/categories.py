from fastapi import APIRouter, Depends, HTTPException

from minishop.dependencies import PaginationParams, get_category_service, get_current_principal
from minishop.schemas import CategoryCreate, CategoryDetail, CategoryResponse, PagedResult
from minishop.security import Principal
from minishop.services.category_service import CategoryService

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


@router.get("", response_model=PagedResult[CategoryResponse])
async def list_categories(
    pagination: PaginationParams = Depends(),
    service: CategoryService = Depends(get_category_service),
):
    return await service.get_all(pagination.page, pagination.page_size)


@router.get("/{category_id}", response_model=CategoryDetail)
async def get_category(category_id: int, service: CategoryService = Depends(get_category_service)):
    category = await service.get_by_id(category_id)
    if category is None:
        raise HTTPException(status_code=404, detail=f"Category with ID {category_id} not found")
    return category


@router.post("", status_code=201, response_model=CategoryResponse)
async def create_category(
    data: CategoryCreate,
    service: CategoryService = Depends(get_category_service),
    principal: Principal = Depends(get_current_principal),
):
    return await service.create(data)


@router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: int,
    service: CategoryService = Depends(get_category_service),
    principal: Principal = Depends(get_current_principal),
):
    await service.delete(category_id)
