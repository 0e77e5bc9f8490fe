"""Product repository: category, price-range and name filters."""
from decimal import Decimal

from sqlalchemy import func

from minishop.models import Product
from minishop.repositories.base import Repository
from minishop.schemas import PagedResult


class ProductRepository(Repository[Product]):
    """
    Product-specific queries on top of ``Repository``.

    Every paged method eager-loads ``Product.category`` so the service
    can expose the category name without a second round trip.
    """

    model = Product

    async def get_all(self, page: int = 1, page_size: int = 10) -> PagedResult:
        return await self.find(page=page, page_size=page_size, relations=(Product.category,))

    async def get_by_category(
        self, category_id: int, page: int = 1, page_size: int = 10
    ) -> PagedResult:
        return await self.find(
            Product.category_id == category_id,
            page=page,
            page_size=page_size,
            relations=(Product.category,),
        )

    async def get_by_price_range(
        self,
        min_price: Decimal,
        max_price: Decimal,
        page: int = 1,
        page_size: int = 10,
    ) -> PagedResult:
        """Products priced within [*min_price*, *max_price*], cheapest first."""
        return await self.find(
            Product.price >= min_price,
            Product.price <= max_price,
            page=page,
            page_size=page_size,
            order_by=(Product.price, Product.id),
            relations=(Product.category,),
        )

    async def search_by_name(
        self, term: str, page: int = 1, page_size: int = 10
    ) -> PagedResult:
        """Case-insensitive substring match on the product name."""
        return await self.find(
            func.lower(Product.name).contains(term.lower(), autoescape=True),
            page=page,
            page_size=page_size,
            relations=(Product.category,),
        )

    async def get_with_category(self, product_id: int) -> Product | None:
        return await self.get_by_id(product_id, Product.category)
