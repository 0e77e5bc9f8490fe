"""
Category service: list, detail, create and cascading delete.

Category names are unique regardless of case; the check runs before
the insert so the common duplicate case is a clean ``ConflictError``
rather than a database integrity failure.
"""
import logging
from datetime import datetime, timezone

from minishop.exceptions import ConflictError, NotFoundError
from minishop.models import Category
from minishop.repositories import CategoryRepository
from minishop.schemas import (
    CategoryCreate,
    CategoryDetail,
    CategoryResponse,
    PagedResult,
)
from minishop.services.product_service import product_to_response


def category_to_response(category: Category) -> CategoryResponse:
    return CategoryResponse.model_validate(category)


class CategoryService:
    def __init__(self, categories: CategoryRepository, logger: logging.Logger | None = None) -> None:
        self.categories = categories
        self.logger = logger or logging.getLogger(__name__)

    async def get_all(self, page: int = 1, page_size: int = 10) -> PagedResult[CategoryResponse]:
        result = await self.categories.get_all(page, page_size)
        return PagedResult[CategoryResponse](
            items=[category_to_response(c) for c in result.items],
            total=result.total,
            page=result.page,
            page_size=result.page_size,
        )

    async def get_by_id(self, category_id: int) -> CategoryDetail | None:
        """Return the category with its products, or None."""
        category = await self.categories.get_with_products(category_id)
        if category is None:
            self.logger.warning("Category %s not found", category_id)
            return None
        products = [product_to_response(p, category) for p in category.products]
        return CategoryDetail(**category_to_response(category).model_dump(), products=products)

    async def create(self, data: CategoryCreate) -> CategoryResponse:
        name = data.name.strip()
        if await self.categories.get_by_name(name) is not None:
            self.logger.warning("Category name %r already exists", name)
            raise ConflictError(
                f"Category '{name}' already exists", details={"name": name}
            )
        category = Category(
            name=name,
            description=data.description,
            created_at=datetime.now(timezone.utc),
        )
        await self.categories.add(category)
        await self.categories.commit()
        self.logger.info("Category created with ID %s", category.id)
        return category_to_response(category)

    async def delete(self, category_id: int) -> None:
        """
        Delete a category and every product that references it.

        The products collection is loaded first so the ORM deletes the
        rows it tracks; the foreign key's ``ON DELETE CASCADE`` covers
        the rest.
        """
        category = await self.categories.get_with_products(category_id)
        if category is None:
            self.logger.warning("Category %s not found for delete", category_id)
            raise NotFoundError("Category", category_id)
        product_count = len(category.products)
        await self.categories.remove(category)
        await self.categories.commit()
        self.logger.info(
            "Category %s deleted along with %d product(s)", category_id, product_count
        )
