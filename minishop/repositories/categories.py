from sqlalchemy import func

from minishop.models import Category
from minishop.repositories.base import Repository


class CategoryRepository(Repository[Category]):
    model = Category

    async def get_by_name(self, name: str) -> Category | None:
        """Case-insensitive exact match on the category name."""
        return await self.first(func.lower(Category.name) == name.strip().lower())

    async def get_with_products(self, category_id: int) -> Category | None:
        # Refresh so a collection built up in this session is replaced by
        # the full set of rows.
        return await self.first(
            Category.id == category_id, relations=(Category.products,), refresh=True
        )
