"""
Product service: business rules for the Product aggregate.

Design notes
------------
- Reads return ``None`` / empty pages for "nothing there"; the router
  decides the HTTP status.  Filter queries with an unknown category, a
  blank search term or an invalid price range degrade to an empty page
  instead of an error.
- Writes verify that the referenced category exists before staging
  anything, then commit through the repository so concurrency and
  database failures surface as ``ConflictError`` / ``StorageError``.
- Domain errors (``ShopError``) are logged as warnings where they are
  raised.  Anything else is logged with its traceback and re-raised.
- The logger is injected so callers and tests can substitute their own.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal

from minishop.exceptions import (
    ConflictError,
    NotFoundError,
    ShopError,
    StorageError,
    ValidationError,
)
from minishop.models import Category, Product
from minishop.repositories import CategoryRepository, ProductRepository
from minishop.schemas import PagedResult, ProductCreate, ProductResponse, ProductUpdate

# ---------------------------------------------------------------------------
# Mapping helpers
# ---------------------------------------------------------------------------


def product_to_response(product: Product, category: Category | None = None) -> ProductResponse:
    """
    Map a Product row to its transfer object (adds the category name).

    Pass *category* when the caller already holds it and
    ``product.category`` was not loaded.
    """
    category = category or product.category
    return ProductResponse(
        id=product.id,
        name=product.name,
        price=product.price,
        category_id=product.category_id,
        category_name=category.name if category is not None else None,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def _to_page(result: PagedResult) -> PagedResult[ProductResponse]:
    return PagedResult[ProductResponse](
        items=[product_to_response(p) for p in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


def _empty_page(page: int, page_size: int) -> PagedResult[ProductResponse]:
    return PagedResult[ProductResponse](items=[], total=0, page=page, page_size=page_size)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ProductService:
    def __init__(
        self,
        products: ProductRepository,
        categories: CategoryRepository,
        logger: logging.Logger | None = None,
    ) -> None:
        self.products = products
        self.categories = categories
        self.logger = logger or logging.getLogger(__name__)

    async def get_all(self, page: int = 1, page_size: int = 10) -> PagedResult[ProductResponse]:
        self.logger.info("Fetching products - page=%s size=%s", page, page_size)
        try:
            return _to_page(await self.products.get_all(page, page_size))
        except Exception:
            self.logger.exception("Error fetching all products")
            raise

    async def get_by_id(self, product_id: int) -> ProductResponse | None:
        self.logger.info("Fetching product %s", product_id)
        try:
            product = await self.products.get_with_category(product_id)
        except Exception:
            self.logger.exception("Error fetching product %s", product_id)
            raise
        if product is None:
            self.logger.warning("Product %s not found", product_id)
            return None
        return product_to_response(product)

    async def get_by_category(
        self, category_id: int, page: int = 1, page_size: int = 10
    ) -> PagedResult[ProductResponse]:
        """
        Return products in *category_id*.

        An unknown category yields an empty page rather than an error.
        """
        try:
            if not await self.categories.exists(Category.id == category_id):
                self.logger.warning("Category %s not found", category_id)
                return _empty_page(page, page_size)
            self.logger.info("Fetching products for category %s", category_id)
            return _to_page(await self.products.get_by_category(category_id, page, page_size))
        except Exception:
            self.logger.exception("Error fetching products for category %s", category_id)
            raise

    async def search(
        self, term: str | None, page: int = 1, page_size: int = 10
    ) -> PagedResult[ProductResponse]:
        if term is None or not term.strip():
            self.logger.warning("Search term is empty")
            return _empty_page(page, page_size)
        term = term.strip()
        self.logger.info("Searching products with term %r", term)
        try:
            return _to_page(await self.products.search_by_name(term, page, page_size))
        except Exception:
            self.logger.exception("Error searching products with term %r", term)
            raise

    async def get_by_price_range(
        self,
        min_price: Decimal,
        max_price: Decimal,
        page: int = 1,
        page_size: int = 10,
    ) -> PagedResult[ProductResponse]:
        if min_price < 0 or max_price < 0 or min_price > max_price:
            self.logger.warning("Invalid price range: min=%s max=%s", min_price, max_price)
            return _empty_page(page, page_size)
        self.logger.info("Fetching products priced %s - %s", min_price, max_price)
        try:
            return _to_page(
                await self.products.get_by_price_range(min_price, max_price, page, page_size)
            )
        except Exception:
            self.logger.exception("Error fetching products in price range")
            raise

    async def create(self, draft: ProductCreate) -> ProductResponse:
        """
        Persist a new product and return its view.

        Raises ``ValidationError`` (with nothing written) when
        ``draft.category_id`` does not reference an existing category.
        """
        try:
            category = await self._require_category(draft.category_id)
            product = Product(
                name=draft.name.strip(),
                price=draft.price,
                category_id=category.id,
                created_at=datetime.now(timezone.utc),
            )
            product.category = category
            await self.products.add(product)
            await self.products.commit()
        except ConflictError as exc:
            self.logger.warning("Product could not be created: %s", exc.message)
            raise
        except StorageError:
            self.logger.exception("Error creating product")
            raise
        except ShopError:
            raise
        except Exception:
            self.logger.exception("Error creating product")
            raise
        self.logger.info("Product created with ID %s", product.id)
        return product_to_response(product)

    async def update(self, product_id: int, patch: ProductUpdate) -> ProductResponse:
        """
        Apply the fields present in *patch* to product *product_id*.

        - ``name`` is applied when non-blank (trimmed).
        - ``price`` is applied when greater than zero.
        - ``category_id`` is applied only if that category exists;
          otherwise ``ValidationError`` is raised and nothing changes.

        ``updated_at`` is stamped even for an empty patch.
        """
        try:
            product = await self.products.get_with_category(product_id)
            if product is None:
                self.logger.warning("Product %s not found for update", product_id)
                raise NotFoundError("Product", product_id)

            changes = patch.model_dump(exclude_unset=True)

            category = None
            if changes.get("category_id") is not None:
                category = await self._require_category(changes["category_id"])

            name = changes.get("name")
            if name is not None and name.strip():
                product.name = name.strip()

            price = changes.get("price")
            if price is not None and price > 0:
                product.price = price

            if category is not None:
                product.category_id = category.id
                product.category = category

            product.updated_at = datetime.now(timezone.utc)
            await self.products.update(product)
            await self.products.commit()
        except ConflictError:
            self.logger.warning("Product %s was modified concurrently", product_id)
            raise
        except StorageError:
            self.logger.exception("Error updating product %s", product_id)
            raise
        except ShopError:
            raise
        except Exception:
            self.logger.exception("Error updating product %s", product_id)
            raise
        self.logger.info("Product %s updated", product_id)
        return product_to_response(product)

    async def delete(self, product_id: int) -> None:
        try:
            if not await self.products.exists(Product.id == product_id):
                self.logger.warning("Product %s not found for delete", product_id)
                raise NotFoundError("Product", product_id)
            await self.products.remove_by_id(product_id)
            await self.products.commit()
        except ConflictError:
            self.logger.warning("Product %s was modified concurrently", product_id)
            raise
        except StorageError:
            self.logger.exception("Error deleting product %s", product_id)
            raise
        except ShopError:
            raise
        except Exception:
            self.logger.exception("Error deleting product %s", product_id)
            raise
        self.logger.info("Product %s deleted", product_id)

    async def _require_category(self, category_id: int) -> Category:
        category = await self.categories.get_by_id(category_id)
        if category is None:
            self.logger.warning("Category %s does not exist", category_id)
            raise ValidationError(
                f"Category with ID {category_id} does not exist",
                details={"category_id": category_id},
            )
        return category
