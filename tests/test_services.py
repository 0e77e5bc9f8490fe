"""
Direct service-layer tests: exercise the business rules without HTTP.

Services are built on repositories bound to the test session, exactly
as the FastAPI dependencies build them per request.
"""
import logging
from decimal import Decimal
from unittest.mock import Mock

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from minishop.exceptions import ConflictError, NotFoundError, ValidationError
from minishop.models import Category, Product
from minishop.repositories import CategoryRepository, ProductRepository
from minishop.schemas import CategoryCreate, ProductCreate, ProductUpdate
from minishop.services.category_service import CategoryService
from minishop.services.product_service import ProductService


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _product_service(db: AsyncSession, logger=None) -> ProductService:
    return ProductService(ProductRepository(db), CategoryRepository(db), logger=logger)


async def _product_count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(Product))).scalar_one()


async def _create(service: ProductService, category: Category, name: str, price: str):
    return await service.create(
        ProductCreate(name=name, price=Decimal(price), category_id=category.id)
    )


# ---------------------------------------------------------------------------
# create / get_by_id
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_then_get_round_trip(db_session: AsyncSession, category: Category):
    service = _product_service(db_session)
    created = await service.create(
        ProductCreate(name="  Wireless Mouse  ", price=Decimal("24.99"), category_id=category.id)
    )
    assert created.id is not None
    assert created.name == "Wireless Mouse"
    assert created.category_name == "Electronics"
    assert created.created_at is not None
    assert created.updated_at is None

    fetched = await service.get_by_id(created.id)
    assert fetched is not None
    assert fetched.name == "Wireless Mouse"
    assert fetched.price == Decimal("24.99")
    assert fetched.category_id == category.id
    assert fetched.category_name == "Electronics"


@pytest.mark.asyncio
async def test_create_with_unknown_category_writes_nothing(db_session: AsyncSession):
    service = _product_service(db_session)
    with pytest.raises(ValidationError) as exc_info:
        await service.create(ProductCreate(name="Orphan", price=Decimal("5.00"), category_id=999))
    assert "999" in exc_info.value.message
    assert await _product_count(db_session) == 0


@pytest.mark.asyncio
async def test_get_by_id_absent_returns_none(db_session: AsyncSession):
    assert await _product_service(db_session).get_by_id(4242) is None


# ---------------------------------------------------------------------------
# Paged reads and filters
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_all_maps_to_views(db_session: AsyncSession, category: Category):
    service = _product_service(db_session)
    for i in range(3):
        await _create(service, category, f"Item {i}", "9.99")

    result = await service.get_all(page=1, page_size=2)
    assert result.total == 3
    assert result.pages == 2
    assert result.has_next is True
    assert [p.name for p in result.items] == ["Item 0", "Item 1"]
    assert all(p.category_name == "Electronics" for p in result.items)


@pytest.mark.asyncio
async def test_get_by_unknown_category_returns_empty_page(db_session: AsyncSession):
    result = await _product_service(db_session).get_by_category(777, 1, 10)
    assert result.items == []
    assert result.total == 0


@pytest.mark.asyncio
async def test_get_by_category(db_session: AsyncSession, category: Category):
    service = _product_service(db_session)
    await _create(service, category, "Phone", "299.00")
    result = await service.get_by_category(category.id, 1, 10)
    assert result.total == 1
    assert result.items[0].name == "Phone"


@pytest.mark.asyncio
@pytest.mark.parametrize("term", ["", "   ", None])
async def test_search_blank_term_returns_empty_page(db_session: AsyncSession, category: Category, term):
    service = _product_service(db_session)
    await _create(service, category, "laptop stand", "30.00")
    result = await service.search(term, 1, 10)
    assert result.items == []
    assert result.total == 0


@pytest.mark.asyncio
async def test_search_matches_case_insensitive_substring(db_session: AsyncSession, category: Category):
    service = _product_service(db_session)
    await _create(service, category, "laptop stand", "30.00")
    await _create(service, category, "Keyboard", "45.00")

    result = await service.search("LAPTOP", 1, 10)
    assert [p.name for p in result.items] == ["laptop stand"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "min_price,max_price",
    [("100", "50"), ("-1", "50"), ("10", "-5")],
)
async def test_invalid_price_range_returns_empty_page(
    db_session: AsyncSession, category: Category, min_price, max_price
):
    service = _product_service(db_session)
    await _create(service, category, "Cable", "20.00")
    result = await service.get_by_price_range(Decimal(min_price), Decimal(max_price), 1, 10)
    assert result.items == []
    assert result.total == 0


@pytest.mark.asyncio
async def test_price_range(db_session: AsyncSession, category: Category):
    service = _product_service(db_session)
    await _create(service, category, "Expensive", "500.00")
    await _create(service, category, "Cheap", "5.00")
    await _create(service, category, "Medium", "50.00")

    result = await service.get_by_price_range(Decimal("5"), Decimal("50"), 1, 10)
    assert [p.name for p in result.items] == ["Cheap", "Medium"]


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_applies_present_fields(db_session: AsyncSession, category: Category):
    service = _product_service(db_session)
    books = Category(name="Books")
    db_session.add(books)
    await db_session.commit()
    created = await _create(service, category, "Old name", "10.00")

    updated = await service.update(
        created.id, ProductUpdate(name=" New name ", price=Decimal("12.50"), category_id=books.id)
    )
    assert updated.name == "New name"
    assert updated.price == Decimal("12.50")
    assert updated.category_id == books.id
    assert updated.category_name == "Books"
    assert updated.updated_at is not None


@pytest.mark.asyncio
async def test_update_with_empty_patch_only_stamps_updated_at(db_session: AsyncSession, category: Category):
    service = _product_service(db_session)
    created = await _create(service, category, "Stable", "10.00")

    updated = await service.update(created.id, ProductUpdate())
    assert updated.name == "Stable"
    assert updated.price == Decimal("10.00")
    assert updated.category_id == category.id
    assert updated.created_at == created.created_at
    assert updated.updated_at is not None


@pytest.mark.asyncio
async def test_update_ignores_blank_name(db_session: AsyncSession, category: Category):
    service = _product_service(db_session)
    created = await _create(service, category, "Keep me", "10.00")
    updated = await service.update(created.id, ProductUpdate.model_construct(name="   "))
    assert updated.name == "Keep me"


@pytest.mark.asyncio
async def test_update_ignores_non_positive_price(db_session: AsyncSession, category: Category):
    service = _product_service(db_session)
    created = await _create(service, category, "Priced", "10.00")
    updated = await service.update(
        created.id, ProductUpdate.model_construct(price=Decimal("0"))
    )
    assert updated.price == Decimal("10.00")


@pytest.mark.asyncio
async def test_update_missing_product_raises_not_found(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await _product_service(db_session).update(9999, ProductUpdate(name="Ghost"))


@pytest.mark.asyncio
async def test_update_with_unknown_category_changes_nothing(db_session: AsyncSession, category: Category):
    service = _product_service(db_session)
    created = await _create(service, category, "Original", "10.00")

    with pytest.raises(ValidationError):
        await service.update(created.id, ProductUpdate(name="Renamed", category_id=555))

    fetched = await service.get_by_id(created.id)
    assert fetched.name == "Original"
    assert fetched.category_id == category.id
    assert fetched.updated_at is None


@pytest.mark.asyncio
async def test_concurrent_update_raises_conflict(db_session: AsyncSession, category: Category):
    service = _product_service(db_session)
    created = await _create(service, category, "Contended", "10.00")

    # Another writer commits first: the row's version moves on.
    await db_session.execute(
        text("UPDATE products SET version = version + 1 WHERE id = :id"), {"id": created.id}
    )

    with pytest.raises(ConflictError):
        await service.update(created.id, ProductUpdate(name="Late writer"))

    fetched = await service.get_by_id(created.id)
    assert fetched.name == "Contended"


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_product(db_session: AsyncSession, category: Category):
    service = _product_service(db_session)
    created = await _create(service, category, "Disposable", "1.00")
    await service.delete(created.id)
    assert await service.get_by_id(created.id) is None


@pytest.mark.asyncio
async def test_concurrent_delete_raises_conflict_and_warns(db_session: AsyncSession, category: Category):
    logger = Mock(spec=logging.Logger)
    service = _product_service(db_session, logger=logger)
    created = await _create(service, category, "Contested delete", "10.00")

    await db_session.execute(
        text("UPDATE products SET version = version + 1 WHERE id = :id"), {"id": created.id}
    )

    with pytest.raises(ConflictError):
        await service.delete(created.id)
    logger.warning.assert_called_with("Product %s was modified concurrently", created.id)
    logger.exception.assert_not_called()
    assert await _product_count(db_session) == 1


@pytest.mark.asyncio
async def test_create_conflict_is_logged_as_warning(db_session: AsyncSession, category: Category, monkeypatch):
    logger = Mock(spec=logging.Logger)
    service = _product_service(db_session, logger=logger)

    async def conflicting_commit():
        raise ConflictError("Product violates a database constraint")

    monkeypatch.setattr(service.products, "commit", conflicting_commit)
    with pytest.raises(ConflictError):
        await _create(service, category, "Clashing", "4.00")
    logger.warning.assert_called_with(
        "Product could not be created: %s", "Product violates a database constraint"
    )
    logger.exception.assert_not_called()


@pytest.mark.asyncio
async def test_delete_missing_product_raises_not_found(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await _product_service(db_session).delete(31337)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_injected_logger_receives_warnings(db_session: AsyncSession):
    logger = Mock(spec=logging.Logger)
    service = _product_service(db_session, logger=logger)

    await service.get_by_category(404, 1, 10)
    await service.search("", 1, 10)

    warnings = [c.args[0] for c in logger.warning.call_args_list]
    assert "Category %s not found" in warnings
    assert "Search term is empty" in warnings


@pytest.mark.asyncio
async def test_unexpected_errors_are_logged_and_reraised(db_session: AsyncSession):
    logger = Mock(spec=logging.Logger)
    products = Mock(spec=ProductRepository)
    products.get_all.side_effect = RuntimeError("database went away")
    service = ProductService(products, CategoryRepository(db_session), logger=logger)

    with pytest.raises(RuntimeError):
        await service.get_all()
    logger.exception.assert_called_once()


@pytest.mark.asyncio
async def test_create_logs_success(db_session: AsyncSession, category: Category, caplog):
    service = _product_service(db_session)
    with caplog.at_level(logging.INFO, logger="minishop.services.product_service"):
        created = await _create(service, category, "Logged", "3.00")
    assert f"Product created with ID {created.id}" in caplog.text


# ---------------------------------------------------------------------------
# CategoryService
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_category_cascades_to_products(db_session: AsyncSession, category: Category):
    products = _product_service(db_session)
    first = await _create(products, category, "Tablet", "199.00")
    second = await _create(products, category, "Charger", "19.00")

    await CategoryService(CategoryRepository(db_session)).delete(category.id)

    assert await products.get_by_id(first.id) is None
    assert await products.get_by_id(second.id) is None
    assert await _product_count(db_session) == 0


@pytest.mark.asyncio
async def test_create_category_rejects_duplicate_name(db_session: AsyncSession, category: Category):
    service = CategoryService(CategoryRepository(db_session))
    with pytest.raises(ConflictError):
        await service.create(CategoryCreate(name="ELECTRONICS"))


@pytest.mark.asyncio
async def test_category_detail_lists_products(db_session: AsyncSession, category: Category):
    await _create(_product_service(db_session), category, "Camera", "350.00")
    detail = await CategoryService(CategoryRepository(db_session)).get_by_id(category.id)
    assert detail is not None
    assert [p.name for p in detail.products] == ["Camera"]
    assert detail.products[0].category_name == "Electronics"


@pytest.mark.asyncio
async def test_delete_missing_category_raises_not_found(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await CategoryService(CategoryRepository(db_session)).delete(8080)
