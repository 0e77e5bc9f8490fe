"""
Generic repository over an async SQLAlchemy session.

Design notes
------------
- ``Repository[ModelT]`` owns the paging maths (clamp, COUNT, OFFSET /
  LIMIT) so specialised repositories only contribute WHERE criteria,
  ordering and eager-load options.
- Subclasses declare the mapped class through ``model``; identity is
  the model's integer ``id`` column.
- Relationships are ``lazy="raise_on_sql"`` on every model, so touching an
  unloaded one fails instead of emitting SQL.  Callers opt in by
  passing relationship attributes (``Product.category``): many-to-one
  uses ``joinedload``, collections use ``selectinload``.
- Writes only stage changes on the session.  ``commit()`` is the single
  place where pending writes hit the database and where driver errors
  are translated into ``ConflictError`` / ``StorageError``.
"""
from collections.abc import Iterable, Sequence
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload
from sqlalchemy.orm.exc import StaleDataError

from minishop.database import Base
from minishop.exceptions import ConflictError, StorageError
from minishop.schemas import PagedResult, clamp_paging

ModelT = TypeVar("ModelT", bound=Base)


def _load_option(relation):
    if relation.property.uselist:
        return selectinload(relation)
    return joinedload(relation)


class Repository(Generic[ModelT]):
    """CRUD, paging and existence checks for one mapped class."""

    model: ClassVar[type]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @property
    def id_column(self):
        return self.model.id

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_all(self, page: int = 1, page_size: int = 10) -> PagedResult:
        return await self.find(page=page, page_size=page_size)

    async def get_by_id(self, entity_id: int, *relations) -> ModelT | None:
        """
        Return the entity with *entity_id*, or None.

        *relations* are relationship attributes to eager-load, e.g.
        ``repo.get_by_id(1, Category.products)``.
        """
        return await self.first(self.id_column == entity_id, relations=relations)

    async def first(
        self, *criteria, relations: Iterable = (), refresh: bool = False
    ) -> ModelT | None:
        """
        Return the first entity matching *criteria*, or None.

        With *refresh*, rows already in the session are overwritten from
        the database, including eager-loaded collections.
        """
        q = select(self.model).where(*criteria)
        q = q.options(*[_load_option(r) for r in relations])
        if refresh:
            q = q.execution_options(populate_existing=True)
        result = await self.session.execute(q)
        return result.unique().scalars().first()

    async def find(
        self,
        *criteria,
        page: int = 1,
        page_size: int = 10,
        order_by: Sequence[Any] = (),
        relations: Iterable = (),
    ) -> PagedResult:
        """
        Return one page of entities matching *criteria*.

        A COUNT over the filtered set runs first; the SELECT with OFFSET /
        LIMIT is skipped when the page starts past the last row.  Ordering
        defaults to the identity column so page boundaries are stable.
        """
        page, page_size = clamp_paging(page, page_size)
        offset = (page - 1) * page_size

        total = await self.count(*criteria)
        if offset >= total:
            return PagedResult(items=[], total=total, page=page, page_size=page_size)

        q = (
            select(self.model)
            .where(*criteria)
            .options(*[_load_option(r) for r in relations])
            .order_by(*(order_by or (self.id_column,)))
            .offset(offset)
            .limit(page_size)
        )
        result = await self.session.execute(q)
        items = list(result.unique().scalars().all())
        return PagedResult(items=items, total=total, page=page, page_size=page_size)

    async def count(self, *criteria) -> int:
        q = select(func.count()).select_from(self.model).where(*criteria)
        return (await self.session.execute(q)).scalar_one()

    async def exists(self, *criteria) -> bool:
        q = select(select(self.id_column).where(*criteria).exists())
        return bool((await self.session.execute(q)).scalar())

    # ------------------------------------------------------------------
    # Writes (staged until commit)
    # ------------------------------------------------------------------

    async def add(self, entity: ModelT) -> ModelT:
        self.session.add(entity)
        return entity

    async def add_all(self, entities: Iterable[ModelT]) -> list[ModelT]:
        entities = list(entities)
        self.session.add_all(entities)
        return entities

    async def update(self, entity: ModelT) -> ModelT:
        # Entities loaded through this session are already tracked;
        # detached ones are merged back in.
        if entity in self.session:
            return entity
        return await self.session.merge(entity)

    async def remove_by_id(self, entity_id: int) -> None:
        entity = await self.session.get(self.model, entity_id)
        if entity is not None:
            await self.session.delete(entity)

    async def remove(self, entity: ModelT) -> None:
        await self.session.delete(entity)

    async def remove_all(self, entities: Iterable[ModelT]) -> None:
        for entity in entities:
            await self.session.delete(entity)

    async def commit(self) -> None:
        """
        Flush and commit pending writes.

        A stale ``version_id_col`` raises ``ConflictError``; any other
        database failure raises ``StorageError``.  The session is rolled
        back first in both cases.
        """
        try:
            await self.session.commit()
        except StaleDataError as exc:
            await self.session.rollback()
            raise ConflictError(
                f"{self.model.__name__} was modified by another request",
                details={"entity_type": self.model.__name__},
            ) from exc
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError(
                f"{self.model.__name__} violates a database constraint",
                details={"entity_type": self.model.__name__, "reason": str(exc.orig)},
            ) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StorageError(f"Failed to save {self.model.__name__}") from exc
