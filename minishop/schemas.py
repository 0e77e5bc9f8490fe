import math
from datetime import datetime
from decimal import Decimal
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from minishop.config import settings

T = TypeVar("T")


# Largest OFFSET a signed 64-bit database integer can hold.
MAX_OFFSET = 2**63 - 1


def clamp_paging(page: int, page_size: int) -> tuple[int, int]:
    """
    Return *page* and *page_size* brought into range.

    *page_size* is clamped to [1, MAX_PAGE_SIZE]; *page* to at least 1 and
    at most the last page whose OFFSET still fits in ``MAX_OFFSET``.
    """
    page_size = min(max(1, page_size), settings.MAX_PAGE_SIZE)
    page = min(max(1, page), MAX_OFFSET // page_size + 1)
    return page, page_size


# --- Pagination ---

class PagedResult(BaseModel, Generic[T]):
    """
    One page of an ordered collection plus navigation metadata.

    Repositories build it unparametrised around ORM rows; services
    re-wrap it as ``PagedResult[SomeResponse]`` for the API.
    """

    items: list[T] = []
    total: int = 0
    page: int = 1
    page_size: int = 10

    @model_validator(mode="after")
    def _clamp_paging(self) -> "PagedResult":
        self.page, self.page_size = clamp_paging(self.page, self.page_size)
        return self

    @computed_field
    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size)

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @computed_field
    @property
    def has_previous(self) -> bool:
        return self.page > 1


# --- Category ---

class CategoryBase(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(None, max_length=500)


class CategoryCreate(CategoryBase):
    pass


class CategoryResponse(CategoryBase):
    id: int
    created_at: datetime
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class CategoryDetail(CategoryResponse):
    products: list["ProductResponse"] = []


# --- Product ---

class ProductCreate(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    price: Decimal = Field(gt=0, le=Decimal("999999.99"), decimal_places=2)
    category_id: int = Field(ge=1)


class ProductUpdate(BaseModel):
    """Partial update; only fields present in the payload are applied."""

    name: str | None = Field(None, min_length=2, max_length=200)
    price: Decimal | None = Field(None, gt=0, le=Decimal("999999.99"), decimal_places=2)
    category_id: int | None = Field(None, ge=1)


class ProductResponse(BaseModel):
    id: int
    name: str
    price: Decimal
    category_id: int
    category_name: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


# --- Accounts ---

class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=100)
    email: str = Field(max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=1, max_length=72)


class LoginRequest(BaseModel):
    username: str
    password: str = Field(max_length=72)


class AccountResponse(BaseModel):
    id: int
    username: str
    email: str
    roles: list[str] = []


class TokenResponse(BaseModel):
    username: str
    email: str
    token: str
    token_type: str = "bearer"
    expires_at: datetime


# Required for forward-reference resolution (CategoryDetail.products)
CategoryDetail.model_rebuild()
