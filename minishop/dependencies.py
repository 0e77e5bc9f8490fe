from functools import lru_cache

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from minishop.config import settings
from minishop.database import get_db
from minishop.exceptions import AuthenticationError
from minishop.repositories import CategoryRepository, ProductRepository, UserRepository
from minishop.schemas import clamp_paging
from minishop.security import JwtConfig, Principal, TokenIssuer
from minishop.services.category_service import CategoryService
from minishop.services.product_service import ProductService

_bearer = HTTPBearer(auto_error=False)


class PaginationParams:
    """
    Reusable FastAPI dependency that parses pagination query parameters.

    Usage in a router::

        @router.get("/products")
        async def list_products(pagination: PaginationParams = Depends()):
            ...

    Out-of-range values are clamped rather than rejected: ``page`` to at
    least 1 and ``page_size`` into ``[1, settings.MAX_PAGE_SIZE]``.
    """

    def __init__(
        self,
        page: int = Query(1, description="Page number (1-based)."),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            description=f"Items per page (clamped to {settings.MAX_PAGE_SIZE}).",
        ),
    ) -> None:
        self.page, self.page_size = clamp_paging(page, page_size)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def get_product_service(db: AsyncSession = Depends(get_db)) -> ProductService:
    return ProductService(ProductRepository(db), CategoryRepository(db))


def get_category_service(db: AsyncSession = Depends(get_db)) -> CategoryService:
    return CategoryService(CategoryRepository(db))


def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

@lru_cache
def get_jwt_config() -> JwtConfig:
    """Signing configuration, resolved once; raises ConfigurationError if incomplete."""
    return JwtConfig.from_settings(settings)


def get_token_issuer(
    users: UserRepository = Depends(get_user_repository),
    config: JwtConfig = Depends(get_jwt_config),
) -> TokenIssuer:
    return TokenIssuer(config, users)


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing bearer token")
    return issuer.decode(credentials.credentials)
