import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from minishop.config import settings
from minishop.dependencies import get_jwt_config
from minishop.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ShopError,
    StorageError,
    ValidationError,
)
from minishop.middleware import RequestMetricsMiddleware
from minishop.routers import accounts, categories, products

logger = logging.getLogger(__name__)

# Most specific first; anything unlisted falls back to 500.
ERROR_STATUS: list[tuple[type[ShopError], int]] = [
    (ValidationError, 400),
    (AuthenticationError, 401),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StorageError, 500),
]


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: a missing signing key / issuer / audience stops the process here.
    configure_logging()
    get_jwt_config()
    logger.info("Starting minishop API (env=%s)", settings.APP_ENV)
    yield
    logger.info("Shutting down minishop API")


app = FastAPI(
    title="Mini E-Commerce API",
    description="Products, categories and accounts over a paginated repository layer",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestMetricsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    status_code = next(
        (status for error_type, status in ERROR_STATUS if isinstance(exc, error_type)), 500
    )
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        detail = "An internal server error occurred"
    else:
        detail = exc.message
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content={"detail": detail}, headers=headers)


# Routers
app.include_router(products.router)
app.include_router(categories.router)
app.include_router(accounts.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
