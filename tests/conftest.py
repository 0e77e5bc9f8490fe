"""
Test infrastructure for the Mini E-Commerce API.

Strategy
--------
- JWT settings are injected through the environment before ``minishop``
  is imported, because ``settings`` is read once at import time.
- SQLite in-memory via aiosqlite keeps the suite self-contained.
  StaticPool makes every session share the single in-memory connection;
  a second connection would see an empty database.
- The test engine comes from ``build_engine``, so it counts queries and
  enforces foreign keys (category -> product ``ON DELETE CASCADE``)
  like the app engine.
- The app's get_db dependency is overridden so every request uses the
  test session factory.
- All tables are created fresh before each test and dropped after.
"""
import os

os.environ.setdefault("JWT_SECRET_KEY", "test-signing-key-that-is-at-least-32-bytes-long")
os.environ.setdefault("JWT_ISSUER", "minishop-tests")
os.environ.setdefault("JWT_AUDIENCE", "minishop-clients")

import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from minishop.database import Base, build_engine, get_db  # noqa: E402
from minishop.dependencies import get_jwt_config  # noqa: E402
from minishop.main import app  # noqa: E402
from minishop.models import Category, User  # noqa: E402
from minishop.repositories import UserRepository  # noqa: E402
from minishop.security import TokenIssuer  # noqa: E402

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = build_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency override: replace production get_db with the test session factory
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that call repositories and
    services directly.
    """
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def auth_headers() -> dict:
    """
    Bearer header for a user inserted directly into the database.

    Skips the bcrypt round trip of register + login; account endpoints
    have their own tests.
    """
    async with async_session_test() as session:
        user = User(username="tester", email="tester@example.com", password_hash="not-a-hash")
        session.add(user)
        await session.commit()
        token = await TokenIssuer(get_jwt_config(), UserRepository(session)).issue(user)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def category(db_session: AsyncSession) -> Category:
    """A committed 'Electronics' category."""
    electronics = Category(name="Electronics", description="Electronic devices and gadgets")
    db_session.add(electronics)
    await db_session.commit()
    return electronics

