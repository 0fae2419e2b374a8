"""Pytest configuration and fixtures for async testing."""
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import dsrdesk.models  # noqa: F401  registers tables on Base.metadata
from dsrdesk.database import Base
from dsrdesk.integrations.notification_service import NotificationService
from dsrdesk.main import app
from dsrdesk.schemas.session import AuthSession
from dsrdesk.security.crypto import CryptoConfig, FieldCipher
from dsrdesk.security.pii import PIICodec
from utils.factories import SessionFactory

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"

TEST_ENCRYPTION_KEY = "0123456789abcdef0123456789abcdef"
TEST_ENCRYPTION_IV = "abcdef9876543210"


@pytest_asyncio.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a fresh database for each test.

    Yields:
        AsyncEngine: Engine with every table created
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions on the test engine, for code that opens its own."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """
    Database session for one test.

    Yields:
        AsyncSession: Database session for testing
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def crypto_config() -> CryptoConfig:
    """Key material independent of the environment."""
    return CryptoConfig.from_values(TEST_ENCRYPTION_KEY, TEST_ENCRYPTION_IV)


@pytest.fixture
def cipher(crypto_config: CryptoConfig) -> FieldCipher:
    return FieldCipher(crypto_config)


@pytest.fixture
def codec(cipher: FieldCipher) -> PIICodec:
    return PIICodec(cipher)


@pytest.fixture
def admin_session() -> AuthSession:
    """Signed-in company admin."""
    return SessionFactory.create(user_id="admin-user-1", email="admin@example.com", name="Admin User")


@pytest_asyncio.fixture(scope="function")
async def async_client(
    db_session: AsyncSession,
    codec: PIICodec,
    admin_session: AuthSession,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client with database, session, codec and email overrides.

    Tests that need a different caller replace the ``get_current_session``
    override themselves.
    """
    from dsrdesk.api.deps import get_current_session, get_db, get_notification_service, get_pii_codec

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_session] = lambda: admin_session
    app.dependency_overrides[get_pii_codec] = lambda: codec
    app.dependency_overrides[get_notification_service] = lambda: NotificationService(api_key=None)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
