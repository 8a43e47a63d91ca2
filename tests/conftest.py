"""
Shared fixtures for the classifieds test suite.

Every test gets empty tables in a single in-memory SQLite database and its
own upload directory under ``tmp_path``.  HTTP tests talk to the app
in-process through ``ASGITransport``; credentials are HTTP Basic tuples
returned by ``make_user``.
"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.middleware import install_query_counter
from app.models import Role, User
from app.security import hash_password
from app.storage import LocalBlobStore, get_blob_store

# Only the bytes and content type matter to the API, not the pixels.
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
PASSWORD = "password123"

# One shared connection: an in-memory SQLite database lives only as long
# as the connection that opened it.
engine_test = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
install_query_counter(engine_test)

session_factory = async_sessionmaker(engine_test, class_=AsyncSession, expire_on_commit=False)


async def _test_db():
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = _test_db


@pytest_asyncio.fixture(autouse=True)
async def fresh_schema():
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "uploads")


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Session for tests that drive the service functions directly."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(blob_store) -> AsyncClient:
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.pop(get_blob_store, None)


@pytest_asyncio.fixture
async def make_user():
    """
    Factory inserting a committed user; returns ``(email, password)`` for
    HTTP Basic auth.
    """

    async def _make(email: str, role: Role = Role.USER, first_name: str = "Ivan") -> tuple[str, str]:
        async with session_factory() as session:
            session.add(User(
                email=email,
                password_hash=hash_password(PASSWORD),
                first_name=first_name,
                last_name="Petrov",
                phone="+7 (999) 123-45-67",
                role=role,
            ))
            await session.commit()
        return email, PASSWORD

    return _make


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES
