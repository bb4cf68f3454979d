"""Service test fixtures: async DB, fake object storage, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db and get_storage_gateway overridden for route tests
    - race_session_factory uses a file database with one connection per session,
      so concurrent writers really contend on the UNIQUE constraints

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for service tests
    - Route tests authenticate with explicit Bearer headers and clear the cookie
      jar, so several users can act through one client
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import NullPool
from httpx import ASGITransport, AsyncClient

import pixnest.models  # noqa: F401
from pixnest.db.base import Base
from pixnest.infrastructure.cloudinary_gateway import get_storage_gateway
from pixnest.infrastructure.database import get_db
from pixnest.main import app
from pixnest.services.credential_store import CredentialStore
from pixnest.services.media_ingestor import MediaIngestor
from pixnest.services.post_registry import PostRegistry
from pixnest.services.session_manager import SessionManager

from tests.services.fake_storage import FakeStorageGateway


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def race_session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def fake_storage():
    return FakeStorageGateway()


@pytest.fixture
def credentials(test_db):
    return CredentialStore(test_db, bcrypt_rounds=4)


@pytest.fixture
def sessions(test_db):
    return SessionManager(test_db, ttl_seconds=3600)


@pytest.fixture
def posts(test_db):
    return PostRegistry(test_db)


@pytest.fixture
def ingestor(fake_storage):
    return MediaIngestor(
        fake_storage,
        max_bytes=10 * 1024 * 1024,
        allowed_formats=["JPEG", "PNG"],
        upload_timeout_seconds=5,
        max_retries=2,
        base_delay_ms=1,
    )


@pytest.fixture
async def seed_user(credentials):
    """Registered user 'ana'. Returns the User row."""
    user_id = await credentials.register("ana", "ana@x.com", "Ana Lima", "correct-horse")
    return await credentials.get(user_id)


@pytest.fixture
async def client(test_session_factory, fake_storage):
    """FastAPI test client with DB and object storage overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_gateway] = lambda: fake_storage

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()

