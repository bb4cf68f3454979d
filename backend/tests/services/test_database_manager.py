"""Database Session Manager: real engine, rollback, and error mapping.

Invariants:
    - An unexpected IntegrityError leaves the session as WriteConflictError (409)
    - Other SQLAlchemy failures become DatabaseError (503)
    - The failed transaction is rolled back; earlier commits survive
"""

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.pool import NullPool

import pixnest.infrastructure.database as database
from pixnest.core.errors import DatabaseError, WriteConflictError
from pixnest.db.base import Base
from pixnest.infrastructure.database import DatabaseSessionManager, get_db
from pixnest.models.user import User


@pytest.fixture
async def manager(tmp_path):
    manager = DatabaseSessionManager(
        f"sqlite+aiosqlite:///{tmp_path / 'manager.db'}", poolclass=NullPool,
    )
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield manager
    await manager.dispose()


def _user(name: str) -> User:
    return User(username=name, email=f"{name}@x.com", password_hash="$2b$04$x")


async def test_session_commits(manager):
    async with manager.session() as db:
        db.add(_user("ana"))
        await db.commit()
    async with manager.session() as db:
        count = (await db.execute(select(func.count()).select_from(User))).scalar_one()
    assert count == 1


async def test_integrity_error_becomes_write_conflict(manager):
    async with manager.session() as db:
        db.add(_user("ana"))
        await db.commit()

    with pytest.raises(WriteConflictError) as exc:
        async with manager.session() as db:
            db.add(_user("ana"))
            await db.commit()
    assert exc.value.http_status == 409

    async with manager.session() as db:
        count = (await db.execute(select(func.count()).select_from(User))).scalar_one()
    assert count == 1


async def test_other_failures_become_database_error(manager):
    with pytest.raises(DatabaseError) as exc:
        async with manager.session() as db:
            await db.execute(text("SELECT * FROM no_such_table"))
    assert exc.value.http_status == 503
    assert exc.value.code == "DATABASE_ERROR"


async def test_domain_errors_pass_through_after_rollback(manager):
    with pytest.raises(KeyError):
        async with manager.session() as db:
            db.add(_user("ana"))
            await db.flush()
            raise KeyError("boom")
    async with manager.session() as db:
        count = (await db.execute(select(func.count()).select_from(User))).scalar_one()
    assert count == 0


async def test_health_check(manager, tmp_path):
    assert await manager.health_check() is True
    unreachable = DatabaseSessionManager(
        f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}", poolclass=NullPool,
    )
    assert await unreachable.health_check() is False
    await unreachable.dispose()


async def test_get_db_uses_initialized_manager(manager, monkeypatch):
    monkeypatch.setattr(database, "db_manager", manager)
    sessions = get_db()
    db = await sessions.__anext__()
    assert (await db.execute(text("SELECT 1"))).scalar_one() == 1
    await sessions.aclose()


async def test_get_db_without_init(monkeypatch):
    monkeypatch.setattr(database, "db_manager", None)
    with pytest.raises(RuntimeError):
        await get_db().__anext__()
