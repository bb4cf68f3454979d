"""Database Session Manager: engine ownership, request sessions, readiness probe.

Invariants:
    - A session that sees an exception is rolled back before it is closed
    - SQLAlchemy errors that escape a service leave as PixNestError subclasses:
      IntegrityError -> WriteConflictError (409), anything else -> DatabaseError (503)
    - Services that expect an IntegrityError (CredentialStore uniqueness,
      PostRegistry link writes) catch it themselves; only the unexpected reach here

Design Decisions:
    - Singleton db_manager for the API, initialized in the lifespan; the
      reconciliation job builds its own manager with a NullPool
    - expire_on_commit=False: services return ORM rows after committing
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from pixnest.core.errors import DatabaseError, PixNestError, WriteConflictError

logger = logging.getLogger(__name__)


def map_database_error(exc: SQLAlchemyError) -> PixNestError:
    if isinstance(exc, IntegrityError):
        return WriteConflictError()
    if isinstance(exc, OperationalError):
        return DatabaseError("connection lost or database locked", "execute")
    return DatabaseError(type(exc).__name__, "query")


class DatabaseSessionManager:
    """Owns the async engine and hands out rollback-on-error sessions."""

    def __init__(self, database_url: str, **engine_options):
        options = {"pool_pre_ping": True, "pool_recycle": 3600}
        options.update(engine_options)
        self.engine = create_async_engine(database_url, **options)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            error = map_database_error(e)
            logger.error(
                f"Database failure mapped to {error.code}: {e}",
                extra={"error_code": error.code},
            )
            raise error from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """True when a trivial query round-trips (readiness probe)."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


# Singleton (initialized on startup)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **engine_options) -> None:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **engine_options)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, shared by its services."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
