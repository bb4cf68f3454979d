"""Orphan Reconciliation: offline job that re-links posts missing from collections.

Usage:
    python -m pixnest.services.reconcile

Invariants:
    - Idempotent: a second run right after the first links nothing
    - Uses its own engine, never the API's db_manager
"""

import asyncio
import logging

from sqlalchemy.pool import NullPool

from pixnest.config import get_settings
from pixnest.infrastructure.database import DatabaseSessionManager
from pixnest.infrastructure.observability import setup_logging
from pixnest.services.post_registry import PostRegistry
from pixnest.services.session_manager import SessionManager

logger = logging.getLogger(__name__)


async def run_reconciliation(database_url: str, session_ttl_seconds: int) -> dict:
    """Link orphaned posts and purge terminal login sessions."""
    manager = DatabaseSessionManager(database_url, poolclass=NullPool)
    try:
        async with manager.session() as db:
            linked = await PostRegistry(db).reconcile()
            purged = await SessionManager(db, session_ttl_seconds).purge_expired()
    finally:
        await manager.dispose()
    logger.info(f"Reconciliation done: {linked} posts linked, {purged} sessions purged")
    return {"linked_posts": linked, "purged_sessions": purged}


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    asyncio.run(
        run_reconciliation(settings.database_url, settings.session_ttl_seconds),
    )


if __name__ == "__main__":
    main()
