"""Orphan Reconciliation job: links orphaned posts and purges dead sessions."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.pool import NullPool

from pixnest.db.base import Base
from pixnest.infrastructure.database import DatabaseSessionManager
from pixnest.models.login_session import LoginSession
from pixnest.models.post import Post
from pixnest.models.user import User
from pixnest.models.user_post_link import UserPostLink
from pixnest.services.reconcile import run_reconciliation


async def test_reconciliation_job(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'job.db'}"
    manager = DatabaseSessionManager(url, poolclass=NullPool)
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    now = datetime.now(timezone.utc)
    async with manager.session() as db:
        user = User(username="ana", email="ana@x.com", password_hash="$2b$04$x")
        db.add(user)
        await db.flush()
        orphan = Post(owner_id=user.id, image="https://res.cloudinary.test/a.jpg")
        db.add(orphan)
        db.add(LoginSession(
            token_hash="a" * 64, user_id=user.id, created_at=now,
            expires_at=now + timedelta(hours=1), invalidated_at=now,
        ))
        db.add(LoginSession(
            token_hash="b" * 64, user_id=user.id, created_at=now,
            expires_at=now + timedelta(hours=1),
        ))
        await db.commit()
        orphan_id = orphan.id

    first = await run_reconciliation(url, session_ttl_seconds=3600)
    second = await run_reconciliation(url, session_ttl_seconds=3600)

    assert first == {"linked_posts": 1, "purged_sessions": 1}
    assert second == {"linked_posts": 0, "purged_sessions": 0}

    async with manager.session() as db:
        links = (await db.execute(select(UserPostLink.post_id))).scalars().all()
        sessions = (await db.execute(select(LoginSession.token_hash))).scalars().all()
    await manager.dispose()
    assert links == [orphan_id]
    assert sessions == ["b" * 64]
