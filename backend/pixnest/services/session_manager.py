"""Session Manager: converts a verified identity into a bearer token and back.

Invariants:
    - establish() returns a fresh token; only its sha256 is persisted
    - resolve() succeeds only for ACTIVE sessions (see core/session_tokens.py)
    - invalidate() is idempotent and commits before returning, so any resolve()
      issued afterwards observes it
    - Terminal states are never left: invalidated_at is only ever set once

Design Decisions:
    - DB-backed sessions over in-memory dict: survives restarts and works with
      multiple uvicorn workers
    - Clock injected: expiry is testable without sleeping
"""

import logging
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pixnest.core.domain_types import SessionState, SessionToken, UserId
from pixnest.core.errors import UnauthenticatedError
from pixnest.core.session_tokens import (
    expiry_for, hash_token, new_token, session_state,
)
from pixnest.models.login_session import LoginSession

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """Token lifecycle: establish, resolve, invalidate."""

    def __init__(
        self,
        db: AsyncSession,
        ttl_seconds: int,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    async def establish(self, user_id: UUID) -> SessionToken:
        token = new_token()
        now = self._clock()
        self.db.add(LoginSession(
            token_hash=hash_token(token),
            user_id=user_id,
            created_at=now,
            expires_at=expiry_for(now, self.ttl_seconds),
        ))
        await self.db.commit()
        logger.info("Session established", extra={"user_id": user_id})
        return token

    async def resolve(self, token: str | None) -> UserId:
        if not token:
            raise UnauthenticatedError()
        result = await self.db.execute(
            select(LoginSession.user_id, LoginSession.expires_at, LoginSession.invalidated_at)
            .where(LoginSession.token_hash == hash_token(token)),
        )
        row = result.first()
        if row is None:
            raise UnauthenticatedError()
        state = session_state(row.expires_at, row.invalidated_at, self._clock())
        if state is not SessionState.ACTIVE:
            logger.debug(f"Rejected {state.value} session", extra={"user_id": row.user_id})
            raise UnauthenticatedError()
        return UserId(row.user_id)

    async def invalidate(self, token: str | None) -> None:
        if not token:
            return
        await self.db.execute(
            update(LoginSession)
            .where(LoginSession.token_hash == hash_token(token))
            .where(LoginSession.invalidated_at.is_(None))
            .values(invalidated_at=self._clock()),
        )
        await self.db.commit()

    async def purge_expired(self) -> int:
        """Delete sessions that reached a terminal state. Returns rows removed."""
        result = await self.db.execute(
            delete(LoginSession).where(
                or_(
                    LoginSession.invalidated_at.is_not(None),
                    LoginSession.expires_at <= self._clock(),
                ),
            ),
        )
        await self.db.commit()
        if result.rowcount:
            logger.info(f"Purged {result.rowcount} terminal sessions")
        return result.rowcount
