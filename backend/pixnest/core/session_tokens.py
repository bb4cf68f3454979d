"""Session Tokens: generation, hashing, and lifecycle evaluation.

Invariants:
    - Raw tokens are returned to the caller once and never persisted
    - hash_token is deterministic (lookup key) and one-way
    - session_state is total: every (expires_at, invalidated_at, now) maps to
      exactly one SessionState, INVALIDATED taking precedence over EXPIRED
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from pixnest.core.domain_types import SessionState, SessionToken

TOKEN_BYTES = 32


def new_token() -> SessionToken:
    """Fresh unguessable bearer token (256 bits of entropy)."""
    return SessionToken(secrets.token_urlsafe(TOKEN_BYTES))


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def expiry_for(now: datetime, ttl_seconds: int) -> datetime:
    return now + timedelta(seconds=ttl_seconds)


def as_utc(dt: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def session_state(
    expires_at: datetime, invalidated_at: datetime | None, now: datetime,
) -> SessionState:
    if invalidated_at is not None:
        return SessionState.INVALIDATED
    if as_utc(now) >= as_utc(expires_at):
        return SessionState.EXPIRED
    return SessionState.ACTIVE
