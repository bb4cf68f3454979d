"""Credential Store: user identity records, bcrypt hashing, uniqueness enforcement.

Invariants:
    - username/email uniqueness comes from the UNIQUE constraints on users; no
      existence pre-check gates an INSERT or UPDATE
    - verify() performs one bcrypt check whether or not the account exists
    - Raw passwords never leave this module and are never logged
    - bcrypt runs in a worker thread: the event loop is never blocked by hashing

Design Decisions:
    - Work factor injected via constructor: no process-wide auth registry
    - Email normalised to lower case so "Ana@X.com" and "ana@x.com" collide
    - Collided field looked up AFTER the failed write, only to phrase the error
"""

import asyncio
import logging
from functools import lru_cache
from uuid import UUID

import bcrypt
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pixnest.core.domain_types import IdentityChanges, StorageRef, UserId
from pixnest.core.errors import (
    DuplicateIdentityError, InvalidCredentialsError, NotFoundError,
)
from pixnest.core.password_policy import encode_password, fits_bcrypt
from pixnest.models.user import User

logger = logging.getLogger(__name__)


@lru_cache
def _dummy_hash(rounds: int) -> bytes:
    """Hash checked when no account matches, same cost as a real one."""
    return bcrypt.hashpw(b"pixnest-timing-equaliser", bcrypt.gensalt(rounds=rounds))


def _check_dummy(rounds: int) -> None:
    bcrypt.checkpw(b"not-the-password", _dummy_hash(rounds))


async def prime_dummy_hash(rounds: int) -> None:
    """Build the dummy hash at startup so the first unknown login costs one check."""
    await asyncio.to_thread(_dummy_hash, rounds)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    """Registration, login verification, and identity field changes."""

    def __init__(self, db: AsyncSession, bcrypt_rounds: int = 12):
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds

    # ─── Registration ────────────────────────────────────────────

    async def register(
        self, username: str, email: str, full_name: str, raw_password: str,
    ) -> UserId:
        """Create a user. DuplicateIdentityError if username or email is taken."""
        password = encode_password(raw_password)
        password_hash = await asyncio.to_thread(
            bcrypt.hashpw, password, bcrypt.gensalt(rounds=self.bcrypt_rounds),
        )
        username, email = username.strip(), normalize_email(email)
        user = User(
            username=username,
            email=email,
            full_name=full_name.strip(),
            password_hash=password_hash.decode("ascii"),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            collided = await self._collided_field(
                username, email, exclude=None,
            )
            logger.info(
                f"Registration rejected, {collided or 'identity'} taken",
                extra={"error_code": "DUPLICATE_IDENTITY"},
            )
            raise DuplicateIdentityError(collided) from e

        logger.info("User registered", extra={"user_id": user.id})
        return UserId(user.id)

    # ─── Verification ────────────────────────────────────────────

    async def verify(self, username_or_email: str, raw_password: str) -> UserId:
        """Resolve login credentials to a user id or raise InvalidCredentialsError."""
        identifier = username_or_email.strip()
        result = await self.db.execute(
            select(User.id, User.password_hash).where(
                or_(
                    User.username == identifier,
                    User.email == normalize_email(identifier),
                ),
            ),
        )
        row = result.first()

        if row is None or not fits_bcrypt(raw_password):
            # Same bcrypt cost as a real check: existence stays unobservable
            await asyncio.to_thread(_check_dummy, self.bcrypt_rounds)
            raise InvalidCredentialsError()

        matched = await asyncio.to_thread(
            bcrypt.checkpw,
            raw_password.encode("utf-8"),
            row.password_hash.encode("ascii"),
        )
        if not matched:
            raise InvalidCredentialsError()
        return UserId(row.id)

    # ─── Reads ───────────────────────────────────────────────────

    async def get(self, user_id: UUID) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User", str(user_id))
        return user

    # ─── Mutations ───────────────────────────────────────────────

    async def change_identity_fields(
        self,
        user_id: UUID,
        changes: IdentityChanges,
        avatar: StorageRef | None = None,
    ) -> User:
        """Apply field changes (and optionally a new avatar) in one commit."""
        user = await self.get(user_id)
        values = changes.as_dict()
        if "username" in values:
            user.username = values["username"].strip()
        if "email" in values:
            user.email = normalize_email(values["email"])
        if "full_name" in values:
            user.full_name = values["full_name"].strip()
        if "description" in values:
            user.description = values["description"]
        if avatar is not None:
            user.avatar = avatar

        username, email = user.username, user.email
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            collided = await self._collided_field(
                username, email, exclude=user_id,
            )
            raise DuplicateIdentityError(collided) from e
        return user

    async def set_avatar(self, user_id: UUID, reference: StorageRef) -> User:
        user = await self.get(user_id)
        user.avatar = reference
        await self.db.commit()
        return user

    # ─── Helpers ─────────────────────────────────────────────────

    async def _collided_field(
        self, username: str, email: str, exclude: UUID | None,
    ) -> str | None:
        """Which field another user already holds. Used only for messages."""
        for name, column, value in (
            ("username", User.username, username),
            ("email", User.email, email),
        ):
            query = select(func.count()).select_from(User).where(column == value)
            if exclude is not None:
                query = query.where(User.id != exclude)
            if (await self.db.execute(query)).scalar_one():
                return name
        return None
