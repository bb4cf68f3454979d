"""User ORM: identity record with hashed credential and profile fields.

Invariants:
    - username and email are each UNIQUE at the storage layer
    - email stored lower-cased (normalised by CredentialStore)
    - password_hash is a bcrypt hash; the raw password never reaches this table
    - avatar defaults to the DEFAULT_AVATAR sentinel

Design Decisions:
    - Named UniqueConstraints: the IntegrityError message names the violated
      constraint, which lets CredentialStore report which field collided
    - The post collection lives in user_posts (see user_post_link.py), not an
      array column: appends are single INSERTs, no read-modify-write
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from pixnest.core.domain_types import DEFAULT_AVATAR
from pixnest.db.base import Base


class User(Base):
    """Registered account."""
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
        UniqueConstraint("email", name="uq_users_email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    full_name: Mapped[str] = mapped_column(
        String(120), nullable=False, default="",
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    avatar: Mapped[str] = mapped_column(
        String(1024), nullable=False, default=DEFAULT_AVATAR,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
