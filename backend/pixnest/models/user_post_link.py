"""UserPostLink ORM: the owner's ordered post collection.

Invariants:
    - Autoincrement id defines publish order within a user's collection
    - post_id UNIQUE: a post appears in at most one collection
    - user_id always equals the linked post's owner_id (written by PostRegistry only)

Design Decisions:
    - Separate table from posts: linking is a distinct step that can fail on
      its own, which is what makes orphans observable and reconcilable
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from pixnest.db.base import Base


class UserPostLink(Base):
    """Membership of a post in its owner's collection."""
    __tablename__ = "user_posts"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    post_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
