"""Post Registry: creates and deletes posts and keeps each owner's collection.

Invariants:
    - create() is called only with a StorageRef the gateway already confirmed
    - A post's owner_id never changes; link rows always carry the post's owner_id
    - delete() by anyone but the owner raises ForbiddenError and changes nothing
    - Object-storage content is never retracted here (out-of-band cleanup)

Design Decisions:
    - Two commits in create(): post row, then link row. No cross-step
      transaction, by design of the consistency model. A failed link leaves an
      orphan that is logged, still reachable by id, and fixable by reconcile()
    - Joins are explicit queries (list_for_owner, feed), not ORM relationships
"""

import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pixnest.core.domain_types import PostId, StorageRef
from pixnest.core.errors import ForbiddenError, NotFoundError
from pixnest.models.post import Post
from pixnest.models.user import User
from pixnest.models.user_post_link import UserPostLink

logger = logging.getLogger(__name__)


class PostRegistry:
    """Post records plus the owner's ordered post collection."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self, owner_id: UUID, storage_ref: StorageRef, caption: str | None,
    ) -> PostId:
        if await self.db.get(User, owner_id) is None:
            raise NotFoundError("User", str(owner_id))

        post = Post(owner_id=owner_id, image=storage_ref, caption=caption)
        self.db.add(post)
        await self.db.commit()
        post_id = PostId(post.id)

        try:
            await self._append_to_owner(post_id, owner_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Post created but not linked to owner collection: {e}",
                extra={
                    "post_id": post_id, "user_id": owner_id,
                    "storage_ref": storage_ref, "error_code": "ORPHANED_POST",
                },
            )
        else:
            logger.info(
                "Post published",
                extra={"post_id": post_id, "user_id": owner_id},
            )
        return post_id

    async def get(self, post_id: UUID) -> Post:
        post = await self.db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post", str(post_id))
        return post

    async def delete(self, post_id: UUID, requester_id: UUID) -> None:
        post = await self.get(post_id)
        if post.owner_id != requester_id:
            logger.warning(
                "Delete refused for non-owner",
                extra={"post_id": post_id, "user_id": requester_id},
            )
            raise ForbiddenError("Only the owner can delete this post")

        storage_ref = post.image
        await self.db.execute(
            delete(UserPostLink).where(UserPostLink.post_id == post_id),
        )
        await self.db.delete(post)
        await self.db.commit()
        logger.info(
            "Post deleted; stored image retained for out-of-band cleanup",
            extra={"post_id": post_id, "user_id": requester_id, "storage_ref": storage_ref},
        )

    async def list_for_owner(self, owner_id: UUID) -> list[Post]:
        """The owner's collection in publish order."""
        result = await self.db.execute(
            select(Post)
            .join(UserPostLink, UserPostLink.post_id == Post.id)
            .where(UserPostLink.user_id == owner_id)
            .order_by(UserPostLink.id),
        )
        return list(result.scalars().all())

    async def feed(self, limit: int = 20, offset: int = 0) -> list[tuple[Post, User]]:
        """All posts, newest first, each with its owner."""
        result = await self.db.execute(
            select(Post, User)
            .join(User, User.id == Post.owner_id)
            .order_by(Post.created_at.desc())
            .limit(limit).offset(offset),
        )
        return [(post, user) for post, user in result.all()]

    async def find_orphans(self) -> list[Post]:
        """Posts that exist but are missing from their owner's collection."""
        result = await self.db.execute(
            select(Post)
            .outerjoin(UserPostLink, UserPostLink.post_id == Post.id)
            .where(UserPostLink.id.is_(None))
            .order_by(Post.created_at),
        )
        return list(result.scalars().all())

    async def reconcile(self) -> int:
        """Link every orphaned post into its owner's collection."""
        orphans = await self.find_orphans()
        for post in orphans:
            self.db.add(UserPostLink(user_id=post.owner_id, post_id=post.id))
            logger.info(
                "Reconciled orphaned post",
                extra={"post_id": post.id, "user_id": post.owner_id},
            )
        if orphans:
            await self.db.commit()
        return len(orphans)

    async def _append_to_owner(self, post_id: PostId, owner_id: UUID) -> None:
        self.db.add(UserPostLink(user_id=owner_id, post_id=post_id))
        await self.db.commit()
