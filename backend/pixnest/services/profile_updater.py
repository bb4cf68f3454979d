"""Profile Updater: mutates user attributes and swaps avatar references.

Invariants:
    - All-or-nothing: a failed avatar ingestion or a uniqueness collision
      leaves the stored profile exactly as it was
    - Avatar upload completes before the user row references it
    - reset_avatar() restores DEFAULT_AVATAR and never touches storage

Design Decisions:
    - Existence is checked before uploading so unknown users cost no storage write
    - When the commit fails after a successful upload, the new object is an
      orphan in storage: logged with its reference for out-of-band cleanup
"""

import logging
from uuid import UUID

from pixnest.core.domain_types import DEFAULT_AVATAR, IdentityChanges
from pixnest.core.errors import ErrorContext, PixNestError
from pixnest.core.repository_protocols import ByteSource
from pixnest.models.user import User
from pixnest.services.credential_store import CredentialStore
from pixnest.services.media_ingestor import MediaIngestor

logger = logging.getLogger(__name__)


class ProfileUpdater:
    """Profile edits on top of CredentialStore and MediaIngestor."""

    def __init__(
        self,
        credentials: CredentialStore,
        ingestor: MediaIngestor,
        avatar_folder: str,
    ):
        self.credentials = credentials
        self.ingestor = ingestor
        self.avatar_folder = avatar_folder

    async def update_profile(
        self,
        user_id: UUID,
        changes: IdentityChanges,
        avatar: ByteSource | None = None,
        declared_size: int | None = None,
        mime_hint: str | None = None,
        context: ErrorContext | None = None,
    ) -> User:
        await self.credentials.get(user_id)
        ctx = context or ErrorContext(user_id=str(user_id))

        avatar_ref = None
        if avatar is not None:
            avatar_ref = await self.ingestor.ingest(
                avatar, declared_size, mime_hint, self.avatar_folder, ctx,
            )

        try:
            return await self.credentials.change_identity_fields(
                user_id, changes, avatar=avatar_ref,
            )
        except PixNestError:
            if avatar_ref is not None:
                logger.warning(
                    "Profile update rejected after avatar upload; stored object orphaned",
                    extra={
                        "user_id": user_id, "storage_ref": avatar_ref,
                        "folder": self.avatar_folder,
                    },
                )
            raise

    async def reset_avatar(self, user_id: UUID) -> User:
        user = await self.credentials.set_avatar(user_id, DEFAULT_AVATAR)
        logger.info("Avatar reset to default", extra={"user_id": user_id})
        return user
