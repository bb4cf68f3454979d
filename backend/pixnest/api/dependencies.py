"""Request Dependencies: per-request service construction and identity resolution.

Invariants:
    - Every service in one request shares the same AsyncSession (FastAPI caches get_db)
    - get_current_user_id is the only way a route learns who is calling
    - Token read from the session cookie first, then an Authorization: Bearer header

Design Decisions:
    - Explicit dependencies over middleware-attached request.user: identity
      resolution is a visible step in each route signature
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from pixnest.config import Settings, get_settings
from pixnest.core.domain_types import UserId
from pixnest.core.repository_protocols import ObjectStorageGateway
from pixnest.infrastructure.cloudinary_gateway import get_storage_gateway
from pixnest.infrastructure.database import get_db
from pixnest.services.credential_store import CredentialStore
from pixnest.services.media_ingestor import MediaIngestor
from pixnest.services.post_registry import PostRegistry
from pixnest.services.profile_updater import ProfileUpdater
from pixnest.services.session_manager import SessionManager


def get_credential_store(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CredentialStore:
    return CredentialStore(db, bcrypt_rounds=settings.bcrypt_rounds)


def get_session_manager(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> SessionManager:
    return SessionManager(db, ttl_seconds=settings.session_ttl_seconds)


def get_media_ingestor(
    gateway: ObjectStorageGateway = Depends(get_storage_gateway),
    settings: Settings = Depends(get_settings),
) -> MediaIngestor:
    return MediaIngestor(
        gateway,
        max_bytes=settings.media_max_bytes,
        allowed_formats=settings.media_allowed_formats,
        upload_timeout_seconds=settings.media_upload_timeout_seconds,
        max_retries=settings.media_upload_max_retries,
        base_delay_ms=settings.media_upload_base_delay_ms,
    )


def get_post_registry(db: AsyncSession = Depends(get_db)) -> PostRegistry:
    return PostRegistry(db)


def get_profile_updater(
    credentials: CredentialStore = Depends(get_credential_store),
    ingestor: MediaIngestor = Depends(get_media_ingestor),
    settings: Settings = Depends(get_settings),
) -> ProfileUpdater:
    return ProfileUpdater(credentials, ingestor, settings.avatar_folder)


def read_session_token(
    request: Request, settings: Settings = Depends(get_settings),
) -> str | None:
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def get_current_user_id(
    token: str | None = Depends(read_session_token),
    sessions: SessionManager = Depends(get_session_manager),
) -> UserId:
    """Resolve the caller. UnauthenticatedError (401) when there is no live session."""
    return await sessions.resolve(token)
