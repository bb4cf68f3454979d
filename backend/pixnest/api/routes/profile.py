"""Profile Routes: own profile, public profiles, profile edits, avatar reset.

Invariants:
    - /update/{id} and /remove/{id} act only on the caller's own account (403 otherwise)
    - A profile update is all-or-nothing (see ProfileUpdater)
    - Blank username/email form fields mean "unchanged"; HTML forms always send them

Design Decisions:
    - Post collections fetched with PostRegistry.list_for_owner: the join is an
      explicit call here, not an ORM traversal
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import RedirectResponse

from pixnest.api.dependencies import (
    get_credential_store, get_current_user_id, get_post_registry,
    get_profile_updater,
)
from pixnest.core.domain_types import IdentityChanges, UserId
from pixnest.core.errors import ErrorContext, ForbiddenError
from pixnest.schemas.post import PostResponse
from pixnest.schemas.user import (
    DESCRIPTION_MAX, FULL_NAME_MAX, ProfileResponse, PublicProfileResponse,
    UserResponse, UserSummary,
)
from pixnest.services.credential_store import CredentialStore
from pixnest.services.post_registry import PostRegistry
from pixnest.services.profile_updater import ProfileUpdater

logger = logging.getLogger(__name__)
router = APIRouter(tags=["profile"])

# Empty alternatives: blank fields are accepted and treated as "unchanged"
_OPTIONAL_USERNAME = r"^([A-Za-z0-9_.-]{3,64})?$"
_OPTIONAL_EMAIL = r"^([^@\s]+@[^@\s]+\.[^@\s]+)?$"


def _require_self(target_id: UUID, user_id: UserId) -> None:
    if target_id != user_id:
        raise ForbiddenError("You can only change your own profile")


async def _own_profile(
    user_id: UserId, credentials: CredentialStore, posts: PostRegistry,
) -> ProfileResponse:
    user = await credentials.get(user_id)
    return ProfileResponse(
        user=UserResponse.model_validate(user),
        posts=[
            PostResponse.model_validate(p)
            for p in await posts.list_for_owner(user_id)
        ],
    )


@router.get("/profile", response_model=ProfileResponse)
async def profile(
    user_id: UserId = Depends(get_current_user_id),
    credentials: CredentialStore = Depends(get_credential_store),
    posts: PostRegistry = Depends(get_post_registry),
):
    return await _own_profile(user_id, credentials, posts)


@router.get("/edit", response_model=ProfileResponse)
async def edit(
    user_id: UserId = Depends(get_current_user_id),
    credentials: CredentialStore = Depends(get_credential_store),
    posts: PostRegistry = Depends(get_post_registry),
):
    """Data for the edit form: same shape as /profile."""
    return await _own_profile(user_id, credentials, posts)


@router.get("/users/{user_id}", response_model=PublicProfileResponse)
async def view_profile(
    user_id: UUID,
    credentials: CredentialStore = Depends(get_credential_store),
    posts: PostRegistry = Depends(get_post_registry),
):
    user = await credentials.get(user_id)
    return PublicProfileResponse(
        user=UserSummary.model_validate(user),
        description=user.description,
        posts=[
            PostResponse.model_validate(p)
            for p in await posts.list_for_owner(user_id)
        ],
    )


@router.post("/update/{user_id}")
async def update_profile(
    user_id: UUID,
    username: str | None = Form(None, pattern=_OPTIONAL_USERNAME),
    email: str | None = Form(None, pattern=_OPTIONAL_EMAIL, max_length=254),
    fullname: str | None = Form(None, max_length=FULL_NAME_MAX),
    description: str | None = Form(None, max_length=DESCRIPTION_MAX),
    image: UploadFile | None = File(None),
    caller_id: UserId = Depends(get_current_user_id),
    updater: ProfileUpdater = Depends(get_profile_updater),
):
    """Change profile fields and/or avatar. Rejected as a whole on any failure."""
    _require_self(user_id, caller_id)
    changes = IdentityChanges(
        username=username or None,
        email=email or None,
        full_name=fullname,
        description=description,
    )
    has_avatar = image is not None and bool(image.filename)
    await updater.update_profile(
        caller_id,
        changes,
        avatar=image if has_avatar else None,
        declared_size=image.size if has_avatar else None,
        mime_hint=image.content_type if has_avatar else None,
        context=ErrorContext(user_id=str(caller_id)),
    )
    return RedirectResponse("/profile", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/remove/{user_id}")
async def remove_avatar(
    user_id: UUID,
    caller_id: UserId = Depends(get_current_user_id),
    updater: ProfileUpdater = Depends(get_profile_updater),
):
    """Reset the avatar to the default image."""
    _require_self(user_id, caller_id)
    await updater.reset_avatar(caller_id)
    return RedirectResponse("/edit", status_code=status.HTTP_303_SEE_OTHER)
