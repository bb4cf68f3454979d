"""Profile Updater: all-or-nothing profile edits and avatar swaps.

Invariants:
    - A rejected avatar or a uniqueness collision leaves the profile unchanged
    - The avatar reference is stored only after the upload succeeded
    - reset_avatar restores the default without touching storage
"""

from uuid import uuid4

import pytest

from pixnest.core.domain_types import DEFAULT_AVATAR, IdentityChanges
from pixnest.core.errors import (
    DuplicateIdentityError, NotFoundError, PayloadTooLargeError,
    StorageUnavailableError, UnsupportedMediaError,
)
from pixnest.services.media_ingestor import MediaIngestor
from pixnest.services.profile_updater import ProfileUpdater

from tests.image_fixtures import NOT_AN_IMAGE, png_bytes
from tests.services.fake_storage import AsyncBytes, FakeStorageGateway


@pytest.fixture
def updater(credentials, ingestor):
    return ProfileUpdater(credentials, ingestor, avatar_folder="profile-images")


async def test_update_fields_only(updater, seed_user, fake_storage):
    user = await updater.update_profile(
        seed_user.id, IdentityChanges(full_name="Ana Maria", description="photos"),
    )
    assert user.full_name == "Ana Maria"
    assert user.description == "photos"
    assert user.avatar == DEFAULT_AVATAR
    assert fake_storage.calls == []


async def test_update_with_avatar(updater, seed_user, fake_storage):
    data = png_bytes()
    user = await updater.update_profile(
        seed_user.id, IdentityChanges(description="new look"),
        avatar=AsyncBytes(data), declared_size=len(data), mime_hint="image/png",
    )
    assert user.avatar == "https://res.cloudinary.test/profile-images/img1.png"
    assert user.description == "new look"
    assert fake_storage.calls[0]["folder"] == "profile-images"


async def test_rejected_avatar_leaves_profile_unchanged(updater, seed_user, credentials, fake_storage):
    with pytest.raises(UnsupportedMediaError):
        await updater.update_profile(
            seed_user.id, IdentityChanges(full_name="Changed"),
            avatar=AsyncBytes(NOT_AN_IMAGE), mime_hint="image/png",
        )
    user = await credentials.get(seed_user.id)
    assert user.full_name == "Ana Lima"
    assert fake_storage.calls == []


async def test_oversized_avatar_rejected(updater, seed_user, fake_storage):
    with pytest.raises(PayloadTooLargeError):
        await updater.update_profile(
            seed_user.id, IdentityChanges(),
            avatar=AsyncBytes(png_bytes()), declared_size=50 * 1024 * 1024,
        )
    assert fake_storage.calls == []


async def test_storage_failure_leaves_profile_unchanged(credentials, seed_user):
    gateway = FakeStorageGateway(failures=[
        StorageUnavailableError("HTTP 400", retryable=False),
    ])
    updater = ProfileUpdater(
        credentials, MediaIngestor(gateway, max_bytes=1024 * 1024, base_delay_ms=1),
        avatar_folder="profile-images",
    )
    with pytest.raises(StorageUnavailableError):
        await updater.update_profile(
            seed_user.id, IdentityChanges(description="x"),
            avatar=AsyncBytes(png_bytes()),
        )
    user = await credentials.get(seed_user.id)
    assert user.description == ""
    assert user.avatar == DEFAULT_AVATAR


async def test_collision_after_upload_keeps_old_avatar(updater, seed_user, credentials, fake_storage, caplog):
    ana_id = seed_user.id
    await credentials.register("bruno", "bruno@x.com", "Bruno", "bruno-secret")
    with caplog.at_level("WARNING", logger="pixnest.services.profile_updater"):
        with pytest.raises(DuplicateIdentityError):
            await updater.update_profile(
                ana_id, IdentityChanges(username="bruno"),
                avatar=AsyncBytes(png_bytes()),
            )
    user = await credentials.get(ana_id)
    assert user.username == "ana"
    assert user.avatar == DEFAULT_AVATAR
    assert len(fake_storage.calls) == 1
    assert any("orphaned" in r.message for r in caplog.records)


async def test_unknown_user_costs_no_upload(updater, fake_storage):
    with pytest.raises(NotFoundError):
        await updater.update_profile(
            uuid4(), IdentityChanges(), avatar=AsyncBytes(png_bytes()),
        )
    assert fake_storage.calls == []


async def test_reset_avatar(updater, seed_user, fake_storage):
    data = png_bytes()
    await updater.update_profile(
        seed_user.id, IdentityChanges(), avatar=AsyncBytes(data),
    )
    user = await updater.reset_avatar(seed_user.id)
    assert user.avatar == DEFAULT_AVATAR
    assert len(fake_storage.calls) == 1
