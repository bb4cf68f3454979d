"""Domain Types: IdentityChanges partial updates and ImageFormat helpers."""

from pixnest.core.domain_types import DEFAULT_AVATAR, IdentityChanges, ImageFormat


def test_identity_changes_only_reports_supplied_fields():
    changes = IdentityChanges(username="ana2", description="")
    assert changes.as_dict() == {"username": "ana2", "description": ""}
    assert not changes.is_empty


def test_empty_identity_changes():
    assert IdentityChanges().is_empty


def test_image_format_content_type():
    assert ImageFormat.JPEG.content_type == "image/jpeg"
    assert ImageFormat.PNG.content_type == "image/png"


def test_default_avatar_sentinel():
    assert DEFAULT_AVATAR == "default.png"
