"""Domain Types: rich types that replace bare primitives across the codebase.

Invariants:
    - UserId, PostId wrap UUIDs; SessionToken and StorageRef wrap str
    - DEFAULT_AVATAR is the sentinel stored when a user has no avatar
    - All valid states encoded as Enums, no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)
PostId = NewType("PostId", UUID)


# ─── Value Types ─────────────────────────────────────────────────

SessionToken = NewType("SessionToken", str)   # opaque bearer credential
StorageRef = NewType("StorageRef", str)       # locator into object storage

DEFAULT_AVATAR = StorageRef("default.png")


# ─── Enums ───────────────────────────────────────────────────────

class ImageFormat(str, Enum):
    """Image formats recognised by content sniffing (Pillow format names)."""
    JPEG = "JPEG"
    PNG = "PNG"
    GIF = "GIF"
    WEBP = "WEBP"

    @property
    def content_type(self) -> str:
        return f"image/{self.value.lower()}"


class SessionState(str, Enum):
    """Login session lifecycle. INVALIDATED and EXPIRED are terminal."""
    ACTIVE = "active"
    INVALIDATED = "invalidated"
    EXPIRED = "expired"


# ─── Commands ────────────────────────────────────────────────────

@dataclass(frozen=True)
class IdentityChanges:
    """Partial update of a user's identity fields. None means unchanged."""
    username: str | None = None
    email: str | None = None
    full_name: str | None = None
    description: str | None = None

    def as_dict(self) -> dict[str, str]:
        """Only the fields that were actually supplied."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    @property
    def is_empty(self) -> bool:
        return not self.as_dict()
