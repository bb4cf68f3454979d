"""User Schemas: public views of a user and the form constraints for identity fields.

Invariants:
    - USERNAME_PATTERN excludes "@" so a login identifier is unambiguous
    - UserResponse never exposes password_hash; UserSummary omits email too
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from pixnest.schemas.post import PostResponse

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]{3,64}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
PASSWORD_MIN = 6
PASSWORD_MAX = 72
FULL_NAME_MAX = 120
DESCRIPTION_MAX = 2000


class UserSummary(BaseModel):
    """What other users see next to a post."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    full_name: str
    avatar: str


class UserResponse(UserSummary):
    """The account owner's own view."""
    email: str
    description: str
    created_at: datetime


class ProfileResponse(BaseModel):
    """A user together with their post collection, in publish order."""
    user: UserResponse
    posts: list[PostResponse]


class PublicProfileResponse(BaseModel):
    user: UserSummary
    description: str
    posts: list[PostResponse]
