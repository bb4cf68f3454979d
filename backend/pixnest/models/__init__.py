"""ORM Models: SQLAlchemy declarative models for all persisted entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Cross-entity references are plain foreign-key columns; joins are explicit
      queries in services/, never relationship() traversal

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all
"""

from pixnest.models.user import User  # noqa: F401
from pixnest.models.post import Post  # noqa: F401
from pixnest.models.user_post_link import UserPostLink  # noqa: F401
from pixnest.models.login_session import LoginSession  # noqa: F401
