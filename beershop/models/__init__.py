"""SQLAlchemy ORM models."""

from beershop.models.associations import beer_users
from beershop.models.base import Base
from beershop.models.beer import Beer
from beershop.models.session import SessionRecord
from beershop.models.user import User

__all__ = ["Base", "Beer", "SessionRecord", "User", "beer_users"]
