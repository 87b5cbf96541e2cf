"""ORM model for shop users (credentials and RBAC)."""

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from beershop.models.associations import beer_users
from beershop.models.base import Base

ROLES = ("admin", "user", "blocked")


class User(Base):
    """
    User account for session authentication and role-based access control.

    email is stored lower-cased; the unique index is the source of truth for
    duplicate registrations. Rows are soft-deleted via deleted_at.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'user', 'blocked')", name="ck_users_role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default="user")
    address = Column(String(255), nullable=True)
    profile_pic = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    beers = relationship("Beer", secondary=beer_users, back_populates="users")
