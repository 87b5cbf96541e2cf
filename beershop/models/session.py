"""ORM model for persisted login sessions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from beershop.models.base import Base


class SessionRecord(Base):
    """
    Server-side session row.

    token_hash is the SHA-256 of the cookie token (the raw token is never
    stored). user_id is NULL for anonymous sessions; role is cached at login.
    """

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    role = Column(String(16), nullable=True)
    csrf_token = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
