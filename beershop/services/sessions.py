"""Session manager: persisted, regenerable session identities.

Lifecycle per session: Anonymous -> Authenticated -> Expired | Revoked.
Tokens live only in the client cookie; the sessions table stores their
SHA-256 so a leaked table cannot be replayed.
"""

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from beershop.core.errors import Forbidden, SessionStoreUnavailable, Unauthorized
from beershop.core.security import hash_token, new_token
from beershop.models.session import SessionRecord

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"
    REVOKED = "revoked"


@dataclass(frozen=True)
class SessionContext:
    """The request's view of its session. token is the raw cookie value."""

    state: SessionState
    token: str | None = None
    record_id: int | None = None
    user_id: int | None = None
    role: str | None = None
    csrf_token: str | None = None
    expires_at: datetime | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED and self.user_id is not None


ANONYMOUS = SessionContext(state=SessionState.ANONYMOUS)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class SessionManager:
    """Issues, loads, regenerates and revokes session records."""

    def __init__(
        self,
        max_age: timedelta,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.max_age = max_age
        self._clock = clock

    def load(self, db: Session, token: str | None) -> SessionContext:
        """Resolve a cookie token to a context. Store failures are never treated as anonymous."""
        if not token:
            return ANONYMOUS
        try:
            record = (
                db.query(SessionRecord)
                .filter(SessionRecord.token_hash == hash_token(token))
                .first()
            )
            if record is None:
                return ANONYMOUS
            if _as_utc(record.expires_at) <= self._clock():
                record_id = record.id
                db.delete(record)
                db.commit()
                logger.info("Session expired", extra={"session_id": record_id})
                return SessionContext(state=SessionState.EXPIRED)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Session store query failed: %s", type(e).__name__)
            raise SessionStoreUnavailable() from e

        return SessionContext(
            state=(
                SessionState.AUTHENTICATED
                if record.user_id is not None
                else SessionState.ANONYMOUS
            ),
            token=token,
            record_id=record.id,
            user_id=record.user_id,
            role=record.role if record.user_id is not None else None,
            csrf_token=record.csrf_token,
            expires_at=_as_utc(record.expires_at),
        )

    def begin_anonymous_session(self, db: Session) -> SessionContext:
        """Issue a session that carries only a CSRF token."""
        return self._issue(db, user_id=None, role=None)

    def begin_authenticated_session(
        self, db: Session, current: SessionContext, user_id: int, role: str
    ) -> SessionContext:
        """
        Discard the caller's current session and issue a fresh identity for user_id.

        The pre-authentication token is never promoted, so an attacker who
        planted it in the victim's browser gains nothing from the login.
        """
        self._discard(db, current)
        ctx = self._issue(db, user_id=user_id, role=role)
        logger.info("Session authenticated", extra={"user_id": user_id, "session_id": ctx.record_id})
        return ctx

    def revoke(self, db: Session, current: SessionContext) -> SessionContext:
        """Logout: delete the record; the old token can never be loaded again."""
        self._discard(db, current)
        return SessionContext(state=SessionState.REVOKED)

    def require_authenticated(self, ctx: SessionContext) -> int:
        if not ctx.is_authenticated:
            raise Unauthorized()
        if ctx.expires_at is not None and ctx.expires_at <= self._clock():
            raise Unauthorized()
        return ctx.user_id  # type: ignore[return-value]

    def require_role(self, ctx: SessionContext, role: str) -> None:
        """Role is the value cached at login; role changes apply on the next login."""
        if ctx.role != role:
            raise Forbidden()

    def purge_expired(self, db: Session) -> int:
        """Delete every expired session row. Idempotent."""
        deleted = (
            db.query(SessionRecord)
            .filter(SessionRecord.expires_at <= self._clock())
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    def _issue(self, db: Session, user_id: int | None, role: str | None) -> SessionContext:
        token = new_token()
        csrf_token = new_token()
        now = self._clock()
        record = SessionRecord(
            token_hash=hash_token(token),
            user_id=user_id,
            role=role,
            csrf_token=csrf_token,
            created_at=now,
            expires_at=now + self.max_age,
        )
        try:
            db.add(record)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise SessionStoreUnavailable() from e
        return SessionContext(
            state=SessionState.AUTHENTICATED if user_id is not None else SessionState.ANONYMOUS,
            token=token,
            record_id=record.id,
            user_id=user_id,
            role=role,
            csrf_token=csrf_token,
            expires_at=now + self.max_age,
        )

    def _discard(self, db: Session, current: SessionContext) -> None:
        if current.token is None:
            return
        try:
            db.query(SessionRecord).filter(
                SessionRecord.token_hash == hash_token(current.token)
            ).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise SessionStoreUnavailable() from e
