"""Session housekeeping: delete session rows whose expiry has passed."""

import logging

from sqlalchemy.orm import Session

from beershop.services.sessions import SessionManager

logger = logging.getLogger(__name__)


def run_session_cleanup(session: Session, manager: SessionManager) -> int:
    """
    Delete expired sessions and return how many rows were removed.

    Idempotent: safe to run repeatedly, a second run right after the first deletes nothing.
    """
    deleted_count = manager.purge_expired(session)
    if deleted_count > 0:
        logger.info("Session cleanup run: sessions_deleted=%s", deleted_count)
    return deleted_count
