"""
CLI entrypoint for the expired-session cleanup job. Run from cron, e.g.:

  python -m beershop.session_cleanup

Or hourly: 0 * * * * cd /path/to/beershop && .venv/bin/python -m beershop.session_cleanup
"""

import logging
import sys
from datetime import timedelta

from beershop.core.config import get_settings
from beershop.core.database import SessionLocal
from beershop.core.logging_config import configure_logging
from beershop.services.session_cleanup import run_session_cleanup
from beershop.services.sessions import SessionManager

logger = logging.getLogger(__name__)


def main() -> int:
    """Delete every session row past its expires_at."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    manager = SessionManager(max_age=timedelta(seconds=settings.SESSION_MAX_AGE_SEC))
    db = SessionLocal()
    try:
        deleted = run_session_cleanup(db, manager)
        logger.info("Session cleanup completed: sessions_deleted=%s", deleted)
        return 0
    except Exception as e:
        logger.exception("Session cleanup job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
