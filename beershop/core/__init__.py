"""Core app configuration and database."""

from beershop.core.config import get_settings, settings
from beershop.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
