"""Core app configuration, database and security primitives."""

from phoenix.core.config import get_settings, settings
from phoenix.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
