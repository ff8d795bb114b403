"""
Core модули движка оповещений
"""

from .config import get_settings, settings
from .database import close_db, get_session_factory
from .timeutils import local_now, start_of_local_day, utcnow

__all__ = [
    "settings",
    "get_settings",
    "get_session_factory",
    "close_db",
    "utcnow",
    "local_now",
    "start_of_local_day",
]
