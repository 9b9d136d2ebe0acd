"""
Common utilities and shared modules.
"""

from mailstats.common.cache import CacheKeys, redis_client
from mailstats.common.config import get_settings, settings
from mailstats.common.database import db, init_db
from mailstats.common.exceptions import MailStatsError
from mailstats.common.logger import get_logger, log_context

__all__ = [
    "settings",
    "get_settings",
    "get_logger",
    "log_context",
    "db",
    "init_db",
    "redis_client",
    "CacheKeys",
    "MailStatsError",
]
