"""
Statistics cache stores.
"""

from mailstats.common.config import get_settings
from mailstats.common.exceptions import ConfigError
from mailstats.stats_engine.store.base import BaseStatsStore
from mailstats.stats_engine.store.redis_store import RedisStatsStore
from mailstats.stats_engine.store.sql_store import SQLStatsStore

STORE_BACKENDS: dict[str, type[BaseStatsStore]] = {
    "redis": RedisStatsStore,
    "sql": SQLStatsStore,
}


def create_store(backend: str | None = None) -> BaseStatsStore:
    """Build the configured statistics store ("redis" or "sql")."""
    backend = backend or get_settings().cache.backend
    if backend not in STORE_BACKENDS:
        raise ConfigError("Unknown cache backend", {"backend": backend})
    return STORE_BACKENDS[backend]()


__all__ = [
    "BaseStatsStore",
    "RedisStatsStore",
    "SQLStatsStore",
    "create_store",
]
