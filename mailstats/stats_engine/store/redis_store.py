"""
Redis-backed statistics store.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from mailstats.common.cache import CacheKeys, RedisClient, redis_client
from mailstats.common.config import get_settings
from mailstats.common.exceptions import CacheReadError, CacheWriteError
from mailstats.common.logger import get_logger
from mailstats.common.utils import parse_datetime
from mailstats.stats_engine.store.base import BaseStatsStore

logger = get_logger(__name__)


class RedisStatsStore(BaseStatsStore):
    """
    Statistics cache in Redis.

    One JSON document per key with `statistics`, `delivery_info` and an ISO
    `last_updated`. Keys expire after `cache.retention_seconds`; freshness
    is still decided from `last_updated`.
    """

    name = "redis"

    def __init__(
        self,
        client: RedisClient | None = None,
        retention_seconds: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.client = client or redis_client
        self.retention_seconds = (
            retention_seconds
            if retention_seconds is not None
            else get_settings().cache.retention_seconds
        )

    async def _read(
        self, campaign_uid: str, account_id: str
    ) -> tuple[Any, datetime] | None:
        key = CacheKeys.campaign_stats(account_id, campaign_uid)
        try:
            data = await self.client.get_json(key)
        except Exception as e:
            raise CacheReadError(f"Redis read failed for {key}: {e}") from e

        if not isinstance(data, dict):
            return None

        last_updated = parse_datetime(data.get("last_updated"))
        if last_updated is None:
            logger.warning("Cached statistics without timestamp", key=key)
            return None

        return data, last_updated

    async def _write(
        self,
        campaign_uid: str,
        account_id: str,
        statistics: dict[str, Any],
        delivery_info: dict[str, Any],
        last_updated: datetime,
    ) -> None:
        key = CacheKeys.campaign_stats(account_id, campaign_uid)
        document = {
            "campaign_uid": campaign_uid,
            "account_id": account_id,
            "statistics": statistics,
            "delivery_info": delivery_info,
            "last_updated": last_updated.isoformat(),
        }
        try:
            await self.client.set_json(key, document, ttl=self.retention_seconds)
        except Exception as e:
            raise CacheWriteError(f"Redis write failed for {key}: {e}") from e

    async def health_check(self) -> bool:
        return await self.client.health_check()
