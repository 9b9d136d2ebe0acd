"""
Base statistics store.

Owns the freshness policy and the failure policy shared by every backend:
records older than the TTL are misses, and neither reads nor writes ever
fail the caller.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from mailstats.common.config import get_settings
from mailstats.common.exceptions import CacheReadError, CacheWriteError
from mailstats.common.logger import get_logger
from mailstats.common.utils import current_datetime, ensure_utc
from mailstats.schemas.internal import CacheHit, CampaignStatistics, StatsSource
from mailstats.stats_engine.normalizer import normalize, to_delivery_info

logger = get_logger(__name__)


class BaseStatsStore(ABC):
    """
    Abstract statistics cache keyed by (campaign_uid, account_id).

    Subclasses implement raw `_read` / `_write`; this class applies the TTL,
    the operation timeout and the non-fatal error handling.
    """

    name: str = "base"

    def __init__(
        self,
        ttl_seconds: int | None = None,
        operation_timeout: float | None = None,
    ):
        settings = get_settings()
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else settings.cache.ttl_seconds
        )
        self.operation_timeout = (
            operation_timeout
            if operation_timeout is not None
            else settings.cache.operation_timeout
        )

    @abstractmethod
    async def _read(
        self, campaign_uid: str, account_id: str
    ) -> tuple[Any, datetime] | None:
        """
        Fetch the raw record.

        Returns:
            (statistics payload, last_updated) or None when absent.

        Raises:
            CacheReadError: backend failure.
        """
        pass

    @abstractmethod
    async def _write(
        self,
        campaign_uid: str,
        account_id: str,
        statistics: dict[str, Any],
        delivery_info: dict[str, Any],
        last_updated: datetime,
    ) -> None:
        """Insert or overwrite the record. Raises CacheWriteError on failure."""
        pass

    def is_fresh(self, age_seconds: float) -> bool:
        return 0 <= age_seconds < self.ttl_seconds

    async def get(self, campaign_uid: str, account_id: str) -> CacheHit | None:
        """
        Get fresh cached statistics.

        Returns:
            CacheHit, or None on miss, stale record, unreadable record or
            backend failure.
        """
        try:
            record = await asyncio.wait_for(
                self._read(campaign_uid, account_id),
                timeout=self.operation_timeout,
            )
        except (CacheReadError, asyncio.TimeoutError) as e:
            logger.warning(
                "Statistics cache read failed",
                backend=self.name,
                campaign_uid=campaign_uid,
                account_id=account_id,
                error=str(e) or e.__class__.__name__,
            )
            return None

        if record is None:
            return None

        payload, last_updated = record
        age_seconds = (current_datetime() - ensure_utc(last_updated)).total_seconds()
        if not self.is_fresh(age_seconds):
            logger.debug(
                "Cached statistics are stale",
                campaign_uid=campaign_uid,
                age_seconds=round(age_seconds),
                ttl_seconds=self.ttl_seconds,
            )
            return None

        stats = normalize(payload)
        if stats is None:
            logger.warning(
                "Cached statistics unreadable",
                backend=self.name,
                campaign_uid=campaign_uid,
            )
            return None

        return CacheHit(
            statistics=stats.with_source(StatsSource.CACHE),
            age_seconds=age_seconds,
            last_updated=ensure_utc(last_updated),
        )

    async def put(
        self,
        campaign_uid: str,
        account_id: str,
        stats: CampaignStatistics,
    ) -> bool:
        """
        Store statistics. Best-effort.

        Returns:
            True when written, False when the backend failed (logged).
        """
        try:
            await asyncio.wait_for(
                self._write(
                    campaign_uid,
                    account_id,
                    stats.to_dict(),
                    to_delivery_info(stats),
                    current_datetime(),
                ),
                timeout=self.operation_timeout,
            )
        except (CacheWriteError, asyncio.TimeoutError) as e:
            logger.warning(
                "Statistics cache write failed",
                backend=self.name,
                campaign_uid=campaign_uid,
                account_id=account_id,
                error=str(e) or e.__class__.__name__,
            )
            return False

        logger.debug("Statistics cached", backend=self.name, campaign_uid=campaign_uid)
        return True

    async def health_check(self) -> bool:
        return True
