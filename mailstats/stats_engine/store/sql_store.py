"""
SQL-backed statistics store on the `campaign_stats_cache` table.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mailstats.common.database import db
from mailstats.common.exceptions import CacheReadError, CacheWriteError
from mailstats.models.stats_cache import CampaignStatsCache
from mailstats.stats_engine.store.base import BaseStatsStore

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class SQLStatsStore(BaseStatsStore):
    """Statistics cache in the relational database, one row per campaign/account."""

    name = "sql"

    def __init__(self, session_factory: SessionFactory | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self._session_factory = session_factory

    def _session(self) -> AbstractAsyncContextManager[AsyncSession]:
        factory = self._session_factory or db.session
        return factory()

    @staticmethod
    def _lookup(campaign_uid: str, account_id: str) -> Any:
        return select(CampaignStatsCache).where(
            CampaignStatsCache.campaign_uid == campaign_uid,
            CampaignStatsCache.account_id == account_id,
        )

    async def _read(
        self, campaign_uid: str, account_id: str
    ) -> tuple[Any, datetime] | None:
        try:
            async with self._session() as session:
                result = await session.execute(self._lookup(campaign_uid, account_id))
                row = result.scalar_one_or_none()
        except Exception as e:
            raise CacheReadError(f"Database read failed: {e}") from e

        if row is None:
            return None

        payload = {"statistics": row.statistics, "delivery_info": row.delivery_info}
        return payload, row.last_updated

    async def _write(
        self,
        campaign_uid: str,
        account_id: str,
        statistics: dict[str, Any],
        delivery_info: dict[str, Any],
        last_updated: datetime,
    ) -> None:
        try:
            async with self._session() as session:
                result = await session.execute(self._lookup(campaign_uid, account_id))
                row = result.scalar_one_or_none()
                if row is None:
                    session.add(
                        CampaignStatsCache(
                            campaign_uid=campaign_uid,
                            account_id=account_id,
                            statistics=statistics,
                            delivery_info=delivery_info,
                            last_updated=last_updated,
                        )
                    )
                else:
                    row.statistics = statistics
                    row.delivery_info = delivery_info
                    row.last_updated = last_updated
                await session.flush()
        except Exception as e:
            raise CacheWriteError(f"Database write failed: {e}") from e

    async def health_check(self) -> bool:
        return await db.health_check()
