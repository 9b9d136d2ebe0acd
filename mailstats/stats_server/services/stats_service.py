"""
Statistics service.

Wires the Acelle client, the configured cache store, the resolver and the
batch enricher behind the HTTP routers, and records resolution metrics.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request

from mailstats.common.config import get_settings
from mailstats.common.logger import get_logger
from mailstats.common.utils import Timer
from mailstats.schemas.internal import Account, Campaign, CampaignStatistics
from mailstats.stats_engine.client import AcelleClient
from mailstats.stats_engine.enricher import BatchEnricher
from mailstats.stats_engine.resolver import StatsResolver
from mailstats.stats_engine.store import BaseStatsStore, create_store
from mailstats.stats_engine.summary import CampaignSummary, summarize
from mailstats.stats_server.middleware.metrics import record_batch, record_resolution

logger = get_logger(__name__)


class StatsService:
    """Campaign statistics resolution for the HTTP surface."""

    def __init__(
        self,
        store: BaseStatsStore | None = None,
        client: AcelleClient | None = None,
        resolver: StatsResolver | None = None,
        max_concurrency: int | None = None,
    ):
        self.store = store if store is not None else create_store()
        self.client = client if client is not None else AcelleClient()
        self.resolver = resolver or StatsResolver(store=self.store, client=self.client)
        self.enricher = BatchEnricher(self.resolver, max_concurrency=max_concurrency)

    async def close(self) -> None:
        await self.client.close()

    async def resolve(
        self,
        campaign: Campaign,
        account: Account | None,
        force_refresh: bool = False,
        demo_mode: bool = False,
    ) -> CampaignStatistics:
        stats = await self.resolver.resolve(
            campaign,
            account,
            force_refresh=force_refresh,
            demo_mode=demo_mode,
        )
        record_resolution(stats.source.value if stats.source else "unknown")
        return stats

    async def enrich(
        self,
        campaigns: list[Campaign],
        account: Account | None,
        force_refresh: bool = False,
        demo_mode: bool = False,
    ) -> list[Campaign]:
        with Timer() as timer:
            enriched = await self.enricher.enrich_all(
                campaigns,
                account,
                force_refresh=force_refresh,
                demo_mode=demo_mode,
            )

        for campaign in enriched:
            source = campaign.statistics.source
            record_resolution(source.value if source else "unknown")
        if campaigns:
            record_batch(len(campaigns), timer.elapsed_s)
        return enriched

    def summarize(self, campaigns: list[Campaign]) -> CampaignSummary:
        return summarize(campaigns)

    async def health_check(self) -> bool:
        return await self.store.health_check()

    def status(self) -> dict[str, Any]:
        return {
            "cache_backend": self.store.name,
            "demo_mode": self.resolver.config.demo_mode or get_settings().engine.demo_mode,
            **self.resolver.status(),
        }


def get_stats_service(request: Request) -> StatsService:
    """Dependency returning the service created by the application lifespan."""
    return request.app.state.stats_service
