"""
Batch enrichment of campaign lists.

Resolves every campaign of a page concurrently, with a cap on concurrent
resolutions so large batches do not flood the Acelle API.
"""

from __future__ import annotations

import asyncio
import copy

from mailstats.common.config import get_settings
from mailstats.common.logger import get_logger
from mailstats.common.utils import Timer
from mailstats.schemas.internal import Account, Campaign, StatsSource
from mailstats.stats_engine.resolver import StatsResolver

logger = get_logger(__name__)


class BatchEnricher:
    """Applies a StatsResolver across a list of campaigns."""

    def __init__(self, resolver: StatsResolver, max_concurrency: int | None = None):
        self.resolver = resolver
        self.max_concurrency = max(
            1,
            max_concurrency if max_concurrency is not None else get_settings().engine.max_concurrency,
        )

    async def enrich_all(
        self,
        campaigns: list[Campaign],
        account: Account | None,
        force_refresh: bool = False,
        demo_mode: bool = False,
    ) -> list[Campaign]:
        """
        Resolve statistics for every campaign.

        Returns deep copies in input order, each with `statistics` replaced
        by canonical statistics. The input list and its campaigns are left
        untouched. Cancelling this call cancels every pending resolution.
        """
        if not campaigns:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def enrich_one(campaign: Campaign) -> Campaign:
            enriched = copy.deepcopy(campaign)
            async with semaphore:
                try:
                    enriched.statistics = await self.resolver.resolve(
                        enriched,
                        account,
                        force_refresh=force_refresh,
                        demo_mode=demo_mode,
                    )
                except Exception as e:
                    logger.error(
                        "Campaign enrichment failed, using synthetic statistics",
                        campaign_uid=campaign.uid,
                        error=str(e),
                    )
                    enriched.statistics = self.resolver.generator().with_source(
                        StatsSource.SYNTHETIC
                    )
            return enriched

        with Timer() as timer:
            result = await asyncio.gather(*(enrich_one(c) for c in campaigns))

        sources: dict[str, int] = {}
        for campaign in result:
            source = campaign.statistics.source.value if campaign.statistics.source else "unknown"
            sources[source] = sources.get(source, 0) + 1

        logger.info(
            "Campaign batch enriched",
            count=len(result),
            account_id=account.id if account else None,
            sources=sources,
            total_ms=round(timer.elapsed_ms, 2),
        )
        return list(result)
