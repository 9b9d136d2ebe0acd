"""
Statistics resolution orchestrator.

Decides, per campaign, where statistics come from. The chain is linear and
each step either returns or falls through:

1. Demo mode        -> synthetic
2. No campaign UID  -> synthetic
3. Embedded valid statistics (unless forced) -> embedded
4. Fresh cache record (unless forced)        -> cache
5. Acelle API, normalized and written back   -> live
6. Embedded delivery_info after API failure  -> embedded
7. Synthetic

Nothing but task cancellation escapes `resolve`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from mailstats.common.config import get_settings
from mailstats.common.exceptions import (
    ApiError,
    InvalidCampaignReferenceError,
    MalformedResponseError,
)
from mailstats.common.logger import get_logger
from mailstats.schemas.internal import (
    Account,
    Campaign,
    CampaignStatistics,
    StatsSource,
)
from mailstats.stats_engine.fallback import generate
from mailstats.stats_engine.client import AcelleClient
from mailstats.stats_engine.normalizer import normalize
from mailstats.stats_engine.store.base import BaseStatsStore

logger = get_logger(__name__)


@dataclass
class ResolverConfig:
    """Configuration for the resolution orchestrator."""

    demo_mode: bool = False
    single_flight: bool = True


@dataclass
class _Flight:
    """An upstream fetch shared by concurrent resolutions of one key."""

    task: asyncio.Future
    waiters: int = 0


@dataclass
class ResolutionMetrics:
    """Counters per resolution source, for logging and health pages."""

    by_source: dict[str, int] = field(default_factory=dict)
    api_failures: int = 0

    def record(self, source: StatsSource) -> None:
        self.by_source[source.value] = self.by_source.get(source.value, 0) + 1


class StatsResolver:
    """
    Resolves one campaign's statistics.

    The store and client are optional: without a store the cache steps are
    skipped, without a client the API step counts as failed.
    """

    def __init__(
        self,
        store: BaseStatsStore | None = None,
        client: AcelleClient | None = None,
        config: ResolverConfig | None = None,
        generator: Callable[[], CampaignStatistics] = generate,
    ):
        self.store = store
        self.client = client
        self.config = config or ResolverConfig(
            demo_mode=get_settings().engine.demo_mode,
            single_flight=get_settings().engine.single_flight,
        )
        self.generator = generator
        self.metrics = ResolutionMetrics()
        self._inflight: dict[tuple[str, str], _Flight] = {}

    async def resolve(
        self,
        campaign: Campaign,
        account: Account | None,
        force_refresh: bool = False,
        demo_mode: bool = False,
    ) -> CampaignStatistics:
        """
        Resolve statistics for one campaign.

        Args:
            campaign: Campaign as listed upstream (may embed statistics).
            account: Acelle account owning the campaign.
            force_refresh: Skip embedded statistics and the cache.
            demo_mode: Return synthetic statistics without any I/O.

        Returns:
            Canonical statistics tagged with their source.
        """
        try:
            stats = await self._resolve_chain(campaign, account, force_refresh, demo_mode)
        except InvalidCampaignReferenceError as e:
            logger.warning(e.message, campaign_name=campaign.name)
            stats = self._synthetic()
        except Exception as e:
            logger.error(
                "Statistics resolution failed unexpectedly",
                campaign_uid=campaign.uid,
                error=str(e),
                error_type=e.__class__.__name__,
            )
            stats = self._synthetic()

        self.metrics.record(stats.source or StatsSource.SYNTHETIC)
        return stats

    async def _resolve_chain(
        self,
        campaign: Campaign,
        account: Account | None,
        force_refresh: bool,
        demo_mode: bool,
    ) -> CampaignStatistics:
        if demo_mode or self.config.demo_mode:
            return self._synthetic()

        if not campaign.uid:
            raise InvalidCampaignReferenceError(
                "Campaign has no UID, serving synthetic statistics"
            )

        if not force_refresh:
            embedded = self._embedded_statistics(campaign)
            if embedded is not None:
                return embedded

            cached = await self._from_cache(campaign.uid, account)
            if cached is not None:
                return cached

        try:
            return await self._from_api(campaign.uid, account)
        except ApiError as e:
            self.metrics.api_failures += 1
            logger.warning(
                "Upstream statistics unavailable",
                campaign_uid=campaign.uid,
                error=e.message,
                error_type=e.__class__.__name__,
            )

        recovered = self._embedded_delivery_info(campaign)
        if recovered is not None:
            return recovered

        logger.info("No statistics obtainable, serving synthetic", campaign_uid=campaign.uid)
        return self._synthetic()

    def _synthetic(self) -> CampaignStatistics:
        return self.generator().with_source(StatsSource.SYNTHETIC)

    def _embedded_statistics(self, campaign: Campaign) -> CampaignStatistics | None:
        if campaign.statistics is None:
            return None
        if isinstance(campaign.statistics, CampaignStatistics):
            stats = normalize(campaign.statistics)
        else:
            stats = normalize({"statistics": campaign.statistics})
        if stats is None or not stats.has_data:
            return None
        return stats.with_source(StatsSource.EMBEDDED)

    def _embedded_delivery_info(self, campaign: Campaign) -> CampaignStatistics | None:
        if not campaign.delivery_info:
            return None
        stats = normalize({"delivery_info": campaign.delivery_info})
        if stats is None or stats.is_empty:
            return None
        logger.info("Recovered statistics from embedded delivery_info", campaign_uid=campaign.uid)
        return stats.with_source(StatsSource.EMBEDDED)

    async def _from_cache(
        self, campaign_uid: str, account: Account | None
    ) -> CampaignStatistics | None:
        if self.store is None or account is None:
            return None
        hit = await self.store.get(campaign_uid, account.id)
        if hit is None:
            return None
        logger.debug(
            "Serving cached statistics",
            campaign_uid=campaign_uid,
            age_seconds=round(hit.age_seconds),
        )
        return hit.statistics

    async def _from_api(
        self, campaign_uid: str, account: Account | None
    ) -> CampaignStatistics:
        if self.client is None or account is None:
            raise ApiError("No upstream client or account configured")

        if not self.config.single_flight:
            return await self._fetch_live(campaign_uid, account)

        return await self._shared(
            (campaign_uid, account.id),
            lambda: self._fetch_live(campaign_uid, account),
        )

    async def _fetch_live(self, campaign_uid: str, account: Account) -> CampaignStatistics:
        payload = await self.client.fetch(campaign_uid, account)
        stats = normalize(payload)
        if stats is None:
            raise MalformedResponseError(
                "Upstream payload carries no recognizable statistics",
                {"campaign_uid": campaign_uid, "keys": sorted(payload)[:20]},
            )
        stats = stats.with_source(StatsSource.LIVE)
        if self.store is not None:
            await self.store.put(campaign_uid, account.id, stats)
        return stats

    async def _shared(
        self,
        key: tuple[str, str],
        factory: Callable[[], Awaitable[CampaignStatistics]],
    ) -> CampaignStatistics:
        """
        Run `factory` once per key for all concurrent callers.

        The shared task is cancelled when its last waiter is cancelled, and
        is unregistered first so later callers start a fresh fetch.
        """
        flight = self._inflight.get(key)
        if flight is None or flight.task.done():
            flight = _Flight(task=asyncio.ensure_future(factory()))
            self._inflight[key] = flight
            flight.task.add_done_callback(lambda _t, k=key, f=flight: self._forget(k, f))

        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            # The shared fetch died under this caller, which was not cancelled
            raise ApiError(
                "Shared upstream fetch was cancelled",
                {"campaign_uid": key[0], "account_id": key[1]},
            ) from None
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                if self._inflight.get(key) is flight:
                    del self._inflight[key]
                flight.task.cancel()

    def _forget(self, key: tuple[str, str], flight: _Flight) -> None:
        if self._inflight.get(key) is flight:
            del self._inflight[key]
        # Consume the outcome so an abandoned failure is not reported as unretrieved
        if not flight.task.cancelled():
            flight.task.exception()

    def status(self) -> dict[str, Any]:
        return {
            "by_source": dict(self.metrics.by_source),
            "api_failures": self.metrics.api_failures,
            "inflight": len(self._inflight),
        }
