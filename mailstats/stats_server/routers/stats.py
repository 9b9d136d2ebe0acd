"""
Campaign statistics endpoints.

- resolve: statistics for one campaign
- enrich:  statistics for a page of campaigns, input order preserved
- summary: dashboard aggregates over campaigns

None of these fail because statistics are unavailable: the worst case is
synthetic statistics tagged as such.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from mailstats.common.logger import get_logger, log_context
from mailstats.common.utils import generate_request_id
from mailstats.schemas.request import EnrichRequest, ResolveRequest, SummaryRequest
from mailstats.schemas.response import (
    EnrichedCampaign,
    EnrichResponse,
    ResolveResponse,
    StatisticsResponse,
    SummaryResponse,
)
from mailstats.stats_server.services.stats_service import StatsService, get_stats_service

logger = get_logger(__name__)
router = APIRouter()


@router.post("/resolve", response_model=ResolveResponse)
async def resolve_statistics(
    request: ResolveRequest,
    stats_service: StatsService = Depends(get_stats_service),
) -> ResolveResponse:
    """Resolve canonical statistics for one campaign."""
    request_id = generate_request_id()
    campaign = request.to_campaign()
    account = request.account.to_internal() if request.account else None
    log_context(campaign_uid=campaign.uid)

    stats = await stats_service.resolve(
        campaign,
        account,
        force_refresh=request.force_refresh,
        demo_mode=request.demo_mode,
    )

    return ResolveResponse(
        request_id=request_id,
        campaign_uid=campaign.uid,
        statistics=StatisticsResponse.from_statistics(stats),
    )


@router.post("/enrich", response_model=EnrichResponse)
async def enrich_campaigns(
    request: EnrichRequest,
    stats_service: StatsService = Depends(get_stats_service),
) -> EnrichResponse:
    """Attach canonical statistics to every campaign of a page."""
    request_id = generate_request_id()
    account = request.account.to_internal() if request.account else None

    enriched = await stats_service.enrich(
        request.to_campaigns(),
        account,
        force_refresh=request.force_refresh,
        demo_mode=request.demo_mode,
    )

    return EnrichResponse(
        request_id=request_id,
        campaigns=[EnrichedCampaign.from_campaign(c) for c in enriched],
        count=len(enriched),
    )


@router.post("/summary", response_model=SummaryResponse)
async def summarize_campaigns(
    request: SummaryRequest,
    stats_service: StatsService = Depends(get_stats_service),
) -> SummaryResponse:
    """Aggregate delivery figures and status distribution."""
    summary = stats_service.summarize(request.to_campaigns())

    logger.debug("Campaign summary computed", total_campaigns=summary.total_campaigns)

    return SummaryResponse(
        total_campaigns=summary.total_campaigns,
        status_counts=summary.status_counts,
        total_emails=summary.total_emails,
        total_delivered=summary.total_delivered,
        total_opened=summary.total_opened,
        total_clicked=summary.total_clicked,
        total_bounced=summary.total_bounced,
        average_open_rate=summary.average_open_rate,
        average_click_rate=summary.average_click_rate,
    )
