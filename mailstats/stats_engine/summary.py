"""
Dashboard aggregates over a list of campaigns.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from mailstats.common.utils import safe_divide
from mailstats.schemas.internal import Campaign, CampaignStatistics
from mailstats.stats_engine.normalizer import normalize

CAMPAIGN_STATUSES: tuple[str, ...] = ("new", "queued", "sending", "sent", "paused", "failed")

# Upstream statuses folded into a dashboard status
STATUS_ALIASES = {"ready": "queued"}


@dataclass
class CampaignSummary:
    """Aggregated delivery figures for a set of campaigns."""

    total_campaigns: int = 0
    status_counts: dict[str, int] = field(
        default_factory=lambda: {status: 0 for status in CAMPAIGN_STATUSES}
    )
    total_emails: int = 0
    total_delivered: int = 0
    total_opened: int = 0
    total_clicked: int = 0
    total_bounced: int = 0
    average_open_rate: float = 0.0
    average_click_rate: float = 0.0


def _statistics_of(campaign: Campaign) -> CampaignStatistics | None:
    if isinstance(campaign.statistics, CampaignStatistics):
        return campaign.statistics
    return normalize(campaign.to_dict())


def summarize(campaigns: list[Campaign]) -> CampaignSummary:
    """
    Aggregate statistics and status distribution.

    Averages are unweighted means of per-campaign rates, taken over the
    campaigns that delivered at least one email.
    """
    summary = CampaignSummary(total_campaigns=len(campaigns))
    open_rates: list[float] = []
    click_rates: list[float] = []

    for campaign in campaigns:
        status = (campaign.status or "").lower()
        status = STATUS_ALIASES.get(status, status)
        if status in summary.status_counts:
            summary.status_counts[status] += 1

        stats = _statistics_of(campaign)
        if stats is None:
            continue

        summary.total_emails += stats.subscriber_count
        summary.total_delivered += stats.delivered_count
        summary.total_opened += stats.open_count
        summary.total_clicked += stats.click_count
        summary.total_bounced += stats.bounce_count

        if stats.delivered_count > 0:
            open_rates.append(stats.unique_open_rate)
            click_rates.append(stats.click_rate)

    summary.average_open_rate = safe_divide(sum(open_rates), len(open_rates))
    summary.average_click_rate = safe_divide(sum(click_rates), len(click_rates))
    return summary
