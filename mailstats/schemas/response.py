"""
API response schemas for campaign statistics.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from mailstats.schemas.internal import Campaign, CampaignStatistics
from mailstats.stats_engine.normalizer import to_delivery_info


class StatisticsResponse(BaseModel):
    """Canonical statistics of one campaign."""

    subscriber_count: int = Field(..., ge=0, description="Recipients targeted")
    delivered_count: int = Field(..., ge=0, description="Emails delivered")
    open_count: int = Field(..., ge=0, description="Total opens")
    unique_open_count: int = Field(..., ge=0, description="Unique opens")
    click_count: int = Field(..., ge=0, description="Clicks")
    bounce_count: int = Field(..., ge=0, description="Bounces (soft + hard)")
    soft_bounce_count: int = Field(..., ge=0, description="Soft bounces")
    hard_bounce_count: int = Field(..., ge=0, description="Hard bounces")
    unsubscribe_count: int = Field(..., ge=0, description="Unsubscribes")
    abuse_complaint_count: int = Field(..., ge=0, description="Abuse complaints")
    delivered_rate: float = Field(..., ge=0, le=1, description="Delivered / subscribers")
    unique_open_rate: float = Field(..., ge=0, le=1, description="Unique opens / delivered")
    click_rate: float = Field(..., ge=0, le=1, description="Clicks / delivered")
    source: str | None = Field(None, description="Where the statistics came from (live/cache/embedded/synthetic)")
    delivery_info: dict[str, Any] = Field(..., description="Legacy delivery_info view")

    @classmethod
    def from_statistics(cls, stats: CampaignStatistics) -> StatisticsResponse:
        return cls(
            **stats.to_dict(),
            source=stats.source.value if stats.source else None,
            delivery_info=to_delivery_info(stats),
        )


class ResolveResponse(BaseModel):
    """Resolved statistics for one campaign."""

    request_id: str = Field(..., description="Request identifier")
    campaign_uid: str | None = Field(None, description="Campaign UID")
    statistics: StatisticsResponse = Field(..., description="Canonical statistics")


class EnrichedCampaign(BaseModel):
    """Campaign with canonical statistics attached."""

    uid: str | None = Field(None, description="Campaign UID")
    name: str = Field("", description="Campaign name")
    status: str = Field("", description="Campaign status")
    statistics: StatisticsResponse = Field(..., description="Canonical statistics")
    extra: dict[str, Any] = Field(default_factory=dict, description="Other upstream fields, verbatim")

    @classmethod
    def from_campaign(cls, campaign: Campaign) -> EnrichedCampaign:
        return cls(
            uid=campaign.uid,
            name=campaign.name,
            status=campaign.status,
            statistics=StatisticsResponse.from_statistics(campaign.statistics),
            extra=campaign.extra,
        )


class EnrichResponse(BaseModel):
    """Enriched campaign page."""

    request_id: str = Field(..., description="Request identifier")
    campaigns: list[EnrichedCampaign] = Field(default_factory=list, description="Campaigns in input order")
    count: int = Field(..., description="Number of campaigns returned")


class SummaryResponse(BaseModel):
    """Dashboard aggregates over a list of campaigns."""

    total_campaigns: int = Field(..., description="Campaigns considered")
    status_counts: dict[str, int] = Field(..., description="Campaigns per dashboard status")
    total_emails: int = Field(..., description="Sum of subscriber counts")
    total_delivered: int = Field(..., description="Sum of delivered counts")
    total_opened: int = Field(..., description="Sum of open counts")
    total_clicked: int = Field(..., description="Sum of click counts")
    total_bounced: int = Field(..., description="Sum of bounce counts")
    average_open_rate: float = Field(..., description="Mean unique open rate over campaigns with deliveries")
    average_click_rate: float = Field(..., description="Mean click rate over campaigns with deliveries")


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Service version")
    cache_backend: str = Field(..., description="Statistics cache backend")
    cache: bool = Field(..., description="Cache backend connection status")


class ErrorResponse(BaseModel):
    """Error response schema."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: dict[str, Any] | None = Field(None, description="Error details")
    request_id: str | None = Field(None, description="Request identifier")

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "ConfigError",
                "message": "Unknown cache backend",
                "details": {"backend": "memcached"},
                "request_id": "req_abc123",
            }
        }
    }
