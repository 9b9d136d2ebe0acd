"""
Internal data types and pydantic API schemas for campaign statistics.
"""

from mailstats.schemas.internal import (
    Account,
    CacheHit,
    Campaign,
    CampaignStatistics,
    StatsSource,
)
from mailstats.schemas.request import (
    AccountInfo,
    EnrichRequest,
    ResolveRequest,
    SummaryRequest,
)
from mailstats.schemas.response import (
    EnrichedCampaign,
    EnrichResponse,
    ErrorResponse,
    HealthResponse,
    ResolveResponse,
    StatisticsResponse,
    SummaryResponse,
)

__all__ = [
    # Request schemas
    "AccountInfo",
    "ResolveRequest",
    "EnrichRequest",
    "SummaryRequest",
    # Response schemas
    "StatisticsResponse",
    "ResolveResponse",
    "EnrichedCampaign",
    "EnrichResponse",
    "SummaryResponse",
    "HealthResponse",
    "ErrorResponse",
    # Internal schemas
    "Account",
    "Campaign",
    "CampaignStatistics",
    "CacheHit",
    "StatsSource",
]
