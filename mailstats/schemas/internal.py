"""
Internal data schemas for the campaign statistics engine.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any


class StatsSource(str, Enum):
    """Where a resolved statistics record came from."""

    LIVE = "live"            # Fetched from the Acelle API just now
    CACHE = "cache"          # Fresh cache record
    EMBEDDED = "embedded"    # Already carried by the campaign object
    SYNTHETIC = "synthetic"  # Fallback generator output


COUNT_FIELDS: tuple[str, ...] = (
    "subscriber_count",
    "delivered_count",
    "open_count",
    "unique_open_count",
    "click_count",
    "bounce_count",
    "soft_bounce_count",
    "hard_bounce_count",
    "unsubscribe_count",
    "abuse_complaint_count",
)

RATE_FIELDS: tuple[str, ...] = (
    "delivered_rate",
    "unique_open_rate",
    "click_rate",
)


@dataclass
class CampaignStatistics:
    """
    Canonical metric record for one campaign.

    Counts are non-negative integers; rates are fractions in [0, 1].
    `source` is metadata and does not take part in equality.
    """

    subscriber_count: int = 0
    delivered_count: int = 0
    open_count: int = 0
    unique_open_count: int = 0
    click_count: int = 0
    bounce_count: int = 0
    soft_bounce_count: int = 0
    hard_bounce_count: int = 0
    unsubscribe_count: int = 0
    abuse_complaint_count: int = 0

    delivered_rate: float = 0.0
    unique_open_rate: float = 0.0
    click_rate: float = 0.0

    source: StatsSource | None = field(default=None, compare=False)

    @property
    def has_data(self) -> bool:
        """At least one of subscriber, delivered or open count is positive."""
        return (
            self.subscriber_count > 0
            or self.delivered_count > 0
            or self.open_count > 0
        )

    @property
    def is_empty(self) -> bool:
        """Every count is zero."""
        return all(getattr(self, name) == 0 for name in COUNT_FIELDS)

    def to_dict(self) -> dict[str, Any]:
        """Canonical JSON form (persisted in the cache)."""
        data = asdict(self)
        data.pop("source")
        return data

    def with_source(self, source: StatsSource) -> CampaignStatistics:
        return replace(self, source=source)


@dataclass
class Account:
    """Acelle account credentials. Owned externally, read-only here."""

    id: str
    api_endpoint: str = ""
    api_token: str = field(default="", repr=False)
    name: str = ""
    status: str = "active"

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_endpoint and self.api_token)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Account:
        """Build from a stored account row (snake_case or camelCase keys)."""
        return cls(
            id=str(data.get("id", "")),
            api_endpoint=data.get("api_endpoint") or data.get("apiEndpoint") or "",
            api_token=data.get("api_token") or data.get("apiToken") or "",
            name=data.get("name") or "",
            status=data.get("status") or "active",
        )


@dataclass
class Campaign:
    """
    Campaign as listed by the Acelle API.

    `statistics` holds whatever the upstream or the cache embedded until the
    engine replaces it with a CampaignStatistics. Unknown upstream fields
    are kept in `extra`.
    """

    uid: str | None = None
    name: str = ""
    status: str = ""
    statistics: CampaignStatistics | dict[str, Any] | None = None
    delivery_info: dict[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Campaign:
        known = {"uid", "campaign_uid", "name", "status", "statistics", "delivery_info", "deliveryInfo"}
        uid = data.get("uid") or data.get("campaign_uid")
        delivery_info = data.get("delivery_info") or data.get("deliveryInfo")
        return cls(
            uid=str(uid) if uid else None,
            name=data.get("name") or "",
            status=data.get("status") or "",
            statistics=data.get("statistics"),
            delivery_info=delivery_info if isinstance(delivery_info, dict) else None,
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(uid=self.uid, name=self.name, status=self.status)
        if isinstance(self.statistics, CampaignStatistics):
            data["statistics"] = self.statistics.to_dict()
        else:
            data["statistics"] = self.statistics
        data["delivery_info"] = self.delivery_info
        return data


@dataclass
class CacheHit:
    """A fresh cache record."""

    statistics: CampaignStatistics
    age_seconds: float
    last_updated: datetime
