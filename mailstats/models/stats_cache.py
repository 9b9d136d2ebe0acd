"""
Campaign statistics cache table.

One row per (campaign_uid, account_id). Rows are upserted on every live
refresh and never deleted by the statistics engine.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mailstats.models.base import Base, TimestampMixin


class CampaignStatsCache(Base, TimestampMixin):
    """Cached canonical statistics for one campaign of one Acelle account."""

    __tablename__ = "campaign_stats_cache"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_uid: Mapped[str] = mapped_column(String(64), nullable=False)
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)

    statistics: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, comment="Canonical statistics (rates as 0-1 fractions)"
    )
    delivery_info: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True, comment="Legacy delivery_info view of the same statistics"
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("campaign_uid", "account_id", name="uq_stats_cache_campaign_account"),
        Index("idx_stats_cache_account", "account_id"),
    )
