"""
Database models for MailStats.
"""

from mailstats.models.base import Base, TimestampMixin
from mailstats.models.stats_cache import CampaignStatsCache

__all__ = [
    "Base",
    "TimestampMixin",
    "CampaignStatsCache",
]
