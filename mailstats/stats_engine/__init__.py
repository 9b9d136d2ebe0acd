"""
Campaign statistics engine.

Validator -> Normalizer -> Store / Client -> Resolver -> Batch enricher,
with the fallback generator as last resort.
"""

from mailstats.stats_engine.client import AcelleClient
from mailstats.stats_engine.enricher import BatchEnricher
from mailstats.stats_engine.fallback import generate
from mailstats.stats_engine.normalizer import normalize, to_delivery_info
from mailstats.stats_engine.resolver import ResolverConfig, StatsResolver
from mailstats.stats_engine.summary import CampaignSummary, summarize
from mailstats.stats_engine.validator import validate

__all__ = [
    "AcelleClient",
    "BatchEnricher",
    "CampaignSummary",
    "ResolverConfig",
    "StatsResolver",
    "generate",
    "normalize",
    "summarize",
    "to_delivery_info",
    "validate",
]
