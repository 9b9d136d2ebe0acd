"""
Synthetic statistics generator.

Used in demo mode and as the last resort of the resolution chain, so the
dashboard always has plausible, internally consistent figures to show.
"""

from __future__ import annotations

import random

from mailstats.schemas.internal import CampaignStatistics, StatsSource
from mailstats.stats_engine.validator import validate

# Realistic ranges for a small newsletter send
MIN_SUBSCRIBERS = 1000
MAX_SUBSCRIBERS = 2000
DELIVERY_RANGE = (0.95, 0.99)
UNIQUE_OPEN_RANGE = (0.20, 0.70)
REPEAT_OPEN_RANGE = (0.0, 0.25)
CLICK_RANGE = (0.10, 0.40)
SOFT_BOUNCE_SHARE = 0.7
UNSUBSCRIBE_SHARE = 0.01
COMPLAINT_SHARE = 0.1


def generate(rng: random.Random | None = None) -> CampaignStatistics:
    """
    Generate one synthetic statistics record.

    Args:
        rng: Random source. A private one is used when omitted, so the
            module-level random state is never touched.

    Returns:
        Validated statistics tagged as synthetic, subscriber_count > 0.
    """
    rng = rng or random.Random()

    subscribers = rng.randrange(MIN_SUBSCRIBERS, MAX_SUBSCRIBERS)
    delivered = int(subscribers * rng.uniform(*DELIVERY_RANGE))
    unique_opens = int(delivered * rng.uniform(*UNIQUE_OPEN_RANGE))
    opens = unique_opens + int(unique_opens * rng.uniform(*REPEAT_OPEN_RANGE))
    clicks = int(opens * rng.uniform(*CLICK_RANGE))

    bounces = subscribers - delivered
    soft_bounces = int(bounces * SOFT_BOUNCE_SHARE)
    hard_bounces = bounces - soft_bounces

    unsubscribes = int(delivered * UNSUBSCRIBE_SHARE)
    complaints = int(unsubscribes * COMPLAINT_SHARE)

    stats = validate(
        {
            "subscriber_count": subscribers,
            "delivered_count": delivered,
            "open_count": opens,
            "unique_open_count": unique_opens,
            "click_count": clicks,
            "bounce_count": bounces,
            "soft_bounce_count": soft_bounces,
            "hard_bounce_count": hard_bounces,
            "unsubscribe_count": unsubscribes,
            "abuse_complaint_count": complaints,
        }
    )
    return stats.with_source(StatsSource.SYNTHETIC)
