"""
Canonical schema validation for campaign statistics.

`validate` never raises: whatever it is handed, it returns a
CampaignStatistics whose counts are non-negative integers, whose rates are
fractions in [0, 1], and whose invariants hold:

- delivered_count <= subscriber_count
- bounce_count == soft_bounce_count + hard_bounce_count
- unique_open_count <= open_count
- rates agree with counts whenever their denominator is positive
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from mailstats.common.logger import get_logger
from mailstats.common.utils import clamp, is_finite_number, safe_divide
from mailstats.schemas.internal import COUNT_FIELDS, RATE_FIELDS, CampaignStatistics

logger = get_logger(__name__)


def parse_number(value: Any) -> tuple[float, bool]:
    """
    Coerce a raw upstream value to a float.

    Returns:
        (number, is_percent). Unparseable values give (0.0, False).
    """
    if value is None or isinstance(value, bool):
        return 0.0, False

    if isinstance(value, Decimal):
        try:
            value = float(value)
        except (ValueError, OverflowError):
            return 0.0, False

    if isinstance(value, (int, float)):
        return (float(value), False) if is_finite_number(value) else (0.0, False)

    if isinstance(value, str):
        text = value.strip().replace(",", "")
        is_percent = text.endswith("%")
        if is_percent:
            text = text[:-1].strip()
        try:
            number = float(Decimal(text))
        except (InvalidOperation, ValueError):
            return 0.0, False
        if not is_finite_number(number):
            return 0.0, False
        return number, is_percent

    return 0.0, False


def coerce_count(value: Any) -> int:
    """Non-negative integer count; malformed values become 0."""
    number, _ = parse_number(value)
    if number <= 0:
        return 0
    return int(round(number))


def coerce_rate(value: Any) -> float:
    """
    Rate as a 0-1 fraction.

    Values written with "%" or greater than 1 are read as percentages.
    """
    number, is_percent = parse_number(value)
    if number <= 0:
        return 0.0
    if is_percent or number > 1:
        number /= 100
    return clamp(number, 0.0, 1.0)


def reconcile(stats: CampaignStatistics) -> CampaignStatistics:
    """Enforce the cross-field invariants in place and return the record."""
    # A campaign cannot deliver more than it was sent to
    if stats.delivered_count > stats.subscriber_count:
        stats.subscriber_count = stats.delivered_count

    if stats.unique_open_count > stats.open_count:
        stats.open_count = stats.unique_open_count

    split = stats.soft_bounce_count + stats.hard_bounce_count
    if split > 0:
        stats.bounce_count = split
    elif stats.bounce_count > 0:
        # Unsplit totals are reported as soft bounces
        stats.soft_bounce_count = stats.bounce_count

    if stats.subscriber_count > 0:
        stats.delivered_rate = safe_divide(stats.delivered_count, stats.subscriber_count)
    if stats.delivered_count > 0:
        stats.unique_open_rate = clamp(
            safe_divide(stats.unique_open_count, stats.delivered_count), 0.0, 1.0
        )
        stats.click_rate = clamp(
            safe_divide(stats.click_count, stats.delivered_count), 0.0, 1.0
        )

    return stats


def validate(raw: Any) -> CampaignStatistics:
    """
    Build a canonical CampaignStatistics from a loosely typed mapping.

    Keys must already be canonical field names; alias resolution is the
    normalizer's job. Lists, None and other non-mappings give an all-zero
    record.
    """
    if isinstance(raw, CampaignStatistics):
        source = raw.source
        stats = validate(raw.to_dict())
        stats.source = source
        return stats

    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.debug("Rejected non-mapping statistics", type=type(raw).__name__)
        return CampaignStatistics()

    values: dict[str, Any] = {}
    for name in COUNT_FIELDS:
        values[name] = coerce_count(raw.get(name))
    for name in RATE_FIELDS:
        values[name] = coerce_rate(raw.get(name))

    return reconcile(CampaignStatistics(**values))
