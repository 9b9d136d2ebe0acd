"""
Response normalization.

The Acelle API, older cache rows and campaign list payloads all carry
statistics in different places and under different names. This module
enumerates every recognized shape explicitly, tries them in a fixed order,
and maps the first match through one alias table and the validator.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from mailstats.common.logger import get_logger
from mailstats.stats_engine.validator import coerce_count, coerce_rate, validate
from mailstats.schemas.internal import CampaignStatistics

logger = get_logger(__name__)


class ShapeKind(str, Enum):
    """Tag of a recognized statistics shape."""

    STATISTICS = "statistics"
    DELIVERY_INFO = "delivery_info"
    TRACK_REPORT = "track_report"
    TOP_LEVEL = "top_level"


@dataclass(frozen=True)
class ShapeVariant:
    """One place statistics may live in a payload."""

    kind: ShapeKind
    path: tuple[str, ...]

    def locate(self, root: Mapping[str, Any]) -> Mapping[str, Any] | None:
        node: Any = root
        for key in self.path:
            if not isinstance(node, Mapping):
                return None
            node = node.get(key)
        return node if isinstance(node, Mapping) else None


# Match order is significant: explicit statistics objects first (shallow to
# deep), then delivery_info objects, then tracking reports, then raw fields.
SHAPE_VARIANTS: tuple[ShapeVariant, ...] = (
    ShapeVariant(ShapeKind.STATISTICS, ("statistics",)),
    ShapeVariant(ShapeKind.STATISTICS, ("campaign", "statistics")),
    ShapeVariant(ShapeKind.STATISTICS, ("data", "statistics")),
    ShapeVariant(ShapeKind.STATISTICS, ("data", "campaign", "statistics")),
    ShapeVariant(ShapeKind.DELIVERY_INFO, ("delivery_info",)),
    ShapeVariant(ShapeKind.DELIVERY_INFO, ("deliveryInfo",)),
    ShapeVariant(ShapeKind.DELIVERY_INFO, ("campaign", "delivery_info")),
    ShapeVariant(ShapeKind.DELIVERY_INFO, ("campaign", "deliveryInfo")),
    ShapeVariant(ShapeKind.DELIVERY_INFO, ("data", "delivery_info")),
    ShapeVariant(ShapeKind.DELIVERY_INFO, ("data", "campaign", "delivery_info")),
    ShapeVariant(ShapeKind.TRACK_REPORT, ("track", "data")),
    ShapeVariant(ShapeKind.TRACK_REPORT, ("data", "track", "data")),
    ShapeVariant(ShapeKind.TRACK_REPORT, ("meta", "report")),
    ShapeVariant(ShapeKind.TOP_LEVEL, ()),
    ShapeVariant(ShapeKind.TOP_LEVEL, ("campaign",)),
    ShapeVariant(ShapeKind.TOP_LEVEL, ("data",)),
)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _aliases(*names: str) -> tuple[str, ...]:
    result: list[str] = []
    for name in names:
        for candidate in (name, _camel(name)):
            if candidate not in result:
                result.append(candidate)
    return tuple(result)


# Canonical field -> upstream keys, first positive value wins
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "subscriber_count": _aliases("subscriber_count", "total", "total_emails"),
    "delivered_count": _aliases("delivered_count", "delivered", "sent"),
    "open_count": _aliases("open_count", "opened"),
    "unique_open_count": _aliases("unique_open_count", "uniq_open_count", "unique_opened"),
    "click_count": _aliases("click_count", "clicked"),
    "unsubscribe_count": _aliases("unsubscribe_count", "unsubscribed"),
    "abuse_complaint_count": _aliases("abuse_complaint_count", "complained", "feedback_count"),
    "delivered_rate": _aliases("delivered_rate", "delivery_rate"),
    "unique_open_rate": _aliases("unique_open_rate", "uniq_open_rate", "open_rate"),
    "click_rate": _aliases("click_rate"),
}

BOUNCE_TOTAL_KEYS = _aliases("bounce_count")
SOFT_BOUNCE_KEYS = _aliases("soft_bounce_count")
HARD_BOUNCE_KEYS = _aliases("hard_bounce_count")

RATE_NAMES = frozenset({"delivered_rate", "unique_open_rate", "click_rate"})

# Keys whose presence marks a mapping as carrying statistics
METRIC_KEYS: frozenset[str] = frozenset(
    alias
    for aliases in (*FIELD_ALIASES.values(), BOUNCE_TOTAL_KEYS, SOFT_BOUNCE_KEYS, HARD_BOUNCE_KEYS)
    for alias in aliases
) | {"bounced"}

# Raw top-level fields only count when they are numbers or numeric strings
_TOP_LEVEL_MARKERS: frozenset[str] = frozenset(
    _aliases("subscriber_count", "total", "delivered_count", "delivered", "open_count", "opened")
)


def _first_positive(obj: Mapping[str, Any], keys: tuple[str, ...], coerce: Any) -> Any:
    for key in keys:
        if key in obj:
            value = coerce(obj[key])
            if value > 0:
                return value
    return coerce(None)


def _first_present(obj: Mapping[str, Any], keys: tuple[str, ...]) -> int | None:
    for key in keys:
        if obj.get(key) is not None:
            return coerce_count(obj[key])
    return None


def resolve_bounces(
    total: int | None,
    soft: int | None,
    hard: int | None,
) -> tuple[int, int, int]:
    """
    Make a (total, soft, hard) triple consistent.

    A known split always defines the total; a missing half is the
    remainder of the total; an unsplit total is counted as soft bounces.
    """
    if soft is not None and hard is not None:
        if total is not None and total != soft + hard:
            logger.debug(
                "Bounce total disagrees with split, using split",
                total=total,
                soft=soft,
                hard=hard,
            )
        return soft + hard, soft, hard
    if soft is not None:
        hard = max((total or 0) - soft, 0)
        return soft + hard, soft, hard
    if hard is not None:
        soft = max((total or 0) - hard, 0)
        return soft + hard, soft, hard
    total = total or 0
    return total, total, 0


def _extract_bounces(obj: Mapping[str, Any]) -> tuple[int, int, int]:
    bounced = obj.get("bounced")
    if isinstance(bounced, Mapping):
        return resolve_bounces(
            _first_present(bounced, ("total",)),
            _first_present(bounced, ("soft",)),
            _first_present(bounced, ("hard",)),
        )

    total = coerce_count(bounced) if bounced is not None else None
    if not total:
        total = _first_present(obj, BOUNCE_TOTAL_KEYS)
    soft = _first_present(obj, SOFT_BOUNCE_KEYS)
    hard = _first_present(obj, HARD_BOUNCE_KEYS)
    # Zero-valued breakdown keys carry no split information
    if not soft and not hard:
        soft = hard = None
    return resolve_bounces(total, soft, hard)


def map_fields(obj: Mapping[str, Any]) -> CampaignStatistics:
    """Map one statistics-bearing mapping onto the canonical schema."""
    canonical: dict[str, Any] = {}
    for name, keys in FIELD_ALIASES.items():
        coerce = coerce_rate if name in RATE_NAMES else coerce_count
        canonical[name] = _first_positive(obj, keys, coerce)

    if not canonical["unique_open_count"]:
        canonical["unique_open_count"] = canonical["open_count"]

    total, soft, hard = _extract_bounces(obj)
    canonical["bounce_count"] = total
    canonical["soft_bounce_count"] = soft
    canonical["hard_bounce_count"] = hard

    return validate(canonical)


def _has_metrics(obj: Mapping[str, Any]) -> bool:
    return any(key in obj for key in METRIC_KEYS)


def _has_top_level_metrics(obj: Mapping[str, Any]) -> bool:
    for key in _TOP_LEVEL_MARKERS:
        value = obj.get(key)
        if isinstance(value, (int, float, str)) and not isinstance(value, bool):
            return True
    return False


def detect_shape(shape: Any) -> tuple[ShapeVariant, Mapping[str, Any]] | None:
    """Find the first recognized variant in a payload."""
    if not isinstance(shape, Mapping):
        return None

    for variant in SHAPE_VARIANTS:
        obj = variant.locate(shape)
        if obj is None:
            continue
        if variant.kind is ShapeKind.TOP_LEVEL:
            if _has_top_level_metrics(obj):
                return variant, obj
        elif _has_metrics(obj):
            return variant, obj
    return None


def normalize(shape: Any) -> CampaignStatistics | None:
    """
    Map any recognized statistics payload onto CampaignStatistics.

    Returns None when no recognized shape matches. Idempotent: the output
    (or its to_dict()) normalizes to itself.
    """
    if isinstance(shape, CampaignStatistics):
        stats = map_fields(shape.to_dict())
        stats.source = shape.source
        return stats

    match = detect_shape(shape)
    if match is None:
        return None

    variant, obj = match
    logger.debug(
        "Statistics shape detected",
        kind=variant.kind.value,
        path=".".join(variant.path) or "<root>",
    )
    return map_fields(obj)


def to_delivery_info(stats: CampaignStatistics) -> dict[str, Any]:
    """Legacy delivery_info view of canonical statistics."""
    return {
        "total": stats.subscriber_count,
        "delivered": stats.delivered_count,
        "delivery_rate": stats.delivered_rate,
        "opened": stats.open_count,
        "unique_opened": stats.unique_open_count,
        "unique_open_rate": stats.unique_open_rate,
        "clicked": stats.click_count,
        "click_rate": stats.click_rate,
        "bounced": {
            "soft": stats.soft_bounce_count,
            "hard": stats.hard_bounce_count,
            "total": stats.bounce_count,
        },
        "unsubscribed": stats.unsubscribe_count,
        "complained": stats.abuse_complaint_count,
    }
