"""
Tests for statistics validation.
"""

from decimal import Decimal

import pytest

from mailstats.schemas.internal import CampaignStatistics, StatsSource
from mailstats.stats_engine.validator import coerce_count, coerce_rate, parse_number, validate


class TestCoercion:
    """Tests for value coercion."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (42, 42),
            ("42", 42),
            ("1,250", 1250),
            (Decimal("7"), 7),
            (12.6, 13),
            ("12.4", 12),
            (-5, 0),
            ("-5", 0),
            (None, 0),
            (True, 0),
            (False, 0),
            ("abc", 0),
            ("", 0),
            (float("nan"), 0),
            (float("inf"), 0),
            ([1, 2], 0),
            ({"a": 1}, 0),
            (10**400, 0),
            (Decimal("sNaN"), 0),
            (Decimal("1e400"), 0),
            ("1e400", 0),
        ],
    )
    def test_coerce_count(self, value: object, expected: int) -> None:
        """Counts are non-negative integers; malformed values become zero."""
        assert coerce_count(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            (0.25, 0.25),
            ("0.25", 0.25),
            ("25%", 0.25),
            ("25 %", 0.25),
            (25, 0.25),
            (100, 1.0),
            (1, 1.0),
            (250, 1.0),
            (-0.3, 0.0),
            (None, 0.0),
            ("n/a", 0.0),
            (Decimal("0.5"), 0.5),
        ],
    )
    def test_coerce_rate(self, value: object, expected: float) -> None:
        """Rates are fractions; percentages are divided by 100 and clamped."""
        assert coerce_rate(value) == pytest.approx(expected)

    def test_parse_number_flags_percent(self) -> None:
        assert parse_number("12.5%") == (12.5, True)
        assert parse_number("12.5") == (12.5, False)


class TestValidate:
    """Tests for validate()."""

    def test_non_mapping_gives_zeros(self) -> None:
        for raw in (None, [], [1, 2, 3], "stats", 42):
            stats = validate(raw)
            assert stats == CampaignStatistics()
            assert stats.is_empty

    def test_unknown_fields_ignored(self) -> None:
        stats = validate({"subscriber_count": 10, "mystery": 99})
        assert stats.subscriber_count == 10
        assert not hasattr(stats, "mystery")

    def test_oversized_values_become_zero(self) -> None:
        stats = validate(
            {"subscriber_count": 10**400, "delivered_count": 5, "click_rate": Decimal("sNaN")}
        )
        assert stats.subscriber_count == 5
        assert stats.delivered_count == 5
        assert stats.click_rate == 0.0

    def test_delivered_never_exceeds_subscribers(self) -> None:
        stats = validate({"subscriber_count": 100, "delivered_count": 120})
        assert stats.subscriber_count == 120
        assert stats.delivered_count == 120
        assert stats.delivered_rate == pytest.approx(1.0)

    def test_bounce_total_is_sum_of_split(self) -> None:
        stats = validate(
            {"bounce_count": 99, "soft_bounce_count": 4, "hard_bounce_count": 6}
        )
        assert stats.bounce_count == 10

    def test_unsplit_bounces_counted_as_soft(self) -> None:
        stats = validate({"bounce_count": 12})
        assert stats.soft_bounce_count == 12
        assert stats.hard_bounce_count == 0
        assert stats.bounce_count == 12

    def test_unique_opens_never_exceed_opens(self) -> None:
        stats = validate({"open_count": 10, "unique_open_count": 30})
        assert stats.open_count == 30
        assert stats.unique_open_count == 30

    def test_rates_derived_from_counts(self) -> None:
        stats = validate(
            {
                "subscriber_count": 200,
                "delivered_count": 100,
                "unique_open_count": 25,
                "open_count": 40,
                "click_count": 10,
                "delivered_rate": "10%",
                "unique_open_rate": 0.99,
                "click_rate": 75,
            }
        )
        assert stats.delivered_rate == pytest.approx(0.5)
        assert stats.unique_open_rate == pytest.approx(0.25)
        assert stats.click_rate == pytest.approx(0.1)

    def test_upstream_rate_kept_without_denominator(self) -> None:
        stats = validate({"unique_open_rate": "42%"})
        assert stats.unique_open_rate == pytest.approx(0.42)

    def test_revalidates_statistics_and_keeps_source(self) -> None:
        raw = CampaignStatistics(subscriber_count=5, delivered_count=9, source=StatsSource.CACHE)
        stats = validate(raw)
        assert stats.subscriber_count == 9
        assert stats.source is StatsSource.CACHE

    def test_source_not_part_of_equality(self) -> None:
        a = CampaignStatistics(subscriber_count=1, source=StatsSource.LIVE)
        b = CampaignStatistics(subscriber_count=1, source=StatsSource.SYNTHETIC)
        assert a == b
        assert "source" not in a.to_dict()
