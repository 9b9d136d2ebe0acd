"""
Tests for the synthetic statistics generator.
"""

import random

import pytest

from mailstats.schemas.internal import StatsSource
from mailstats.stats_engine.fallback import generate
from mailstats.stats_engine.validator import validate


@pytest.mark.parametrize("seed", range(50))
def test_generated_statistics_are_consistent(seed: int) -> None:
    """Every generated record satisfies the canonical invariants."""
    stats = generate(random.Random(seed))

    assert 1000 <= stats.subscriber_count < 2000
    assert 0 < stats.delivered_count <= stats.subscriber_count
    assert 0.94 <= stats.delivered_count / stats.subscriber_count <= 0.99
    assert stats.unique_open_count <= stats.open_count
    assert stats.click_count <= stats.open_count
    assert stats.bounce_count == stats.soft_bounce_count + stats.hard_bounce_count
    assert stats.bounce_count == stats.subscriber_count - stats.delivered_count
    assert stats.abuse_complaint_count <= stats.unsubscribe_count

    assert stats.delivered_rate == pytest.approx(stats.delivered_count / stats.subscriber_count)
    assert stats.unique_open_rate == pytest.approx(stats.unique_open_count / stats.delivered_count)
    assert stats.click_rate == pytest.approx(stats.click_count / stats.delivered_count)
    for rate in (stats.delivered_rate, stats.unique_open_rate, stats.click_rate):
        assert 0.0 <= rate <= 1.0


def test_tagged_synthetic() -> None:
    assert generate().source is StatsSource.SYNTHETIC


def test_already_valid() -> None:
    stats = generate(random.Random(7))
    assert validate(stats) == stats


def test_seeded_generation_is_reproducible() -> None:
    assert generate(random.Random(3)) == generate(random.Random(3))


def test_does_not_touch_global_random_state() -> None:
    random.seed(1234)
    expected = random.random()

    random.seed(1234)
    generate()
    assert random.random() == expected
