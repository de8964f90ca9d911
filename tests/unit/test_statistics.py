"""Tests for score statistics."""

import pytest

from photo_judge.analysis.statistics import generate_statistics, round_half_up


@pytest.mark.parametrize(
    "value,digits,expected",
    [
        (2.25, 1, 2.3),
        (2.35, 1, 2.4),
        (7.0, 1, 7.0),
        (1.2346, 3, 1.235),
        (-0.25, 1, -0.2),
    ],
)
def test_round_half_up(value, digits, expected):
    """Test halves always round toward +infinity."""
    assert round_half_up(value, digits) == pytest.approx(expected)


def test_statistics_of_four_scores():
    """Test index-based median and quartiles, population std."""
    stats = generate_statistics([4.0, 1.0, 3.0, 2.0])

    assert stats.count == 4
    assert stats.mean == 2.5
    assert stats.median == 3.0
    assert stats.q1 == 2.0
    assert stats.q3 == 4.0
    assert stats.min == 1.0
    assert stats.max == 4.0
    assert stats.std_dev == 1.1


def test_statistics_single_score():
    stats = generate_statistics([7.3])
    assert stats.count == 1
    assert stats.mean == 7.3
    assert stats.median == 7.3
    assert stats.std_dev == 0.0


def test_statistics_empty():
    """Test empty input gives zeros rather than an error."""
    stats = generate_statistics([])
    assert stats.count == 0
    assert stats.mean == 0.0
    assert stats.max == 0.0


def test_statistics_precision():
    stats = generate_statistics([1.0, 2.0, 2.0], precision=3)
    assert stats.mean == 1.667
