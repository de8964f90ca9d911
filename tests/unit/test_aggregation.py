"""Tests for score aggregation."""

import random

import pytest

from photo_judge.analysis.aggregation import aggregate_scores
from photo_judge.models.scoring import Criterion, PhotoScoreRecord
from photo_judge.models.tiering import Tier, TierThresholds
from tests.helpers import make_scores


@pytest.fixture
def records():
    """Three scored photos and one without usable scores"""
    return [
        PhotoScoreRecord(filename="c.jpg", scores=make_scores(5.0, {"Impact": 5})),
        PhotoScoreRecord(filename="a.jpg", scores=make_scores(9.0, {"Impact": 9})),
        PhotoScoreRecord(filename="d.jpg", scores=make_scores(None)),
        PhotoScoreRecord(filename="b.jpg", scores=make_scores(7.0, {"Impact": 7})),
    ]


def test_ranking_follows_score(records):
    """Test ranks are assigned by score descending."""
    report = aggregate_scores(records)

    assert [(p.rank, p.filename) for p in report.ranking] == [
        (1, "a.jpg"),
        (2, "b.jpg"),
        (3, "c.jpg"),
    ]
    assert [p.tier for p in report.ranking] == [Tier.TIER1, Tier.TIER2, Tier.TIER3]
    assert report.ranking[0].individual_scores == {"Impact": 9}


def test_unscored_reported_separately(records):
    """Test photos without scores are neither ranked nor tiered."""
    report = aggregate_scores(records)

    assert report.total_photos == 4
    assert report.unscored == ["d.jpg"]
    assert report.tiers.total == 3
    assert report.statistics.count == 3


def test_statistics(records):
    report = aggregate_scores(records)
    assert report.statistics.mean == 7.0
    assert report.statistics.median == 7.0
    assert report.statistics.min == 5.0
    assert report.statistics.max == 9.0


def test_criteria_statistics(records):
    report = aggregate_scores(records, [Criterion(name="Impact", weight=60)])

    impact = report.criteria_statistics["Impact"]
    assert impact.weight == 60
    assert impact.count == 3
    assert impact.average == 7.0
    assert impact.median == 7
    assert (impact.min, impact.max) == (5, 9)


def test_order_independent(records):
    """Test shuffled input produces the same ranking."""
    shuffled = list(records)
    random.Random(3).shuffle(shuffled)

    first = aggregate_scores(records)
    second = aggregate_scores(shuffled)
    assert first.ranking == second.ranking
    assert first.tiers == second.tiers


def test_input_not_mutated(records):
    before = [r.model_dump() for r in records]
    aggregate_scores(records)
    assert [r.model_dump() for r in records] == before


def test_explicit_thresholds(records):
    report = aggregate_scores(records, tier_thresholds=TierThresholds(high=4, medium=2))
    assert all(p.tier is Tier.TIER1 for p in report.ranking)


def test_percentile_method(records):
    report = aggregate_scores(records, tier_method="percentile")
    # 3 scores: high is the top score, medium the second
    assert report.tiers.high_threshold == 9.0
    assert report.tiers.medium_threshold == 7.0
    assert report.tiers.tier1_count == 0


def test_empty():
    report = aggregate_scores([])
    assert report.ranking == []
    assert report.statistics.count == 0
