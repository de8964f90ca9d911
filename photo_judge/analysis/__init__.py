"""Scoring analysis: tiers, statistics, ranking and set selection."""

from photo_judge.analysis.aggregation import aggregate_scores
from photo_judge.analysis.combinations import (
    calculate_diversity,
    count_combinations,
    generate_combinations,
    select_candidate_sets,
)
from photo_judge.analysis.set_aggregator import (
    aggregate_set_scores,
    compare_sets,
    rank_sets,
)
from photo_judge.analysis.statistics import generate_statistics
from photo_judge.analysis.tiering import (
    calculate_boundaries,
    generate_tiers,
    validate_tier_data,
)

__all__ = [
    "aggregate_scores",
    "calculate_boundaries",
    "generate_tiers",
    "validate_tier_data",
    "generate_statistics",
    "count_combinations",
    "generate_combinations",
    "calculate_diversity",
    "select_candidate_sets",
    "aggregate_set_scores",
    "rank_sets",
    "compare_sets",
]
