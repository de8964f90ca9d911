"""Combine individual and set-level scores into one ranking of sets."""

from typing import Dict, Sequence

from photo_judge.analysis.statistics import generate_statistics, round_half_up
from photo_judge.models.sets import (
    SetAnalysis,
    SetComparison,
    SetPhotoScore,
    SetRanking,
    SetResult,
    SetWeights,
)

TIE = "tie"


def aggregate_set_scores(
    individual_results: Sequence[SetPhotoScore],
    set_analysis: SetAnalysis,
    weights: SetWeights = SetWeights(),
    set_id: str = "",
) -> SetResult:
    """Composite score of one evaluated set.

    composite = (w_individual * mean(individual) + w_set * weighted mean of
    set criteria) / 100. Each mean is 0 when it has no input.

    Args:
        individual_results: Individual scores of the set's photos
        set_analysis: Parsed set-level evaluation
        weights: Individual / set weights (40 / 60 by default)
        set_id: Identifier of the set

    Returns:
        SetResult with scores rounded to 3 decimals
    """
    individual_average = 0.0
    if individual_results:
        individual_average = sum(r.score for r in individual_results) / len(
            individual_results
        )

    weighted_sum = sum(s.score * s.weight for s in set_analysis.set_scores.values())
    weight_total = sum(s.weight for s in set_analysis.set_scores.values())
    set_average = weighted_sum / weight_total if weight_total > 0 else 0.0

    composite = (
        weights.individual * individual_average + weights.set * set_average
    ) / 100

    return SetResult(
        set_id=set_id,
        composite_score=round_half_up(composite, 3),
        individual_average=round_half_up(individual_average, 3),
        set_weighted_average=round_half_up(set_average, 3),
        individual_weight=weights.individual,
        set_weight=weights.set,
        photos=[r.model_copy() for r in individual_results],
        set_scores={k: v.model_copy() for k, v in set_analysis.set_scores.items()},
        recommendation=set_analysis.recommendation,
        suggested_order=list(set_analysis.suggested_order),
        photo_roles=dict(set_analysis.photo_roles),
        weakest_link=set_analysis.weakest_link,
    )


def rank_sets(set_results: Sequence[SetResult]) -> SetRanking:
    """Rank sets by composite score (stable, highest first, rank from 1)."""
    ordered = sorted(set_results, key=lambda r: r.composite_score, reverse=True)
    ranking = [
        r.model_copy(update={"rank": index}) for index, r in enumerate(ordered, start=1)
    ]
    return SetRanking(
        ranking=ranking,
        statistics=generate_statistics(
            (r.composite_score for r in ranking), precision=3
        ),
    )


def compare_sets(set_a: SetResult, set_b: SetResult) -> SetComparison:
    """Compare two evaluated sets.

    The winner is the set id with the higher composite score, or ``"tie"``
    when they are equal. Criterion diffs are A minus B; a criterion
    missing from one side counts as 0.
    """
    delta = round_half_up(set_a.composite_score - set_b.composite_score, 3)
    if delta > 0:
        winner = set_a.set_id
    elif delta < 0:
        winner = set_b.set_id
    else:
        winner = TIE

    diffs: Dict[str, float] = {}
    for name in sorted(set(set_a.set_scores) | set(set_b.set_scores)):
        score_a = set_a.set_scores[name].score if name in set_a.set_scores else 0.0
        score_b = set_b.set_scores[name].score if name in set_b.set_scores else 0.0
        diffs[name] = round_half_up(score_a - score_b, 3)

    return SetComparison(winner=winner, score_delta=abs(delta), criterion_diffs=diffs)
