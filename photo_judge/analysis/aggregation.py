"""Aggregate per-photo scores into the ranking handed to reporting."""

from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from photo_judge.analysis.statistics import generate_statistics, round_half_up
from photo_judge.analysis.tiering import calculate_boundaries, generate_tiers
from photo_judge.models.scoring import Criterion, PhotoScoreRecord
from photo_judge.models.tiering import (
    AggregationReport,
    CriterionStatistics,
    RankedPhoto,
    Tier,
    TierThresholds,
)

logger = structlog.get_logger()


def _criterion_statistics(
    records: Sequence[PhotoScoreRecord], criteria: Sequence[Criterion]
) -> Dict[str, CriterionStatistics]:
    stats: Dict[str, CriterionStatistics] = {}
    for criterion in criteria:
        scores = sorted(
            r.scores.individual[criterion.name].score
            for r in records
            if criterion.name in r.scores.individual
        )
        entry = CriterionStatistics(weight=criterion.weight, count=len(scores))
        if scores:
            entry.average = round_half_up(sum(scores) / len(scores), 1)
            entry.median = scores[len(scores) // 2]
            entry.min = scores[0]
            entry.max = scores[-1]
        stats[criterion.name] = entry
    return stats


def aggregate_scores(
    records: Iterable[PhotoScoreRecord],
    criteria: Sequence[Criterion] = (),
    tier_thresholds: Optional[TierThresholds] = None,
    tier_method: str = "fixed",
) -> AggregationReport:
    """Rank photos, tier them and summarize the score distribution.

    The overall score is the weighted average, falling back to the simple
    average. Records without either are listed in ``unscored`` and left
    out of ranking, tiers and statistics. Input order does not matter:
    ranking follows score descending then filename.

    Args:
        records: Scored photos (read-only; copies are taken)
        criteria: Criteria to compute per-criterion statistics for
        tier_thresholds: Explicit thresholds; overrides ``tier_method``
        tier_method: ``"fixed"`` (8.0 / 6.5) or ``"percentile"``

    Returns:
        AggregationReport
    """
    snapshot: List[PhotoScoreRecord] = [r.model_copy(deep=True) for r in records]

    scored = [r for r in snapshot if r.weighted_average is not None]
    unscored = sorted(r.filename for r in snapshot if r.weighted_average is None)
    if unscored:
        logger.warning("unscored_photos", count=len(unscored), photos=unscored)

    thresholds = tier_thresholds or calculate_boundaries(
        [r.weighted_average for r in scored], method=tier_method
    )
    tiers = generate_tiers(
        [{"filename": r.filename, "score": r.weighted_average} for r in scored],
        thresholds,
    )

    by_name = {r.filename: r for r in scored}
    ranking: List[RankedPhoto] = []
    tier_lists = (
        (Tier.TIER1, tiers.tier1),
        (Tier.TIER2, tiers.tier2),
        (Tier.TIER3, tiers.tier3),
    )
    # Tiers are already in score order, so walking them in order yields the ranking
    for tier, photos in tier_lists:
        for photo in photos:
            ranking.append(
                RankedPhoto(
                    rank=len(ranking) + 1,
                    filename=photo.filename,
                    overall_score=photo.score,
                    tier=tier,
                    individual_scores=by_name[photo.filename].criterion_scores,
                )
            )

    report = AggregationReport(
        total_photos=len(snapshot),
        ranking=ranking,
        criteria_statistics=_criterion_statistics(scored, criteria),
        tiers=tiers.summary,
        statistics=generate_statistics(p.overall_score for p in ranking),
        unscored=unscored,
    )

    logger.info(
        "scores_aggregated",
        photos=len(snapshot),
        ranked=len(ranking),
        tier1=tiers.summary.tier1_count,
        tier2=tiers.summary.tier2_count,
        tier3=tiers.summary.tier3_count,
    )
    return report
