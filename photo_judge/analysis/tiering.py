"""Confidence tiers for ranked photos.

Photos are split into three tiers by two thresholds:

    tier1:  score > high
    tier2:  medium < score <= high
    tier3:  score <= medium

Output is sorted by score descending then filename ascending, so the
result depends only on the input values, never on input order.
"""

import math
from numbers import Real
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog

from photo_judge.analysis.statistics import round_half_up
from photo_judge.models.tiering import (
    TieredPhoto,
    TierResult,
    TierSummary,
    TierThresholds,
)

logger = structlog.get_logger()

DEFAULT_HIGH = 8.0
DEFAULT_MEDIUM = 6.5
SCORE_MIN = 1.0
SCORE_MAX = 10.0

# Top 20% of photos are tier1 candidates, top 45% tier1+tier2
HIGH_PERCENTILE_FRACTION = 0.2
MEDIUM_PERCENTILE_FRACTION = 0.45


def _field(photo: Any, name: str) -> Any:
    if isinstance(photo, Mapping):
        return photo.get(name)
    return getattr(photo, name, None)


def _is_real_score(value: Any) -> bool:
    return (
        isinstance(value, Real)
        and not isinstance(value, bool)
        and not math.isnan(float(value))
    )


def validate_tier_data(photo: Any) -> bool:
    """True when ``photo`` has a non-blank filename and a numeric score.

    Works with mappings (``{"filename": ..., "score": ...}``) and objects
    exposing the same attributes. Booleans and NaN are not scores.
    """
    if photo is None:
        return False
    filename = _field(photo, "filename")
    if not isinstance(filename, str) or not filename.strip():
        return False
    return _is_real_score(_field(photo, "score"))


def clamp_score(score: float) -> float:
    return max(SCORE_MIN, min(SCORE_MAX, float(score)))


def calculate_boundaries(
    scores: Sequence[float], method: str = "percentile"
) -> TierThresholds:
    """Tier thresholds for a score distribution.

    The percentile method reads the scores sorted descending at index
    ``floor(n * 0.2)`` (high) and ``floor(n * 0.45)`` (medium). The fixed
    method and empty input give 8.0 / 6.5.

    Args:
        scores: Photo scores
        method: ``"percentile"`` or ``"fixed"``

    Returns:
        TierThresholds rounded to 1 decimal
    """
    valid = [float(s) for s in scores if _is_real_score(s)]
    if not valid or method != "percentile":
        return TierThresholds(high=DEFAULT_HIGH, medium=DEFAULT_MEDIUM)

    ordered = sorted(valid, reverse=True)
    last = len(ordered) - 1
    high = ordered[min(int(len(ordered) * HIGH_PERCENTILE_FRACTION), last)]
    medium = ordered[min(int(len(ordered) * MEDIUM_PERCENTILE_FRACTION), last)]

    return TierThresholds(high=round_half_up(high, 1), medium=round_half_up(medium, 1))


def _sort_key(photo: TieredPhoto) -> Tuple[float, str]:
    return (-photo.score, photo.filename)


def generate_tiers(
    photos: Iterable[Any], thresholds: Optional[TierThresholds] = None
) -> TierResult:
    """Classify photos into tiers.

    Invalid entries (no filename, non-numeric or NaN score) are dropped
    and counted in ``summary.invalid_count``. Valid scores are clamped to
    [1, 10] before classification.

    Args:
        photos: Mappings or objects with ``filename`` and ``score``
        thresholds: Tier thresholds, 8.0 / 6.5 when omitted

    Returns:
        TierResult whose tiers partition the valid photos
    """
    thresholds = thresholds or TierThresholds()
    high, medium = thresholds.high, thresholds.medium

    valid: List[TieredPhoto] = []
    invalid_count = 0
    for photo in photos:
        if not validate_tier_data(photo):
            invalid_count += 1
            continue
        valid.append(
            TieredPhoto(
                filename=_field(photo, "filename"),
                score=clamp_score(_field(photo, "score")),
                record=photo,
            )
        )

    if invalid_count:
        logger.warning("tiering_dropped_invalid", count=invalid_count)

    valid.sort(key=_sort_key)

    result = TierResult()
    for photo in valid:
        if photo.score > high:
            result.tier1.append(photo)
        elif photo.score > medium:
            result.tier2.append(photo)
        else:
            result.tier3.append(photo)

    average = None
    if valid:
        average = round_half_up(sum(p.score for p in valid) / len(valid), 1)

    result.summary = TierSummary(
        total=len(valid),
        tier1_count=len(result.tier1),
        tier2_count=len(result.tier2),
        tier3_count=len(result.tier3),
        high_threshold=high,
        medium_threshold=medium,
        average_score=average,
        invalid_count=invalid_count,
    )
    return result
