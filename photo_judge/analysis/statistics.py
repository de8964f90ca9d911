"""Descriptive statistics over photo and set scores.

Median and quartiles are picked by index from the sorted list with no
interpolation; the standard deviation is the population one (divide by N).
"""

import math
from typing import Iterable

from photo_judge.models.tiering import ScoreStatistics


def round_half_up(value: float, digits: int = 1) -> float:
    """Round halves upward (2.25 -> 2.3), unlike Python's banker's rounding."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def generate_statistics(scores: Iterable[float], precision: int = 1) -> ScoreStatistics:
    """Summarize a score distribution.

    Args:
        scores: Scores in any order
        precision: Decimals kept for mean, median and standard deviation

    Returns:
        ScoreStatistics; all zeros when ``scores`` is empty
    """
    ordered = sorted(scores)
    n = len(ordered)
    if n == 0:
        return ScoreStatistics()

    mean = sum(ordered) / n
    variance = sum((s - mean) ** 2 for s in ordered) / n

    return ScoreStatistics(
        count=n,
        mean=round_half_up(mean, precision),
        median=round_half_up(ordered[n // 2], precision),
        min=ordered[0],
        max=ordered[-1],
        std_dev=round_half_up(math.sqrt(variance), precision),
        q1=ordered[n // 4],
        q3=ordered[(3 * n) // 4],
    )
