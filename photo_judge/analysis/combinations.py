"""Combination generation and candidate set selection.

Evaluating every K-photo subset with the vision model is far too slow, so
candidate sets are chosen in two phases: a cheap pre-score (sum of
individual scores plus a diversity bonus) over all subsets of the top-N
photos, then only the best few go to full set evaluation.
"""

import heapq
import itertools
import math
from typing import Any, Generic, Iterator, List, Mapping, Sequence, Tuple, TypeVar

import structlog

from photo_judge.analysis.statistics import round_half_up
from photo_judge.models.sets import CandidateSet, SelectionOptions
from photo_judge.models.tiering import RankedPhoto
from photo_judge.utils.exceptions import CombinationLimitExceededError

logger = structlog.get_logger()

T = TypeVar("T")

# Largest possible per-criterion distance with scores on a 0-10 scale
MAX_AXIS_DISTANCE = 10.0
DIVERSITY_BONUS_WEIGHT = 2.0


def count_combinations(n: int, k: int) -> int:
    """Exact C(n, k) via the multiplicative formula.

    Returns 0 when ``k < 0`` or ``k > n``.
    """
    if k < 0 or k > n:
        return 0
    k = min(k, n - k)
    result = 1
    for i in range(k):
        # Exact at every step: the running product is C(n, i + 1)
        result = result * (n - i) // (i + 1)
    return result


class Combinations(Generic[T]):
    """Lazy, restartable sequence of k-combinations of ``items``.

    Combinations come in lexicographic index order and are never
    materialized as a whole; each ``iter()`` starts from the first one.
    """

    def __init__(self, items: Sequence[T], k: int):
        self.items = tuple(items)
        self.k = k

    def __iter__(self) -> Iterator[Tuple[T, ...]]:
        if self.k < 0 or self.k > len(self.items):
            return iter(())
        return itertools.combinations(self.items, self.k)

    def __len__(self) -> int:
        return count_combinations(len(self.items), self.k)


def generate_combinations(items: Sequence[T], k: int) -> Combinations[T]:
    return Combinations(items, k)


def _score_profile(photo: Any) -> Mapping[str, float]:
    if isinstance(photo, Mapping):
        return photo.get("scores") or {}
    return getattr(photo, "criterion_scores", None) or {}


def calculate_diversity(photos: Sequence[Any]) -> float:
    """How different the photos' criterion profiles are, in [0, 1].

    Mean over all pairs of the RMS per-criterion score difference,
    divided by 10. A criterion missing from one photo counts as 0.

    Args:
        photos: Photos exposing ``criterion_scores`` (or mappings with a
            ``scores`` dict)

    Returns:
        Diversity score; 0 for fewer than two photos
    """
    if len(photos) < 2:
        return 0.0

    profiles: List[Mapping[str, float]] = [_score_profile(p) for p in photos]
    criteria = sorted({name for profile in profiles for name in profile})
    if not criteria:
        return 0.0

    distances = [
        math.sqrt(
            sum((a.get(c, 0) - b.get(c, 0)) ** 2 for c in criteria) / len(criteria)
        )
        for a, b in itertools.combinations(profiles, 2)
    ]
    average = sum(distances) / len(distances)
    return min(average / MAX_AXIS_DISTANCE, 1.0)


def _pre_score(combo: Tuple[RankedPhoto, ...]) -> CandidateSet:
    total = sum(p.overall_score for p in combo)
    bonus = calculate_diversity(combo) * DIVERSITY_BONUS_WEIGHT
    return CandidateSet(
        photos=combo,
        pre_score=round_half_up(total + bonus, 3),
        sum_individual_score=round_half_up(total, 3),
        diversity_bonus=round_half_up(bonus, 3),
    )


def select_candidate_sets(
    ranked_photos: Sequence[RankedPhoto],
    set_size: int,
    options: SelectionOptions = SelectionOptions(),
) -> List[CandidateSet]:
    """Pick the most promising K-photo sets for full evaluation.

    Args:
        ranked_photos: Individually ranked photos
        set_size: Photos per set (K)
        options: Pre-filter size, result count and combination limit

    Returns:
        Up to ``max_sets_to_evaluate`` candidates, pre-score descending;
        empty when there are fewer photos than ``set_size``

    Raises:
        CombinationLimitExceededError: C(top N, K) exceeds
            ``max_combinations``
    """
    if set_size <= 0 or len(ranked_photos) < set_size:
        return []

    ordered = sorted(ranked_photos, key=lambda p: (-p.overall_score, p.filename))
    top_photos = ordered[: options.pre_filter_top_n]
    if len(top_photos) < set_size:
        return []

    total = count_combinations(len(top_photos), set_size)
    if total > options.max_combinations:
        raise CombinationLimitExceededError(
            n=len(top_photos), k=set_size, count=total, limit=options.max_combinations
        )

    combos = generate_combinations(top_photos, set_size)
    scored = (_pre_score(combo) for combo in combos)
    # nlargest is stable, so equal pre-scores keep lexicographic order
    candidates = heapq.nlargest(
        options.max_sets_to_evaluate, scored, key=lambda c: c.pre_score
    )

    logger.info(
        "candidate_sets_selected",
        pool=len(top_photos),
        set_size=set_size,
        combinations=total,
        selected=len(candidates),
    )
    return candidates
