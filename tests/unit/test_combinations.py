"""Tests for combination generation and candidate selection."""

import pytest

from photo_judge.analysis.combinations import (
    calculate_diversity,
    count_combinations,
    generate_combinations,
    select_candidate_sets,
)
from photo_judge.models.sets import SelectionOptions
from photo_judge.models.tiering import RankedPhoto, Tier
from photo_judge.utils.exceptions import CombinationLimitExceededError


def ranked(filename, score, scores=None, rank=1):
    return RankedPhoto(
        rank=rank,
        filename=filename,
        overall_score=score,
        tier=Tier.TIER2,
        individual_scores=scores if scores is not None else {"Impact": 5.0},
    )


class TestCountCombinations:
    @pytest.mark.parametrize(
        "n,k,expected",
        [(12, 4, 495), (5, 0, 1), (5, 5, 1), (3, 5, 0), (4, -1, 0), (0, 0, 1)],
    )
    def test_small(self, n, k, expected):
        assert count_combinations(n, k) == expected

    def test_large_is_exact(self):
        assert count_combinations(50, 25) == 126410606437752

    @pytest.mark.parametrize("n", range(0, 16))
    def test_symmetric_in_k(self, n):
        for k in range(n + 1):
            assert count_combinations(n, k) == count_combinations(n, n - k)


class TestGenerateCombinations:
    def test_lexicographic_order(self):
        assert list(generate_combinations(["a", "b", "c"], 2)) == [
            ("a", "b"),
            ("a", "c"),
            ("b", "c"),
        ]

    def test_restartable(self):
        combos = generate_combinations(range(5), 3)
        assert list(combos) == list(combos)
        assert len(combos) == 10

    def test_zero_size_yields_one_empty_combination(self):
        assert list(generate_combinations([1, 2], 0)) == [()]

    def test_too_large_k_yields_nothing(self):
        combos = generate_combinations([1, 2], 3)
        assert list(combos) == []
        assert len(combos) == 0

    @pytest.mark.parametrize(
        "n,k", [(n, k) for n in range(0, 9) for k in range(0, n + 2)]
    )
    def test_yields_count_distinct_combinations(self, n, k):
        combos = list(generate_combinations(range(n), k))
        assert len(combos) == count_combinations(n, k)
        assert len(set(combos)) == len(combos)
        assert all(len(c) == k for c in combos)


class TestDiversity:
    def test_opposite_profiles(self):
        photos = [
            ranked("a.jpg", 5, {"A": 10, "B": 0}),
            ranked("b.jpg", 5, {"A": 0, "B": 10}),
        ]
        assert calculate_diversity(photos) == pytest.approx(1.0)

    def test_identical_profiles(self):
        photos = [ranked("a.jpg", 5, {"A": 7}), ranked("b.jpg", 5, {"A": 7})]
        assert calculate_diversity(photos) == 0.0

    def test_single_photo(self):
        assert calculate_diversity([ranked("a.jpg", 5)]) == 0.0

    def test_mappings_and_missing_criteria(self):
        photos = [{"scores": {"A": 6}}, {"scores": {"B": 8}}]
        # sqrt((36 + 64) / 2) / 10
        assert calculate_diversity(photos) == pytest.approx(0.7071, abs=1e-4)

    def test_bounded(self):
        photos = [{"scores": {"A": 10}}, {"scores": {"A": -10}}]
        assert calculate_diversity(photos) == 1.0


class TestSelectCandidateSets:
    @pytest.fixture
    def photos(self):
        scores = [9, 8, 7, 6, 5]
        return [ranked(f"p{i}.jpg", score) for i, score in enumerate(scores, 1)]

    def test_best_sets_first(self, photos):
        candidates = select_candidate_sets(
            photos, 3, SelectionOptions(max_sets_to_evaluate=2)
        )

        assert [c.filenames for c in candidates] == [
            ["p1.jpg", "p2.jpg", "p3.jpg"],
            ["p1.jpg", "p2.jpg", "p4.jpg"],
        ]
        assert candidates[0].pre_score == 24.0
        assert candidates[0].sum_individual_score == 24.0
        assert candidates[0].diversity_bonus == 0.0
        assert candidates[0].set_id is None

    def test_diversity_bonus_added(self):
        photos = [
            ranked("a.jpg", 8, {"A": 10, "B": 0}),
            ranked("b.jpg", 8, {"A": 0, "B": 10}),
        ]
        candidate = select_candidate_sets(photos, 2)[0]
        assert candidate.diversity_bonus == 2.0
        assert candidate.pre_score == 18.0

    def test_ties_keep_lexicographic_order(self):
        photos = [ranked(name, 7) for name in ["d.jpg", "b.jpg", "a.jpg", "c.jpg"]]
        candidates = select_candidate_sets(photos, 2)
        assert candidates[0].filenames == ["a.jpg", "b.jpg"]
        assert candidates[1].filenames == ["a.jpg", "c.jpg"]

    def test_pre_filter_limits_pool(self, photos):
        candidates = select_candidate_sets(
            photos, 2, SelectionOptions(pre_filter_top_n=3, max_sets_to_evaluate=10)
        )
        assert len(candidates) == 3
        assert all("p4.jpg" not in c.filenames for c in candidates)

    def test_not_enough_photos(self, photos):
        assert select_candidate_sets(photos[:2], 3) == []

    def test_combination_limit(self):
        photos = [ranked(f"p{i:02d}.jpg", 5) for i in range(30)]
        with pytest.raises(CombinationLimitExceededError) as exc_info:
            select_candidate_sets(photos, 10, SelectionOptions(pre_filter_top_n=30))

        error = exc_info.value
        assert (error.n, error.k, error.limit) == (30, 10, 10000)
        assert error.count == 30045015
        assert "Too many combinations" in str(error)
