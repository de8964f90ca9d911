"""Test helpers: score builders, image files and a scriptable vision scorer."""

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from PIL import Image

from photo_judge.models.scoring import CriterionScore, PhotoScores, ScoreSummary
from photo_judge.models.sets import SetAnalysis, SetCriterionScore
from photo_judge.services.scorer.base import VisionScorer
from photo_judge.services.scorer.exceptions import BackendUnreachableError


def make_scores(
    weighted: Optional[float], criteria: Optional[Dict[str, float]] = None
) -> PhotoScores:
    """PhotoScores with the given weighted average and criterion scores."""
    criteria = criteria or {}
    return PhotoScores(
        individual={
            name: CriterionScore(score=value, weight=20)
            for name, value in criteria.items()
        },
        summary=ScoreSummary(weighted_average=weighted, average=weighted),
    )


def write_photo(path: Path, fmt: str = "PNG", size=(8, 8)) -> Path:
    """Write a tiny real image file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color=(120, 80, 40)).save(path, format=fmt)
    return path


class FakeScorer(VisionScorer):
    """In-memory scorer.

    Args:
        scores: filename -> weighted average (default 7.0)
        unreachable_after: raise BackendUnreachableError once this many
            photos were scored successfully
        errors: filename -> exception to raise for that photo
        hang: filenames that never finish (for timeout tests)
    """

    def __init__(
        self,
        scores: Optional[Dict[str, float]] = None,
        unreachable_after: Optional[int] = None,
        errors: Optional[Dict[str, BaseException]] = None,
        hang: Sequence[str] = (),
        set_analysis: Optional[SetAnalysis] = None,
    ):
        self.scores = scores or {}
        self.unreachable_after = unreachable_after
        self.errors = errors or {}
        self.hang = set(hang)
        self.set_analysis = set_analysis
        self.calls: List[str] = []
        self.set_calls: List[List[str]] = []
        self.successes = 0

    @property
    def name(self) -> str:
        return "fake"

    async def analyze(self, photo_path, criteria_prompt):
        filename = Path(photo_path).name
        self.calls.append(filename)
        await asyncio.sleep(0)

        limit = self.unreachable_after
        if limit is not None and self.successes >= limit:
            raise BackendUnreachableError(
                "Cannot connect to Ollama at http://localhost:11434", backend="fake"
            )
        if filename in self.errors:
            raise self.errors[filename]
        if filename in self.hang:
            await asyncio.sleep(3600)

        self.successes += 1
        value = self.scores.get(filename, 7.0)
        return make_scores(value, {"Impact": value, "Technique": value})

    async def analyze_set(
        self, photo_paths, criteria_prompt, set_criteria=None, individual_results=()
    ):
        self.set_calls.append([Path(p).name for p in photo_paths])
        await asyncio.sleep(0)
        if self.set_analysis is not None:
            return self.set_analysis
        return SetAnalysis(
            set_scores={
                "Visual Coherence": SetCriterionScore(score=8, weight=50),
                "Narrative Arc": SetCriterionScore(score=6, weight=50),
            },
            recommendation="Strong",
        )

    async def check_status(self) -> bool:
        return True
