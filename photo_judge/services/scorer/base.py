"""Abstract vision scorer interface

This module defines:
- ScorerResult: Outcome of a time-boxed analysis
- VisionScorer: Abstract base class for vision scoring backends
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import structlog

from photo_judge.models.scoring import CriteriaPrompt, Criterion, PhotoScores
from photo_judge.models.sets import SetAnalysis, SetPhotoScore

logger = structlog.get_logger()

PathLike = Union[str, Path]


@dataclass
class ScorerResult:
    """Outcome of ``analyze_with_timeout``.

    Attributes:
        success: True when ``data`` holds scores
        data: Parsed scores on success
        error: Human-readable failure description
        timed_out: True when the analysis exceeded its budget
    """

    success: bool
    data: Optional[PhotoScores] = None
    error: Optional[str] = None
    timed_out: bool = False


class VisionScorer(ABC):
    """Abstract base class for vision scoring backends.

    The batch driver only relies on ``analyze`` raising
    ``BackendUnreachableError`` when the backend is down; everything else
    about the backend is opaque.

    Implementations:
        - OllamaVisionScorer: local Ollama server
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g., 'ollama')."""
        pass  # pragma: no cover - abstract method, always overridden

    @abstractmethod
    async def analyze(
        self, photo_path: PathLike, criteria_prompt: CriteriaPrompt
    ) -> PhotoScores:
        """Score one photo against the batch criteria.

        Args:
            photo_path: Path to the photo
            criteria_prompt: Frozen batch prompt

        Returns:
            PhotoScores

        Raises:
            BackendUnreachableError: Backend cannot be reached
            ScorerResponseError: Backend answered with an error
        """
        pass  # pragma: no cover - abstract method, always overridden

    @abstractmethod
    async def analyze_set(
        self,
        photo_paths: Sequence[PathLike],
        criteria_prompt: CriteriaPrompt,
        set_criteria: Optional[Sequence[Criterion]] = None,
        individual_results: Sequence[SetPhotoScore] = (),
    ) -> SetAnalysis:
        """Evaluate several photos together as an exhibition set."""
        pass  # pragma: no cover - abstract method, always overridden

    @abstractmethod
    async def check_status(self) -> bool:
        """Return True when the backend is reachable and the model exists."""
        pass  # pragma: no cover - abstract method, always overridden

    async def analyze_with_timeout(
        self,
        photo_path: PathLike,
        criteria_prompt: CriteriaPrompt,
        timeout_seconds: float,
    ) -> ScorerResult:
        """Run ``analyze`` under a wall-clock budget.

        A timeout is returned as a result so the caller can skip the photo;
        any other error propagates for classification.

        Args:
            photo_path: Path to the photo
            criteria_prompt: Frozen batch prompt
            timeout_seconds: Budget for this photo

        Returns:
            ScorerResult
        """
        try:
            scores = await asyncio.wait_for(
                self.analyze(photo_path, criteria_prompt), timeout=timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                "analysis_timeout",
                photo=Path(photo_path).name,
                timeout_seconds=timeout_seconds,
            )
            return ScorerResult(
                success=False,
                error=f"Analysis timeout after {timeout_seconds:g}s",
                timed_out=True,
            )
        return ScorerResult(success=True, data=scores)
