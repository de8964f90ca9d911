"""Vision scorer adapters."""

from photo_judge.services.scorer.base import ScorerResult, VisionScorer
from photo_judge.services.scorer.exceptions import (
    BackendUnreachableError,
    ScorerError,
    ScorerOverloadedError,
    ScorerResponseError,
    ScorerTimeoutError,
)
from photo_judge.services.scorer.ollama import OllamaVisionScorer

__all__ = [
    "VisionScorer",
    "ScorerResult",
    "OllamaVisionScorer",
    "ScorerError",
    "BackendUnreachableError",
    "ScorerTimeoutError",
    "ScorerResponseError",
    "ScorerOverloadedError",
]
