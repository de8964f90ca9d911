"""Data models for per-photo scoring."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Criterion(BaseModel):
    """A single weighted evaluation criterion"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    weight: float = Field(default=20, ge=0, le=100)


class CriteriaPrompt(BaseModel):
    """Frozen evaluation prompt for one batch (criteria + weights).

    Stored inside the checkpoint so a resumed batch keeps scoring against
    exactly the same criteria it started with.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = "Photo Analysis"
    theme: str = ""
    criteria: List[Criterion] = Field(default_factory=list)
    evaluation_instructions: str = ""


class CriterionScore(BaseModel):
    """Score for one criterion on one photo"""

    score: float = Field(..., ge=1, le=10)
    weight: float = Field(default=20, ge=0, le=100)
    reasoning: str = ""


class ScoreSummary(BaseModel):
    """Summary values derived from criterion scores"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    weighted_average: Optional[float] = None
    average: Optional[float] = None
    recommendation: Optional[str] = None


class PhotoScores(BaseModel):
    """Scorer output for a single photo"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    individual: Dict[str, CriterionScore] = Field(default_factory=dict)
    summary: ScoreSummary = Field(default_factory=ScoreSummary)
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    full_analysis: str = ""

    @property
    def overall_score(self) -> Optional[float]:
        """Weighted average, falling back to the simple average"""
        if self.summary.weighted_average is not None:
            return self.summary.weighted_average
        return self.summary.average


class PhotoScoreRecord(BaseModel):
    """Scores for one analyzed photo, keyed by filename"""

    filename: str = Field(..., min_length=1)
    scores: PhotoScores = Field(default_factory=PhotoScores)

    @property
    def weighted_average(self) -> Optional[float]:
        return self.scores.overall_score

    @property
    def criterion_scores(self) -> Dict[str, float]:
        """Criterion name -> raw score, used for diversity calculations"""
        return {name: data.score for name, data in self.scores.individual.items()}
