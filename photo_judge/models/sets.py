"""Data models for exhibition set selection and ranking."""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from photo_judge.models.tiering import RankedPhoto, ScoreStatistics


class SelectionOptions(BaseModel):
    max_sets_to_evaluate: int = Field(default=10, ge=1)
    pre_filter_top_n: int = Field(default=12, ge=1)
    max_combinations: int = Field(default=10000, ge=1)


class CandidateSet(BaseModel):
    """A K-photo subset proposed for set-level evaluation"""

    photos: Tuple[RankedPhoto, ...]
    pre_score: float
    sum_individual_score: float
    diversity_bonus: float
    set_id: Optional[str] = None

    @property
    def filenames(self) -> List[str]:
        return [p.filename for p in self.photos]


class SetCriterionScore(BaseModel):
    score: float = Field(default=0, ge=0, le=10)
    weight: float = Field(default=0, ge=0, le=100)
    reasoning: str = ""


class SetAnalysis(BaseModel):
    """Parsed vision-model evaluation of a photo set"""

    set_scores: Dict[str, SetCriterionScore] = Field(default_factory=dict)
    photo_roles: Dict[str, str] = Field(default_factory=dict)
    suggested_order: List[int] = Field(default_factory=list)
    recommendation: str = ""
    weakest_link: str = ""
    full_analysis: str = ""


class SetWeights(BaseModel):
    individual: float = Field(default=40, ge=0, le=100)
    set: float = Field(default=60, ge=0, le=100)


class SetPhotoScore(BaseModel):
    filename: str
    score: float = 0.0


class SetResult(BaseModel):
    set_id: str = ""
    composite_score: float
    individual_average: float
    set_weighted_average: float
    individual_weight: float
    set_weight: float
    photos: List[SetPhotoScore] = Field(default_factory=list)
    set_scores: Dict[str, SetCriterionScore] = Field(default_factory=dict)
    recommendation: str = ""
    suggested_order: List[int] = Field(default_factory=list)
    photo_roles: Dict[str, str] = Field(default_factory=dict)
    weakest_link: str = ""
    rank: Optional[int] = None


class SetRanking(BaseModel):
    ranking: List[SetResult] = Field(default_factory=list)
    statistics: ScoreStatistics = Field(default_factory=ScoreStatistics)


class SetComparison(BaseModel):
    winner: str
    score_delta: float
    criterion_diffs: Dict[str, float] = Field(default_factory=dict)
