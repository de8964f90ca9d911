"""Data models for tiering, statistics and ranking output."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from photo_judge.models.batch import FailedPhoto
from photo_judge.models.checkpoint import utc_now


class Tier(str, Enum):
    TIER1 = "tier1"
    TIER2 = "tier2"
    TIER3 = "tier3"


class TierThresholds(BaseModel):
    """Tier boundaries: tier1 is ``score > high``, tier3 is ``score <= medium``"""

    high: float = 8.0
    medium: float = 6.5


class TieredPhoto(BaseModel):
    filename: str
    score: float
    # Original input object, kept for downstream lookups but never serialized
    record: Any = Field(default=None, exclude=True)


class TierSummary(BaseModel):
    total: int = 0
    tier1_count: int = 0
    tier2_count: int = 0
    tier3_count: int = 0
    high_threshold: float = 8.0
    medium_threshold: float = 6.5
    average_score: Optional[float] = None
    invalid_count: int = 0


class TierResult(BaseModel):
    tier1: List[TieredPhoto] = Field(default_factory=list)
    tier2: List[TieredPhoto] = Field(default_factory=list)
    tier3: List[TieredPhoto] = Field(default_factory=list)
    summary: TierSummary = Field(default_factory=TierSummary)

    def tier_of(self, filename: str) -> Optional[Tier]:
        for tier, photos in (
            (Tier.TIER1, self.tier1),
            (Tier.TIER2, self.tier2),
            (Tier.TIER3, self.tier3),
        ):
            if any(p.filename == filename for p in photos):
                return tier
        return None


class ScoreStatistics(BaseModel):
    count: int = 0
    mean: float = 0.0
    median: float = 0.0
    min: float = 0.0
    max: float = 0.0
    std_dev: float = 0.0
    q1: float = 0.0
    q3: float = 0.0


class CriterionStatistics(BaseModel):
    weight: float = 0.0
    count: int = 0
    average: float = 0.0
    median: float = 0.0
    min: float = 0.0
    max: float = 0.0


class RankedPhoto(BaseModel):
    """One line of the ranking handed to the reporting layer"""

    rank: int = Field(..., ge=1)
    filename: str
    overall_score: float
    tier: Tier
    individual_scores: Dict[str, float] = Field(default_factory=dict)

    @property
    def criterion_scores(self) -> Dict[str, float]:
        return self.individual_scores


class AggregationReport(BaseModel):
    generated_at: datetime = Field(default_factory=utc_now)
    total_photos: int = 0
    ranking: List[RankedPhoto] = Field(default_factory=list)
    criteria_statistics: Dict[str, CriterionStatistics] = Field(default_factory=dict)
    tiers: TierSummary = Field(default_factory=TierSummary)
    statistics: ScoreStatistics = Field(default_factory=ScoreStatistics)
    unscored: List[str] = Field(default_factory=list)
    # Photos the batch skipped; ranked + failed covers every photo found
    failures: List[FailedPhoto] = Field(default_factory=list)
