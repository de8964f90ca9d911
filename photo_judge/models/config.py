"""Configuration models.

Covers the competition ("open call") definition that lives in each project
directory, the batch run settings, and the vision scorer connection.
"""

import os
from typing import List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from photo_judge.models.scoring import CriteriaPrompt, Criterion

logger = structlog.get_logger()

CHECKPOINT_INTERVAL_MIN = 1
CHECKPOINT_INTERVAL_MAX = 50
PHOTO_TIMEOUT_MIN_SECONDS = 30
PHOTO_TIMEOUT_MAX_SECONDS = 300

DEFAULT_CRITERIA = [
    Criterion(
        name="Theme Alignment",
        description="How well the photo matches the competition theme",
        weight=30,
    ),
    Criterion(
        name="Technical Quality",
        description="Composition, focus, exposure, color",
        weight=20,
    ),
    Criterion(
        name="Originality",
        description="Uniqueness of perspective and concept",
        weight=25,
    ),
    Criterion(
        name="Emotional Impact",
        description="Ability to engage and move the viewer",
        weight=15,
    ),
    Criterion(
        name="Jury Fit",
        description="Alignment with jury preferences",
        weight=10,
    ),
]


def clamp_setting(name: str, value: int, minimum: int, maximum: int) -> int:
    """Clamp an integer setting into range, warning when it had to move.

    Args:
        name: Setting name (for the log entry)
        value: Requested value
        minimum: Lowest accepted value
        maximum: Highest accepted value

    Returns:
        Value clamped into [minimum, maximum]
    """
    clamped = max(minimum, min(maximum, value))
    if clamped != value:
        logger.warning(
            "setting_clamped",
            setting=name,
            requested=value,
            applied=clamped,
            minimum=minimum,
            maximum=maximum,
        )
    return clamped


class SetModeConfig(BaseModel):
    """Exhibition set evaluation settings"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enabled: bool = False
    set_size: int = Field(default=4, ge=2, le=10)
    individual_weight: float = Field(default=40, ge=0, le=100)
    set_weight: float = Field(default=60, ge=0, le=100)
    max_sets_to_evaluate: int = Field(default=10, ge=1, le=100)
    pre_filter_top_n: int = Field(default=12, ge=2, le=100)
    max_combinations: int = Field(default=10000, ge=1)
    set_criteria: Optional[List[Criterion]] = None


class CompetitionConfig(BaseModel):
    """Competition definition loaded from open-call.json / open-call.yaml"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=200)
    theme: str = Field(..., min_length=1, max_length=500)
    jury: List[str] = Field(default_factory=list)
    past_winners: str = ""
    custom_criteria: Optional[List[Criterion]] = None
    set_mode: Optional[SetModeConfig] = None

    @field_validator("custom_criteria")
    @classmethod
    def validate_criteria_names(
        cls, v: Optional[List[Criterion]]
    ) -> Optional[List[Criterion]]:
        if v is None:
            return v
        names = [c.name.lower() for c in v]
        if len(names) != len(set(names)):
            raise ValueError("Criterion names must be unique")
        return v

    def build_criteria_prompt(self) -> CriteriaPrompt:
        """Derive the evaluation prompt for a new batch."""
        criteria = self.custom_criteria or DEFAULT_CRITERIA
        instructions = ""
        if self.jury:
            instructions = f"Jury: {', '.join(self.jury)}."
        if self.past_winners:
            instructions = f"{instructions} Past winners: {self.past_winners}".strip()
        return CriteriaPrompt(
            title=self.title,
            theme=self.theme,
            criteria=[c.model_copy() for c in criteria],
            evaluation_instructions=instructions,
        )


class BatchSettings(BaseModel):
    """Settings for a single batch run.

    Out-of-range checkpoint intervals and timeouts are clamped (with a
    warning) rather than rejected.
    """

    parallel: int = Field(default=3, ge=1, le=10)
    checkpoint_interval: int = 10
    photo_timeout_seconds: int = 60
    auto_scale: bool = False
    clear_checkpoint: bool = False
    photos_subdir: str = "photos"

    @field_validator("checkpoint_interval")
    @classmethod
    def clamp_checkpoint_interval(cls, v: int) -> int:
        return clamp_setting(
            "checkpoint_interval", v, CHECKPOINT_INTERVAL_MIN, CHECKPOINT_INTERVAL_MAX
        )

    @field_validator("photo_timeout_seconds")
    @classmethod
    def clamp_photo_timeout(cls, v: int) -> int:
        return clamp_setting(
            "photo_timeout_seconds",
            v,
            PHOTO_TIMEOUT_MIN_SECONDS,
            PHOTO_TIMEOUT_MAX_SECONDS,
        )


class ScorerSettings(BaseModel):
    """Connection settings for the Ollama vision scorer"""

    model_config = ConfigDict(protected_namespaces=())

    host: str = "http://localhost:11434"
    model: str = "llava:7b"
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1500, ge=100, le=8192)
    max_retries: int = Field(default=3, ge=1, le=10)

    @classmethod
    def from_env(cls) -> "ScorerSettings":
        """Build settings from OLLAMA_HOST / OLLAMA_MODEL environment variables"""
        return cls(
            host=os.environ.get("OLLAMA_HOST", cls.model_fields["host"].default),
            model=os.environ.get("OLLAMA_MODEL", cls.model_fields["model"].default),
        )
