"""Data models for the checkpoint system.

The checkpoint is persisted as camelCase JSON. Older on-disk layouts are
upgraded by explicit migration functions registered in ``MIGRATIONS``.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from photo_judge.models.scoring import CriteriaPrompt, PhotoScores

CHECKPOINT_VERSION = "2.0"
CHECKPOINT_FILENAME = ".analysis-checkpoint.json"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


class CheckpointConfig(_CamelModel):
    """Checkpoint configuration"""

    enabled: bool = True
    filename: str = CHECKPOINT_FILENAME
    max_age_days: int = Field(7, ge=1, le=365)
    checkpoint_interval: int = Field(10, ge=1, le=50)  # Save every N photos


class CheckpointStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class BatchMetadata(_CamelModel):
    parallel_setting: int = Field(3, ge=1)
    checkpoint_interval_photos: int = Field(10, ge=1, le=50)
    total_photos_in_batch: int = Field(0, ge=0)
    photo_directory: str


class CheckpointProgress(_CamelModel):
    """Batch progress.

    ``count`` is computed from ``analyzed_photo_names`` so the two can
    never disagree.
    """

    analyzed_photo_names: List[str] = Field(default_factory=list)
    failed_photo_names: List[str] = Field(default_factory=list)
    status: CheckpointStatus = CheckpointStatus.IN_PROGRESS

    @computed_field  # type: ignore[prop-decorator]
    @property
    def count(self) -> int:
        return len(self.analyzed_photo_names)

    @property
    def analyzed_set(self) -> set:
        """Analyzed names as a set for O(1) lookup"""
        return set(self.analyzed_photo_names)


class CheckpointResults(_CamelModel):
    scores_by_photo: Dict[str, PhotoScores] = Field(default_factory=dict)
    last_update_timestamp: datetime = Field(default_factory=utc_now)


class CheckpointMetadata(_CamelModel):
    created_at: datetime = Field(default_factory=utc_now)
    last_resumed_at: datetime = Field(default_factory=utc_now)
    resume_count: int = Field(0, ge=0)


class Checkpoint(_CamelModel):
    """Durable state for one in-progress batch"""

    version: str = CHECKPOINT_VERSION
    project_dir: str
    config_hash: str
    criteria_prompt: CriteriaPrompt
    batch_metadata: BatchMetadata
    progress: CheckpointProgress = Field(default_factory=CheckpointProgress)
    results: CheckpointResults = Field(default_factory=CheckpointResults)
    metadata: CheckpointMetadata = Field(default_factory=CheckpointMetadata)


class CheckpointValidation(BaseModel):
    """Outcome of validating a loaded checkpoint"""

    valid: bool
    reason: str


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _name_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [name for name in value if isinstance(name, str)]


def _migrate_1_0(data: Dict[str, Any]) -> Dict[str, Any]:
    """Upgrade the legacy 1.0 layout (analyzedPhotos / scores / analysisPrompt).

    Malformed sections become empty. A photo listed as analyzed whose
    score did not survive is dropped from the analyzed list so it is
    scored again.
    """
    progress = _section(data, "progress")
    results = _section(data, "results")
    metadata = _section(data, "metadata")
    batch = _section(data, "batchMetadata")

    scores_by_photo = {
        name: scores
        for name, scores in _section(results, "scores").items()
        if isinstance(scores, dict) and "individual" in scores
    }
    analyzed = [
        name
        for name in _name_list(progress.get("analyzedPhotos"))
        if name in scores_by_photo
    ]

    migrated: Dict[str, Any] = {
        "version": "2.0",
        "projectDir": data.get("projectDir", ""),
        "configHash": data.get("configHash"),
        "criteriaPrompt": data.get("analysisPrompt"),
        "batchMetadata": {
            "parallelSetting": batch.get("parallelSetting", 3),
            "checkpointIntervalPhotos": batch.get("checkpointInterval", 10),
            "totalPhotosInBatch": batch.get("totalPhotosInBatch", 0),
            "photoDirectory": batch.get("photoDirectory", ""),
        },
        "progress": {
            "analyzedPhotoNames": analyzed,
            "failedPhotoNames": _name_list(progress.get("failedPhotos")),
            "status": progress.get("status", "in_progress"),
        },
        "results": {"scoresByPhoto": scores_by_photo},
        "metadata": {"resumeCount": metadata.get("resumeCount", 0)},
    }
    created_at = metadata.get("createdAt")
    if created_at:
        migrated["metadata"]["createdAt"] = created_at
        migrated["metadata"]["lastResumedAt"] = metadata.get(
            "lastResumedAt", created_at
        )
    if results.get("lastUpdateTime"):
        migrated["results"]["lastUpdateTimestamp"] = results["lastUpdateTime"]
    return migrated


# Source version -> function producing the next version's layout
MIGRATIONS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "1.0": _migrate_1_0,
}


def migrate_checkpoint_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply registered migrations until no migration matches the version.

    Unknown versions are returned untouched and later fail validation.
    """
    seen = set()
    while True:
        version = data.get("version")
        if not isinstance(version, str) or version not in MIGRATIONS:
            break
        if version in seen:
            break
        seen.add(version)
        data = MIGRATIONS[version](data)
    return data
