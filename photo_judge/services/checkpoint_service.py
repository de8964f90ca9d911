"""
Checkpoint service for resumable batch analysis.

Persists batch progress in the project directory so an interrupted run can
pick up where it stopped. Writes are atomic (temp file + rename); reads and
validation never raise, since a bad checkpoint only means starting fresh.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import structlog
from pydantic import BaseModel, ValidationError

from photo_judge.models.checkpoint import (
    CHECKPOINT_VERSION,
    BatchMetadata,
    Checkpoint,
    CheckpointConfig,
    CheckpointValidation,
    migrate_checkpoint_data,
    utc_now,
)
from photo_judge.models.scoring import CriteriaPrompt, PhotoScores
from photo_judge.observability.metrics import CHECKPOINT_OPERATIONS
from photo_judge.utils.hash import compute_config_hash

# Top-level keys a raw checkpoint must carry before it is parsed
REQUIRED_FIELDS = ("configHash", "criteriaPrompt", "batchMetadata", "progress")

logger = structlog.get_logger()

ConfigLike = Union[Mapping[str, Any], BaseModel]


class CheckpointService:
    """
    Manage the checkpoint of one project's batch.

    Provides atomic saves, tolerant loads and drift validation.
    """

    def __init__(self, config: Optional[CheckpointConfig] = None):
        """
        Initialize checkpoint service.

        Args:
            config: Checkpoint configuration
        """
        self.config = config or CheckpointConfig()

    def checkpoint_path(self, project_dir: Union[str, Path]) -> Path:
        """Get checkpoint file path for a project"""
        return Path(project_dir) / self.config.filename

    def load(self, project_dir: Union[str, Path]) -> Optional[Checkpoint]:
        """
        Load the checkpoint of a project.

        Legacy layouts are migrated before schema validation.

        Args:
            project_dir: Project directory

        Returns:
            Checkpoint if present and parsable, None otherwise
        """
        if not self.config.enabled:
            return None

        checkpoint_file = self.checkpoint_path(project_dir)

        if not checkpoint_file.exists():
            logger.debug("no_checkpoint_found", project=str(project_dir))
            return None

        try:
            data = json.loads(checkpoint_file.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("checkpoint root is not an object")

            checkpoint = Checkpoint.model_validate(migrate_checkpoint_data(data))

            CHECKPOINT_OPERATIONS.labels(operation="load", status="success").inc()
            logger.info(
                "checkpoint_loaded",
                project=str(project_dir),
                analyzed=checkpoint.progress.count,
                version=checkpoint.version,
            )
            return checkpoint

        except (OSError, ValueError, ValidationError) as e:
            CHECKPOINT_OPERATIONS.labels(operation="load", status="failed").inc()
            logger.warning(
                "checkpoint_load_error",
                project=str(project_dir),
                error=str(e),
            )
            return None

    def save(self, checkpoint: Checkpoint, project_dir: Union[str, Path]) -> bool:
        """
        Save checkpoint atomically.

        A crash mid-write leaves the previous checkpoint intact. Failures
        are logged and reported through the return value only.

        Args:
            checkpoint: Checkpoint to persist
            project_dir: Project directory

        Returns:
            True if saved successfully
        """
        if not self.config.enabled:
            return True

        checkpoint_file = self.checkpoint_path(project_dir)
        temp_file = checkpoint_file.with_suffix(".tmp")

        try:
            checkpoint.results.last_update_timestamp = utc_now()
            payload = checkpoint.model_dump_json(by_alias=True, indent=2)

            temp_file.write_text(payload, encoding="utf-8")
            temp_file.replace(checkpoint_file)

            CHECKPOINT_OPERATIONS.labels(operation="save", status="success").inc()
            logger.debug(
                "checkpoint_saved",
                project=str(project_dir),
                analyzed=checkpoint.progress.count,
                failed=len(checkpoint.progress.failed_photo_names),
            )
            return True

        except OSError as e:
            CHECKPOINT_OPERATIONS.labels(operation="save", status="failed").inc()
            logger.error(
                "checkpoint_save_error",
                project=str(project_dir),
                error=str(e),
            )
            temp_file.unlink(missing_ok=True)
            return False

    def validate(
        self,
        checkpoint: Union[Checkpoint, Dict[str, Any], None],
        current_config: ConfigLike,
    ) -> CheckpointValidation:
        """
        Check whether a checkpoint can be resumed under the current config.

        Never raises; each failure carries its own reason.

        Args:
            checkpoint: Loaded checkpoint, or raw checkpoint data
            current_config: Competition config the new run will use

        Returns:
            CheckpointValidation with valid flag and reason
        """
        if checkpoint is None:
            return CheckpointValidation(valid=False, reason="No checkpoint found")

        if isinstance(checkpoint, dict):
            data = migrate_checkpoint_data(dict(checkpoint))
            if data.get("version") != CHECKPOINT_VERSION:
                return CheckpointValidation(
                    valid=False,
                    reason=f"Unsupported checkpoint version: {data.get('version')}",
                )
            missing = [field for field in REQUIRED_FIELDS if not data.get(field)]
            if missing:
                return CheckpointValidation(
                    valid=False,
                    reason=f"Missing required fields: {', '.join(missing)}",
                )
            try:
                checkpoint = Checkpoint.model_validate(data)
            except ValidationError as e:
                return CheckpointValidation(
                    valid=False,
                    reason=f"Checkpoint structure invalid: {e.error_count()} errors",
                )

        if checkpoint.version != CHECKPOINT_VERSION:
            return CheckpointValidation(
                valid=False,
                reason=f"Unsupported checkpoint version: {checkpoint.version}",
            )

        if checkpoint.config_hash != compute_config_hash(current_config):
            return CheckpointValidation(
                valid=False,
                reason="Config changed since checkpoint (open-call config modified)",
            )

        created_at = checkpoint.metadata.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        age = datetime.now(timezone.utc) - created_at
        if age.total_seconds() > self.config.max_age_days * 86400:
            return CheckpointValidation(
                valid=False,
                reason=f"Checkpoint too old ({age.days} days)",
            )

        return CheckpointValidation(valid=True, reason="Checkpoint valid")

    def initialize(
        self,
        project_dir: Union[str, Path],
        config: ConfigLike,
        criteria_prompt: CriteriaPrompt,
        total_photos: int,
        parallel_setting: int = 3,
        checkpoint_interval: Optional[int] = None,
        photo_directory: Optional[Union[str, Path]] = None,
    ) -> Checkpoint:
        """
        Build the initial checkpoint for a new batch.

        Args:
            project_dir: Project directory
            config: Competition config (hashed for drift detection)
            criteria_prompt: Prompt frozen for the whole batch
            total_photos: Photos in the batch
            parallel_setting: Concurrency the batch runs with
            checkpoint_interval: Photos between saves
            photo_directory: Directory holding the photos

        Returns:
            Checkpoint with empty progress, status in_progress
        """
        now = utc_now()
        interval = checkpoint_interval or self.config.checkpoint_interval

        checkpoint = Checkpoint(
            project_dir=str(project_dir),
            config_hash=compute_config_hash(config),
            criteria_prompt=criteria_prompt.model_copy(deep=True),
            batch_metadata=BatchMetadata(
                parallel_setting=parallel_setting,
                checkpoint_interval_photos=interval,
                total_photos_in_batch=total_photos,
                photo_directory=str(photo_directory or Path(project_dir) / "photos"),
            ),
        )
        checkpoint.metadata.created_at = now
        checkpoint.metadata.last_resumed_at = now
        checkpoint.results.last_update_timestamp = now

        logger.info(
            "checkpoint_initialized",
            project=str(project_dir),
            total_photos=total_photos,
            interval=interval,
        )
        return checkpoint

    def update(
        self,
        checkpoint: Checkpoint,
        new_photo_names: Iterable[str],
        new_scores: Mapping[str, PhotoScores],
        failed_photo_names: Iterable[str] = (),
    ) -> Checkpoint:
        """
        Apply one sub-batch of results.

        Analyzed and failed names are appended (duplicates ignored); a photo
        that now succeeded is removed from the failed list. Empty deltas
        leave progress and scores unchanged.

        Args:
            checkpoint: Current checkpoint
            new_photo_names: Photos analyzed in this sub-batch
            new_scores: Scores for those photos
            failed_photo_names: Photos that failed in this sub-batch

        Returns:
            Updated copy of the checkpoint
        """
        updated = checkpoint.model_copy(deep=True)
        progress = updated.progress

        analyzed = set(progress.analyzed_photo_names)
        for name in new_photo_names:
            if name not in analyzed:
                progress.analyzed_photo_names.append(name)
                analyzed.add(name)

        failed = set(progress.failed_photo_names)
        for name in failed_photo_names:
            if name not in failed and name not in analyzed:
                progress.failed_photo_names.append(name)
                failed.add(name)
        progress.failed_photo_names = [
            name for name in progress.failed_photo_names if name not in analyzed
        ]

        for name, scores in new_scores.items():
            updated.results.scores_by_photo[name] = scores

        updated.metadata.resume_count += 1
        return updated

    def prune_missing(
        self, checkpoint: Checkpoint, present_names: Iterable[str]
    ) -> List[str]:
        """
        Drop analyzed photos whose files are gone.

        Missing files are not an error; their names and scores are removed
        from the checkpoint in place.

        Args:
            checkpoint: Checkpoint being resumed
            present_names: Photo filenames currently on disk

        Returns:
            Names that were dropped
        """
        present = set(present_names)
        progress = checkpoint.progress

        dropped = [n for n in progress.analyzed_photo_names if n not in present]
        if not dropped:
            return []

        progress.analyzed_photo_names = [
            n for n in progress.analyzed_photo_names if n in present
        ]
        progress.failed_photo_names = [
            n for n in progress.failed_photo_names if n in present
        ]
        for name in dropped:
            checkpoint.results.scores_by_photo.pop(name, None)

        logger.info("checkpoint_pruned_missing", dropped=dropped)
        return dropped

    def requeue_unscored(self, checkpoint: Checkpoint) -> List[str]:
        """
        Remove analyzed names that have no stored score.

        Such photos would otherwise be skipped on resume and never reach
        the results. They are scored again instead.

        Returns:
            Names put back in the queue
        """
        scores = checkpoint.results.scores_by_photo
        progress = checkpoint.progress
        unscored = [n for n in progress.analyzed_photo_names if n not in scores]
        if unscored:
            progress.analyzed_photo_names = [
                n for n in progress.analyzed_photo_names if n in scores
            ]
            logger.warning("checkpoint_requeued_unscored", photos=unscored)
        return unscored

    def delete(self, project_dir: Union[str, Path]) -> bool:
        """
        Delete the checkpoint of a project.

        Args:
            project_dir: Project directory

        Returns:
            True if deleted or already absent
        """
        checkpoint_file = self.checkpoint_path(project_dir)

        if not checkpoint_file.exists():
            return True

        try:
            checkpoint_file.unlink()
            CHECKPOINT_OPERATIONS.labels(operation="delete", status="success").inc()
            logger.info("checkpoint_deleted", project=str(project_dir))
            return True

        except OSError as e:
            CHECKPOINT_OPERATIONS.labels(operation="delete", status="failed").inc()
            logger.error(
                "checkpoint_delete_error",
                project=str(project_dir),
                error=str(e),
            )
            return False
