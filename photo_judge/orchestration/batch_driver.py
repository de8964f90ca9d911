"""Resumable batch analysis of a project's photos.

The driver ties the pieces together:
- photos are submitted in filename order, one asyncio task each, gated by
  the concurrency controller
- each task validates its photo, scores it under a timeout and returns
  an outcome; tasks never touch the checkpoint
- the control loop alone applies outcomes to the checkpoint, saving after
  every ``checkpoint_interval`` successes and when the queue is exhausted
- a backend outage stops the whole batch after a save, so the same
  command resumes it later
"""

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union

import structlog

from photo_judge.models.batch import BatchResult, BatchState, FailedPhoto
from photo_judge.models.checkpoint import Checkpoint, CheckpointStatus, utc_now
from photo_judge.models.concurrency import ConcurrencyConfig
from photo_judge.models.config import BatchSettings, CompetitionConfig
from photo_judge.models.errors import ErrorType
from photo_judge.models.scoring import CriteriaPrompt, PhotoScoreRecord, PhotoScores
from photo_judge.observability.metrics import PHOTO_FAILURES, PHOTOS_ANALYZED
from photo_judge.orchestration.concurrency import ConcurrencyController
from photo_judge.services.checkpoint_service import CheckpointService
from photo_judge.services.photo_validator import PhotoValidator, list_photo_files
from photo_judge.services.scorer.base import VisionScorer
from photo_judge.utils.error_classifier import actionable_message, log_classified_error
from photo_judge.utils.exceptions import BatchAbortedError, NoPhotosFoundError

logger = structlog.get_logger()


@dataclass
class PhotoOutcome:
    """What one photo task hands back to the control loop."""

    filename: str
    scores: Optional[PhotoScores] = None
    failure: Optional[FailedPhoto] = None
    backend_down: bool = False
    skipped: bool = False


@dataclass
class _RunProgress:
    """Control-loop state for one run; only the loop mutates it."""

    checkpoint: Checkpoint
    pending_names: List[str] = field(default_factory=list)
    pending_scores: Dict[str, PhotoScores] = field(default_factory=dict)
    pending_failed: List[str] = field(default_factory=list)
    failures: List[FailedPhoto] = field(default_factory=list)
    successes_since_save: int = 0
    backend_failure: Optional[PhotoOutcome] = None

    @property
    def has_pending(self) -> bool:
        return bool(self.pending_names or self.pending_failed)


class BatchDriver:
    """Run (or resume) the analysis of every photo in a project."""

    def __init__(
        self,
        scorer: VisionScorer,
        validator: Optional[PhotoValidator] = None,
        checkpoint_service: Optional[CheckpointService] = None,
        settings: Optional[BatchSettings] = None,
        controller: Optional[ConcurrencyController] = None,
    ):
        """Initialize batch driver.

        Args:
            scorer: Vision scorer adapter
            validator: Photo validator run before scoring
            checkpoint_service: Checkpoint store
            settings: Batch settings (parallelism, interval, timeout)
            controller: Concurrency controller; built from ``settings``
                when omitted
        """
        self.scorer = scorer
        self.validator = validator or PhotoValidator()
        self.checkpoint_service = checkpoint_service or CheckpointService()
        self.settings = settings or BatchSettings()
        self.controller = controller or ConcurrencyController(
            ConcurrencyConfig(
                max_slots=None if self.settings.auto_scale else self.settings.parallel,
                auto_scale=self.settings.auto_scale,
            )
        )
        self.state = BatchState.NOT_STARTED

    async def run(
        self,
        project_dir: Union[str, Path],
        competition: CompetitionConfig,
        criteria_prompt: Optional[CriteriaPrompt] = None,
    ) -> BatchResult:
        """Analyze all photos of a project, resuming from a checkpoint.

        Args:
            project_dir: Project directory (photos live in ``photos_subdir``)
            competition: Current competition config
            criteria_prompt: Prompt for a fresh batch; derived from
                ``competition`` when omitted. Ignored on resume, where the
                checkpoint's frozen prompt is used.

        Returns:
            BatchResult covering every photo currently in the directory

        Raises:
            NoPhotosFoundError: No supported photo files
            BatchAbortedError: Backend unreachable; progress was saved
        """
        project_dir = Path(project_dir)
        photo_dir = project_dir / self.settings.photos_subdir

        photos = list_photo_files(photo_dir)
        if not photos:
            raise NoPhotosFoundError(f"No supported photos found in {photo_dir}")
        by_name = {p.name: p for p in photos}

        if self.settings.clear_checkpoint:
            self.checkpoint_service.delete(project_dir)

        checkpoint, resumed, discarded_reason = self._load_or_initialize(
            project_dir, photo_dir, list(by_name), competition, criteria_prompt
        )
        previously_analyzed = checkpoint.progress.count
        analyzed = checkpoint.progress.analyzed_set
        queue = [name for name in by_name if name not in analyzed]

        logger.info(
            "batch_started",
            project=str(project_dir),
            total=len(by_name),
            queued=len(queue),
            resumed=resumed,
            interval=self.settings.checkpoint_interval,
            timeout_seconds=self.settings.photo_timeout_seconds,
        )

        # Persist up front so the frozen prompt survives an early crash
        self.checkpoint_service.save(checkpoint, project_dir)

        self.state = BatchState.RUNNING
        progress = _RunProgress(checkpoint=checkpoint)
        abort = asyncio.Event()
        tasks = [
            asyncio.create_task(
                self._process_photo(by_name[name], checkpoint.criteria_prompt, abort)
            )
            for name in queue
        ]

        try:
            await self._drive(tasks, progress, project_dir)
        except BaseException:
            self.state = BatchState.ABORTED_FATAL
            await self._cancel_all(tasks, progress)
            self._flush(progress)
            # Synchronous on purpose: this may run while the loop is cancelling
            self.checkpoint_service.save(progress.checkpoint, project_dir)
            logger.error(
                "batch_aborted",
                project=str(project_dir),
                analyzed=progress.checkpoint.progress.count,
            )
            raise

        if progress.backend_failure is not None:
            await self._cancel_all(tasks, progress)
            self._flush(progress)
            saved = await asyncio.to_thread(
                self.checkpoint_service.save, progress.checkpoint, project_dir
            )
            self.state = BatchState.ABORTED_RECOVERABLE
            processed = progress.checkpoint.progress.count
            remaining = len(by_name) - processed
            logger.error(
                "batch_halted_backend_unreachable",
                photo=progress.backend_failure.filename,
                processed=processed,
                remaining=remaining,
                checkpoint_saved=saved,
            )
            raise BatchAbortedError(
                "Vision backend unreachable. Progress was saved; run the same "
                "command again to resume.",
                resumable=True,
                processed=processed,
                remaining=remaining,
                checkpoint_saved=saved,
            )

        self._flush(progress)
        progress.checkpoint.progress.status = CheckpointStatus.COMPLETED
        self.checkpoint_service.delete(project_dir)
        self.state = BatchState.COMPLETED

        scores_by_photo = progress.checkpoint.results.scores_by_photo
        records = [
            PhotoScoreRecord(filename=name, scores=scores_by_photo[name])
            for name in sorted(progress.checkpoint.progress.analyzed_photo_names)
            if name in scores_by_photo
        ]
        result = BatchResult(
            status=BatchState.COMPLETED,
            total_photos=len(by_name),
            records=records,
            failures=sorted(progress.failures, key=lambda f: f.filename),
            resumed=resumed,
            previously_analyzed=previously_analyzed,
            discarded_checkpoint_reason=discarded_reason,
            stats=self.controller.get_stats(),
        )

        logger.info(
            "batch_completed",
            project=str(project_dir),
            analyzed=result.processed,
            failed=len(result.failures),
            total=result.total_photos,
        )
        return result

    def _load_or_initialize(
        self,
        project_dir: Path,
        photo_dir: Path,
        present_names: List[str],
        competition: CompetitionConfig,
        criteria_prompt: Optional[CriteriaPrompt],
    ) -> Tuple[Checkpoint, bool, Optional[str]]:
        """Resume a valid checkpoint or start a fresh one.

        Returns:
            (checkpoint, resumed, reason the old checkpoint was discarded)
        """
        discarded_reason: Optional[str] = None
        loaded = self.checkpoint_service.load(project_dir)

        if loaded is not None:
            validation = self.checkpoint_service.validate(loaded, competition)
            if validation.valid:
                self.state = BatchState.RESUMING
                self.checkpoint_service.prune_missing(loaded, present_names)
                self.checkpoint_service.requeue_unscored(loaded)
                loaded.metadata.last_resumed_at = utc_now()
                loaded.batch_metadata.total_photos_in_batch = len(present_names)
                logger.info(
                    "batch_resuming",
                    already_analyzed=loaded.progress.count,
                    remaining=len(present_names) - loaded.progress.count,
                    resume_count=loaded.metadata.resume_count,
                )
                return loaded, True, None
            discarded_reason = validation.reason
        elif self.checkpoint_service.checkpoint_path(project_dir).exists():
            discarded_reason = "Checkpoint unreadable or corrupted"

        if discarded_reason:
            logger.warning("checkpoint_discarded", reason=discarded_reason)
            self.checkpoint_service.delete(project_dir)

        prompt = criteria_prompt or competition.build_criteria_prompt()
        checkpoint = self.checkpoint_service.initialize(
            project_dir,
            competition,
            prompt,
            total_photos=len(present_names),
            parallel_setting=self.controller.max_slots,
            checkpoint_interval=self.settings.checkpoint_interval,
            photo_directory=photo_dir,
        )
        return checkpoint, False, discarded_reason

    async def _drive(
        self,
        tasks: List["asyncio.Task[PhotoOutcome]"],
        progress: _RunProgress,
        project_dir: Path,
    ) -> None:
        """Consume outcomes as they finish until done or the backend is down."""
        pending: Set["asyncio.Task[PhotoOutcome]"] = set(tasks)
        while pending and progress.backend_failure is None:
            done, pending = await asyncio.wait(
                pending, return_when=asyncio.FIRST_COMPLETED
            )
            for task in done:
                self._record(task.result(), progress)

            if progress.successes_since_save >= self.settings.checkpoint_interval:
                self._flush(progress)
                await asyncio.to_thread(
                    self.checkpoint_service.save, progress.checkpoint, project_dir
                )

    async def _cancel_all(
        self, tasks: List["asyncio.Task[PhotoOutcome]"], progress: _RunProgress
    ) -> None:
        """Cancel unfinished tasks, keeping outcomes that finished meanwhile."""
        unfinished = [t for t in tasks if not t.done()]
        for task in unfinished:
            task.cancel()
        results = await asyncio.gather(*unfinished, return_exceptions=True)
        for outcome in results:
            if isinstance(outcome, PhotoOutcome):
                self._record(outcome, progress)

    def _record(self, outcome: PhotoOutcome, progress: _RunProgress) -> None:
        if outcome.skipped:
            return
        if outcome.backend_down:
            if progress.backend_failure is None:
                progress.backend_failure = outcome
            return
        if outcome.failure is not None:
            progress.failures.append(outcome.failure)
            progress.pending_failed.append(outcome.filename)
            return
        if outcome.scores is not None:
            progress.pending_names.append(outcome.filename)
            progress.pending_scores[outcome.filename] = outcome.scores
            progress.successes_since_save += 1

    def _flush(self, progress: _RunProgress) -> None:
        """Apply buffered outcomes to the checkpoint as one sub-batch."""
        if not progress.has_pending:
            return
        progress.checkpoint = self.checkpoint_service.update(
            progress.checkpoint,
            progress.pending_names,
            progress.pending_scores,
            progress.pending_failed,
        )
        progress.pending_names = []
        progress.pending_scores = {}
        progress.pending_failed = []
        progress.successes_since_save = 0

    def _failure(
        self, filename: str, error_type: ErrorType, reason: str
    ) -> PhotoOutcome:
        PHOTOS_ANALYZED.labels(status="failed").inc()
        PHOTO_FAILURES.labels(error_type=error_type.value).inc()
        return PhotoOutcome(
            filename=filename,
            failure=FailedPhoto(
                filename=filename,
                error_type=error_type,
                reason=reason,
                actionable=actionable_message(
                    error_type,
                    filename,
                    {"timeout": self.settings.photo_timeout_seconds},
                ),
            ),
        )

    async def _process_photo(
        self, photo_path: Path, criteria_prompt: CriteriaPrompt, abort: asyncio.Event
    ) -> PhotoOutcome:
        """Validate and score one photo inside a concurrency slot."""
        filename = photo_path.name

        async with self.controller.slot() as slot:
            if abort.is_set():
                return PhotoOutcome(filename=filename, skipped=True)

            validation = await asyncio.to_thread(self.validator.validate, photo_path)
            if not validation.valid:
                logger.warning("photo_invalid", photo=filename, error=validation.error)
                return self._failure(
                    filename,
                    validation.error_type or ErrorType.INVALID_FORMAT,
                    validation.error or "Invalid image",
                )
            if validation.warning:
                logger.debug(
                    "photo_warning", photo=filename, warning=validation.warning
                )

            start = time.monotonic()
            try:
                result = await self.scorer.analyze_with_timeout(
                    photo_path, criteria_prompt, self.settings.photo_timeout_seconds
                )
            except Exception as e:
                classified = log_classified_error(e, photo=filename)
                if classified.type.is_fatal:
                    # Set before the slot is released so no queued photo starts
                    abort.set()
                    return PhotoOutcome(filename=filename, backend_down=True)
                return self._failure(filename, classified.type, classified.message)

            if result.timed_out or result.data is None:
                return self._failure(
                    filename, ErrorType.TIMEOUT, result.error or "Analysis timeout"
                )

            self.controller.report_latency(slot, (time.monotonic() - start) * 1000)
            PHOTOS_ANALYZED.labels(status="success").inc()
            return PhotoOutcome(filename=filename, scores=result.data)
