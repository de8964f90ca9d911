"""Exhibition set selection: pick candidates, evaluate them, rank them."""

import asyncio
from pathlib import Path
from typing import List, Optional, Sequence, Union

import structlog

from photo_judge.analysis.combinations import select_candidate_sets
from photo_judge.analysis.set_aggregator import aggregate_set_scores, rank_sets
from photo_judge.models.concurrency import ConcurrencyConfig
from photo_judge.models.config import SetModeConfig
from photo_judge.models.scoring import CriteriaPrompt
from photo_judge.models.sets import (
    CandidateSet,
    SelectionOptions,
    SetPhotoScore,
    SetRanking,
    SetResult,
    SetWeights,
)
from photo_judge.models.tiering import RankedPhoto
from photo_judge.observability.metrics import SET_EVALUATIONS
from photo_judge.orchestration.concurrency import ConcurrencyController
from photo_judge.services.scorer.base import VisionScorer
from photo_judge.services.scorer.exceptions import BackendUnreachableError, ScorerError

logger = structlog.get_logger()

# Several images per request, so sets get a larger budget than single photos
DEFAULT_SET_TIMEOUT_SECONDS = 180


class SetSelectionPipeline:
    """Select and rank K-photo exhibition sets from ranked photos."""

    def __init__(
        self,
        scorer: VisionScorer,
        set_config: Optional[SetModeConfig] = None,
        controller: Optional[ConcurrencyController] = None,
        timeout_seconds: float = DEFAULT_SET_TIMEOUT_SECONDS,
    ):
        """Initialize set pipeline.

        Args:
            scorer: Vision scorer used for set-level evaluation
            set_config: Set size, weights and selection limits
            controller: Concurrency controller shared with other work
            timeout_seconds: Budget per set evaluation
        """
        self.scorer = scorer
        self.set_config = set_config or SetModeConfig(enabled=True)
        self.controller = controller or ConcurrencyController(
            ConcurrencyConfig(max_slots=1)
        )
        self.timeout_seconds = timeout_seconds

    @property
    def options(self) -> SelectionOptions:
        return SelectionOptions(
            max_sets_to_evaluate=self.set_config.max_sets_to_evaluate,
            pre_filter_top_n=self.set_config.pre_filter_top_n,
            max_combinations=self.set_config.max_combinations,
        )

    @property
    def weights(self) -> SetWeights:
        return SetWeights(
            individual=self.set_config.individual_weight,
            set=self.set_config.set_weight,
        )

    async def run(
        self,
        ranked_photos: Sequence[RankedPhoto],
        photo_dir: Union[str, Path],
        criteria_prompt: CriteriaPrompt,
    ) -> SetRanking:
        """Evaluate the best candidate sets and rank them.

        Args:
            ranked_photos: Individually ranked photos
            photo_dir: Directory holding the photo files
            criteria_prompt: Batch prompt (title, theme)

        Returns:
            SetRanking of every set that evaluated successfully

        Raises:
            CombinationLimitExceededError: Candidate pool too large
            BackendUnreachableError: Backend went away mid-run
        """
        candidates = select_candidate_sets(
            ranked_photos, self.set_config.set_size, self.options
        )
        candidates = [
            c.model_copy(update={"set_id": f"set-{i}"})
            for i, c in enumerate(candidates, start=1)
        ]
        if not candidates:
            logger.warning(
                "no_candidate_sets",
                photos=len(ranked_photos),
                set_size=self.set_config.set_size,
            )
            return rank_sets([])

        logger.info("set_evaluation_started", candidates=len(candidates))

        tasks = [
            asyncio.create_task(
                self._evaluate(candidate, Path(photo_dir), criteria_prompt)
            )
            for candidate in candidates
        ]
        try:
            done, pending = await asyncio.wait(
                tasks, return_when=asyncio.FIRST_EXCEPTION
            )
        except BaseException:
            await self._cancel_all(tasks)
            raise

        # Unexpected errors and backend outages abort the whole ranking
        errors = [
            t.exception()
            for t in done
            if not t.cancelled() and t.exception() is not None
        ]
        if errors:
            if pending:
                logger.warning("set_evaluation_aborted", cancelled=len(pending))
            await self._cancel_all(tasks)
            raise errors[0]

        results: List[SetResult] = [
            outcome for outcome in (t.result() for t in tasks) if outcome is not None
        ]

        ranking = rank_sets(results)
        logger.info(
            "set_evaluation_completed",
            evaluated=len(results),
            skipped=len(candidates) - len(results),
        )
        return ranking

    async def _cancel_all(
        self, tasks: List["asyncio.Task[Optional[SetResult]]"]
    ) -> None:
        """Cancel evaluations still queued or in flight."""
        unfinished = [t for t in tasks if not t.done()]
        for task in unfinished:
            task.cancel()
        await asyncio.gather(*unfinished, return_exceptions=True)

    async def _evaluate(
        self, candidate: CandidateSet, photo_dir: Path, criteria_prompt: CriteriaPrompt
    ) -> Optional[SetResult]:
        """Evaluate one candidate; None when it has to be skipped."""
        individual = [
            SetPhotoScore(filename=p.filename, score=p.overall_score)
            for p in candidate.photos
        ]
        paths = [photo_dir / name for name in candidate.filenames]

        async with self.controller.slot():
            try:
                analysis = await asyncio.wait_for(
                    self.scorer.analyze_set(
                        paths,
                        criteria_prompt,
                        self.set_config.set_criteria,
                        individual,
                    ),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                SET_EVALUATIONS.labels(status="timeout").inc()
                logger.warning(
                    "set_evaluation_timeout",
                    set_id=candidate.set_id,
                    timeout_seconds=self.timeout_seconds,
                )
                return None
            except BackendUnreachableError:
                SET_EVALUATIONS.labels(status="failed").inc()
                raise
            except (ScorerError, OSError, ValueError) as e:
                SET_EVALUATIONS.labels(status="failed").inc()
                logger.warning(
                    "set_evaluation_failed", set_id=candidate.set_id, error=str(e)
                )
                return None

        SET_EVALUATIONS.labels(status="success").inc()
        return aggregate_set_scores(
            individual, analysis, self.weights, set_id=candidate.set_id or ""
        )
