"""Data models for batch runs."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from photo_judge.models.concurrency import ConcurrencyStats
from photo_judge.models.errors import ErrorType
from photo_judge.models.scoring import PhotoScoreRecord


class BatchState(str, Enum):
    """Lifecycle of one batch run"""

    NOT_STARTED = "not_started"
    RESUMING = "resuming"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED_RECOVERABLE = "aborted_recoverable"
    ABORTED_FATAL = "aborted_fatal"


class FailedPhoto(BaseModel):
    """A photo skipped by the batch, with the reason and a remedy"""

    filename: str
    error_type: ErrorType
    reason: str
    actionable: str = ""


class BatchResult(BaseModel):
    """Outcome of a completed batch.

    ``records`` includes scores carried over from a resumed checkpoint, so
    ``len(records) + len(failures) == total_photos``.
    """

    status: BatchState = BatchState.COMPLETED
    total_photos: int = 0
    records: List[PhotoScoreRecord] = Field(default_factory=list)
    failures: List[FailedPhoto] = Field(default_factory=list)
    resumed: bool = False
    previously_analyzed: int = 0
    discarded_checkpoint_reason: Optional[str] = None
    stats: Optional[ConcurrencyStats] = None

    @property
    def processed(self) -> int:
        return len(self.records)

    @property
    def reconciled(self) -> bool:
        return len(self.records) + len(self.failures) == self.total_photos
