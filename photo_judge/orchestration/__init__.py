"""Orchestration of batch analysis and set selection."""

from photo_judge.orchestration.batch_driver import BatchDriver, PhotoOutcome
from photo_judge.orchestration.concurrency import ConcurrencyController, Slot
from photo_judge.orchestration.set_pipeline import SetSelectionPipeline

__all__ = [
    "BatchDriver",
    "PhotoOutcome",
    "ConcurrencyController",
    "Slot",
    "SetSelectionPipeline",
]
