"""Observability for photo-judge: correlation ids, structlog setup, metrics.

Usage:
    from photo_judge.observability import configure_logging, correlation_id_context

    configure_logging(level="INFO")
    with correlation_id_context() as run_id:
        ...
"""

from photo_judge.observability.context import (
    clear_correlation_id,
    correlation_id_context,
    get_correlation_id,
    set_correlation_id,
)
from photo_judge.observability.logging import (
    add_correlation_id_processor,
    configure_logging,
    run_log_context,
)
from photo_judge.observability.metrics import (
    ACTIVE_SLOTS,
    ANALYSIS_DURATION,
    CHECKPOINT_OPERATIONS,
    MAX_SLOTS,
    PHOTO_FAILURES,
    PHOTOS_ANALYZED,
    SCALING_EVENTS,
    SET_EVALUATIONS,
    get_metrics_text,
)

__all__ = [
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "correlation_id_context",
    "configure_logging",
    "run_log_context",
    "add_correlation_id_processor",
    "PHOTOS_ANALYZED",
    "PHOTO_FAILURES",
    "CHECKPOINT_OPERATIONS",
    "SET_EVALUATIONS",
    "SCALING_EVENTS",
    "ACTIVE_SLOTS",
    "MAX_SLOTS",
    "ANALYSIS_DURATION",
    "get_metrics_text",
]
