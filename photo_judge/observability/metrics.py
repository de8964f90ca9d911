"""Prometheus metrics for batch photo analysis.

Metrics live on a private registry so tests and embedding applications do
not collide with the process-wide default registry.

Usage:
    PHOTOS_ANALYZED.labels(status="success").inc()

    with ANALYSIS_DURATION.time():
        await scorer.analyze(photo, prompt)

    print(get_metrics_text().decode())
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS
# =============================================================================

PHOTOS_ANALYZED = Counter(
    name="photo_judge_photos_analyzed_total",
    documentation="Photos processed by the batch driver",
    labelnames=["status"],  # success, failed
    registry=REGISTRY,
)

PHOTO_FAILURES = Counter(
    name="photo_judge_photo_failures_total",
    documentation="Per-photo failures by classified error type",
    labelnames=["error_type"],
    registry=REGISTRY,
)

CHECKPOINT_OPERATIONS = Counter(
    name="photo_judge_checkpoint_operations_total",
    documentation="Checkpoint store operations",
    labelnames=["operation", "status"],  # load/save/delete, success/failed
    registry=REGISTRY,
)

SET_EVALUATIONS = Counter(
    name="photo_judge_set_evaluations_total",
    documentation="Candidate sets sent to the vision model",
    labelnames=["status"],  # success, failed, timeout
    registry=REGISTRY,
)

SCALING_EVENTS = Counter(
    name="photo_judge_scaling_events_total",
    documentation="Concurrency limit adjustments",
    labelnames=["direction"],  # up, down, memory
    registry=REGISTRY,
)

# =============================================================================
# GAUGES
# =============================================================================

ACTIVE_SLOTS = Gauge(
    name="photo_judge_active_slots",
    documentation="Concurrency slots currently granted",
    registry=REGISTRY,
)

MAX_SLOTS = Gauge(
    name="photo_judge_max_slots",
    documentation="Current concurrency limit",
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS
# =============================================================================

ANALYSIS_DURATION = Histogram(
    name="photo_judge_analysis_duration_seconds",
    documentation="Vision model analysis duration per photo",
    buckets=(1, 2, 5, 10, 20, 30, 60, 120, 300, float("inf")),
    registry=REGISTRY,
)


def get_metrics_text() -> bytes:
    """Metrics in Prometheus text exposition format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
