"""Concurrency configuration models.

Defines slot limits and the latency/memory auto-scaling policy used by the
concurrency controller.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ConcurrencyConfig(BaseModel):
    """Concurrency configuration for parallel photo analysis"""

    # Slot settings (None = derive from CPU count when auto-scaling)
    max_slots: Optional[int] = Field(default=None, ge=1, le=32)
    auto_scale: bool = False
    max_ceiling: int = Field(default=6, ge=1, le=32)

    # Memory guard
    memory_threshold_mb: float = Field(default=400, gt=0)

    # Latency feedback
    baseline_window: int = Field(default=3, ge=1, le=20)
    scale_up_factor: float = Field(default=1.2, gt=0)
    scale_down_factor: float = Field(default=2.0, gt=0)


class ConcurrencyStats(BaseModel):
    """Read-only snapshot of the controller"""

    active: int = 0
    max: int = 0
    waiting: int = 0
    memory_mb: float = 0.0
    avg_latency_ms: float = 0.0
    photos_processed: int = 0
    photos_per_sec: float = 0.0
