"""Slot-based concurrency control with latency-adaptive scaling.

Photos finish at different times, so instead of processing fixed chunks
the batch driver asks for a slot per photo. Slots are granted FIFO up to a
limit that can move with observed latency and process memory.
"""

import asyncio
import os
import time
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Deque, List, Optional, Set

import psutil
import structlog

from photo_judge.models.concurrency import ConcurrencyConfig, ConcurrencyStats
from photo_judge.observability.metrics import ACTIVE_SLOTS, MAX_SLOTS, SCALING_EVENTS

logger = structlog.get_logger()


@dataclass(frozen=True)
class Slot:
    """Permission to run one analysis; release exactly once."""

    id: int


class ConcurrencyController:
    """Counting semaphore with FIFO waiters and optional auto-scaling.

    All state is touched from the event loop thread only, so plain
    integers are enough for the counters.
    """

    def __init__(self, config: Optional[ConcurrencyConfig] = None):
        """Initialize controller.

        Args:
            config: Slot limits and scaling policy
        """
        self.config = config or ConcurrencyConfig()

        self._max_slots = self._initial_max_slots(self.config)
        self._active = 0
        self._next_slot_id = 1
        # Ids of slots handed out and not yet released
        self._held_ids: Set[int] = set()
        self._waiters: Deque["asyncio.Future[Slot]"] = deque()

        self._latencies: List[float] = []
        self._baseline_latency: Optional[float] = None
        self._photos_processed = 0
        self._start_time = time.monotonic()
        self._process = psutil.Process()

        self._publish()
        logger.debug(
            "concurrency_controller_initialized",
            max_slots=self._max_slots,
            auto_scale=self.config.auto_scale,
        )

    @staticmethod
    def _initial_max_slots(config: ConcurrencyConfig) -> int:
        if config.max_slots is not None:
            return config.max_slots
        if config.auto_scale:
            # Leave one core for the rest of the machine
            cpus = os.cpu_count() or 1
            return max(1, min(cpus - 1, 4))
        return 3

    @property
    def max_slots(self) -> int:
        return self._max_slots

    @property
    def active(self) -> int:
        return self._active

    @property
    def baseline_latency(self) -> Optional[float]:
        return self._baseline_latency

    async def acquire_slot(self) -> Slot:
        """Acquire a slot, waiting in FIFO order while all are busy.

        Returns:
            Slot handle to pass back to ``release_slot``
        """
        if self._active < self._max_slots:
            self._active += 1
            self._publish()
            return self._new_slot()

        waiter: "asyncio.Future[Slot]" = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            return await waiter
        except asyncio.CancelledError:
            # Granted in the same tick we were cancelled: hand it back
            if waiter.done() and not waiter.cancelled():
                self.release_slot(waiter.result())
            raise

    def release_slot(self, slot: Slot) -> None:
        """Release a slot.

        Freed capacity goes straight to the next waiter unless the limit
        was lowered below the number of active slots. Releasing the same
        slot twice, or a slot this controller never issued, is a no-op.

        Args:
            slot: Slot handle from ``acquire_slot``
        """
        if slot.id not in self._held_ids:
            return
        self._held_ids.discard(slot.id)

        if self._active <= self._max_slots:
            waiter = self._next_waiter()
            if waiter is not None:
                waiter.set_result(self._new_slot())
                return

        self._active = max(0, self._active - 1)
        self._publish()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[Slot]:
        """Hold a slot for the duration of the block."""
        acquired = await self.acquire_slot()
        try:
            yield acquired
        finally:
            self.release_slot(acquired)

    def report_latency(self, slot: Slot, latency_ms: float) -> None:
        """Feed one completed analysis duration into the scaling loop.

        The baseline is the mean of the first ``baseline_window``
        latencies and is never recomputed.

        Args:
            slot: Slot the analysis ran in
            latency_ms: Analysis duration in milliseconds
        """
        self._latencies.append(latency_ms)
        self._photos_processed += 1

        window = self.config.baseline_window
        if self._baseline_latency is None and len(self._latencies) == window:
            self._baseline_latency = sum(self._latencies) / window
            logger.debug(
                "latency_baseline_established",
                baseline_ms=round(self._baseline_latency),
            )

        if self.config.auto_scale and self._baseline_latency is not None:
            self._adjust_concurrency()

    def get_stats(self) -> ConcurrencyStats:
        """Snapshot of the controller; never blocks."""
        avg_latency = (
            sum(self._latencies) / len(self._latencies) if self._latencies else 0.0
        )
        elapsed = time.monotonic() - self._start_time
        per_sec = self._photos_processed / elapsed if elapsed > 0 else 0.0

        return ConcurrencyStats(
            active=self._active,
            max=self._max_slots,
            waiting=sum(1 for w in self._waiters if not w.done()),
            memory_mb=round(self._memory_mb()),
            avg_latency_ms=round(avg_latency),
            photos_processed=self._photos_processed,
            photos_per_sec=round(per_sec, 2),
        )

    def _adjust_concurrency(self) -> None:
        memory_mb = self._memory_mb()
        if memory_mb > self.config.memory_threshold_mb:
            if self._max_slots > 1:
                self._max_slots = 1
                SCALING_EVENTS.labels(direction="memory").inc()
                logger.warning(
                    "memory_guard_triggered",
                    memory_mb=round(memory_mb),
                    threshold_mb=self.config.memory_threshold_mb,
                )
                self._publish()
            return

        window = self.config.baseline_window
        recent = self._latencies[-window:]
        recent_avg = sum(recent) / len(recent)
        baseline = self._baseline_latency or 0.0

        if recent_avg > baseline * self.config.scale_down_factor:
            if self._max_slots > 1:
                self._max_slots -= 1
                SCALING_EVENTS.labels(direction="down").inc()
                logger.debug(
                    "concurrency_scaled_down",
                    max_slots=self._max_slots,
                    recent_ms=round(recent_avg),
                    baseline_ms=round(baseline),
                )
        elif recent_avg < baseline * self.config.scale_up_factor:
            if self._max_slots < self.config.max_ceiling:
                self._max_slots += 1
                SCALING_EVENTS.labels(direction="up").inc()
                logger.debug(
                    "concurrency_scaled_up",
                    max_slots=self._max_slots,
                    recent_ms=round(recent_avg),
                    baseline_ms=round(baseline),
                )
                self._drain_waiters()
        self._publish()

    def _drain_waiters(self) -> None:
        """Grant queued requests up to the current limit."""
        while self._active < self._max_slots:
            waiter = self._next_waiter()
            if waiter is None:
                break
            self._active += 1
            waiter.set_result(self._new_slot())

    def _next_waiter(self) -> "Optional[asyncio.Future[Slot]]":
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                return waiter
        return None

    def _new_slot(self) -> Slot:
        slot = Slot(id=self._next_slot_id)
        self._next_slot_id += 1
        self._held_ids.add(slot.id)
        return slot

    def _memory_mb(self) -> float:
        return self._process.memory_info().rss / (1024 * 1024)

    def _publish(self) -> None:
        ACTIVE_SLOTS.set(self._active)
        MAX_SLOTS.set(self._max_slots)
