"""Correlation ID context for tracing one batch run.

A ContextVar holds the id so it follows asyncio tasks spawned by the
batch driver: every log line from a run, including those emitted by
per-photo tasks, carries the same ``correlation_id``.

Usage:
    with correlation_id_context() as run_id:
        await driver.run(project_dir, competition)
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Generator, Optional

_correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


def new_run_id() -> str:
    """Short random id; long enough to be unique across local runs."""
    return f"run-{uuid.uuid4().hex[:12]}"


def set_correlation_id(corr_id: Optional[str] = None) -> str:
    """Set the correlation ID for the current context.

    Args:
        corr_id: Explicit id. A new run id is generated when omitted.

    Returns:
        The id now in effect.
    """
    if corr_id is None:
        corr_id = new_run_id()
    _correlation_id_var.set(corr_id)
    return corr_id


def get_correlation_id() -> Optional[str]:
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


@contextmanager
def correlation_id_context(
    corr_id: Optional[str] = None,
) -> Generator[str, None, None]:
    """Scope a correlation ID, restoring the previous one on exit.

    Args:
        corr_id: Explicit id. A new run id is generated when omitted.

    Yields:
        The id in effect inside the block.
    """
    if corr_id is None:
        corr_id = new_run_id()

    token = _correlation_id_var.set(corr_id)
    try:
        yield corr_id
    finally:
        _correlation_id_var.reset(token)
