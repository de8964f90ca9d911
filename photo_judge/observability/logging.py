"""Structured logging setup for photo-judge.

All modules log through ``structlog.get_logger()`` with snake_case event
names and key-value context. ``configure_logging`` installs the processor
chain once at CLI startup:
- correlation id of the current batch run
- log level and ISO timestamp
- JSON (machine) or colored console (human) rendering

Usage:
    configure_logging(level="DEBUG", json_output=False)
    with correlation_id_context(), run_log_context(project="./entries"):
        await driver.run(project_dir, competition)
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from structlog.typing import EventDict, WrappedLogger

from photo_judge.observability.context import get_correlation_id

# Standard-library loggers of our dependencies; Pillow logs every PNG chunk
# at DEBUG
NOISY_LIBRARIES = ("PIL", "aiohttp", "asyncio", "urllib3")


def add_correlation_id_processor(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor injecting the current run's correlation id.

    Entries logged outside a run get ``"none"``.
    """
    corr_id = get_correlation_id()
    event_dict["correlation_id"] = corr_id if corr_id else "none"
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
) -> None:
    """Configure structlog for the CLI.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        json_output: Emit JSON lines instead of console output
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_correlation_id_processor,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # stderr keeps stdout free for command output
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@contextmanager
def run_log_context(**context: Any) -> Iterator[None]:
    """Bind key-values (project, model, ...) to every entry of one run.

    Bound through structlog contextvars, so per-photo tasks spawned inside
    the block inherit them; they are unbound on exit.
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield
