"""Shared CLI utilities.

Provides common functionality for all CLI commands.
"""

import functools
from pathlib import Path
from typing import Callable, Optional, TypeVar

import structlog
import typer
from pydantic import BaseModel

from photo_judge.models.batch import BatchResult
from photo_judge.models.config import CompetitionConfig
from photo_judge.models.tiering import AggregationReport
from photo_judge.observability.logging import configure_logging
from photo_judge.services.config_manager import ConfigManager
from photo_judge.utils.exceptions import (
    BatchAbortedError,
    ConfigValidationError,
    PipelineError,
)

logger = structlog.get_logger()

# Default location of the aggregated scores inside a project
DEFAULT_REPORT_FILENAME = "analysis-results.json"

# Exit code for a halted batch that can be resumed
EXIT_RESUMABLE = 2

# Type variable for decorator
F = TypeVar("F", bound=Callable)


def setup_logging(verbose: bool = False, json_logs: bool = False) -> None:
    """Configure structured logging for a command run."""
    configure_logging(level="DEBUG" if verbose else "INFO", json_output=json_logs)


def load_competition(
    project_dir: Path, config_path: Optional[Path] = None
) -> CompetitionConfig:
    """Load and validate a project's competition config.

    Args:
        project_dir: Project directory holding open-call.json/.yaml
        config_path: Explicit config file, overrides the lookup

    Returns:
        Validated CompetitionConfig.

    Raises:
        typer.Exit: If configuration is missing or invalid.
    """
    manager = ConfigManager(project_dir=project_dir, config_path=config_path)
    try:
        return manager.load_config()
    except (FileNotFoundError, ConfigValidationError) as e:
        typer.secho(f"Configuration Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling.

    A halted batch exits with code 2 and a resume hint; every other
    failure exits with code 1.

    Args:
        func: Function to wrap.

    Returns:
        Wrapped function with error handling.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except BatchAbortedError as e:
            display_error(f"Batch halted: {e}")
            typer.echo(f"  Photos analyzed so far: {e.processed}")
            typer.echo(f"  Photos remaining: {e.remaining}")
            if e.checkpoint_saved:
                display_info("Progress saved. Run the same command again to resume.")
            else:
                display_warning("Checkpoint could not be saved; the next run restarts.")
            raise typer.Exit(code=EXIT_RESUMABLE)
        except PipelineError as e:
            display_error(f"Error: {e}")
            raise typer.Exit(code=1)
        except Exception as e:
            logger.exception("command_failed")
            display_error(f"Error: {e}")
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def write_json(model: BaseModel, path: Path) -> None:
    """Write a model as indented JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(model.model_dump_json(indent=2), encoding="utf-8")
    logger.info("report_written", path=str(path))


def display_success(message: str) -> None:
    """Display a success message.

    Args:
        message: Message to display.
    """
    typer.secho(message, fg=typer.colors.GREEN)


def display_warning(message: str) -> None:
    """Display a warning message.

    Args:
        message: Message to display.
    """
    typer.secho(message, fg=typer.colors.YELLOW)


def display_error(message: str) -> None:
    """Display an error message.

    Args:
        message: Message to display.
    """
    typer.secho(message, fg=typer.colors.RED)


def display_info(message: str) -> None:
    """Display an info message.

    Args:
        message: Message to display.
    """
    typer.secho(message, fg=typer.colors.CYAN)


def display_batch_result(result: BatchResult) -> None:
    """Summarize a finished batch."""
    typer.echo("")
    typer.secho("Analysis completed!", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Photos found: {result.total_photos}")
    typer.echo(f"  Photos analyzed: {result.processed}")
    if result.resumed:
        typer.echo(f"  Resumed with {result.previously_analyzed} already analyzed")
    if result.discarded_checkpoint_reason:
        display_warning(
            f"  Previous checkpoint discarded: {result.discarded_checkpoint_reason}"
        )
    if result.stats is not None:
        typer.echo(f"  Throughput: {result.stats.photos_per_sec:.2f} photos/s")

    if result.failures:
        display_warning(f"\nFailed photos: {len(result.failures)}")
        for failure in result.failures:
            typer.echo(
                f"  - {failure.filename} [{failure.error_type.value}]: "
                f"{failure.reason}"
            )
            if failure.actionable:
                typer.echo(f"    {failure.actionable}")


def display_report(report: AggregationReport, top: int = 10) -> None:
    """Print tiers, statistics and the top of the ranking."""
    summary = report.tiers
    stats = report.statistics

    typer.echo("")
    typer.secho("Tiers", bold=True)
    typer.echo(f"  Tier 1 (> {summary.high_threshold}): {summary.tier1_count}")
    typer.echo(f"  Tier 2 (> {summary.medium_threshold}): {summary.tier2_count}")
    typer.echo(f"  Tier 3: {summary.tier3_count}")
    typer.echo(
        f"  Mean {stats.mean} | median {stats.median} | "
        f"min {stats.min} | max {stats.max} | std {stats.std_dev}"
    )

    if report.ranking:
        typer.echo("")
        typer.secho(f"Top {min(top, len(report.ranking))}", bold=True)
        for photo in report.ranking[:top]:
            typer.echo(
                f"  {photo.rank:>3}. {photo.filename} "
                f"{photo.overall_score:.2f} ({photo.tier.value})"
            )

    if report.unscored:
        display_warning(f"\nUnscored photos: {', '.join(report.unscored)}")
