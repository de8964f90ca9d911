"""Analyze command: score every photo of a project and rank them.

Handles batch execution, resume, and result display.
"""

import asyncio
from pathlib import Path
from typing import Optional, Tuple

import typer

from photo_judge.analysis.aggregation import aggregate_scores
from photo_judge.cli.utils import (
    DEFAULT_REPORT_FILENAME,
    display_batch_result,
    display_error,
    display_info,
    display_report,
    handle_errors,
    load_competition,
    setup_logging,
    write_json,
)
from photo_judge.models.batch import BatchResult
from photo_judge.models.config import BatchSettings, CompetitionConfig, ScorerSettings
from photo_judge.models.tiering import AggregationReport
from photo_judge.observability.context import correlation_id_context
from photo_judge.observability.logging import run_log_context
from photo_judge.orchestration.batch_driver import BatchDriver
from photo_judge.services.config_manager import ConfigManager
from photo_judge.services.scorer.ollama import OllamaVisionScorer


@handle_errors
def analyze_command(
    project_dir: Path = typer.Argument(..., help="Project directory"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Open-call config (default: project lookup)"
    ),
    parallel: int = typer.Option(
        3, "--parallel", "-p", min=1, max=10, help="Photos analyzed concurrently"
    ),
    checkpoint_interval: int = typer.Option(
        10, "--checkpoint-interval", help="Save progress every N photos (1-50)"
    ),
    photo_timeout: int = typer.Option(
        60, "--photo-timeout", help="Seconds allowed per photo (30-300)"
    ),
    auto_scale: bool = typer.Option(
        False, "--auto-scale", help="Adapt concurrency to latency and memory"
    ),
    clear_checkpoint: bool = typer.Option(
        False, "--clear-checkpoint", help="Ignore saved progress and start over"
    ),
    model: Optional[str] = typer.Option(None, "--model", help="Ollama vision model"),
    host: Optional[str] = typer.Option(None, "--host", help="Ollama host URL"),
    tier_method: str = typer.Option(
        "fixed", "--tier-method", help="Tier thresholds: fixed or percentile"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help=f"Report path (default: {DEFAULT_REPORT_FILENAME})"
    ),
    skip_check: bool = typer.Option(
        False, "--skip-check", help="Skip the Ollama availability check"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Log as JSON lines"),
):
    """Analyze all photos of a project, resuming an interrupted batch."""
    setup_logging(verbose=verbose, json_logs=json_logs)

    if tier_method not in ("fixed", "percentile"):
        display_error(f"Unknown tier method: {tier_method}")
        raise typer.Exit(code=1)

    # 1. Load Config
    competition = load_competition(project_dir, config_path)
    scorer_settings = ConfigManager(project_dir).load_scorer_settings()
    updates = {k: v for k, v in (("model", model), ("host", host)) if v}
    if updates:
        scorer_settings = scorer_settings.model_copy(update=updates)

    settings = BatchSettings(
        parallel=parallel,
        checkpoint_interval=checkpoint_interval,
        photo_timeout_seconds=photo_timeout,
        auto_scale=auto_scale,
        clear_checkpoint=clear_checkpoint,
    )

    # 2. Execute batch
    display_info(
        f"Analyzing '{competition.title}' with {scorer_settings.model} "
        f"at {scorer_settings.host}"
    )
    result, report = asyncio.run(
        _run_analysis(
            project_dir, competition, settings, scorer_settings, tier_method, skip_check
        )
    )

    # 3. Display and persist
    display_batch_result(result)
    display_report(report)

    report_path = output or project_dir / DEFAULT_REPORT_FILENAME
    write_json(report, report_path)
    display_info(f"\nReport written to {report_path}")

    if competition.set_mode and competition.set_mode.enabled:
        display_info("Set mode enabled: run 'photo-judge sets' to rank sets.")


async def _run_analysis(
    project_dir: Path,
    competition: CompetitionConfig,
    settings: BatchSettings,
    scorer_settings: ScorerSettings,
    tier_method: str,
    skip_check: bool,
) -> Tuple[BatchResult, AggregationReport]:
    """Run the batch and aggregate its scores under one correlation id."""
    with correlation_id_context(), run_log_context(
        project=str(project_dir), model=scorer_settings.model
    ):
        async with OllamaVisionScorer(scorer_settings) as scorer:
            if not skip_check and not await scorer.check_status():
                display_error(
                    f"Ollama is not reachable at {scorer_settings.host} or model "
                    f"'{scorer_settings.model}' is not installed.\n"
                    f"Start it with 'ollama serve' and run "
                    f"'ollama pull {scorer_settings.model}'."
                )
                raise typer.Exit(code=1)

            driver = BatchDriver(scorer, settings=settings)
            result = await driver.run(project_dir, competition)

        report = aggregate_scores(
            result.records,
            competition.build_criteria_prompt().criteria,
            tier_method=tier_method,
        )
        report.failures = list(result.failures)
    return result, report
