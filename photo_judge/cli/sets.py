"""Sets command: rank K-photo exhibition sets from an analysis report."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from photo_judge.cli.utils import (
    DEFAULT_REPORT_FILENAME,
    display_error,
    display_info,
    display_warning,
    handle_errors,
    load_competition,
    setup_logging,
    write_json,
)
from photo_judge.models.config import CompetitionConfig, ScorerSettings, SetModeConfig
from photo_judge.models.sets import SetRanking
from photo_judge.models.tiering import AggregationReport
from photo_judge.observability.context import correlation_id_context
from photo_judge.observability.logging import run_log_context
from photo_judge.orchestration.set_pipeline import SetSelectionPipeline
from photo_judge.services.config_manager import ConfigManager
from photo_judge.services.scorer.ollama import OllamaVisionScorer

DEFAULT_SET_REPORT_FILENAME = "set-results.json"


@handle_errors
def sets_command(
    project_dir: Path = typer.Argument(..., help="Project directory"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Open-call config (default: project lookup)"
    ),
    report_path: Optional[Path] = typer.Option(
        None, "--report", "-r", help="Analysis report from 'photo-judge analyze'"
    ),
    set_size: Optional[int] = typer.Option(
        None, "--set-size", "-k", min=2, max=10, help="Photos per set"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Set ranking output path"
    ),
    model: Optional[str] = typer.Option(None, "--model", help="Ollama vision model"),
    host: Optional[str] = typer.Option(None, "--host", help="Ollama host URL"),
    photos_subdir: str = typer.Option(
        "photos", "--photos-subdir", help="Photo directory inside the project"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Log as JSON lines"),
):
    """Select, evaluate and rank exhibition sets of the best photos."""
    setup_logging(verbose=verbose, json_logs=json_logs)

    competition = load_competition(project_dir, config_path)
    set_config = competition.set_mode or SetModeConfig(enabled=True)
    if set_size is not None:
        set_config = set_config.model_copy(update={"set_size": set_size})

    report_file = report_path or project_dir / DEFAULT_REPORT_FILENAME
    if not report_file.exists():
        display_error(
            f"No analysis report at {report_file}. Run 'photo-judge analyze' first."
        )
        raise typer.Exit(code=1)
    try:
        report = AggregationReport.model_validate_json(
            report_file.read_text(encoding="utf-8")
        )
    except ValidationError as e:
        display_error(f"Analysis report is invalid: {e}")
        raise typer.Exit(code=1)

    scorer_settings = ConfigManager(project_dir).load_scorer_settings()
    updates = {k: v for k, v in (("model", model), ("host", host)) if v}
    if updates:
        scorer_settings = scorer_settings.model_copy(update=updates)

    display_info(
        f"Selecting sets of {set_config.set_size} from the top "
        f"{set_config.pre_filter_top_n} of {len(report.ranking)} ranked photos"
    )
    ranking = asyncio.run(
        _run_sets(
            report,
            project_dir / photos_subdir,
            competition,
            set_config,
            scorer_settings,
        )
    )

    _display_ranking(ranking)
    ranking_path = output or project_dir / DEFAULT_SET_REPORT_FILENAME
    write_json(ranking, ranking_path)
    display_info(f"\nSet ranking written to {ranking_path}")


async def _run_sets(
    report: AggregationReport,
    photo_dir: Path,
    competition: CompetitionConfig,
    set_config: SetModeConfig,
    scorer_settings: ScorerSettings,
) -> SetRanking:
    with correlation_id_context(), run_log_context(
        photo_dir=str(photo_dir), set_size=set_config.set_size
    ):
        async with OllamaVisionScorer(scorer_settings) as scorer:
            pipeline = SetSelectionPipeline(scorer, set_config)
            return await pipeline.run(
                report.ranking, photo_dir, competition.build_criteria_prompt()
            )


def _display_ranking(ranking: SetRanking) -> None:
    if not ranking.ranking:
        display_warning("No set could be evaluated.")
        return

    typer.echo("")
    typer.secho("Set ranking", bold=True)
    for result in ranking.ranking:
        photos = ", ".join(p.filename for p in result.photos)
        typer.echo(
            f"  {result.rank:>2}. {result.set_id} {result.composite_score:.2f} "
            f"(individual {result.individual_average:.2f}, "
            f"set {result.set_weighted_average:.2f}): {photos}"
        )
        if result.weakest_link:
            typer.echo(f"      Weakest link: {result.weakest_link}")
