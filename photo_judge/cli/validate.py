"""Validate command for photo directories.

Checks every photo with Pillow before a long batch is started.
"""

from pathlib import Path
from typing import Optional

import typer

from photo_judge.cli.utils import (
    display_error,
    display_success,
    display_warning,
    handle_errors,
    setup_logging,
)
from photo_judge.services.config_manager import ConfigManager
from photo_judge.services.photo_validator import PhotoValidator, list_photo_files
from photo_judge.utils.error_classifier import actionable_message
from photo_judge.utils.exceptions import ConfigValidationError


@handle_errors
def validate_command(
    photo_dir: Path = typer.Argument(..., help="Directory of photos to validate"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Also validate this open-call config"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Validate photos (and optionally a config) before analysis."""
    setup_logging(verbose=verbose)
    failed = False

    if config_path is not None:
        try:
            ConfigManager(config_path=config_path).load_config()
            display_success(f"Configuration is valid: {config_path}")
        except (FileNotFoundError, ConfigValidationError) as e:
            display_error(f"Configuration invalid: {e}")
            failed = True

    photos = list_photo_files(photo_dir)
    if not photos:
        display_error(f"No supported photos found in {photo_dir}")
        raise typer.Exit(code=1)

    valid, invalid = PhotoValidator().validate_batch(photos)
    typer.echo(
        f"Checked {len(photos)} photos: {len(valid)} valid, {len(invalid)} invalid"
    )

    for path, validation in invalid:
        if validation.error_type is not None:
            message = actionable_message(validation.error_type, path.name)
            display_warning(f"  - {message}")
        else:
            display_warning(f"  - {path.name}: {validation.error}")

    if invalid or failed:
        raise typer.Exit(code=1)
    display_success("All photos are valid!")
