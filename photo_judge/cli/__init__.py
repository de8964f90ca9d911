"""photo-judge CLI Package.

Provides the command-line interface for analyzing photo competition
entries.

Usage:
    python -m photo_judge.cli analyze ./my-project
    python -m photo_judge.cli validate ./my-project/photos
    python -m photo_judge.cli sets ./my-project
"""

import typer

from photo_judge.cli.analyze import analyze_command
from photo_judge.cli.sets import sets_command
from photo_judge.cli.validate import validate_command

# Create main app
app = typer.Typer(help="photo-judge: score and rank photo competition entries")

# Register individual commands
app.command(name="analyze")(analyze_command)
app.command(name="validate")(validate_command)
app.command(name="sets")(sets_command)

__all__ = [
    "app",
    "analyze_command",
    "validate_command",
    "sets_command",
]
