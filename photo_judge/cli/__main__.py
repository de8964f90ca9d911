"""CLI entry point.

Allows running the CLI as a module: python -m photo_judge.cli
"""

from photo_judge.cli import app

if __name__ == "__main__":
    app()
