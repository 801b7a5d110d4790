"""novelsync CLI Package.

Command-line interface for scraping and translating web novels.

Usage:
    python -m novelsync.cli scrape --config series-config.yaml
    python -m novelsync.cli translate --dry-run
    python -m novelsync.cli validate series-config.yaml
"""

import typer

from novelsync.cli.scrape import scrape_command
from novelsync.cli.translate import translate_command
from novelsync.cli.validate import validate_command

# Create main app
app = typer.Typer(help="novelsync: scrape and translate web novels")

app.command(name="scrape")(scrape_command)
app.command(name="translate")(translate_command)
app.command(name="validate")(validate_command)

__all__ = [
    "app",
    "scrape_command",
    "translate_command",
    "validate_command",
]
