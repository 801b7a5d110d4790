"""Validate command for configuration.

Validates environment settings and the series configuration file.
"""

from pathlib import Path

import typer

from novelsync.cli.utils import display_error, display_success, handle_errors
from novelsync.services.config_manager import ConfigManager


@handle_errors
def validate_command(
    config_path: Path = typer.Argument(
        Path("series-config.yaml"), help="Series config file to validate"
    ),
):
    """Validate settings and series configuration."""
    try:
        manager = ConfigManager(config_path=str(config_path))
        manager.load_settings()
        series = manager.load_series()
    except Exception as e:
        display_error(f"Validation failed: {e}")
        raise typer.Exit(code=1)

    display_success(f"Configuration is valid! ✅ ({len(series)} series)")
    for series_id, config in series.items():
        notes = []
        if config.skip_translation:
            notes.append("skip translation")
        bounds = config.chapter_bounds
        if bounds.is_set:
            low = "-" if bounds.minimum is None else bounds.minimum
            high = "-" if bounds.maximum is None else bounds.maximum
            notes.append(f"chapters {low}..{high}")
        suffix = f" ({', '.join(notes)})" if notes else ""
        typer.echo(f" - {series_id}: {config.source_url}{suffix}")
