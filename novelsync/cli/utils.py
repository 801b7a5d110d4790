"""Shared CLI utilities.

Provides common functionality for all CLI commands.
"""

import functools
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, TypeVar

import structlog
import typer

from novelsync.models.config import AppSettings, SeriesConfigurations
from novelsync.observability.logging import configure_logging
from novelsync.observability.metrics import write_metrics_file
from novelsync.orchestration.result import RunReport
from novelsync.services.config_manager import ConfigManager, ConfigValidationError

# Configure structured logging
configure_logging()
logger = structlog.get_logger()

# Type variable for decorator
F = TypeVar("F", bound=Callable)


def load_config(
    config_path: Optional[Path] = None, **overrides: Any
) -> Tuple[AppSettings, SeriesConfigurations]:
    """Load settings from the environment and the series configuration.

    Reconfigures logging from the loaded settings.

    Args:
        config_path: Series config file; SERIES_CONFIG_FILE or the default
                     when omitted
        **overrides: AppSettings fields set from command-line flags

    Raises:
        typer.Exit: If configuration is invalid.
    """
    config_manager = ConfigManager(
        config_path=str(config_path) if config_path else None
    )
    try:
        settings = config_manager.load_settings(**overrides)
        configure_logging(level=settings.log_level, json_output=settings.log_json)
        series = config_manager.load_series(settings.series_config_path)
    except ConfigValidationError as e:
        typer.secho(f"Configuration Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return settings, series


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling.

    Catches exceptions and displays user-friendly error messages.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except Exception as e:
            logger.exception("command_failed")
            typer.secho(f"Error: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def display_success(message: str) -> None:
    typer.secho(message, fg=typer.colors.GREEN)


def display_warning(message: str) -> None:
    typer.secho(message, fg=typer.colors.YELLOW)


def display_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)


def display_info(message: str) -> None:
    typer.secho(message, fg=typer.colors.CYAN)


def display_report(report: RunReport, title: str) -> None:
    """Print the end-of-run summary.

    Args:
        report: Aggregated run report
        title: Heading, e.g. "Translation finished"
    """
    typer.echo("")
    typer.secho(title, fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Series processed: {report.series_processed}")
    typer.echo(f"  Chapters discovered: {report.units_discovered}")
    typer.echo(f"  Chapters submitted: {report.units_submitted}")
    typer.echo(f"  Chapters completed: {report.units_completed}")
    typer.echo(f"  Chapters empty: {report.units_empty}")
    typer.echo(f"  Chapters failed: {report.units_failed}")
    typer.echo(f"  Chapters skipped: {report.total_skipped}")
    for reason, count in sorted(report.units_skipped.items()):
        typer.echo(f"    - {reason}: {count}")

    if report.errors:
        display_warning(f"\nErrors: {len(report.errors)}")
        for err in report.errors:
            line = f"  - {err['unit']}: {err['error']}"
            if err.get("hint"):
                line += f" ({err['hint']})"
            typer.echo(line)


def export_metrics(metrics_out: Optional[Path]) -> None:
    if metrics_out is None:
        return
    write_metrics_file(metrics_out)
    display_info(f"Metrics written to {metrics_out}")
