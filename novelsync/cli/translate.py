"""Translate command.

Translates every pending raw chapter of every configured series.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from novelsync.cli.utils import (
    display_info,
    display_report,
    display_warning,
    export_metrics,
    handle_errors,
    load_config,
)
from novelsync.observability.context import run_id_context


@handle_errors
def translate_command(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to series config YAML (default: SERIES_CONFIG_FILE or series-config.yaml)",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="List what would be translated; no API calls, no files written",
    ),
    metrics_out: Optional[Path] = typer.Option(
        None, "--metrics-out", help="Write Prometheus metrics to this file"
    ),
):
    """Translate raw chapters into English."""
    # dry_run=None keeps DRY_RUN_TRANSLATION from the environment
    settings, series = load_config(config_path, dry_run=True if dry_run else None)

    from novelsync.orchestration import TranslationPipeline

    pipeline = TranslationPipeline(settings, series)

    if settings.dry_run:
        display_warning("Dry run: no API calls will be made and no files written.")
    display_info(
        f"Translating with {settings.backend.value} "
        f"(concurrency {settings.translation_concurrency})..."
    )

    with run_id_context() as run_id:
        display_info(f"Run ID: {run_id}")
        report = asyncio.run(pipeline.run())

    display_report(report, "Translation finished!")
    export_metrics(metrics_out)
