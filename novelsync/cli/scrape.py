"""Scrape command.

Downloads missing raw chapters for every configured series.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from novelsync.cli.utils import (
    display_info,
    display_report,
    export_metrics,
    handle_errors,
    load_config,
)
from novelsync.observability.context import run_id_context


@handle_errors
def scrape_command(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to series config YAML (default: SERIES_CONFIG_FILE or series-config.yaml)",
    ),
    metrics_out: Optional[Path] = typer.Option(
        None, "--metrics-out", help="Write Prometheus metrics to this file"
    ),
):
    """Scrape raw chapters from each series' listing page."""
    settings, series = load_config(config_path)

    from novelsync.orchestration import ScrapePipeline

    pipeline = ScrapePipeline(settings, series)

    display_info(
        f"Scraping {len(series)} series (concurrency {settings.scrape_concurrency})..."
    )

    with run_id_context() as run_id:
        display_info(f"Run ID: {run_id}")
        report = asyncio.run(pipeline.run())

    display_report(report, "Scraping finished!")
    export_metrics(metrics_out)
