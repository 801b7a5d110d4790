"""Prometheus metrics definitions.

Defines counters, gauges, and histograms for:
- Chapter throughput per pipeline and terminal status
- Translation attempts, retries and stream health
- Task pool occupancy

Usage:
    from novelsync.observability.metrics import CHAPTERS_PROCESSED

    CHAPTERS_PROCESSED.labels(pipeline="translate", status="translated").inc()

The `translate` and `scrape` commands can dump the registry to a file with
--metrics-out, for node-exporter's textfile collector.
"""

from pathlib import Path

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    write_to_textfile,
)

# Custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS
# =============================================================================

CHAPTERS_PROCESSED = Counter(
    name="novelsync_chapters_processed_total",
    documentation="Chapters that reached a terminal status",
    labelnames=["pipeline", "status"],  # translate/scrape, translated/failed/...
    registry=REGISTRY,
)

CHAPTERS_SKIPPED = Counter(
    name="novelsync_chapters_skipped_total",
    documentation="Chapters left out by the resumability check",
    labelnames=["pipeline", "reason"],  # artifact_exists, out_of_range, ...
    registry=REGISTRY,
)

TRANSLATION_ATTEMPTS = Counter(
    name="novelsync_translation_attempts_total",
    documentation="Streaming translation attempts",
    labelnames=["backend", "status"],  # ollama/openai, success/failed
    registry=REGISTRY,
)

RETRIES_SCHEDULED = Counter(
    name="novelsync_retries_scheduled_total",
    documentation="Retries scheduled by the retry governor",
    labelnames=["operation"],  # translate, scrape_listing
    registry=REGISTRY,
)

MALFORMED_FRAGMENTS = Counter(
    name="novelsync_malformed_fragments_total",
    documentation="Stream lines skipped because they failed to parse",
    labelnames=["backend"],
    registry=REGISTRY,
)

POOL_TASK_FAILURES = Counter(
    name="novelsync_pool_task_failures_total",
    documentation="Pool tasks that raised instead of handling their own errors",
    labelnames=["pool"],
    registry=REGISTRY,
)

# =============================================================================
# GAUGES
# =============================================================================

POOL_RUNNING_TASKS = Gauge(
    name="novelsync_pool_running_tasks",
    documentation="Tasks currently executing in a pool",
    labelnames=["pool"],
    registry=REGISTRY,
)

POOL_QUEUED_TASKS = Gauge(
    name="novelsync_pool_queued_tasks",
    documentation="Tasks waiting for a free pool slot",
    labelnames=["pool"],
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS
# =============================================================================

TRANSLATION_DURATION = Histogram(
    name="novelsync_translation_duration_seconds",
    documentation="Wall-clock time of one streaming translation attempt",
    labelnames=["backend"],
    buckets=(5, 15, 30, 60, 120, 240, 480, 900),
    registry=REGISTRY,
)


def get_metrics_text() -> bytes:
    """Render all metrics in Prometheus text exposition format."""
    return generate_latest(REGISTRY)


def write_metrics_file(path: Path) -> None:
    """Write the registry to a textfile-collector file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), REGISTRY)
