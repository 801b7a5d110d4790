"""Tests for Prometheus metrics definitions."""

from novelsync.observability.metrics import (
    CHAPTERS_PROCESSED,
    CHAPTERS_SKIPPED,
    POOL_RUNNING_TASKS,
    REGISTRY,
    RETRIES_SCHEDULED,
    TRANSLATION_DURATION,
    get_metrics_text,
    write_metrics_file,
)


class TestCounters:
    def test_chapters_processed(self):
        counter = CHAPTERS_PROCESSED.labels(pipeline="translate", status="translated")
        initial = counter._value.get()

        counter.inc()

        assert counter._value.get() == initial + 1

    def test_chapters_skipped_by_reason(self):
        counter = CHAPTERS_SKIPPED.labels(pipeline="translate", reason="artifact_exists")
        initial = counter._value.get()

        counter.inc(3)

        assert counter._value.get() == initial + 3

    def test_retries_by_operation(self):
        counter = RETRIES_SCHEDULED.labels(operation="scrape_listing")
        initial = counter._value.get()

        counter.inc()

        assert counter._value.get() == initial + 1


class TestGauges:
    def test_pool_running_tasks(self):
        gauge = POOL_RUNNING_TASKS.labels(pool="test-gauge")

        gauge.inc()
        gauge.inc()
        gauge.dec()

        assert gauge._value.get() == 1


class TestHistograms:
    def test_translation_duration(self):
        TRANSLATION_DURATION.labels(backend="test-backend").observe(42.0)

        value = REGISTRY.get_sample_value(
            "novelsync_translation_duration_seconds_count", {"backend": "test-backend"}
        )
        assert value >= 1


class TestExport:
    def test_metrics_text(self):
        CHAPTERS_PROCESSED.labels(pipeline="scrape", status="scraped").inc()

        text = get_metrics_text().decode("utf-8")

        assert "novelsync_chapters_processed_total" in text
        assert 'pipeline="scrape"' in text

    def test_write_metrics_file(self, tmp_path):
        path = tmp_path / "nested" / "novelsync.prom"

        write_metrics_file(path)

        assert "novelsync_pool_running_tasks" in path.read_text()
