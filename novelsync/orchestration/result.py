"""Run report data structure."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from novelsync.models.concurrency import PoolReport
from novelsync.models.work_unit import SkipReason, UnitStatus
from novelsync.services.resume_service import Resolution

COMPLETED_STATUSES = {UnitStatus.TRANSLATED, UnitStatus.SCRAPED, UnitStatus.DRY_RUN}
EMPTY_STATUSES = {UnitStatus.EMPTY_INPUT, UnitStatus.EMPTY_OUTPUT}
FAILED_STATUSES = {UnitStatus.FAILED, UnitStatus.SCRAPE_FAILED}


@dataclass
class RunReport:
    """Result of a scrape or translate run.

    Aggregates per-unit statuses and skip decisions across all series.
    """

    pipeline: str = "translate"
    series_processed: int = 0
    units_discovered: int = 0
    units_skipped: Dict[str, int] = field(default_factory=dict)
    units_submitted: int = 0
    units_completed: int = 0
    units_failed: int = 0
    units_empty: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)

    @property
    def total_skipped(self) -> int:
        return sum(self.units_skipped.values())

    def record_resolution(self, resolution: Resolution) -> None:
        for reason, count in resolution.skip_counts().items():
            self.record_skip(reason, count)

    def record_skip(self, reason: SkipReason, count: int = 1) -> None:
        self.units_skipped[reason.value] = self.units_skipped.get(reason.value, 0) + count

    def record_status(self, status: UnitStatus) -> None:
        if status in COMPLETED_STATUSES:
            self.units_completed += 1
        elif status in EMPTY_STATUSES:
            self.units_empty += 1
        elif status in FAILED_STATUSES:
            self.units_failed += 1

    def add_error(self, unit: str, error: str, hint: Optional[str] = None) -> None:
        entry = {"unit": unit, "error": error}
        if hint:
            entry["hint"] = hint
        self.errors.append(entry)

    def merge_pool_report(self, pool_report: PoolReport) -> None:
        """Count tasks that raised instead of returning a status."""
        for outcome in pool_report.failures:
            self.units_failed += 1
            self.add_error(
                outcome.label,
                f"{outcome.error_type}: {outcome.error_message}",
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "pipeline": self.pipeline,
            "series_processed": self.series_processed,
            "units_discovered": self.units_discovered,
            "units_skipped": dict(self.units_skipped),
            "units_submitted": self.units_submitted,
            "units_completed": self.units_completed,
            "units_failed": self.units_failed,
            "units_empty": self.units_empty,
            "errors": list(self.errors),
        }
