"""
Resumable unit resolver.

Decides, before any network work, which discovered units still need to run.
The completion artifact on disk is the only record of progress: there is no
checkpoint file, so a unit whose artifact is missing is always picked up
again, and re-running the resolver without new artifacts gives the same
answer.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import structlog

from novelsync.models.work_unit import OrdinalBounds, SkipReason, WorkUnit

logger = structlog.get_logger()


@dataclass
class Resolution:
    """Outcome of resolving one collection of units"""

    pending: List[WorkUnit] = field(default_factory=list)
    skipped: List[Tuple[WorkUnit, SkipReason]] = field(default_factory=list)

    def skip_counts(self) -> Dict[SkipReason, int]:
        return dict(Counter(reason for _, reason in self.skipped))


class UnitResolver:
    """
    Filter work units by series flag, chapter range and artifact existence.

    Checks run in that order; the first one that rejects a unit wins.
    """

    def decide(
        self, unit: WorkUnit, bounds: Optional[OrdinalBounds] = None
    ) -> Optional[SkipReason]:
        """
        Decide whether a single unit should be skipped.

        Args:
            unit: Candidate unit
            bounds: Inclusive ordinal range; ignored when None or unset

        Returns:
            The skip reason, or None if the unit must be processed
        """
        if bounds is not None and bounds.is_set:
            if unit.ordinal is None:
                logger.info(
                    "unit_skipped_unparseable_ordinal",
                    series=unit.series_id,
                    unit=unit.key,
                    hint="Filename must start with 'NNNN - ' for range filtering",
                )
                return SkipReason.UNPARSEABLE_ORDINAL
            if not bounds.contains(unit.ordinal):
                return SkipReason.OUT_OF_RANGE

        if unit.artifact_path.exists():
            return SkipReason.ARTIFACT_EXISTS

        return None

    def resolve(
        self,
        units: List[WorkUnit],
        skip_all: bool = False,
        bounds: Optional[OrdinalBounds] = None,
    ) -> Resolution:
        """
        Split units into pending and skipped.

        Args:
            units: Discovered units of one collection (series)
            skip_all: Skip the whole collection without inspecting units
            bounds: Optional inclusive ordinal range

        Returns:
            Resolution with pending units in discovery order
        """
        resolution = Resolution()

        if skip_all:
            resolution.skipped = [(u, SkipReason.SERIES_SKIPPED) for u in units]
            logger.info("collection_skipped", units=len(units))
            return resolution

        for unit in units:
            reason = self.decide(unit, bounds)
            if reason is None:
                resolution.pending.append(unit)
            else:
                resolution.skipped.append((unit, reason))
                logger.debug(
                    "unit_skipped",
                    series=unit.series_id,
                    unit=unit.key,
                    reason=reason.value,
                )

        logger.info(
            "units_resolved",
            total=len(units),
            pending=len(resolution.pending),
            skipped={r.value: c for r, c in resolution.skip_counts().items()},
        )
        return resolution
