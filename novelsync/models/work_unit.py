"""Work unit models.

A work unit is one chapter: a raw chapter page to scrape, or a raw chapter
file to translate. Its artifact_path is the completion artifact whose
existence marks the unit as done.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class SkipReason(str, Enum):
    """Why the resolver left a unit out of the run"""

    SERIES_SKIPPED = "series_skipped"
    UNPARSEABLE_ORDINAL = "unparseable_ordinal"
    OUT_OF_RANGE = "out_of_range"
    ARTIFACT_EXISTS = "artifact_exists"


class UnitStatus(str, Enum):
    """Terminal state of a submitted unit"""

    TRANSLATED = "translated"
    SCRAPED = "scraped"
    SCRAPE_FAILED = "scrape_failed"
    DRY_RUN = "dry_run"
    EMPTY_INPUT = "empty_input"
    EMPTY_OUTPUT = "empty_output"
    FAILED = "failed"


class WorkUnit(BaseModel):
    """One chapter to scrape or translate"""

    series_id: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1, description="Filename stem or chapter key")
    source: str = Field(..., description="Input file path or chapter URL")
    artifact_path: Path
    ordinal: Optional[int] = Field(default=None, ge=0)
    title: Optional[str] = None

    @property
    def label(self) -> str:
        """Human-readable identity used in logs and reports"""
        return f"{self.series_id}/{self.key}"


class OrdinalBounds(BaseModel):
    """Inclusive chapter range; either side may be open"""

    minimum: Optional[int] = Field(default=None, ge=0)
    maximum: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_order(self) -> "OrdinalBounds":
        if (
            self.minimum is not None
            and self.maximum is not None
            and self.minimum > self.maximum
        ):
            raise ValueError("minimum must not exceed maximum")
        return self

    @property
    def is_set(self) -> bool:
        return self.minimum is not None or self.maximum is not None

    def contains(self, ordinal: int) -> bool:
        if self.minimum is not None and ordinal < self.minimum:
            return False
        if self.maximum is not None and ordinal > self.maximum:
            return False
        return True
