"""Task pool bookkeeping models.

Every task the pool runs ends as a TaskOutcome; the pool aggregates them into
a PoolReport at the end of a run.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class TaskOutcome(BaseModel):
    """Result of one pool task"""

    label: str
    succeeded: bool
    result: Any = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    duration_seconds: float = Field(default=0.0, ge=0.0)


class PoolReport(BaseModel):
    """Statistics for a bounded task pool"""

    name: str
    concurrency_limit: int = Field(ge=1)
    submitted: int = 0
    succeeded: int = 0
    failed: int = 0
    outcomes: List[TaskOutcome] = Field(default_factory=list)

    @property
    def failures(self) -> List[TaskOutcome]:
        return [o for o in self.outcomes if not o.succeeded]
