"""Build records: immutable snapshots of one build execution."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BuildStatus(str, Enum):
    """Outcome of a build.  UNKNOWN means not yet determined."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"


class BuildState(str, Enum):
    """Lifecycle position of a build, orthogonal to its status."""

    QUEUED = "queued"
    RUNNING = "running"
    FINISHED = "finished"


class Build(BaseModel):
    """Point-in-time record of a single build.

    Builds are never mutated.  A newer fetch of the same ``build_id``
    supersedes the previous record inside a ``BuildHistory``.
    """

    model_config = ConfigDict(frozen=True)

    build_id: int
    build_type_id: str
    status: BuildStatus = BuildStatus.UNKNOWN
    state: BuildState = BuildState.QUEUED
    percentage_complete: int = Field(default=0, ge=0, le=100)
    finished_at: datetime | None = None
    # estimated total minus elapsed while running; negative once overrun
    remaining_time: timedelta = timedelta(0)

    @property
    def is_running(self) -> bool:
        return self.state == BuildState.RUNNING

    @property
    def is_finished(self) -> bool:
        return self.state == BuildState.FINISHED

    @property
    def is_resolved(self) -> bool:
        """Whether the status is known (anything but UNKNOWN)."""
        return self.status != BuildStatus.UNKNOWN
