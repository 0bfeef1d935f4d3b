"""Monitored-list seed: the user's monitored subsets persisted between runs.

The seed is the only state that survives a restart; everything else is
rebuilt from the server.  Stored as JSON::

    {
      "build_types": [{"id": "Wall_Build", "name": "Build", ...}],
      "projects": [{"id": "Wall", "name": "Wall-T"}]
    }
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wallsync.models.catalog import BuildType, Project

logger = logging.getLogger(__name__)


class SeedFormatError(ValueError):
    """Raised when a seed file exists but cannot be parsed."""


class SavedBuildType(BaseModel):
    """Persisted form of a monitored build type."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    build_type_id: str = Field(alias="id")
    name: str
    project_id: str
    project_name: str
    branch: str | None = None
    alias: str | None = None

    @classmethod
    def from_build_type(cls, build_type: BuildType) -> SavedBuildType:
        return cls(
            build_type_id=build_type.build_type_id,
            name=build_type.name,
            project_id=build_type.project_id,
            project_name=build_type.project_name,
            branch=build_type.branch,
            alias=build_type.alias,
        )

    def to_build_type(self) -> BuildType:
        return BuildType(
            self.build_type_id,
            self.name,
            self.project_id,
            self.project_name,
            branch=self.branch,
            alias=self.alias,
        )


class SavedProject(BaseModel):
    """Persisted form of a monitored project."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    project_id: str = Field(alias="id")
    name: str
    alias: str | None = None

    @classmethod
    def from_project(cls, project: Project) -> SavedProject:
        return cls(project_id=project.project_id, name=project.name, alias=project.alias)

    def to_project(self) -> Project:
        return Project(self.project_id, self.name, alias=self.alias)


class MonitoredSeed(BaseModel):
    """Both monitored subsets, in user order."""

    model_config = ConfigDict(frozen=True)

    build_types: list[SavedBuildType] = []
    projects: list[SavedProject] = []


def load_seed(path: Path) -> MonitoredSeed:
    """Read the seed at *path*.  A missing file yields an empty seed."""
    path = Path(path)
    if not path.exists():
        logger.debug("No monitored seed at %s, starting empty.", path)
        return MonitoredSeed()
    try:
        return MonitoredSeed.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise SeedFormatError(f"Invalid monitored seed {path}: {exc}") from exc


def save_seed(
    path: Path,
    build_types: Iterable[BuildType],
    projects: Iterable[Project] = (),
) -> MonitoredSeed:
    """Write the given monitored subsets to *path* and return the seed written."""
    seed = MonitoredSeed(
        build_types=[SavedBuildType.from_build_type(bt) for bt in build_types],
        projects=[SavedProject.from_project(p) for p in projects],
    )
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(seed.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    logger.info(
        "Saved monitored seed to %s (%d build types, %d projects).",
        path,
        len(seed.build_types),
        len(seed.projects),
    )
    return seed
