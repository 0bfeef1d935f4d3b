"""Pydantic models for the remote server's JSON payloads.

These mirror the wire format only; the version mapping table in
``wallsync.bridge.mappings`` turns them into catalog entities.  Unknown
fields are ignored so newer servers do not break older revisions.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _Wire(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class RemoteProject(_Wire):
    id: str
    name: str
    description: str = ""
    parent_project_id: str | None = Field(default=None, alias="parentProjectId")


class ProjectList(_Wire):
    projects: list[RemoteProject] = Field(default_factory=list, alias="project")


class RemoteBuildType(_Wire):
    id: str
    name: str
    project_id: str = Field(alias="projectId")
    project_name: str = Field(default="", alias="projectName")


class BuildTypeList(_Wire):
    build_types: list[RemoteBuildType] = Field(default_factory=list, alias="buildType")


class QueuedBuild(_Wire):
    id: int
    build_type_id: str = Field(alias="buildTypeId")


class QueuedBuildList(_Wire):
    builds: list[QueuedBuild] = Field(default_factory=list, alias="build")


class RunningInfo(_Wire):
    percentage_complete: int = Field(default=0, alias="percentageComplete")
    elapsed_seconds: int = Field(default=0, alias="elapsedSeconds")
    estimated_total_seconds: int = Field(default=0, alias="estimatedTotalSeconds")


class RemoteBuild(_Wire):
    """A build summary (from a build list) or full build detail."""

    id: int
    build_type_id: str = Field(default="", alias="buildTypeId")
    status: str = "UNKNOWN"
    state: str | None = None  # only populated from 8.1 on
    running: bool = False
    finish_date: str | None = Field(default=None, alias="finishDate")
    running_info: RunningInfo | None = Field(default=None, alias="running-info")


class BuildList(_Wire):
    builds: list[RemoteBuild] = Field(default_factory=list, alias="build")
