"""Per-revision mapping from wire models to catalog entities.

Each ``ApiVersion`` has one ``SchemaMapping``: three pure functions that
turn a remote project, build type or build into the core's entities.
Revisions before 8.1 do not report a build ``state`` and it is derived
from the ``running`` flag instead.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from wallsync.bridge.wire import RemoteBuild, RemoteBuildType, RemoteProject
from wallsync.models.api import ApiVersion
from wallsync.models.builds import Build, BuildState, BuildStatus
from wallsync.models.catalog import BuildType, Project

# e.g. 20140216T231705+0100
FINISH_DATE_FORMAT = "%Y%m%dT%H%M%S%z"


class UnsupportedApiVersionError(ValueError):
    """Raised when no mapping is registered for an API version."""


@dataclass(frozen=True)
class SchemaMapping:
    project: Callable[[RemoteProject], Project]
    build_type: Callable[[RemoteBuildType], BuildType]
    build: Callable[[RemoteBuild], Build]


def parse_finish_date(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.strptime(value, FINISH_DATE_FORMAT)


def parse_status(value: str) -> BuildStatus:
    try:
        return BuildStatus(value.upper())
    except ValueError:
        return BuildStatus.UNKNOWN


def to_project(remote: RemoteProject) -> Project:
    return Project(remote.id, remote.name)


def to_build_type(remote: RemoteBuildType) -> BuildType:
    return BuildType(remote.id, remote.name, remote.project_id, remote.project_name)


def _make_build(remote: RemoteBuild, state: BuildState) -> Build:
    info = remote.running_info
    if state == BuildState.RUNNING:
        percentage = min(max(info.percentage_complete, 0), 100) if info else 0
        remaining = (
            timedelta(seconds=info.estimated_total_seconds - info.elapsed_seconds)
            if info
            else timedelta(0)
        )
    else:
        percentage = 100 if state == BuildState.FINISHED else 0
        remaining = timedelta(0)

    return Build(
        build_id=remote.id,
        build_type_id=remote.build_type_id,
        status=parse_status(remote.status),
        state=state,
        percentage_complete=percentage,
        finished_at=(
            parse_finish_date(remote.finish_date)
            if state == BuildState.FINISHED
            else None
        ),
        remaining_time=remaining,
    )


def build_from_running_flag(remote: RemoteBuild) -> Build:
    """Pre-8.1 revisions: a build is running or, once listed as not running, finished."""
    state = BuildState.RUNNING if remote.running else BuildState.FINISHED
    return _make_build(remote, state)


def build_from_state(remote: RemoteBuild) -> Build:
    """8.1: read the explicit ``state`` field, falling back to the running flag."""
    if remote.state is None:
        return build_from_running_flag(remote)
    try:
        state = BuildState(remote.state.lower())
    except ValueError:
        state = BuildState.RUNNING if remote.running else BuildState.QUEUED
    return _make_build(remote, state)


_LEGACY = SchemaMapping(
    project=to_project, build_type=to_build_type, build=build_from_running_flag
)

DEFAULT_MAPPINGS: dict[ApiVersion, SchemaMapping] = {
    ApiVersion.API_6_0: _LEGACY,
    ApiVersion.API_7_0: _LEGACY,
    ApiVersion.API_8_0: _LEGACY,
    ApiVersion.API_8_1: SchemaMapping(
        project=to_project, build_type=to_build_type, build=build_from_state
    ),
}


def mapping_for(
    api_version: ApiVersion,
    mappings: dict[ApiVersion, SchemaMapping] | None = None,
) -> SchemaMapping:
    table = DEFAULT_MAPPINGS if mappings is None else mappings
    try:
        return table[api_version]
    except KeyError as exc:
        raise UnsupportedApiVersionError(
            f"No schema mapping registered for API {api_version.value}"
        ) from exc
