"""Catalog entities: projects and build configurations.

Unlike ``Build``, these are long-lived mutable objects: the synchronizer
updates their queue flag and history from concurrent fetch callbacks, and
users edit alias, branch and ordering.  Every mutable field is guarded by
the entity's own lock and collection accessors return tuples.
"""

from __future__ import annotations

import threading

from wallsync.core.history import BuildHistory
from wallsync.models.builds import Build, BuildState, BuildStatus


class BuildType:
    """A server-defined build configuration plus its local build history.

    Parameters
    ----------
    build_type_id:
        Stable server-assigned identifier.
    name:
        Server display name.
    project_id, project_name:
        Denormalized snapshot of the owning project.
    branch:
        Optional user-configured branch filter.  ``None`` means the
        server's default branch.
    """

    def __init__(
        self,
        build_type_id: str,
        name: str,
        project_id: str,
        project_name: str,
        branch: str | None = None,
        alias: str | None = None,
    ) -> None:
        self._id = build_type_id
        self._name = name
        self._project_id = project_id
        self._project_name = project_name
        self._branch = branch
        self._alias = alias
        self._queued = False
        self._lock = threading.Lock()
        self.history = BuildHistory()

    @property
    def build_type_id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def project_name(self) -> str:
        return self._project_name

    @property
    def branch(self) -> str | None:
        with self._lock:
            return self._branch

    @branch.setter
    def branch(self, value: str | None) -> None:
        with self._lock:
            self._branch = value

    @property
    def alias(self) -> str | None:
        with self._lock:
            return self._alias

    @alias.setter
    def alias(self, value: str | None) -> None:
        with self._lock:
            self._alias = value

    @property
    def queued(self) -> bool:
        with self._lock:
            return self._queued

    @queued.setter
    def queued(self, value: bool) -> None:
        with self._lock:
            self._queued = value

    @property
    def display_name(self) -> str:
        """Alias when set, server name otherwise."""
        return self.alias or self._name

    # ------------------------------------------------------------------
    # History delegation
    # ------------------------------------------------------------------

    def adopt_local_state(self, previous: BuildType) -> None:
        """Take over *previous*'s build history and queued flag.

        The history object itself is shared, so status refreshes still in
        flight for *previous* land in this build type's history.
        """
        queued = previous.queued
        with self._lock:
            self.history = previous.history
            self._queued = queued

    def register_build(self, build: Build) -> None:
        self.history.upsert(build)

    def build_by_id(self, build_id: int) -> Build | None:
        return self.history.get(build_id)

    def last_build(self, state: BuildState) -> Build | None:
        return self.history.last_build(state)

    def last_builds(self, state: BuildState, count: int | None = None) -> list[Build]:
        return self.history.last_builds(state, count)

    def oldest_build(self, state: BuildState) -> Build | None:
        return self.history.oldest_build(state)

    @property
    def has_running_build(self) -> bool:
        return self.last_build(BuildState.RUNNING) is not None

    def __repr__(self) -> str:
        return f"BuildType(id={self._id!r}, name={self._name!r}, project={self._project_id!r})"


class Project:
    """A server project and back-references to the build types it owns.

    The project does not own its build types; the ``BuildTypeRegistry``
    does.  It keeps references so health rollups can be computed on demand.
    """

    def __init__(self, project_id: str, name: str, alias: str | None = None) -> None:
        self._id = project_id
        self._name = name
        self._alias = alias
        self._build_types: dict[str, BuildType] = {}
        self._lock = threading.Lock()

    @property
    def project_id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def alias(self) -> str | None:
        with self._lock:
            return self._alias

    @alias.setter
    def alias(self, value: str | None) -> None:
        with self._lock:
            self._alias = value

    @property
    def display_name(self) -> str:
        return self.alias or self._name

    def register_build_type(self, build_type: BuildType) -> None:
        """Attach *build_type*, replacing a previous reference with the same id."""
        with self._lock:
            self._build_types[build_type.build_type_id] = build_type

    def build_types(self) -> tuple[BuildType, ...]:
        with self._lock:
            return tuple(self._build_types.values())

    @property
    def build_type_ids(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._build_types)

    def count_build_types_by_status(self, *statuses: BuildStatus) -> int:
        """Count build types whose last finished, resolved build has one of *statuses*."""
        wanted = set(statuses)
        count = 0
        for build_type in self.build_types():
            last = build_type.last_build(BuildState.FINISHED)
            if last is not None and last.status in wanted:
                count += 1
        return count

    def __repr__(self) -> str:
        return f"Project(id={self._id!r}, name={self._name!r})"
