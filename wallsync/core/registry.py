"""Project and build-type registries: the authoritative in-memory catalogs.

Each registry owns its catalog and the user-curated monitored subset.
Mutations are serialized on a per-registry lock; every accessor returns a
tuple snapshot so callers can iterate while fetch callbacks keep writing.

Full refreshes replace the catalog wholesale but carry user state forward
by identifier: monitored membership, manual order and alias (and, for
build types, the branch filter, build history and queued flag).  Entries
the server no longer lists drop out of monitoring with an INFO log line
and no notification of their own.
"""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Callable, Collection, Iterable
from typing import Generic, TypeVar

from wallsync.models.catalog import BuildType, Project
from wallsync.seed import SavedBuildType, SavedProject

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Position reported for entries that are not monitored.
UNMONITORED_POSITION = sys.maxsize


class MonitoredList(Generic[T]):
    """User-ordered subset of a catalog, unique by key.

    Not thread-safe on its own; the owning registry holds the lock.
    """

    def __init__(self, key: Callable[[T], str]) -> None:
        self._key = key
        self._items: list[T] = []

    def items(self) -> tuple[T, ...]:
        return tuple(self._items)

    def ids(self) -> list[str]:
        return [self._key(item) for item in self._items]

    def _index(self, item_id: str) -> int:
        for i, item in enumerate(self._items):
            if self._key(item) == item_id:
                return i
        return -1

    def __contains__(self, item_id: object) -> bool:
        return isinstance(item_id, str) and self._index(item_id) >= 0

    def add(self, item: T) -> bool:
        """Append *item* unless an entry with its key is already present."""
        if self._index(self._key(item)) >= 0:
            return False
        self._items.append(item)
        return True

    def remove(self, item_id: str) -> bool:
        index = self._index(item_id)
        if index < 0:
            return False
        del self._items[index]
        return True

    def position(self, item_id: str) -> int:
        """1-based position, or ``UNMONITORED_POSITION`` when absent."""
        index = self._index(item_id)
        return UNMONITORED_POSITION if index < 0 else index + 1

    def move(self, item: T, position: int) -> None:
        """Place *item* at 1-based *position*; out-of-range clamps to the end."""
        self.remove(self._key(item))
        index = min(max(position - 1, 0), len(self._items))
        self._items.insert(index, item)

    def reconcile(
        self,
        incoming: Iterable[T],
        carry: Callable[[T, T], None] | None = None,
    ) -> list[str]:
        """Rebuild from *incoming*, keeping previously monitored keys in their old order.

        ``carry(previous, fresh)`` copies user state from the old entry
        onto its replacement.  Returns the keys that dropped out.
        """
        previous = {self._key(item): item for item in self._items}
        order = {item_id: i for i, item_id in enumerate(previous)}
        kept = [item for item in incoming if self._key(item) in previous]
        kept.sort(key=lambda item: order[self._key(item)])
        if carry is not None:
            for item in kept:
                carry(previous[self._key(item)], item)
        self._items = kept
        kept_ids = {self._key(item) for item in kept}
        return [item_id for item_id in previous if item_id not in kept_ids]


def _carry_alias(previous: BuildType | Project, fresh: BuildType | Project) -> None:
    fresh.alias = previous.alias


class BuildTypeRegistry:
    """Catalog of every known build type and the monitored subset.

    Parameters
    ----------
    seed:
        Saved monitored build types.  Each is added to the catalog and
        monitored, in order, until the first server refresh reconciles
        them against the live listing.
    """

    def __init__(self, seed: Iterable[SavedBuildType] = ()) -> None:
        self._lock = threading.Lock()
        self._build_types: list[BuildType] = []
        self._monitored: MonitoredList[BuildType] = MonitoredList(
            key=lambda bt: bt.build_type_id
        )
        for saved in seed:
            build_type = saved.to_build_type()
            self._build_types.append(build_type)
            self._monitored.add(build_type)

    # ------------------------------------------------------------------
    # Catalog refresh
    # ------------------------------------------------------------------

    def register_build_types(self, incoming: Iterable[BuildType]) -> None:
        """Replace the catalog with *incoming*, carrying user state forward by id.

        Branch filters, build history and the queued flag survive for
        every build type; alias and manual order survive only for
        monitored ones.
        """
        incoming = list(incoming)
        with self._lock:
            previous = {bt.build_type_id: bt for bt in self._build_types}
            for build_type in incoming:
                prior = previous.get(build_type.build_type_id)
                if prior is not None:
                    logger.debug(
                        "Carrying branch %r and history forward for %s",
                        prior.branch,
                        build_type.build_type_id,
                    )
                    build_type.branch = prior.branch
                    build_type.adopt_local_state(prior)
            self._build_types = incoming
            dropped = self._monitored.reconcile(incoming, carry=_carry_alias)
        for build_type_id in dropped:
            logger.info("Build type %s is no longer listed; stopped monitoring it.", build_type_id)

    def register_queued(self, queued_ids: Collection[str]) -> list[BuildType]:
        """Align every monitored build type's queued flag with *queued_ids*.

        Returns the build types whose flag actually changed.
        """
        changed: list[BuildType] = []
        with self._lock:
            monitored = self._monitored.items()
        for build_type in monitored:
            now_queued = build_type.build_type_id in queued_ids
            if build_type.queued != now_queued:
                build_type.queued = now_queued
                changed.append(build_type)
        return changed

    # ------------------------------------------------------------------
    # Monitoring control
    # ------------------------------------------------------------------

    def activate_monitoring(self, build_type: BuildType) -> None:
        with self._lock:
            self._monitored.add(build_type)

    def deactivate_monitoring(self, build_type: BuildType) -> None:
        with self._lock:
            self._monitored.remove(build_type.build_type_id)

    def is_monitored(self, build_type: BuildType) -> bool:
        with self._lock:
            return build_type.build_type_id in self._monitored

    def position(self, build_type: BuildType) -> int:
        with self._lock:
            return self._monitored.position(build_type.build_type_id)

    def request_position(self, build_type: BuildType, position: int) -> None:
        """Move *build_type* to a 1-based monitored position, monitoring it if needed."""
        with self._lock:
            self._monitored.move(build_type, position)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def build_types(self) -> tuple[BuildType, ...]:
        with self._lock:
            return tuple(self._build_types)

    def monitored_build_types(self) -> tuple[BuildType, ...]:
        with self._lock:
            return self._monitored.items()

    def get(self, build_type_id: str) -> BuildType | None:
        with self._lock:
            for build_type in self._build_types:
                if build_type.build_type_id == build_type_id:
                    return build_type
        return None


class ProjectRegistry:
    """Catalog of every known project and the monitored project subset."""

    def __init__(self, seed: Iterable[SavedProject] = ()) -> None:
        self._lock = threading.Lock()
        self._projects: list[Project] = []
        self._monitored: MonitoredList[Project] = MonitoredList(
            key=lambda p: p.project_id
        )
        for saved in seed:
            project = saved.to_project()
            self._projects.append(project)
            self._monitored.add(project)

    def register_projects(self, incoming: Iterable[Project]) -> None:
        """Replace the catalog wholesale; monitored projects keep order and alias."""
        incoming = list(incoming)
        with self._lock:
            self._projects = incoming
            dropped = self._monitored.reconcile(incoming, carry=_carry_alias)
        for project_id in dropped:
            logger.info("Project %s is no longer listed; stopped monitoring it.", project_id)

    def activate_monitoring(self, project: Project) -> None:
        with self._lock:
            self._monitored.add(project)

    def deactivate_monitoring(self, project: Project) -> None:
        with self._lock:
            self._monitored.remove(project.project_id)

    def is_monitored(self, project: Project) -> bool:
        with self._lock:
            return project.project_id in self._monitored

    def position(self, project: Project) -> int:
        with self._lock:
            return self._monitored.position(project.project_id)

    def request_position(self, project: Project, position: int) -> None:
        with self._lock:
            self._monitored.move(project, position)

    def projects(self) -> tuple[Project, ...]:
        with self._lock:
            return tuple(self._projects)

    def monitored_projects(self) -> tuple[Project, ...]:
        with self._lock:
            return self._monitored.items()

    def get(self, project_id: str) -> Project | None:
        with self._lock:
            for project in self._projects:
                if project.project_id == project_id:
                    return project
        return None
