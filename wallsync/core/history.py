"""Bounded, deduplicated build history for one build configuration.

Builds are kept most-recent first (ordered by ``build_id`` descending),
unique by ``build_id``, and capped at ``MAX_BUILDS``.  All mutation and
copy-on-read happens under a single lock so concurrent fetch callbacks
can upsert safely.
"""

from __future__ import annotations

import threading

from wallsync.models.builds import Build, BuildState

MAX_BUILDS = 10


class BuildHistory:
    """Ordered, capped collection of recent builds.

    Parameters
    ----------
    max_builds:
        Maximum number of builds retained.  The oldest build (lowest id)
        is evicted first.
    """

    def __init__(self, max_builds: int = MAX_BUILDS) -> None:
        self._max_builds = max_builds
        self._builds: list[Build] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def upsert(self, build: Build) -> None:
        """Insert *build*, replacing any record with the same id.

        Because ordering is by id, a replacement lands at the position
        the previous record occupied.
        """
        with self._lock:
            builds = [b for b in self._builds if b.build_id != build.build_id]
            builds.append(build)
            builds.sort(key=lambda b: b.build_id, reverse=True)
            self._builds = builds[: self._max_builds]

    # ------------------------------------------------------------------
    # Queries (all return snapshots)
    # ------------------------------------------------------------------

    def builds(self) -> tuple[Build, ...]:
        """Return every retained build, most recent first."""
        with self._lock:
            return tuple(self._builds)

    def __len__(self) -> int:
        with self._lock:
            return len(self._builds)

    def get(self, build_id: int) -> Build | None:
        """Return the retained build with *build_id*, if any."""
        for build in self.builds():
            if build.build_id == build_id:
                return build
        return None

    def in_state(self, state: BuildState) -> list[Build]:
        """Every retained build in *state*, whatever its status."""
        return [b for b in self.builds() if b.state == state]

    def last_builds(self, state: BuildState, count: int | None = None) -> list[Build]:
        """Most recent builds in *state* whose status is resolved.

        Builds with an UNKNOWN status never count as a valid result.
        """
        matching = [b for b in self.in_state(state) if b.is_resolved]
        return matching if count is None else matching[:count]

    def last_build(self, state: BuildState) -> Build | None:
        """Most recent resolved build in *state*."""
        matching = self.last_builds(state, 1)
        return matching[0] if matching else None

    def oldest_build(self, state: BuildState) -> Build | None:
        """Oldest retained resolved build in *state*."""
        matching = self.last_builds(state)
        return matching[-1] if matching else None
