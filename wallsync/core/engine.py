"""Synchronization engine: the central coordinator for polling cycles.

The engine wires together the fetcher, the project and build-type
registries, the failure suppression cache and the change notifier.  Each
public operation dispatches one unit of work onto the shared worker pool
and returns a future that resolves when the registries reflect the fetch:

- ``refresh_projects``: replace the project catalog.
- ``refresh_build_types``: reconcile the build-type catalog, attach build
  types to their projects.
- ``refresh_queue_membership``: flip queued flags on monitored build types.
- ``refresh_build_status``: update one build type's history from its
  latest builds plus any build still known to be running.

Operations whose feature is not supported by the configured API version
resolve immediately without touching the network.  Once the engine is
shut down, late callbacks cancel their futures instead of mutating state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

from wallsync.bridge.capabilities import CapabilityProvider, StaticCapabilities
from wallsync.bridge.fetcher import HttpFetcher, RemoteFetcher
from wallsync.bridge.mappings import SchemaMapping, mapping_for
from wallsync.bridge.wire import (
    BuildList,
    BuildTypeList,
    ProjectList,
    QueuedBuildList,
    RemoteBuild,
)
from wallsync.core.notifier import ChangeNotifier
from wallsync.core.registry import BuildTypeRegistry, ProjectRegistry
from wallsync.core.suppression import FailureSuppressionCache
from wallsync.core.workers import WorkerPool, completed, failed, settle_all, then
from wallsync.models.api import ApiFeature, ApiVersion
from wallsync.models.builds import Build, BuildState
from wallsync.models.catalog import BuildType, Project
from wallsync.seed import MonitoredSeed

if TYPE_CHECKING:
    from wallsync.config import WallSyncConfig

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Only the most recent builds of a build type are considered each cycle.
MAX_BUILDS_TO_CONSIDER = 3
DEFAULT_BRANCH_SPEC = "default:yes"


class SynchronizationEngine:
    """Polls the remote server and merges the results into the registries.

    Parameters
    ----------
    fetcher:
        Asynchronous remote fetcher (``HttpFetcher`` in production).
    pool:
        Shared worker pool that runs every operation.
    api_version:
        Remote schema revision to request and map.
    projects, build_types:
        Registries to mutate.  Fresh empty registries if not provided.
    notifier:
        Sink for change notifications.
    capabilities:
        Capability lookup; defaults to the static revision table.
    suppression:
        Failure suppression cache for per-build detail fetches.
    mappings:
        Per-version wire-to-entity mapping table override.
    """

    def __init__(
        self,
        fetcher: RemoteFetcher,
        pool: WorkerPool,
        *,
        api_version: ApiVersion = ApiVersion.API_8_1,
        projects: ProjectRegistry | None = None,
        build_types: BuildTypeRegistry | None = None,
        notifier: ChangeNotifier | None = None,
        capabilities: CapabilityProvider | None = None,
        suppression: FailureSuppressionCache | None = None,
        mappings: dict[ApiVersion, SchemaMapping] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._pool = pool
        self.api_version = api_version
        self.projects = projects if projects is not None else ProjectRegistry()
        self.build_types = build_types if build_types is not None else BuildTypeRegistry()
        self.notifier = notifier or ChangeNotifier()
        self._capabilities = capabilities or StaticCapabilities()
        self.suppression = suppression or FailureSuppressionCache()
        self._mappings = mappings

    @classmethod
    def from_config(
        cls,
        config: WallSyncConfig,
        *,
        seed: MonitoredSeed | None = None,
        fetcher: RemoteFetcher | None = None,
        pool: WorkerPool | None = None,
    ) -> SynchronizationEngine:
        """Build an engine with an HTTP fetcher and registries seeded from *seed*."""
        pool = pool or WorkerPool(config.max_workers)
        fetcher = fetcher or HttpFetcher.from_config(config, pool)
        seed = seed or MonitoredSeed()
        return cls(
            fetcher,
            pool,
            api_version=config.api_version,
            projects=ProjectRegistry(seed.projects),
            build_types=BuildTypeRegistry(seed.build_types),
        )

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        """Whether callbacks may still mutate the registries."""
        return not self._pool.is_shut_down

    @property
    def mapping(self) -> SchemaMapping:
        return mapping_for(self.api_version, self._mappings)

    def _supported(self, *features: ApiFeature) -> bool:
        return all(
            self._capabilities.is_supported(self.api_version, feature)
            for feature in features
        )

    def _dispatch(self, work: Callable[[Future[Any]], None]) -> Future[Any]:
        """Run *work(ack)* on the pool; *work* is responsible for resolving *ack*."""
        ack: Future[Any] = Future()
        try:
            unit = self._pool.submit(self._guarded, work, ack)
        except RuntimeError:
            ack.cancel()
            return ack
        # units still queued at shutdown are dropped by the executor
        unit.add_done_callback(lambda done: ack.cancel() if done.cancelled() else None)
        return ack

    @staticmethod
    def _guarded(work: Callable[[Future[Any]], None], ack: Future[Any]) -> None:
        if ack.done():
            return
        try:
            work(ack)
        except Exception as exc:  # noqa: BLE001
            if not ack.done():
                ack.set_exception(exc)

    def _fetch(self, path: str, result_type: type[M]) -> Future[M]:
        try:
            return self._fetcher.fetch(self.api_version, path, result_type)
        except Exception as exc:  # noqa: BLE001
            return failed(exc)

    def _on_list(
        self,
        ack: Future[Any],
        description: str,
        apply: Callable[[Any], None],
    ) -> Callable[[Future[Any]], None]:
        """Build a done-callback that applies a list-level fetch result.

        A failed fetch fails *ack* without mutation; a late result after
        shutdown cancels it.  Results for an *ack* the caller already
        cancelled are dropped.
        """

        def _callback(done: Future[Any]) -> None:
            if ack.done():
                return
            if not self.is_active:
                ack.cancel()
                return
            exc = done.exception()
            if exc is not None:
                logger.error("Error during loading %s:", description, exc_info=exc)
                ack.set_exception(exc)
                return
            try:
                apply(done.result())
            except Exception as apply_exc:  # noqa: BLE001
                logger.error("Error applying %s:", description, exc_info=apply_exc)
                ack.set_exception(apply_exc)
                return
            ack.set_result(None)

        return _callback

    def _publish_owning_project(self, build_type: BuildType) -> None:
        project = self.projects.get(build_type.project_id)
        if project is not None:
            self.notifier.publish(project)

    # ------------------------------------------------------------------
    # Catalog operations
    # ------------------------------------------------------------------

    def refresh_projects(self) -> Future[None]:
        """Fetch the project list and replace the project registry."""
        if not self._supported(ApiFeature.PROJECT_STATUS, ApiFeature.BUILD_TYPE_STATUS):
            return completed()

        def _apply(result: ProjectList) -> None:
            mapping = self.mapping
            projects = [mapping.project(remote) for remote in result.projects]
            self.projects.register_projects(projects)
            self.notifier.publish(self.projects)
            for project in projects:
                logger.info("Discovering project %s (%s)", project.project_id, project.name)

        def _work(ack: Future[None]) -> None:
            self._fetch("projects", ProjectList).add_done_callback(
                self._on_list(ack, "project list", _apply)
            )

        return self._dispatch(_work)

    def refresh_build_types(self) -> Future[None]:
        """Fetch the build-type list, reconcile it and attach types to projects."""
        if not self._supported(ApiFeature.BUILD_TYPE_STATUS):
            return completed()

        def _apply(result: BuildTypeList) -> None:
            mapping = self.mapping
            self.build_types.register_build_types(
                mapping.build_type(remote) for remote in result.build_types
            )
            self.notifier.publish(self.build_types)

            affected: dict[str, Project] = {}
            for build_type in self.build_types.build_types():
                project = self.projects.get(build_type.project_id)
                if project is not None:
                    project.register_build_type(build_type)
                    affected[project.project_id] = project
                logger.info(
                    "Discovering build type %s (%s) on project %s (%s)",
                    build_type.build_type_id,
                    build_type.name,
                    build_type.project_id,
                    build_type.project_name,
                )
            for project in affected.values():
                self.notifier.publish(project)

        def _work(ack: Future[None]) -> None:
            self._fetch("buildTypes", BuildTypeList).add_done_callback(
                self._on_list(ack, "build type list", _apply)
            )

        return self._dispatch(_work)

    def load_catalog(self) -> Future[None]:
        """Refresh projects, then build types.  A project failure skips the second step."""
        return then(self.refresh_projects(), lambda _: self.refresh_build_types())

    # ------------------------------------------------------------------
    # Queue membership
    # ------------------------------------------------------------------

    def refresh_queue_membership(self) -> Future[None]:
        """Flip ``queued`` on monitored build types to match the server queue."""
        if not self._supported(ApiFeature.QUEUE_STATUS):
            return completed()

        def _apply(result: QueuedBuildList) -> None:
            queued_ids = {queued.build_type_id for queued in result.builds}
            for build_type in self.build_types.register_queued(queued_ids):
                self.notifier.publish(build_type)

        def _work(ack: Future[None]) -> None:
            self._fetch("buildQueue", QueuedBuildList).add_done_callback(
                self._on_list(ack, "build queue", _apply)
            )

        return self._dispatch(_work)

    # ------------------------------------------------------------------
    # Build status
    # ------------------------------------------------------------------

    @staticmethod
    def build_list_path(build_type: BuildType) -> str:
        branch = build_type.branch or DEFAULT_BRANCH_SPEC
        return (
            f"builds/?locator=buildType:{build_type.build_type_id},running:any,"
            f"count:{MAX_BUILDS_TO_CONSIDER},branch:{branch}"
        )

    def select_builds_to_fetch(
        self, build_type: BuildType, window_ids: list[int]
    ) -> list[int]:
        """Choose which build details to request this cycle.

        Starts from the latest window, drops builds already known to be
        finished and builds under suppression, then adds back every build
        the history still records as running.  Returned most recent first.
        """
        candidates = set(window_ids[:MAX_BUILDS_TO_CONSIDER])

        # finished builds are terminal and never re-fetched
        for build_id in list(candidates):
            known = build_type.build_by_id(build_id)
            if known is not None and known.is_finished:
                candidates.discard(build_id)

        candidates = {
            build_id
            for build_id in candidates
            if not self.suppression.should_ignore(build_id)
        }

        # running builds are tracked to completion even once out of the window
        candidates.update(
            build.build_id for build in build_type.history.in_state(BuildState.RUNNING)
        )
        return sorted(candidates, reverse=True)

    def refresh_build_status(self, build_type: BuildType) -> Future[None]:
        """Refresh *build_type*'s history.

        The returned future resolves once every detail fetch has settled;
        only a failure to fetch the build list itself fails it.
        """
        if not self._supported(ApiFeature.BUILD_TYPE_STATUS):
            return completed()

        self.suppression.sweep()

        def _on_builds(ack: Future[None]) -> Callable[[Future[BuildList]], None]:
            def _callback(done: Future[BuildList]) -> None:
                if ack.done():
                    return
                if not self.is_active:
                    ack.cancel()
                    return
                exc = done.exception()
                if exc is not None:
                    logger.error(
                        "Error during loading builds list for build type %s:",
                        build_type.build_type_id,
                        exc_info=exc,
                    )
                    ack.set_exception(exc)
                    return

                try:
                    window = [remote.id for remote in done.result().builds]
                    to_fetch = self.select_builds_to_fetch(build_type, window)
                except Exception as select_exc:  # noqa: BLE001
                    ack.set_exception(select_exc)
                    return
                details = [self._refresh_build(build_type, build_id) for build_id in to_fetch]
                settle_all(details).add_done_callback(lambda _: _settled(ack))

            return _callback

        def _settled(ack: Future[None]) -> None:
            if ack.done():
                return
            if self.is_active:
                ack.set_result(None)
            else:
                ack.cancel()

        def _work(ack: Future[None]) -> None:
            self._fetch(self.build_list_path(build_type), BuildList).add_done_callback(
                _on_builds(ack)
            )

        return self._dispatch(_work)

    def refresh_monitored_statuses(self) -> Future[list[None]]:
        """Refresh every monitored build type; resolves when all have settled."""
        return settle_all(
            [self.refresh_build_status(bt) for bt in self.build_types.monitored_build_types()]
        )

    def _refresh_build(self, build_type: BuildType, build_id: int) -> Future[Build]:
        outcome: Future[Build] = Future()

        def _callback(done: Future[RemoteBuild]) -> None:
            if not self.is_active:
                outcome.cancel()
                return
            exc = done.exception()
            if exc is None:
                try:
                    build = self.mapping.build(done.result())
                except Exception as map_exc:  # noqa: BLE001
                    exc = map_exc
                else:
                    build_type.register_build(build)
                    self.notifier.publish(build_type)
                    self._publish_owning_project(build_type)
                    outcome.set_result(build)
                    return
            self._record_detail_failure(build_type, build_id, exc)
            outcome.set_exception(exc)

        self._fetch(f"builds/id:{build_id}", RemoteBuild).add_done_callback(_callback)
        return outcome

    def _record_detail_failure(
        self, build_type: BuildType, build_id: int, exc: BaseException
    ) -> None:
        logger.warning(
            "Error during loading full information for build with id %d, build type %s: %s",
            build_id,
            build_type.build_type_id,
            exc,
        )
        count = self.suppression.record_failure(build_id)
        if count == self.suppression.threshold:
            logger.info(
                "Build %d is now temporarily ignored for about %d minutes due to %d failures.",
                build_id,
                int(self.suppression.window_seconds // 60),
                count,
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        """Stop the worker pool.  In-flight callbacks are abandoned without mutation."""
        self._pool.shutdown()
        close = getattr(self._fetcher, "close", None)
        if callable(close):
            close()
        logger.info("SynchronizationEngine stopped.")
