"""End-to-end integration tests: polling cycles against a simulated CI server.

These tests exercise the HttpFetcher, SynchronizationEngine, registries,
failure suppression and ChangeNotifier working together.  The server is an
``httpx.MockTransport`` handler over mutable in-memory state.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from typing import Any

import httpx
import pytest

from wallsync.bridge.fetcher import HttpFetcher
from wallsync.core.engine import SynchronizationEngine
from wallsync.core.notifier import ChangeKind, ChangeNotifier
from wallsync.core.registry import BuildTypeRegistry
from wallsync.core.scheduler import PollingScheduler
from wallsync.core.suppression import FailureSuppressionCache
from wallsync.core.workers import WorkerPool
from wallsync.models.api import ApiVersion
from wallsync.models.builds import BuildState, BuildStatus
from wallsync.seed import MonitoredSeed, SavedBuildType, load_seed, save_seed

REST = "/guestAuth/app/rest/8.1"
TIMEOUT = 5


class SimulatedServer:
    """Just enough of the CI server's REST API for one project."""

    def __init__(self) -> None:
        self.projects = [{"id": "Wall", "name": "Wall-T"}]
        self.build_types = [
            {"id": "Wall_Build", "name": "Build", "projectId": "Wall", "projectName": "Wall-T"},
            {"id": "Wall_Docs", "name": "Docs", "projectId": "Wall", "projectName": "Wall-T"},
        ]
        self.queue: list[dict[str, Any]] = []
        self.windows: dict[str, list[int]] = {}
        self.builds: dict[int, dict[str, Any]] = {}
        self.broken: set[int] = set()
        self.paths: list[str] = []

    def add_build(self, build_id: int, build_type_id: str, **fields: Any) -> None:
        self.builds[build_id] = {"id": build_id, "buildTypeId": build_type_id, **fields}
        window = self.windows.setdefault(build_type_id, [])
        window.insert(0, build_id)

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.paths.append(path)
        if path == f"{REST}/projects":
            return httpx.Response(200, json={"project": self.projects})
        if path == f"{REST}/buildTypes":
            return httpx.Response(200, json={"buildType": self.build_types})
        if path == f"{REST}/buildQueue":
            return httpx.Response(200, json={"build": self.queue})
        if path == f"{REST}/builds/":
            locator = dict(
                part.split(":", 1) for part in request.url.params["locator"].split(",")
            )
            ids = self.windows.get(locator["buildType"], [])[: int(locator["count"])]
            return httpx.Response(
                200, json={"build": [{"id": i, "buildTypeId": locator["buildType"]} for i in ids]}
            )
        if path.startswith(f"{REST}/builds/id:"):
            build_id = int(path.rsplit(":", 1)[1])
            if build_id in self.broken or build_id not in self.builds:
                return httpx.Response(500, text="internal error")
            return httpx.Response(200, json=self.builds[build_id])
        return httpx.Response(404)

    def detail_requests(self, build_id: int) -> int:
        return self.paths.count(f"{REST}/builds/id:{build_id}")


@pytest.fixture
def server() -> SimulatedServer:
    return SimulatedServer()


@pytest.fixture
def wall(server, clock) -> Iterator[SynchronizationEngine]:
    """Engine over a real HttpFetcher talking to the simulated server."""
    pool = WorkerPool(max_workers=4)
    fetcher = HttpFetcher(
        "http://ci.test", pool, transport=httpx.MockTransport(server.handle)
    )
    engine = SynchronizationEngine(
        fetcher,
        pool,
        api_version=ApiVersion.API_8_1,
        suppression=FailureSuppressionCache(clock=clock),
    )
    yield engine
    engine.shutdown()


def _cycle(engine: SynchronizationEngine) -> None:
    engine.refresh_queue_membership().result(timeout=TIMEOUT)
    engine.refresh_monitored_statuses().result(timeout=TIMEOUT)


class TestSyncCycle:
    """Catalog load followed by repeated queue and status cycles."""

    def test_catalog_then_status(self, wall, server):
        server.add_build(54, "Wall_Build", state="finished", status="SUCCESS",
                         finishDate="20260301T101500+0000")
        server.add_build(55, "Wall_Build", state="queued", status="UNKNOWN")
        server.queue = [{"id": 55, "buildTypeId": "Wall_Build"}]

        wall.load_catalog().result(timeout=TIMEOUT)
        build_type = wall.build_types.get("Wall_Build")
        wall.build_types.activate_monitoring(build_type)
        _cycle(wall)

        assert [b.build_id for b in build_type.history.builds()] == [55, 54]
        assert build_type.queued
        assert build_type.last_build(BuildState.FINISHED).status == BuildStatus.SUCCESS
        assert wall.projects.get("Wall").count_build_types_by_status(BuildStatus.SUCCESS) == 1

        # the finished build is terminal; only the queued one is fetched again
        _cycle(wall)
        assert server.detail_requests(54) == 1
        assert server.detail_requests(55) == 2

    def test_build_runs_to_completion(self, wall, server):
        server.add_build(60, "Wall_Build", state="running", status="SUCCESS",
                         **{"running-info": {"percentageComplete": 25, "elapsedSeconds": 30,
                                             "estimatedTotalSeconds": 120}})
        wall.load_catalog().result(timeout=TIMEOUT)
        build_type = wall.build_types.get("Wall_Build")
        wall.build_types.activate_monitoring(build_type)
        _cycle(wall)
        running = build_type.last_build(BuildState.RUNNING)
        assert running.percentage_complete == 25

        # three newer builds push 60 out of the latest window while it still runs
        for build_id in (61, 62, 63):
            server.add_build(build_id, "Wall_Build", state="queued", status="UNKNOWN")
        server.builds[60].update(state="finished", status="FAILURE",
                                 finishDate="20260301T120000+0000")
        del server.builds[60]["running-info"]
        _cycle(wall)

        finished = build_type.build_by_id(60)
        assert finished.is_finished
        assert finished.percentage_complete == 100
        assert not build_type.has_running_build

    def test_running_build_tracked_across_catalog_reload(self, wall, server):
        server.add_build(100, "Wall_Build", state="running", status="SUCCESS")
        wall.load_catalog().result(timeout=TIMEOUT)
        wall.build_types.activate_monitoring(wall.build_types.get("Wall_Build"))
        _cycle(wall)

        # the scheduled catalog reload happens while 100 is still running
        wall.load_catalog().result(timeout=TIMEOUT)
        for build_id in (101, 102, 103):
            server.add_build(build_id, "Wall_Build", state="queued", status="UNKNOWN")
        server.builds[100].update(state="finished", status="FAILURE")
        _cycle(wall)

        assert server.detail_requests(100) == 2
        build_type = wall.build_types.get("Wall_Build")
        assert build_type.build_by_id(100).status == BuildStatus.FAILURE
        assert not build_type.has_running_build

    def test_running_build_is_never_suppressed(self, wall, server):
        server.add_build(90, "Wall_Build", state="running", status="SUCCESS")
        wall.load_catalog().result(timeout=TIMEOUT)
        wall.build_types.activate_monitoring(wall.build_types.get("Wall_Build"))
        _cycle(wall)

        for build_id in (91, 92, 93):
            server.add_build(build_id, "Wall_Build", state="finished", status="SUCCESS")
        server.broken.add(90)
        for _ in range(4):
            _cycle(wall)
        assert wall.suppression.should_ignore(90)
        assert server.detail_requests(90) == 5

        server.broken.clear()
        server.builds[90].update(state="finished")
        _cycle(wall)
        assert wall.build_types.get("Wall_Build").build_by_id(90).is_finished

    def test_failing_detail_is_suppressed(self, wall, server, clock):
        server.add_build(70, "Wall_Docs", state="finished", status="SUCCESS")
        server.broken.add(70)
        wall.load_catalog().result(timeout=TIMEOUT)
        wall.build_types.activate_monitoring(wall.build_types.get("Wall_Docs"))

        for _ in range(4):
            _cycle(wall)
        assert server.detail_requests(70) == 2

        server.broken.clear()
        clock.advance(20 * 60)
        _cycle(wall)
        assert server.detail_requests(70) == 3
        assert wall.build_types.get("Wall_Docs").build_by_id(70) is not None

    def test_reconciliation_keeps_user_state(self, wall, server):
        wall.load_catalog().result(timeout=TIMEOUT)
        docs = wall.build_types.get("Wall_Docs")
        build = wall.build_types.get("Wall_Build")
        wall.build_types.activate_monitoring(docs)
        wall.build_types.activate_monitoring(build)
        docs.alias = "Handbook"
        build.branch = "name:release"

        server.build_types[0]["name"] = "Build (renamed)"
        wall.load_catalog().result(timeout=TIMEOUT)

        monitored = wall.build_types.monitored_build_types()
        assert [bt.build_type_id for bt in monitored] == ["Wall_Docs", "Wall_Build"]
        assert monitored[0].alias == "Handbook"
        assert monitored[1].name == "Build (renamed)"
        assert monitored[1].branch == "name:release"
        assert "branch:name:release" in SynchronizationEngine.build_list_path(monitored[1])

        server.build_types.pop()
        wall.load_catalog().result(timeout=TIMEOUT)
        assert [bt.build_type_id for bt in wall.build_types.monitored_build_types()] == [
            "Wall_Build"
        ]


class TestNotificationsAndSeed:
    def test_notifications_drive_persistence(self, server, seed_path):
        seed = MonitoredSeed(
            build_types=[
                SavedBuildType(build_type_id="Wall_Docs", name="Docs", project_id="Wall",
                               project_name="Wall-T", alias="Handbook"),
                SavedBuildType(build_type_id="Gone", name="Gone", project_id="Wall",
                               project_name="Wall-T"),
            ]
        )
        pool = WorkerPool(max_workers=2)
        notifier = ChangeNotifier()
        engine = SynchronizationEngine(
            HttpFetcher("http://ci.test", pool, transport=httpx.MockTransport(server.handle)),
            pool,
            notifier=notifier,
            build_types=BuildTypeRegistry(seed.build_types),
        )
        notifier.subscribe(
            lambda _: save_seed(seed_path, engine.build_types.monitored_build_types()),
            kinds=[ChangeKind.BUILD_TYPE_REGISTRY],
        )
        try:
            engine.load_catalog().result(timeout=TIMEOUT)
        finally:
            engine.shutdown()

        saved = load_seed(seed_path)
        assert [bt.build_type_id for bt in saved.build_types] == ["Wall_Docs"]
        assert saved.build_types[0].alias == "Handbook"


class TestScheduler:
    def test_scheduler_drives_a_full_cycle(self, wall, server):
        server.add_build(80, "Wall_Build", state="finished", status="ERROR")
        updated = threading.Event()

        def _monitor_build(registry: BuildTypeRegistry) -> None:
            build_type = registry.get("Wall_Build")
            if build_type is not None:
                registry.activate_monitoring(build_type)

        wall.notifier.subscribe(_monitor_build, kinds=[ChangeKind.BUILD_TYPE_REGISTRY])
        wall.notifier.subscribe(lambda _: updated.set(), kinds=[ChangeKind.BUILD_TYPE])

        scheduler = PollingScheduler(wall, status_interval=0.05, queue_interval=0.05)
        scheduler.start()
        try:
            assert updated.wait(TIMEOUT)
        finally:
            scheduler.stop()

        build_type = wall.build_types.get("Wall_Build")
        assert build_type.last_build(BuildState.FINISHED).status == BuildStatus.ERROR
