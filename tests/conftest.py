"""Shared test fixtures for wallsync."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from concurrent.futures import Future
from pathlib import Path
from typing import Any

import pytest
from pydantic import BaseModel

from wallsync.bridge.fetcher import FetchError
from wallsync.core.engine import SynchronizationEngine
from wallsync.core.notifier import ChangeNotifier
from wallsync.core.suppression import FailureSuppressionCache
from wallsync.core.workers import WorkerPool, completed, failed
from wallsync.models.api import ApiVersion
from wallsync.models.builds import Build, BuildState, BuildStatus
from wallsync.models.catalog import BuildType, Project


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeFetcher:
    """In-memory ``RemoteFetcher``: canned JSON payloads or exceptions by path."""

    def __init__(self) -> None:
        self._responses: dict[str, Any] = {}
        self._lock = threading.Lock()
        self.calls: list[str] = []

    def respond(self, path: str, payload: dict[str, Any]) -> None:
        self._responses[path] = payload

    def fail(self, path: str, exc: BaseException | None = None) -> None:
        self._responses[path] = exc or FetchError(f"HTTP 500 for {path}")

    def forget(self, path: str) -> None:
        self._responses.pop(path, None)

    def respond_build_list(self, build_type: BuildType, build_ids: list[int]) -> None:
        """Serve the latest-builds window for *build_type*."""
        self.respond(
            SynchronizationEngine.build_list_path(build_type),
            {"build": [{"id": i, "buildTypeId": build_type.build_type_id} for i in build_ids]},
        )

    def respond_build(self, build_id: int, build_type_id: str = "bt1", **fields: Any) -> None:
        """Serve the detail payload for one build."""
        payload = {"id": build_id, "buildTypeId": build_type_id, "status": "SUCCESS"}
        payload.update(fields)
        self.respond(f"builds/id:{build_id}", payload)

    def calls_to(self, prefix: str) -> list[str]:
        with self._lock:
            return [c for c in self.calls if c.startswith(prefix)]

    def fetch(self, api_version: ApiVersion, path: str, result_type: type[BaseModel]) -> Future[Any]:
        with self._lock:
            self.calls.append(path)
        response = self._responses.get(path)
        if response is None:
            return failed(FetchError(f"HTTP 404 for {path}"))
        if isinstance(response, BaseException):
            return failed(response)
        return completed(result_type.model_validate(response))


class ManualClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fetcher() -> FakeFetcher:
    """Provide an empty fake fetcher; every unknown path fails."""
    return FakeFetcher()


@pytest.fixture
def clock() -> ManualClock:
    """Provide a manually advanced clock."""
    return ManualClock()


@pytest.fixture
def pool() -> Iterator[WorkerPool]:
    """Provide a small worker pool, shut down after the test."""
    worker_pool = WorkerPool(max_workers=4)
    yield worker_pool
    worker_pool.shutdown()


@pytest.fixture
def notifications() -> list[Any]:
    """Collects everything published through the ``notifier`` fixture."""
    return []


@pytest.fixture
def notifier(notifications: list[Any]) -> ChangeNotifier:
    """Provide a notifier that records every publication."""
    sink = ChangeNotifier()
    sink.subscribe(notifications.append)
    return sink


@pytest.fixture
def make_engine(
    fetcher: FakeFetcher,
    pool: WorkerPool,
    notifier: ChangeNotifier,
    clock: ManualClock,
) -> Callable[..., SynchronizationEngine]:
    """Factory fixture: engine wired to the fake fetcher, manual clock and recording notifier."""

    def _factory(api_version: ApiVersion = ApiVersion.API_8_1, **overrides: Any) -> SynchronizationEngine:
        kwargs: dict[str, Any] = {
            "api_version": api_version,
            "notifier": notifier,
            "suppression": FailureSuppressionCache(clock=clock),
        }
        kwargs.update(overrides)
        return SynchronizationEngine(fetcher, pool, **kwargs)

    return _factory


@pytest.fixture
def engine(make_engine: Callable[..., SynchronizationEngine]) -> SynchronizationEngine:
    """Provide an engine speaking API 8.1."""
    return make_engine()


@pytest.fixture
def seed_path(tmp_path: Path) -> Path:
    """Provide a not-yet-existing seed file path."""
    return tmp_path / "wallsync" / "monitored.json"


# ---------------------------------------------------------------------------
# Entity factories, shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_build() -> Callable[..., Build]:
    """Factory fixture: build a Build with sensible defaults."""

    def _factory(
        build_id: int,
        status: BuildStatus = BuildStatus.SUCCESS,
        state: BuildState = BuildState.FINISHED,
        build_type_id: str = "bt1",
        **overrides: Any,
    ) -> Build:
        return Build(
            build_id=build_id,
            build_type_id=build_type_id,
            status=status,
            state=state,
            **overrides,
        )

    return _factory


@pytest.fixture
def make_build_type() -> Callable[..., BuildType]:
    """Factory fixture: build a BuildType in project ``p1`` by default."""

    def _factory(
        build_type_id: str = "bt1",
        name: str | None = None,
        project_id: str = "p1",
        project_name: str = "Project One",
        **overrides: Any,
    ) -> BuildType:
        return BuildType(
            build_type_id,
            name or f"Build {build_type_id}",
            project_id,
            project_name,
            **overrides,
        )

    return _factory


@pytest.fixture
def make_project() -> Callable[..., Project]:
    """Factory fixture: build a Project."""

    def _factory(project_id: str = "p1", name: str | None = None, **overrides: Any) -> Project:
        return Project(project_id, name or f"Project {project_id}", **overrides)

    return _factory
