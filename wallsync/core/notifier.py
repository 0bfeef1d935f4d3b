"""Change notifier: publishes updated registries and entities to subscribers.

Consumers (a terminal wall, seed persistence, tests) subscribe per change
kind.  A subscriber that raises is logged and skipped; delivery to the
remaining subscribers continues.  Delivery is best-effort: no ordering or
exactly-once guarantee across threads.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

from wallsync.core.registry import BuildTypeRegistry, ProjectRegistry
from wallsync.models.catalog import BuildType, Project

logger = logging.getLogger(__name__)

Subscriber = Callable[[Any], None]


class ChangeKind(str, Enum):
    """What was published."""

    PROJECT_REGISTRY = "project_registry"
    BUILD_TYPE_REGISTRY = "build_type_registry"
    PROJECT = "project"
    BUILD_TYPE = "build_type"


_KIND_BY_TYPE: dict[type, ChangeKind] = {
    ProjectRegistry: ChangeKind.PROJECT_REGISTRY,
    BuildTypeRegistry: ChangeKind.BUILD_TYPE_REGISTRY,
    Project: ChangeKind.PROJECT,
    BuildType: ChangeKind.BUILD_TYPE,
}


def change_kind_of(subject: object) -> ChangeKind:
    """Return the ``ChangeKind`` for a publishable object."""
    for cls, kind in _KIND_BY_TYPE.items():
        if isinstance(subject, cls):
            return kind
    raise TypeError(f"Cannot publish object of type {type(subject).__name__}")


class ChangeNotifier:
    """Publish/subscribe sink the synchronization engine posts changes to."""

    def __init__(self) -> None:
        self._subscribers: dict[ChangeKind, list[Subscriber]] = {
            kind: [] for kind in ChangeKind
        }
        self._lock = threading.Lock()

    def subscribe(
        self,
        handler: Subscriber,
        kinds: Iterable[ChangeKind] | None = None,
    ) -> None:
        """Register *handler* for *kinds* (all kinds when omitted)."""
        with self._lock:
            for kind in kinds if kinds is not None else ChangeKind:
                if handler not in self._subscribers[kind]:
                    self._subscribers[kind].append(handler)

    def unsubscribe(self, handler: Subscriber) -> None:
        with self._lock:
            for handlers in self._subscribers.values():
                if handler in handlers:
                    handlers.remove(handler)

    def publish(self, subject: object) -> int:
        """Deliver *subject* to every subscriber of its kind.

        Returns the number of subscribers that accepted it.
        """
        kind = change_kind_of(subject)
        with self._lock:
            handlers = list(self._subscribers[kind])

        delivered = 0
        for handler in handlers:
            try:
                handler(subject)
                delivered += 1
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Subscriber %r failed on %s change: %s", handler, kind.value, exc
                )
        return delivered
