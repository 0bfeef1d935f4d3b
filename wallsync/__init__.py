"""wallsync: polling synchronization core for CI build walls.

Keeps an in-memory mirror of a CI server's projects, build
configurations, build queue and recent builds:
  - Project and build-type registries with user-curated monitored subsets
  - Catalog reconciliation that carries aliases, branches and manual order
  - Bounded per-build-type history, most recent build first
  - Failure suppression for builds whose detail fetch keeps failing
  - Per-API-revision capability gating and wire mappings
  - Change notifications for every registry and entity update
  - Rich terminal wall and Typer CLI
"""

__version__ = "0.3.0"
__description__ = "Polling synchronization core for CI build walls"

from wallsync.core.engine import SynchronizationEngine
from wallsync.core.registry import BuildTypeRegistry, ProjectRegistry

__all__ = [
    "SynchronizationEngine",
    "BuildTypeRegistry",
    "ProjectRegistry",
    "__version__",
]
