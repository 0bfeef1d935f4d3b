"""wallsync data models: API revisions, builds and catalog entities."""

from wallsync.models.api import SUPPORTED_FEATURES, ApiFeature, ApiVersion
from wallsync.models.builds import Build, BuildState, BuildStatus
from wallsync.models.catalog import BuildType, Project

__all__ = [
    "SUPPORTED_FEATURES",
    "ApiFeature",
    "ApiVersion",
    "Build",
    "BuildState",
    "BuildStatus",
    "BuildType",
    "Project",
]
