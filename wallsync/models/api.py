"""Remote API schema revisions and the features each one exposes."""

from __future__ import annotations

from enum import Enum


class ApiFeature(str, Enum):
    """Server capabilities the synchronizer depends on."""

    PROJECT_STATUS = "project_status"
    BUILD_TYPE_STATUS = "build_type_status"
    QUEUE_STATUS = "queue_status"


class ApiVersion(str, Enum):
    """Supported revisions of the remote REST wire format."""

    API_6_0 = "6.0"
    API_7_0 = "7.0"
    API_8_0 = "8.0"
    API_8_1 = "8.1"

    @property
    def rest_segment(self) -> str:
        """Path segment selecting this revision, e.g. ``app/rest/8.1``."""
        return f"app/rest/{self.value}"

    def is_supported(self, *features: ApiFeature) -> bool:
        """Return ``True`` if every given feature is available in this revision."""
        available = SUPPORTED_FEATURES[self]
        return all(feature in available for feature in features)


# Static capability table. A revision supports everything its predecessor does.
SUPPORTED_FEATURES: dict[ApiVersion, frozenset[ApiFeature]] = {
    ApiVersion.API_6_0: frozenset({ApiFeature.BUILD_TYPE_STATUS}),
    ApiVersion.API_7_0: frozenset(
        {ApiFeature.BUILD_TYPE_STATUS, ApiFeature.QUEUE_STATUS}
    ),
    ApiVersion.API_8_0: frozenset(
        {
            ApiFeature.BUILD_TYPE_STATUS,
            ApiFeature.QUEUE_STATUS,
            ApiFeature.PROJECT_STATUS,
        }
    ),
    ApiVersion.API_8_1: frozenset(
        {
            ApiFeature.BUILD_TYPE_STATUS,
            ApiFeature.QUEUE_STATUS,
            ApiFeature.PROJECT_STATUS,
        }
    ),
}
