"""Capability lookup: which features a configured API revision exposes."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from wallsync.models.api import ApiFeature, ApiVersion


@runtime_checkable
class CapabilityProvider(Protocol):
    """Anything with an ``is_supported(api_version, feature)`` method."""

    def is_supported(self, api_version: ApiVersion, feature: ApiFeature) -> bool:
        ...


class StaticCapabilities:
    """Answers from the built-in ``SUPPORTED_FEATURES`` table."""

    def is_supported(self, api_version: ApiVersion, feature: ApiFeature) -> bool:
        return api_version.is_supported(feature)
