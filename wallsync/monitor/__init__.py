"""Terminal wall: a read-only Rich projection over the registries."""

from wallsync.monitor.renderer import WallRenderer

__all__ = ["WallRenderer"]
