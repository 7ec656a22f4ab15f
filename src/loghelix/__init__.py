"""Render an activity log as a double helix."""

from importlib import metadata

from .controller import CUSTOM_BRIDGE_MESSAGE, InteractiveMutationController, RenderedHelix
from .highlight import ProximityHighlighter, random_connections
from .layout import (
    CUSTOM_BRIDGE_COLOR,
    Bridge,
    HelixGeometry,
    HelixPoint,
    LayoutConfig,
    bridge_color,
    build_helix,
)
from .store import FileBackend, LogEntry, LogStore, LogType, MemoryBackend, StorageError

try:  # pragma: no cover - metadata only at runtime
    __version__ = metadata.version("loghelix")
except metadata.PackageNotFoundError:  # pragma: no cover - source tree / editable installs
    __version__ = "0.0.0"

__all__ = [
    "Bridge",
    "CUSTOM_BRIDGE_COLOR",
    "CUSTOM_BRIDGE_MESSAGE",
    "FileBackend",
    "HelixGeometry",
    "HelixPoint",
    "InteractiveMutationController",
    "LayoutConfig",
    "LogEntry",
    "LogStore",
    "LogType",
    "MemoryBackend",
    "ProximityHighlighter",
    "RenderedHelix",
    "StorageError",
    "bridge_color",
    "build_helix",
    "random_connections",
    "__version__",
]
