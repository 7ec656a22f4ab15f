"""Lay out an ordered activity log as double-helix geometry."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Tuple

import numpy as np

from .store import LogEntry, LogType

LOGGER = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]

BRIDGE_COLORS: dict[LogType, int] = {
    LogType.INIT: 0x0000FF,  # blue
    LogType.PAGE_CHANGE: 0x00FF00,  # green
    LogType.CLICK: 0xFF00FF,  # purple
    LogType.ERROR: 0xFF0000,  # red
}
DEFAULT_BRIDGE_COLOR = 0xFFFF00  # yellow
CUSTOM_BRIDGE_COLOR = 0xFFA500  # orange, interactively added bridges
BACKBONE_COLOR = 0x00FF00


def bridge_color(log_type: str | LogType) -> int:
    """Palette lookup keyed on the entry type; unknown types are yellow."""

    if not isinstance(log_type, LogType):
        token = str(log_type)
        log_type = next((member for member in LogType if member.value == token), LogType.OTHER)
    return BRIDGE_COLORS.get(log_type, DEFAULT_BRIDGE_COLOR)


@dataclass(frozen=True, slots=True)
class LayoutConfig:
    radius: float = 2.0
    twist: float = math.pi / 5
    step: float = 1.0
    density: float = 5.0
    bridge_radius: float = 0.1

    def __post_init__(self) -> None:
        if not self.step > 0:
            raise ValueError(f"step must be positive, got {self.step}")
        if not self.density > 0:
            raise ValueError(f"density must be positive, got {self.density}")
        if self.radius < 0:
            raise ValueError(f"radius must be non-negative, got {self.radius}")


@dataclass(frozen=True, slots=True)
class HelixPoint:
    """Backbone marker on one strand."""

    sample_index: int
    angle: float
    position: Vec3
    strand: int


@dataclass(frozen=True, slots=True)
class Bridge:
    """Connector between the two strands, optionally tied to one log entry.

    ``entry`` is a display reference only; ``entry_index`` points into the
    sequence the layout was built from.
    """

    start: Vec3
    end: Vec3
    color: int
    entry: Optional[LogEntry] = None
    entry_index: Optional[int] = None
    sample_index: Optional[int] = None
    custom: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "start": list(self.start),
            "end": list(self.end),
            "color": f"#{self.color:06x}",
            "entry": self.entry.to_payload() if self.entry is not None else None,
            "entry_index": self.entry_index,
            "sample_index": self.sample_index,
            "custom": self.custom,
        }


@dataclass(frozen=True, slots=True)
class HelixGeometry:
    """Renderer-facing description of both strands and their bridges."""

    strand1: Tuple[HelixPoint, ...] = ()
    strand2: Tuple[HelixPoint, ...] = ()
    bridges: Tuple[Bridge, ...] = ()
    height: float = 0.0
    total_samples: int = 0
    config: LayoutConfig = field(default_factory=LayoutConfig)

    @property
    def is_empty(self) -> bool:
        return not self.strand1

    def as_arrays(self) -> dict[str, np.ndarray]:
        return {
            "strand1": _points_array(self.strand1),
            "strand2": _points_array(self.strand2),
            "bridge_segments": bridge_segments(self.bridges),
            "bridge_colors": np.array([bridge.color for bridge in self.bridges], dtype=np.int64),
        }

    def to_payload(self) -> dict[str, Any]:
        return {
            "height": self.height,
            "total_samples": self.total_samples,
            "config": {
                "radius": self.config.radius,
                "twist": self.config.twist,
                "step": self.config.step,
                "density": self.config.density,
                "bridge_radius": self.config.bridge_radius,
            },
            "strand1": [list(point.position) for point in self.strand1],
            "strand2": [list(point.position) for point in self.strand2],
            "bridges": [bridge.to_payload() for bridge in self.bridges],
        }


def _points_array(points: Sequence[HelixPoint]) -> np.ndarray:
    if not points:
        return np.zeros((0, 3), dtype=np.float64)
    return np.array([point.position for point in points], dtype=np.float64)


def bridge_segments(bridges: Sequence[Bridge]) -> np.ndarray:
    """Stack bridge endpoints into an ``(n, 2, 3)`` array."""

    if not bridges:
        return np.zeros((0, 2, 3), dtype=np.float64)
    return np.array([(bridge.start, bridge.end) for bridge in bridges], dtype=np.float64)


@dataclass(frozen=True, slots=True)
class _PlacedEntry:
    index: int
    entry: LogEntry
    y: float


def _place_entries(entries: Sequence[LogEntry], step: float) -> tuple[list[_PlacedEntry], bool]:
    """Normalize entry times onto the helix axis.

    The flag is ``False`` when every kept entry shares one instant, in which
    case all of them sit at ``y = 0``.
    """

    timed: list[tuple[int, LogEntry, float]] = []
    for index, entry in enumerate(entries):
        moment = entry.parsed_time()
        if moment is None:
            LOGGER.debug("Dropping log entry %d with unparseable time %r", index, entry.time)
            continue
        timed.append((index, entry, moment.timestamp() * 1000.0))
    if not timed:
        return [], False

    count = len(timed)
    min_time = min(item[2] for item in timed)
    max_time = max(item[2] for item in timed)
    span = max_time - min_time
    extent = (count - 1) * step
    placed = []
    for index, entry, millis in timed:
        y = (millis - min_time) / span * extent if span > 0 else 0.0
        placed.append(_PlacedEntry(index=index, entry=entry, y=y))
    return placed, span > 0


def build_helix(entries: Sequence[LogEntry], config: LayoutConfig | None = None) -> HelixGeometry:
    """Map log entries onto two helical strands joined by colored bridges.

    Entries are normalized to ``[0, (N - 1) * step]`` by time and the backbone
    is sampled ``density`` times per unit height. At each sample the first
    entry in list order within ``step / 2`` of the sample height gets a bridge.
    Entries whose time does not parse are skipped. When all times are equal
    the helix collapses to a single sample at ``y = 0``.
    """

    config = config or LayoutConfig()
    placed, spread = _place_entries(entries, config.step)
    if not placed:
        return HelixGeometry(config=config)

    count = len(placed)
    height = (count - 1) * config.step if spread else 0.0
    total_samples = math.ceil(height * config.density)

    samples = np.arange(total_samples + 1, dtype=np.float64)
    t = samples / total_samples if total_samples > 0 else np.zeros_like(samples)
    ys = t * height
    angles = t * count * config.twist
    opposite = angles + math.pi
    x1 = config.radius * np.cos(angles)
    z1 = config.radius * np.sin(angles)
    x2 = config.radius * np.cos(opposite)
    z2 = config.radius * np.sin(opposite)

    half_step = config.step / 2
    strand1: list[HelixPoint] = []
    strand2: list[HelixPoint] = []
    bridges: list[Bridge] = []
    for s in range(total_samples + 1):
        y = float(ys[s])
        p1 = (float(x1[s]), y, float(z1[s]))
        p2 = (float(x2[s]), y, float(z2[s]))
        strand1.append(HelixPoint(sample_index=s, angle=float(angles[s]), position=p1, strand=1))
        strand2.append(HelixPoint(sample_index=s, angle=float(opposite[s]), position=p2, strand=2))

        match = next((item for item in placed if abs(item.y - y) < half_step), None)
        if match is None:
            continue
        bridges.append(
            Bridge(
                start=p1,
                end=p2,
                color=bridge_color(match.entry.type),
                entry=match.entry,
                entry_index=match.index,
                sample_index=s,
            )
        )

    LOGGER.debug(
        "build_helix entries=%d placed=%d samples=%d bridges=%d",
        len(entries),
        count,
        total_samples + 1,
        len(bridges),
    )
    return HelixGeometry(
        strand1=tuple(strand1),
        strand2=tuple(strand2),
        bridges=tuple(bridges),
        height=float(height),
        total_samples=total_samples,
        config=config,
    )


__all__ = [
    "BACKBONE_COLOR",
    "BRIDGE_COLORS",
    "Bridge",
    "CUSTOM_BRIDGE_COLOR",
    "DEFAULT_BRIDGE_COLOR",
    "HelixGeometry",
    "HelixPoint",
    "LayoutConfig",
    "bridge_color",
    "bridge_segments",
    "build_helix",
]
