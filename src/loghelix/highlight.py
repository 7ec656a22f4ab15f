"""Distance-based hover highlighting for bridges and neuron connections."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from .layout import Bridge, bridge_segments

LOGGER = logging.getLogger(__name__)


def segments_from_bridges(bridges: Sequence[Bridge]) -> np.ndarray:
    return bridge_segments(bridges)


def _as_segments(segments: np.ndarray | Sequence) -> np.ndarray:
    if isinstance(segments, np.ndarray):
        array = segments.astype(np.float64, copy=False)
    elif segments and isinstance(segments[0], Bridge):
        array = bridge_segments(segments)  # type: ignore[arg-type]
    else:
        array = np.asarray(segments, dtype=np.float64)
    if array.size == 0:
        return np.zeros((0, 2, 3), dtype=np.float64)
    if array.ndim != 3 or array.shape[1:] != (2, 3):
        raise ValueError(f"segments must have shape (n, 2, 3), got {array.shape}")
    return array


class ProximityHighlighter:
    """Marks elements with an endpoint near the query point as active.

    Runs once per animation tick; cost is linear in the element count.
    """

    def __init__(
        self,
        threshold: float = 2.0,
        *,
        active_opacity: float = 1.0,
        dimmed_opacity: float = 0.1,
        idle_opacity: float = 0.5,
    ) -> None:
        if threshold <= 0:
            raise ValueError(f"threshold must be positive, got {threshold}")
        self.threshold = float(threshold)
        self.active_opacity = float(active_opacity)
        self.dimmed_opacity = float(dimmed_opacity)
        self.idle_opacity = float(idle_opacity)

    def endpoint_distances(self, query_point: Sequence[float], segments) -> np.ndarray:
        array = _as_segments(segments)
        point = np.asarray(query_point, dtype=np.float64).reshape(1, 1, 3)
        return np.linalg.norm(array - point, axis=2)

    def active_mask(self, query_point: Sequence[float] | None, segments) -> np.ndarray:
        array = _as_segments(segments)
        if query_point is None or array.shape[0] == 0:
            return np.zeros(array.shape[0], dtype=bool)
        distances = self.endpoint_distances(query_point, array)
        return (distances < self.threshold).any(axis=1)

    def active_indices(self, query_point: Sequence[float] | None, segments) -> list[int]:
        return [int(idx) for idx in np.flatnonzero(self.active_mask(query_point, segments))]

    def nearest(self, query_point: Sequence[float] | None, segments) -> Optional[int]:
        """Index of the element whose closer endpoint is nearest, ties to the lowest index."""

        array = _as_segments(segments)
        if query_point is None or array.shape[0] == 0:
            return None
        closest = self.endpoint_distances(query_point, array).min(axis=1)
        return int(np.argmin(closest))

    def update(self, query_point: Sequence[float] | None, segments) -> np.ndarray:
        """Opacity per element for this tick; ``None`` means the pointer hit nothing."""

        array = _as_segments(segments)
        if query_point is None:
            return np.full(array.shape[0], self.idle_opacity, dtype=np.float64)
        mask = self.active_mask(query_point, array)
        return np.where(mask, self.active_opacity, self.dimmed_opacity)


def random_connections(
    points: np.ndarray | Sequence[Sequence[float]],
    count: int = 300,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Draw ``count`` random point pairs as segments, skipping self pairs.

    Skipped draws are not retried, so fewer than ``count`` segments may come back.
    """

    cloud = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if cloud.shape[0] == 0 or count <= 0:
        return np.zeros((0, 2, 3), dtype=np.float64)
    rng = rng or np.random.default_rng()
    a = rng.integers(0, cloud.shape[0], size=count)
    b = rng.integers(0, cloud.shape[0], size=count)
    keep = a != b
    LOGGER.debug("random_connections requested=%d kept=%d", count, int(keep.sum()))
    return np.stack([cloud[a[keep]], cloud[b[keep]]], axis=1)


__all__ = ["ProximityHighlighter", "random_connections", "segments_from_bridges"]
