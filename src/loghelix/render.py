"""Matplotlib rendering of helix geometry: still images and rotating GIFs."""

from __future__ import annotations

import io
import logging
import math
from typing import List, Optional, Sequence, Tuple

import imageio.v2 as iio
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from matplotlib import colors as mcolors
from mpl_toolkits.mplot3d.art3d import Line3DCollection

from .highlight import ProximityHighlighter
from .layout import BACKBONE_COLOR, HelixGeometry

LOGGER = logging.getLogger(__name__)

BACKGROUND = "#000000"


def hex_color(value: int) -> str:
    return f"#{int(value) & 0xFFFFFF:06x}"


def rotate_y(points: np.ndarray, angle: float) -> np.ndarray:
    """Rotate ``(..., 3)`` points about the vertical (y) axis."""

    if points.size == 0 or angle == 0.0:
        return points
    c, s = math.cos(angle), math.sin(angle)
    matrix = np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])
    return points @ matrix.T


def _to_plot(points: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    # Helix height runs along y; matplotlib draws z upward.
    return points[..., 0], points[..., 2], points[..., 1]


def new_axes(figsize: Tuple[float, float] = (6, 8)):
    fig = plt.figure(figsize=figsize, facecolor=BACKGROUND)
    ax = fig.add_subplot(1, 1, 1, projection="3d")
    return fig, ax


def render_helix(
    geometry: HelixGeometry,
    *,
    ax=None,
    opacities: Optional[Sequence[float]] = None,
    rotation: float = 0.0,
    point_size: float = 12.0,
    title: Optional[str] = None,
):
    """Draw both strands and all bridges onto a 3D axes and return it."""

    if ax is None:
        _, ax = new_axes()
    ax.set_facecolor(BACKGROUND)
    arrays = geometry.as_arrays()
    radius = max(geometry.config.radius, 1.0)

    for key in ("strand1", "strand2"):
        points = rotate_y(arrays[key], rotation)
        if points.shape[0] == 0:
            continue
        xs, ys, zs = _to_plot(points)
        ax.scatter(xs, ys, zs, s=point_size, color=hex_color(BACKBONE_COLOR), depthshade=False)

    segments = rotate_y(arrays["bridge_segments"], rotation)
    if segments.shape[0]:
        alphas = np.ones(segments.shape[0]) if opacities is None else np.asarray(opacities, dtype=float)
        if alphas.shape[0] != segments.shape[0]:
            raise ValueError(
                f"opacities length {alphas.shape[0]} does not match {segments.shape[0]} bridges"
            )
        rgba = [mcolors.to_rgba(hex_color(color), float(alpha)) for color, alpha in zip(arrays["bridge_colors"], alphas)]
        plot_segments = np.stack(_to_plot(segments), axis=-1)
        ax.add_collection3d(Line3DCollection(plot_segments, colors=rgba, linewidths=2.0))

    ax.set_xlim(-radius * 1.5, radius * 1.5)
    ax.set_ylim(-radius * 1.5, radius * 1.5)
    ax.set_zlim(-0.5, max(geometry.height, 1.0) + 0.5)
    ax.set_axis_off()
    if title:
        ax.set_title(title, color="#e6e1cf", fontsize=11, loc="left")
    return ax


def save_helix_png(geometry: HelixGeometry, path: str, *, dpi: int = 120, title: Optional[str] = None) -> None:
    fig, ax = new_axes()
    render_helix(geometry, ax=ax, title=title)
    fig.savefig(path, dpi=dpi, facecolor=BACKGROUND)
    plt.close(fig)
    LOGGER.debug("save_helix_png path=%s bridges=%d", path, len(geometry.bridges))


def animate_helix(
    geometry: HelixGeometry,
    out_gif: str,
    *,
    frames: int = 36,
    fps: int = 12,
    rotation_step: Optional[float] = None,
    query_points: Optional[Sequence[Optional[Sequence[float]]]] = None,
    highlighter: Optional[ProximityHighlighter] = None,
    dpi: int = 80,
) -> int:
    """Export a rotating GIF; returns the number of frames written.

    With ``query_points`` the highlighter runs once per frame against the
    rotated bridges; a ``None`` query point means the pointer hit nothing.
    """

    if frames <= 0:
        raise ValueError("frames must be positive")
    step = rotation_step if rotation_step is not None else 2 * math.pi / frames
    highlighter = highlighter or ProximityHighlighter()
    segments = geometry.as_arrays()["bridge_segments"]
    images: List[np.ndarray] = []
    for frame in range(frames):
        rotation = frame * step
        opacities = None
        if query_points is not None:
            query = query_points[frame % len(query_points)] if len(query_points) else None
            opacities = highlighter.update(query, rotate_y(segments, rotation))
        fig, ax = new_axes(figsize=(4, 5))
        render_helix(geometry, ax=ax, opacities=opacities, rotation=rotation)
        buffer = io.BytesIO()
        fig.savefig(buffer, format="png", dpi=dpi, facecolor=BACKGROUND)
        plt.close(fig)
        buffer.seek(0)
        images.append(iio.imread(buffer))

    iio.mimsave(out_gif, images, duration=1.0 / float(max(fps, 1)))
    LOGGER.debug("animate_helix path=%s frames=%d", out_gif, len(images))
    return len(images)


__all__ = ["animate_helix", "hex_color", "new_axes", "render_helix", "rotate_y", "save_helix_png"]
