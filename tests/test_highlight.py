from __future__ import annotations

import numpy as np
import pytest

from loghelix.highlight import ProximityHighlighter, random_connections, segments_from_bridges
from loghelix.layout import build_helix
from loghelix.store import LogEntry


def _segments() -> np.ndarray:
    return np.array(
        [
            [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]],
            [[5.0, 0.0, 0.0], [6.0, 0.0, 0.0]],
            [[10.0, 0.0, 0.0], [3.5, 0.0, 0.0]],
        ]
    )


def test_update_marks_near_elements_active() -> None:
    highlighter = ProximityHighlighter()
    opacities = highlighter.update((2.0, 0.0, 0.0), _segments())
    assert opacities.tolist() == [1.0, 0.1, 1.0]


def test_threshold_is_strict() -> None:
    highlighter = ProximityHighlighter(threshold=2.0)
    opacities = highlighter.update((3.0, 0.0, 0.0), _segments())
    # distances to the nearest endpoint: 2.0, 2.0, 0.5
    assert opacities.tolist() == [0.1, 0.1, 1.0]


def test_no_hit_resets_to_idle_opacity() -> None:
    highlighter = ProximityHighlighter(idle_opacity=0.5)
    assert highlighter.update(None, _segments()).tolist() == [0.5, 0.5, 0.5]


def test_empty_collections() -> None:
    highlighter = ProximityHighlighter()
    assert highlighter.update((0.0, 0.0, 0.0), []).shape == (0,)
    assert highlighter.nearest((0.0, 0.0, 0.0), []) is None
    assert highlighter.active_indices(None, _segments()) == []


def test_nearest_and_active_indices() -> None:
    highlighter = ProximityHighlighter()
    assert highlighter.nearest((5.4, 0.0, 0.0), _segments()) == 1
    assert highlighter.active_indices((4.5, 0.0, 0.0), _segments()) == [1, 2]


def test_bridges_are_accepted_directly() -> None:
    entries = [
        LogEntry(time="2024-01-01T00:00:00Z", page="/", type="init", message="a"),
        LogEntry(time="2024-01-01T00:05:00Z", page="/", type="click", message="b"),
    ]
    geometry = build_helix(entries)
    highlighter = ProximityHighlighter()
    query = geometry.bridges[0].start
    from_bridges = highlighter.update(query, list(geometry.bridges))
    from_array = highlighter.update(query, segments_from_bridges(geometry.bridges))
    assert np.array_equal(from_bridges, from_array)
    assert from_bridges[0] == 1.0


def test_invalid_inputs() -> None:
    with pytest.raises(ValueError):
        ProximityHighlighter(threshold=0)
    with pytest.raises(ValueError):
        ProximityHighlighter().update((0.0, 0.0, 0.0), np.zeros((2, 3)))


def test_random_connections_skip_self_pairs_and_are_seeded() -> None:
    points = np.arange(30, dtype=float).reshape(10, 3)
    first = random_connections(points, count=50, rng=np.random.default_rng(1))
    second = random_connections(points, count=50, rng=np.random.default_rng(1))
    assert np.array_equal(first, second)
    assert first.ndim == 3 and first.shape[1:] == (2, 3)
    assert 0 < first.shape[0] <= 50
    assert not np.any(np.all(first[:, 0] == first[:, 1], axis=1))


def test_random_connections_degenerate_cloud() -> None:
    assert random_connections(np.zeros((1, 3)), count=5, rng=np.random.default_rng(0)).shape == (0, 2, 3)
    assert random_connections([], count=5).shape == (0, 2, 3)
