from __future__ import annotations

import json
import math

import pytest

from loghelix.layout import (
    CUSTOM_BRIDGE_COLOR,
    DEFAULT_BRIDGE_COLOR,
    HelixGeometry,
    LayoutConfig,
    bridge_color,
    build_helix,
)
from loghelix.store import LogEntry


def _entry(time: str, type: str = "click", message: str = "m") -> LogEntry:
    return LogEntry(time=time, page="/", type=type, message=message)


def test_empty_log_yields_empty_geometry() -> None:
    geometry = build_helix([])
    assert geometry.strand1 == ()
    assert geometry.strand2 == ()
    assert geometry.bridges == ()
    assert geometry.is_empty


def test_single_entry_collapses_to_one_sample() -> None:
    entry = _entry("2024-01-01T00:00:00Z", type="init", message="x")
    geometry = build_helix([entry])
    assert geometry.height == 0.0
    assert len(geometry.strand1) == len(geometry.strand2) == 1
    point = geometry.strand1[0]
    assert point.angle == 0.0
    assert point.position == pytest.approx((2.0, 0.0, 0.0))
    assert geometry.strand2[0].position == pytest.approx((-2.0, 0.0, 0.0))
    assert len(geometry.bridges) == 1
    bridge = geometry.bridges[0]
    assert bridge.color == 0x0000FF
    assert bridge.entry is entry
    assert bridge.entry_index == 0


def test_two_entries_one_hour_apart() -> None:
    click = _entry("2024-01-01T00:00:00Z", type="click")
    error = _entry("2024-01-01T01:00:00Z", type="error")
    geometry = build_helix([click, error])
    assert geometry.height == pytest.approx(1.0)
    assert geometry.total_samples == 5
    assert len(geometry.strand1) == len(geometry.strand2) == 6

    by_sample = {bridge.sample_index: bridge for bridge in geometry.bridges}
    assert by_sample[0].color == 0xFF00FF
    assert by_sample[0].entry is click
    assert by_sample[5].color == 0xFF0000
    assert by_sample[5].entry is error
    assert [bridge.color for bridge in geometry.bridges] == [0xFF00FF] * 3 + [0xFF0000] * 3


def test_strand_points_follow_parametric_helix() -> None:
    entries = [_entry(f"2024-01-01T00:0{i}:00Z") for i in range(3)]
    config = LayoutConfig()
    geometry = build_helix(entries, config)
    total = geometry.total_samples
    assert total == math.ceil(2 * config.density)
    for p1, p2 in zip(geometry.strand1, geometry.strand2):
        t = p1.sample_index / total
        angle = t * 3 * config.twist
        assert p1.angle == pytest.approx(angle)
        assert p2.angle == pytest.approx(angle + math.pi)
        assert p1.position == pytest.approx((2 * math.cos(angle), t * 2.0, 2 * math.sin(angle)))
        assert p2.position == pytest.approx((2 * math.cos(angle + math.pi), t * 2.0, 2 * math.sin(angle + math.pi)))
        assert (p1.strand, p2.strand) == (1, 2)


def test_all_equal_timestamps_collapse_to_zero_height() -> None:
    entries = [_entry("2024-01-01T00:00:00Z", type=t) for t in ("init", "click", "error", "pageChange")]
    geometry = build_helix(entries)
    assert geometry.height == 0.0
    assert geometry.total_samples == 0
    assert len(geometry.strand1) == len(geometry.strand2) == 1
    assert all(point.position[1] == 0.0 for point in geometry.strand1)
    assert all(point.position[1] == 0.0 for point in geometry.strand2)
    assert geometry.strand1[0].angle == 0.0
    assert [bridge.entry_index for bridge in geometry.bridges] == [0]


def test_all_equal_timestamps_match_first_entry_in_list_order() -> None:
    entries = [_entry("2024-01-01T00:00:00Z", type="error"), _entry("2024-01-01T00:00:00Z", type="init")]
    geometry = build_helix(entries)
    # zero height leaves a single sample, claimed by the first entry
    assert len(geometry.bridges) == 1
    assert {bridge.entry_index for bridge in geometry.bridges} == {0}
    assert {bridge.color for bridge in geometry.bridges} == {0xFF0000}


def test_matching_takes_first_entry_in_list_order() -> None:
    # y values with N=3, step 1: 0.0, 1.3, 2.0
    entries = [
        _entry("2024-01-01T00:00:00Z", type="click"),
        _entry("2024-01-01T00:00:39Z", type="error"),
        _entry("2024-01-01T00:01:00Z", type="init"),
    ]
    geometry = build_helix(entries, LayoutConfig(density=10))
    assert geometry.total_samples == 20
    by_sample = {bridge.sample_index: bridge for bridge in geometry.bridges}
    assert by_sample[0].entry_index == 0
    # y=1.0 is 0.3 from the second entry only
    assert by_sample[10].entry_index == 1
    # y=1.7 is 0.4 from the second entry and 0.3 from the third: first match wins
    assert by_sample[17].entry_index == 1
    assert by_sample[17].color == 0xFF0000
    assert by_sample[20].entry_index == 2
    # y=0.6 is 0.6 from the first entry and 0.7 from the second
    assert 6 not in by_sample


def test_unparseable_entries_are_dropped_but_indexed_against_input() -> None:
    entries = [
        _entry("garbage", type="error"),
        _entry("2024-01-01T00:00:00Z", type="init"),
        _entry("", type="click"),
        _entry("2024-01-01T00:10:00Z", type="pageChange"),
    ]
    geometry = build_helix(entries)
    assert geometry.height == pytest.approx(1.0)
    assert {bridge.entry_index for bridge in geometry.bridges} == {1, 3}
    assert geometry.bridges[0].color == 0x0000FF
    assert geometry.bridges[-1].color == 0x00FF00


def test_only_unparseable_entries_is_empty() -> None:
    geometry = build_helix([_entry("nope"), _entry("also nope")])
    assert geometry.is_empty
    assert geometry.bridges == ()


def test_layout_is_deterministic() -> None:
    entries = [
        _entry("2024-01-01T00:00:00Z", type="init"),
        _entry("2024-01-01T00:00:05Z", type="click"),
        _entry("2024-01-01T00:03:00Z", type="error"),
        _entry("2024-01-01T00:03:01Z", type="custom"),
    ]
    first = build_helix(entries)
    second = build_helix(list(entries))
    assert first == second
    assert json.dumps(first.to_payload()) == json.dumps(second.to_payload())


def test_bridge_density_not_above_sample_density() -> None:
    entries = [_entry(f"2024-01-01T00:00:{i:02d}Z") for i in range(0, 60, 7)]
    geometry = build_helix(entries)
    assert len(geometry.bridges) <= len(geometry.strand1)
    samples = [bridge.sample_index for bridge in geometry.bridges]
    assert samples == sorted(samples)
    assert len(set(samples)) == len(samples)


def test_config_parameters_scale_geometry() -> None:
    entries = [_entry("2024-01-01T00:00:00Z"), _entry("2024-01-01T00:01:00Z")]
    geometry = build_helix(entries, LayoutConfig(radius=3.0, step=2.0, density=2.0))
    assert geometry.height == pytest.approx(2.0)
    assert geometry.total_samples == 4
    assert geometry.strand1[0].position == pytest.approx((3.0, 0.0, 0.0))


def test_invalid_config_rejected() -> None:
    with pytest.raises(ValueError):
        LayoutConfig(step=0)
    with pytest.raises(ValueError):
        LayoutConfig(density=-1)
    with pytest.raises(ValueError):
        LayoutConfig(radius=-0.5)


def test_palette() -> None:
    assert bridge_color("init") == 0x0000FF
    assert bridge_color("pageChange") == 0x00FF00
    assert bridge_color("click") == 0xFF00FF
    assert bridge_color("error") == 0xFF0000
    assert bridge_color("custom") == DEFAULT_BRIDGE_COLOR
    assert bridge_color("anything") == DEFAULT_BRIDGE_COLOR
    assert CUSTOM_BRIDGE_COLOR not in (0x0000FF, 0x00FF00, 0xFF00FF, 0xFF0000, DEFAULT_BRIDGE_COLOR)


def test_as_arrays_shapes() -> None:
    entries = [_entry("2024-01-01T00:00:00Z"), _entry("2024-01-01T00:01:00Z", type="error")]
    arrays = build_helix(entries).as_arrays()
    assert arrays["strand1"].shape == (6, 3)
    assert arrays["strand2"].shape == (6, 3)
    assert arrays["bridge_segments"].shape == (6, 2, 3)
    assert arrays["bridge_colors"].shape == (6,)
    empty = HelixGeometry().as_arrays()
    assert empty["strand1"].shape == (0, 3)
    assert empty["bridge_segments"].shape == (0, 2, 3)
