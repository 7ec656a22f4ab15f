"""Interactive add/remove of bridges kept in step with the log store."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional

from .layout import CUSTOM_BRIDGE_COLOR, Bridge, HelixGeometry, HelixPoint, LayoutConfig, build_helix
from .store import LogStore, LogType, StorageError

LOGGER = logging.getLogger(__name__)

CUSTOM_BRIDGE_MESSAGE = "Custom bridge added"


@dataclass
class RenderedHelix:
    """Mutable view state: what is currently on screen."""

    strand1: List[HelixPoint] = field(default_factory=list)
    strand2: List[HelixPoint] = field(default_factory=list)
    bridges: List[Bridge] = field(default_factory=list)

    @classmethod
    def from_geometry(cls, geometry: HelixGeometry) -> "RenderedHelix":
        return cls(
            strand1=list(geometry.strand1),
            strand2=list(geometry.strand2),
            bridges=list(geometry.bridges),
        )

    def snapshot(self, config: LayoutConfig | None = None) -> HelixGeometry:
        height = max((point.position[1] for point in self.strand1), default=0.0)
        return HelixGeometry(
            strand1=tuple(self.strand1),
            strand2=tuple(self.strand2),
            bridges=tuple(self.bridges),
            height=float(height),
            total_samples=max(len(self.strand1) - 1, 0),
            config=config or LayoutConfig(),
        )


class InteractiveMutationController:
    """Applies user add/remove actions to both the store and the rendered bridges.

    Custom bridges are appended at the tail of the rendered collection without
    a re-layout, and removal pops the last bridge together with the last log
    entry. Once natural bridges (several per entry) and custom bridges mix,
    the popped bridge and the popped entry need not belong together.
    """

    def __init__(
        self,
        store: LogStore,
        *,
        config: LayoutConfig | None = None,
        rng: random.Random | None = None,
        rendered: RenderedHelix | None = None,
    ) -> None:
        self.store = store
        self.config = config or LayoutConfig()
        self.rng = rng or random.Random()
        self.rendered = rendered if rendered is not None else RenderedHelix()

    def rebuild(self) -> HelixGeometry:
        geometry = build_helix(self.store.list(), self.config)
        self.rendered = RenderedHelix.from_geometry(geometry)
        return geometry

    def geometry(self) -> HelixGeometry:
        return self.rendered.snapshot(self.config)

    def add_bridge(self) -> Optional[Bridge]:
        pairs = min(len(self.rendered.strand1), len(self.rendered.strand2))
        if pairs == 0:
            LOGGER.debug("add_bridge skipped: no rendered backbone points")
            return None
        index = self.rng.randrange(pairs)
        position, entry = self.store.append_indexed(LogType.CUSTOM, CUSTOM_BRIDGE_MESSAGE)
        p1 = self.rendered.strand1[index]
        p2 = self.rendered.strand2[index]
        bridge = Bridge(
            start=p1.position,
            end=p2.position,
            color=CUSTOM_BRIDGE_COLOR,
            entry=entry,
            entry_index=position,
            sample_index=p1.sample_index,
            custom=True,
        )
        self.rendered.bridges.append(bridge)
        LOGGER.debug("add_bridge sample=%d bridges=%d entries=%d", index, len(self.rendered.bridges), position + 1)
        return bridge

    def remove_bridge(self) -> Optional[Bridge]:
        if not self.rendered.bridges or len(self.store) == 0:
            LOGGER.debug("remove_bridge skipped: bridges=%d", len(self.rendered.bridges))
            return None
        self.store.remove_last()
        bridge = self.rendered.bridges.pop()
        LOGGER.debug("remove_bridge bridges=%d custom=%s", len(self.rendered.bridges), bridge.custom)
        return bridge

    # UI-facing handlers: storage failures are reported, the view keeps its state.

    def on_add(self) -> bool:
        try:
            return self.add_bridge() is not None
        except StorageError as exc:
            LOGGER.warning("Add bridge failed, keeping current view: %s", exc)
            return False

    def on_remove(self) -> bool:
        try:
            return self.remove_bridge() is not None
        except StorageError as exc:
            LOGGER.warning("Remove bridge failed, keeping current view: %s", exc)
            return False


__all__ = ["CUSTOM_BRIDGE_MESSAGE", "InteractiveMutationController", "RenderedHelix"]
