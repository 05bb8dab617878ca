from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np

from LifeMap.config import Settings
from LifeMap.graph.forces import (
    ForceConfig,
    GraphEdge,
    GraphNode,
    LayoutState,
    LinkTable,
    active_edges,
    dedupe_nodes,
    initial_state,
    step,
)

log = logging.getLogger(__name__)

# Number of ticks alpha takes to cool from 1 to alpha_min when nothing reheats it.
_COOLING_TICKS = 300


class SimulationStatus(str, Enum):
    COLD = "cold"
    RUNNING = "running"
    SETTLED = "settled"
    TORN_DOWN = "torn_down"


class SimulationStateError(RuntimeError):
    pass


class EdgeSegment(NamedTuple):
    source_id: str
    target_id: str
    reason: str
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class LayoutFrame:
    """Positions published to the presentation layer after each tick."""
    tick: int
    alpha: float
    nodes: Dict[str, Tuple[float, float]]
    edges: List[EdgeSegment]


TickListener = Callable[[LayoutFrame], None]


class LayoutSimulation:
    """
    Drives ``forces.step`` with a cooling ``alpha``.

    cold -> running -> settled -> running (reheated by a drag) -> torn down.
    Once torn down the simulation cannot be used again.
    """

    def __init__(
        self,
        nodes: Iterable[GraphNode],
        edges: Iterable[GraphEdge],
        width: Optional[float] = None,
        height: Optional[float] = None,
        settings: Optional[Settings] = None,
        on_tick: Optional[TickListener] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.nodes = dedupe_nodes(nodes)
        self.edges = active_edges(self.nodes, edges)
        self.config = ForceConfig.from_settings(self.settings, width, height)

        self.alpha = 1.0
        self.alpha_min = self.settings.layout_alpha_min
        self.alpha_decay = 1 - self.alpha_min ** (1 / _COOLING_TICKS)
        self.alpha_target = 0.0

        self.state: LayoutState = initial_state(self.nodes, self.config.center_x, self.config.center_y)
        self._links = LinkTable.build(self.state.index, self.edges)
        self._rng = np.random.default_rng(seed)
        self._listeners: List[TickListener] = [on_tick] if on_tick else []
        self._wake: Optional[asyncio.Event] = None
        self.status = SimulationStatus.COLD
        self.tick_count = 0

    # --------------- state machine ----------------------------------------
    def _require_live(self) -> None:
        if self.status is SimulationStatus.TORN_DOWN:
            raise SimulationStateError("Simulation has been torn down; create a new one.")

    def start(self) -> None:
        if self.status is not SimulationStatus.COLD:
            raise SimulationStateError(f"Cannot start a simulation that is {self.status.value}.")
        self.status = SimulationStatus.RUNNING
        log.debug(f"Layout started with {len(self.nodes)} nodes and {len(self.edges)} edges")

    def _restart(self) -> None:
        if self.status is SimulationStatus.SETTLED:
            self.status = SimulationStatus.RUNNING
            log.debug("Layout reheated")
        if self._wake is not None:
            self._wake.set()

    def stop(self) -> None:
        """Tear down: stops any running loop and drops listeners."""
        if self.status is SimulationStatus.TORN_DOWN:
            return
        self.status = SimulationStatus.TORN_DOWN
        self._listeners.clear()
        if self._wake is not None:
            self._wake.set()
        log.debug(f"Layout torn down after {self.tick_count} ticks")

    def subscribe(self, listener: TickListener) -> None:
        self._require_live()
        self._listeners.append(listener)

    # --------------- stepping ---------------------------------------------
    def tick(self) -> LayoutFrame:
        if self.status is not SimulationStatus.RUNNING:
            raise SimulationStateError(f"Cannot tick a simulation that is {self.status.value}.")
        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
        self.state = step(self.state, self._links, self.config, self.alpha, self._rng)
        self.tick_count += 1
        if self.alpha < self.alpha_min:
            self.status = SimulationStatus.SETTLED
        frame = self.frame()
        for listener in list(self._listeners):
            listener(frame)
        return frame

    def run(self, max_ticks: Optional[int] = None) -> LayoutFrame:
        """Tick synchronously until settled (or ``max_ticks``)."""
        if self.status is SimulationStatus.COLD:
            self.start()
        self._require_live()
        ticks = 0
        while self.status is SimulationStatus.RUNNING:
            if max_ticks is not None and ticks >= max_ticks:
                break
            self.tick()
            ticks += 1
        return self.frame()

    async def run_async(self, frame_interval: Optional[float] = None) -> None:
        """
        Tick once per frame until torn down.

        While settled the loop waits for a reheat instead of spinning.
        """
        interval = self.settings.layout_frame_interval_s if frame_interval is None else frame_interval
        if self.status is SimulationStatus.COLD:
            self.start()
        self._require_live()
        self._wake = asyncio.Event()
        try:
            while self.status is not SimulationStatus.TORN_DOWN:
                if self.status is SimulationStatus.RUNNING:
                    self.tick()
                    await asyncio.sleep(interval)
                else:
                    self._wake.clear()
                    await self._wake.wait()
        finally:
            self._wake = None

    # --------------- dragging ---------------------------------------------
    def _require_node(self, node_id: str) -> None:
        if node_id not in self.state.index:
            raise SimulationStateError(f"Unknown node {node_id}.")

    def drag_start(self, node_id: str) -> None:
        self._require_live()
        self._require_node(node_id)
        if self.status is SimulationStatus.COLD:
            raise SimulationStateError("Cannot drag before the simulation has started.")
        x, y = self.state.position_of(node_id)
        self.state = self.state.pin(node_id, x, y)
        self.alpha_target = self.settings.layout_drag_alpha_target
        self._restart()

    def drag(self, node_id: str, x: float, y: float) -> None:
        self._require_live()
        self._require_node(node_id)
        if not self.state.is_pinned(node_id):
            raise SimulationStateError(f"Node {node_id} is not being dragged.")
        self.state = self.state.pin(node_id, x, y)

    def drag_end(self, node_id: str) -> None:
        self._require_live()
        self._require_node(node_id)
        self.state = self.state.unpin(node_id)
        # Other nodes may still be held.
        if not self.state.any_pinned:
            self.alpha_target = 0.0
        if self.status is SimulationStatus.SETTLED:
            self.alpha = max(self.alpha, self.settings.layout_drag_alpha_target)
        self._restart()

    # --------------- output -----------------------------------------------
    def positions(self) -> Dict[str, Tuple[float, float]]:
        return {node_id: self.state.position_of(node_id) for node_id in self.state.ids}

    def frame(self) -> LayoutFrame:
        nodes = self.positions()
        edges = [
            EdgeSegment(e.source_id, e.target_id, e.reason, *nodes[e.source_id], *nodes[e.target_id])
            for e in self.edges
        ]
        return LayoutFrame(tick=self.tick_count, alpha=self.alpha, nodes=nodes, edges=edges)
