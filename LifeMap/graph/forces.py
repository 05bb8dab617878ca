"""
Force-directed layout step for the experience relationship graph.

``step`` is pure: it takes a ``LayoutState`` and returns a new one. Node
identity is tracked by id through ``LayoutState.index`` so that pinning and
edge lookups stay correct regardless of node order.

Per step the forces are applied in this order, each adjusting velocities
(the centering force moves positions directly):

* link      - pulls linked pairs toward ``link_distance``
* charge    - pairwise repulsion scaled by ``charge_strength / distance``
* center    - translates the centroid onto the viewport centre
* collision - pushes apart nodes closer than their summed radii

then velocities are damped and integrated. Pinned nodes keep their pinned
position and zero velocity.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel

from LifeMap.config import Settings
from LifeMap.models import Experience, ExperienceRelationship

_INITIAL_RADIUS = 10.0
_INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


class GraphNode(BaseModel):
    id: str
    title: str = ""
    category: str = ""

    @classmethod
    def from_experience(cls, experience: Experience) -> "GraphNode":
        return cls(id=experience.id, title=experience.title, category=experience.category)


class GraphEdge(BaseModel):
    source_id: str
    target_id: str
    reason: str = ""

    @classmethod
    def from_relationship(cls, relationship: ExperienceRelationship) -> "GraphEdge":
        return cls(source_id=relationship.source_id, target_id=relationship.target_id, reason=relationship.reason)


@dataclass(frozen=True)
class ForceConfig:
    center_x: float
    center_y: float
    link_distance: float = 100.0
    charge_strength: float = -300.0
    collide_radius: float = 50.0
    velocity_decay: float = 0.4
    distance_min2: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings, width: Optional[float] = None, height: Optional[float] = None) -> "ForceConfig":
        width = settings.layout_width if width is None else width
        height = settings.layout_height if height is None else height
        return cls(
            center_x=width / 2,
            center_y=height / 2,
            link_distance=settings.layout_link_distance,
            charge_strength=settings.layout_charge_strength,
            collide_radius=settings.layout_collide_radius,
            velocity_decay=settings.layout_velocity_decay,
        )


@dataclass(frozen=True, eq=False)
class LayoutState:
    ids: Tuple[str, ...]
    positions: np.ndarray  # (n, 2)
    velocities: np.ndarray  # (n, 2)
    fixed: np.ndarray  # (n, 2); NaN rows are free nodes

    @cached_property
    def index(self) -> Dict[str, int]:
        return {node_id: i for i, node_id in enumerate(self.ids)}

    def position_of(self, node_id: str) -> Tuple[float, float]:
        x, y = self.positions[self.index[node_id]]
        return float(x), float(y)

    def is_pinned(self, node_id: str) -> bool:
        return not bool(np.isnan(self.fixed[self.index[node_id], 0]))

    @property
    def any_pinned(self) -> bool:
        return not bool(np.isnan(self.fixed[:, 0]).all())

    def pin(self, node_id: str, x: float, y: float) -> "LayoutState":
        i = self.index[node_id]
        fixed = self.fixed.copy()
        fixed[i] = (x, y)
        positions = self.positions.copy()
        positions[i] = (x, y)
        return replace(self, fixed=fixed, positions=positions)

    def unpin(self, node_id: str) -> "LayoutState":
        fixed = self.fixed.copy()
        fixed[self.index[node_id]] = np.nan
        return replace(self, fixed=fixed)


@dataclass(frozen=True, eq=False)
class LinkTable:
    """Edges resolved to node indices, with per-link strength and bias."""
    source: np.ndarray
    target: np.ndarray
    strength: np.ndarray
    bias: np.ndarray
    edges: Tuple[GraphEdge, ...] = field(default=())

    @classmethod
    def build(cls, index: Dict[str, int], edges: Sequence[GraphEdge]) -> "LinkTable":
        source = np.array([index[e.source_id] for e in edges], dtype=int)
        target = np.array([index[e.target_id] for e in edges], dtype=int)
        count = np.zeros(len(index), dtype=float)
        np.add.at(count, source, 1)
        np.add.at(count, target, 1)
        if len(edges):
            strength = 1.0 / np.minimum(count[source], count[target])
            bias = count[source] / (count[source] + count[target])
        else:
            strength = np.zeros(0)
            bias = np.zeros(0)
        return cls(source=source, target=target, strength=strength, bias=bias, edges=tuple(edges))


def dedupe_nodes(nodes: Iterable[GraphNode]) -> List[GraphNode]:
    seen = set()
    unique = []
    for node in nodes:
        if node.id in seen:
            continue
        seen.add(node.id)
        unique.append(node)
    return unique


def active_edges(nodes: Iterable[GraphNode], edges: Iterable[GraphEdge]) -> List[GraphEdge]:
    """Edges whose endpoints are both present. Self-loops carry no force and are dropped too."""
    ids = {n.id for n in nodes}
    return [
        e for e in edges
        if e.source_id in ids and e.target_id in ids and e.source_id != e.target_id
    ]


def initial_state(nodes: Sequence[GraphNode], center_x: float = 0.0, center_y: float = 0.0) -> LayoutState:
    """Seed nodes on a phyllotaxis spiral around the centre, at rest."""
    n = len(nodes)
    i = np.arange(n, dtype=float)
    radius = _INITIAL_RADIUS * np.sqrt(0.5 + i)
    angle = i * _INITIAL_ANGLE
    positions = np.column_stack((center_x + radius * np.cos(angle), center_y + radius * np.sin(angle)))
    return LayoutState(
        ids=tuple(node.id for node in nodes),
        positions=positions.reshape(n, 2),
        velocities=np.zeros((n, 2)),
        fixed=np.full((n, 2), np.nan),
    )


def _jiggle(rng: np.random.Generator, size=None):
    return (rng.random(size) - 0.5) * 1e-6


def apply_link(pos: np.ndarray, vel: np.ndarray, links: LinkTable, cfg: ForceConfig, alpha: float, rng: np.random.Generator) -> None:
    # Sequential: each link sees the velocity updates of the previous ones.
    for k in range(len(links.source)):
        s, t = links.source[k], links.target[k]
        x = pos[t, 0] + vel[t, 0] - pos[s, 0] - vel[s, 0]
        y = pos[t, 1] + vel[t, 1] - pos[s, 1] - vel[s, 1]
        if x == 0:
            x = _jiggle(rng)
        if y == 0:
            y = _jiggle(rng)
        length = math.sqrt(x * x + y * y)
        scale = (length - cfg.link_distance) / length * alpha * links.strength[k]
        x *= scale
        y *= scale
        b = links.bias[k]
        vel[t, 0] -= x * b
        vel[t, 1] -= y * b
        vel[s, 0] += x * (1 - b)
        vel[s, 1] += y * (1 - b)


def apply_charge(pos: np.ndarray, vel: np.ndarray, cfg: ForceConfig, alpha: float, rng: np.random.Generator) -> None:
    n = len(pos)
    if n < 2:
        return
    off_diagonal = ~np.eye(n, dtype=bool)
    # dx[i, j] is the offset from node i to node j.
    dx = pos[np.newaxis, :, 0] - pos[:, np.newaxis, 0]
    dy = pos[np.newaxis, :, 1] - pos[:, np.newaxis, 1]
    coincident_x = (dx == 0) & off_diagonal
    if coincident_x.any():
        dx[coincident_x] = _jiggle(rng, int(coincident_x.sum()))
    coincident_y = (dy == 0) & off_diagonal
    if coincident_y.any():
        dy[coincident_y] = _jiggle(rng, int(coincident_y.sum()))
    dist2 = dx * dx + dy * dy
    np.fill_diagonal(dist2, np.inf)
    dist2 = np.where(dist2 < cfg.distance_min2, np.sqrt(cfg.distance_min2 * dist2), dist2)
    weight = cfg.charge_strength * alpha / dist2
    vel[:, 0] += (dx * weight).sum(axis=1)
    vel[:, 1] += (dy * weight).sum(axis=1)


def apply_center(pos: np.ndarray, cfg: ForceConfig) -> None:
    if len(pos) == 0:
        return
    shift = pos.mean(axis=0) - (cfg.center_x, cfg.center_y)
    pos -= shift


def apply_collide(pos: np.ndarray, vel: np.ndarray, cfg: ForceConfig, rng: np.random.Generator) -> None:
    n = len(pos)
    r = cfg.collide_radius
    reach = r + r
    share = (r * r) / (r * r + r * r)
    for i in range(n):
        xi = pos[i, 0] + vel[i, 0]
        yi = pos[i, 1] + vel[i, 1]
        for j in range(i + 1, n):
            x = xi - pos[j, 0] - vel[j, 0]
            y = yi - pos[j, 1] - vel[j, 1]
            dist2 = x * x + y * y
            if dist2 >= reach * reach:
                continue
            if x == 0:
                x = _jiggle(rng)
                dist2 += x * x
            if y == 0:
                y = _jiggle(rng)
                dist2 += y * y
            dist = math.sqrt(dist2)
            scale = (reach - dist) / dist
            x *= scale
            y *= scale
            vel[i, 0] += x * share
            vel[i, 1] += y * share
            vel[j, 0] -= x * (1 - share)
            vel[j, 1] -= y * (1 - share)


def integrate(pos: np.ndarray, vel: np.ndarray, fixed: np.ndarray, cfg: ForceConfig) -> None:
    pinned = ~np.isnan(fixed[:, 0])
    free = ~pinned
    vel[free] *= 1 - cfg.velocity_decay
    pos[free] += vel[free]
    pos[pinned] = fixed[pinned]
    vel[pinned] = 0.0


def step(state: LayoutState, links: LinkTable, cfg: ForceConfig, alpha: float, rng: np.random.Generator) -> LayoutState:
    """Advance the layout by one tick at the given ``alpha``."""
    pos = state.positions.copy()
    vel = state.velocities.copy()
    apply_link(pos, vel, links, cfg, alpha, rng)
    apply_charge(pos, vel, cfg, alpha, rng)
    apply_center(pos, cfg)
    apply_collide(pos, vel, cfg, rng)
    integrate(pos, vel, state.fixed, cfg)
    return replace(state, positions=pos, velocities=vel)
