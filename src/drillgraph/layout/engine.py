"""
Layout computation.

``LayoutEngine`` turns a visible subgraph into 2D positions using one of
four strategies, each implemented by a handler that prepares bodies and
forces for a ``Simulation``:

- force: link + charge + centre + collision + x/y positioning
- hierarchical: bands by semantic group, architectural layer or dependency
  depth, wrapped into rows that fit the viewport width, ``fy`` pinned per
  row, collision nudge
- circular: equal angles on a circle, collision-only refinement
- clustered: per-cluster centroids on a ring, link + collision

Every completed layout ends with a strict overlap-resolution pass so that
no two nodes overlap, whatever the simulation managed. A layout whose
overlaps could not all be resolved is reported as unsettled.

The engine owns at most one live ``SimulationHandle``. Starting a new one
cancels the previous handle, and a generation token makes any tick on a
stale handle a no-op.
"""

import copy
import logging
import math
import random
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..config import LayoutConfig
from ..core.graph import GraphIndex
from ..core.types import (
    GROUP_ORDER,
    LAYER_ORDER,
    Edge,
    LayoutStrategy,
    Node,
    NodeKind,
)
from .forces import (
    Body,
    CenterForce,
    CollisionForce,
    Force,
    LinkForce,
    ManyBodyForce,
    PositionForce,
)
from .simulation import INITIAL_ANGLE, Position, Simulation, phyllotaxis

logger = logging.getLogger(__name__)

SEPARATION_SLACK = 1e-3


class Bounds(BaseModel):
    """Viewport the layout is computed for."""
    width: float = Field(800.0, gt=0)
    height: float = Field(600.0, gt=0)

    model_config = ConfigDict(frozen=True)

    @property
    def center(self) -> Position:
        return self.width / 2, self.height / 2


class LayoutResult(BaseModel):
    """Positions plus convergence information for one layout run."""
    strategy: LayoutStrategy
    positions: Dict[str, Tuple[float, float]] = Field(default_factory=dict)
    settled: bool = True
    iterations: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.positions

    def position(self, node_id: str) -> Optional[Position]:
        return self.positions.get(node_id)


@dataclass
class Prepared:
    """What a strategy handler hands to the simulation."""
    bodies: List[Body]
    forces: List[Force]
    alpha: float = 1.0


StrategyHandler = Callable[
    [Sequence[Node], Sequence[Edge], Bounds, LayoutConfig, Dict[str, Position], random.Random],
    Prepared,
]


# =============================================================================
# Strategy handlers
# =============================================================================

def _make_bodies(nodes: Sequence[Node]) -> List[Body]:
    return [
        Body(id=n.id, radius=n.size, importance=n.importance_score, index=i)
        for i, n in enumerate(nodes)
    ]


def _links(edges: Sequence[Edge]) -> List[Tuple[str, str]]:
    return [(e.source, e.target) for e in edges]


def force_layout(nodes, edges, bounds, cfg, initial, rng) -> Prepared:
    """Organic layout for sparse, larger graphs. Seeds from ``initial`` when given."""
    cx, cy = bounds.center
    bodies = _make_bodies(nodes)
    neighbours: Dict[str, List[str]] = defaultdict(list)
    for e in edges:
        neighbours[e.source].append(e.target)
        neighbours[e.target].append(e.source)

    placed = 0
    for body in bodies:
        if body.id in initial:
            body.x, body.y = initial[body.id]
            placed += 1

    for body in bodies:
        if body.id in initial:
            continue
        anchors = [initial[n] for n in neighbours[body.id] if n in initial]
        if anchors:
            body.x = sum(p[0] for p in anchors) / len(anchors) + (rng.random() - 0.5) * 10
            body.y = sum(p[1] for p in anchors) / len(anchors) + (rng.random() - 0.5) * 10
        else:
            body.x, body.y = phyllotaxis(body.index, cx, cy)

    strengths = [e.semantic_strength for e in edges]
    forces: List[Force] = [
        LinkForce(
            _links(edges),
            distance=lambda i: cfg.link_distance_base + cfg.link_distance_span / (1 + strengths[i]),
        ),
        ManyBodyForce(
            strength=lambda b: cfg.charge_base + cfg.charge_per_importance * b.importance,
            distance_max=cfg.charge_distance_max,
        ),
        CenterForce(cx, cy),
        CollisionForce(
            radius=lambda b: b.radius + cfg.collision_margin,
            iterations=cfg.collision_iterations,
        ),
        PositionForce("x", lambda b: cx, cfg.center_strength),
        PositionForce("y", lambda b: cy, cfg.center_strength),
    ]

    alpha = cfg.warm_start_alpha if bodies and placed * 2 >= len(bodies) else 1.0
    return Prepared(bodies=bodies, forces=forces, alpha=alpha)


def _band_ranks(nodes: Sequence[Node], edges: Sequence[Edge]) -> Dict[str, int]:
    """
    Band rank per node: architectural layer order when every node is a
    synthetic layer node, else semantic group order. When every node shares
    one group, ranks follow dependency depth instead.
    """
    if all(n.kind == NodeKind.LAYER for n in nodes):
        order = {layer: i for i, layer in enumerate(LAYER_ORDER)}
        return {n.id: order[n.layer] for n in nodes}

    if len({n.group for n in nodes}) > 1:
        order = {group: i for i, group in enumerate(GROUP_ORDER)}
        return {n.id: order[n.group] for n in nodes}

    index = GraphIndex.build((n.id for n in nodes), ((e.source, e.target, None) for e in edges))
    return index.depths()


def _wrap_rows(members: Sequence[Node], width: float, gap: float) -> List[List[Tuple[Node, float]]]:
    """Left-to-right sweep at ``size_i + size_j + gap`` spacing, wrapping at ``width``."""
    rows: List[List[Tuple[Node, float]]] = []
    row: List[Tuple[Node, float]] = []
    for node in members:
        x = node.size
        if row:
            prev, prev_x = row[-1]
            x = prev_x + prev.size + node.size + gap
            if x + node.size > width:
                rows.append(row)
                row, x = [], node.size
        row.append((node, x))
    if row:
        rows.append(row)

    centred = []
    for row in rows:
        last, last_x = row[-1]
        offset = max((width - last_x - last.size) / 2, 0.0)
        centred.append([(node, x + offset) for node, x in row])
    return centred


def hierarchical_layout(nodes, edges, bounds, cfg, initial, rng) -> Prepared:
    """
    Layered layout, bands ordered by ``_band_ranks``.

    The first band is sorted by importance, later ones by the barycentre of
    their already placed neighbours. A band wider than the viewport wraps
    onto extra rows; when there are more bands than rows fit in the
    viewport, adjacent bands are merged. Rows have ``fy`` pinned, so the
    collision nudge only ever moves bodies along x.
    """
    gap = 2 * cfg.layer_collision_margin + SEPARATION_SLACK
    largest = max((n.size for n in nodes), default=0.0)

    ranks = _band_ranks(nodes, edges)
    distinct = sorted(set(ranks.values()))
    fits = max(1, int(bounds.height // (2 * largest + gap))) if nodes else 1
    slots = min(fits, len(distinct))
    slot_of = {rank: i * slots // len(distinct) for i, rank in enumerate(distinct)}

    bands: Dict[int, List[Node]] = defaultdict(list)
    for n in nodes:
        bands[slot_of[ranks[n.id]]].append(n)

    neighbours: Dict[str, List[str]] = defaultdict(list)
    for e in edges:
        neighbours[e.source].append(e.target)
        neighbours[e.target].append(e.source)

    x_of: Dict[str, float] = {}
    rows: List[List[Tuple[Node, float]]] = []
    for slot in sorted(bands):
        members = bands[slot]
        if not x_of:
            members.sort(key=lambda n: (-n.importance_score, n.id))
        else:
            def barycentre(n: Node) -> float:
                placed = [x_of[m] for m in neighbours[n.id] if m in x_of]
                return sum(placed) / len(placed) if placed else bounds.width / 2
            members.sort(key=lambda n: (barycentre(n), n.id))

        for row in _wrap_rows(members, bounds.width, gap):
            rows.append(row)
            x_of.update((node.id, x) for node, x in row)

    halves = [max(node.size for node, _ in row) for row in rows]
    used = sum(2 * h for h in halves) + gap * (len(rows) - 1)
    spare = max((bounds.height - used) / (len(rows) + 1), 0.0)

    bodies_by_id = {b.id: b for b in _make_bodies(nodes)}
    y = 0.0
    for i, row in enumerate(rows):
        y += spare + halves[i] + (halves[i - 1] + gap if i else 0.0)
        for node, x in row:
            body = bodies_by_id[node.id]
            body.x, body.y = x, y
            body.fy = y

    forces: List[Force] = [
        CollisionForce(
            radius=lambda b: b.radius + cfg.layer_collision_margin,
            iterations=cfg.collision_iterations,
        ),
    ]
    bodies = [bodies_by_id[n.id] for n in nodes]
    return Prepared(bodies=bodies, forces=forces, alpha=cfg.warm_start_alpha)


def circular_layout(nodes, edges, bounds, cfg, initial, rng) -> Prepared:
    """Equal angles on one circle, grouped by semantic group."""
    cx, cy = bounds.center
    bodies = _make_bodies(nodes)
    group_rank = {g: i for i, g in enumerate(GROUP_ORDER)}
    ordered = sorted(zip(nodes, bodies), key=lambda nb: (group_rank[nb[0].group], nb[0].id))

    largest = max((n.size for n in nodes), default=0.0)
    radius = max(min(bounds.width, bounds.height) / 2 - cfg.circular_margin, largest)
    count = len(ordered)
    for i, (_, body) in enumerate(ordered):
        if count == 1:
            body.x, body.y = cx, cy
            continue
        angle = 2 * math.pi * i / count - math.pi / 2
        body.x = cx + radius * math.cos(angle)
        body.y = cy + radius * math.sin(angle)

    forces: List[Force] = [
        CollisionForce(
            radius=lambda b: b.radius + cfg.collision_margin,
            iterations=cfg.collision_iterations,
        ),
    ]
    return Prepared(bodies=bodies, forces=forces, alpha=cfg.warm_start_alpha)


def cluster_key(node: Node) -> str:
    """Owning file, else first path segment, else ``root``."""
    if node.file_id:
        return node.file_id
    if node.path:
        segments = [s for s in node.path.replace("\\", "/").split("/") if s]
        if segments:
            return segments[0]
    return "root"


def clustered_layout(nodes, edges, bounds, cfg, initial, rng) -> Prepared:
    cx, cy = bounds.center
    bodies = _make_bodies(nodes)
    clusters: Dict[str, List[Body]] = defaultdict(list)
    for node, body in zip(nodes, bodies):
        clusters[cluster_key(node)].append(body)

    keys = sorted(clusters)
    ring = min(bounds.width, bounds.height) / 4
    for k, key in enumerate(keys):
        if len(keys) == 1:
            centre = (cx, cy)
        else:
            angle = 2 * math.pi * k / len(keys)
            centre = (cx + ring * math.cos(angle), cy + ring * math.sin(angle))

        members = clusters[key]
        largest = max(b.radius for b in members)
        member_radius = max(cfg.cluster_member_radius, len(members) * largest / math.pi)
        for i, body in enumerate(members):
            if len(members) == 1:
                body.x, body.y = centre
                continue
            angle = 2 * math.pi * i / len(members)
            body.x = centre[0] + member_radius * math.cos(angle)
            body.y = centre[1] + member_radius * math.sin(angle)

    forces: List[Force] = [
        LinkForce(_links(edges), distance=lambda i: cfg.cluster_link_distance),
        CollisionForce(
            radius=lambda b: b.radius + cfg.cluster_collision_margin,
            iterations=cfg.collision_iterations,
        ),
    ]
    return Prepared(bodies=bodies, forces=forces, alpha=cfg.warm_start_alpha)


STRATEGY_HANDLERS: Dict[LayoutStrategy, StrategyHandler] = {
    LayoutStrategy.FORCE: force_layout,
    LayoutStrategy.HIERARCHICAL: hierarchical_layout,
    LayoutStrategy.CIRCULAR: circular_layout,
    LayoutStrategy.CLUSTERED: clustered_layout,
}


# =============================================================================
# Overlap resolution
# =============================================================================

def _separate(a: Body, b: Body, need: float, pair_index: int) -> bool:
    """Push one overlapping pair apart along whichever axes are free."""
    dx, dy = b.x - a.x, b.y - a.y
    dist = math.hypot(dx, dy)

    move_x = a.fx is None or b.fx is None
    move_y = a.fy is None or b.fy is None
    if not (move_x or move_y):
        return False

    if move_x and move_y:
        if dist < 1e-9:
            angle = INITIAL_ANGLE * (pair_index + 1)
            ux, uy = math.cos(angle), math.sin(angle)
        else:
            ux, uy = dx / dist, dy / dist
        gap = need - dist + SEPARATION_SLACK
        shift_x, shift_y = ux * gap, uy * gap
    elif move_x:
        target = math.sqrt(max(need * need - dy * dy, 0.0)) + SEPARATION_SLACK
        sign = math.copysign(1.0, dx) if dx else 1.0
        shift_x, shift_y = sign * (target - abs(dx)), 0.0
    else:
        target = math.sqrt(max(need * need - dx * dx, 0.0)) + SEPARATION_SLACK
        sign = math.copysign(1.0, dy) if dy else 1.0
        shift_x, shift_y = 0.0, sign * (target - abs(dy))

    _split(a, b, shift_x, "x")
    _split(a, b, shift_y, "y")
    return True


def _split(a: Body, b: Body, shift: float, axis: str) -> None:
    if not shift:
        return
    a_free = getattr(a, "f" + axis) is None
    b_free = getattr(b, "f" + axis) is None
    if a_free and b_free:
        setattr(a, axis, getattr(a, axis) - shift / 2)
        setattr(b, axis, getattr(b, axis) + shift / 2)
    elif a_free:
        setattr(a, axis, getattr(a, axis) - shift)
    elif b_free:
        setattr(b, axis, getattr(b, axis) + shift)


def resolve_overlaps(bodies: Sequence[Body], config: Optional[LayoutConfig] = None) -> bool:
    """
    Enforce ``distance(i, j) >= radius_i + radius_j`` for every pair.

    Pinned axes are never moved. Returns True when no overlaps remain.
    """
    cfg = config or LayoutConfig()
    for _ in range(cfg.overlap_passes):
        moved = False
        pair_index = 0
        for i, a in enumerate(bodies):
            for b in bodies[i + 1:]:
                pair_index += 1
                need = a.radius + b.radius
                if math.hypot(b.x - a.x, b.y - a.y) >= need - cfg.overlap_tolerance:
                    continue
                moved = _separate(a, b, need, pair_index) or moved
        if not moved:
            return True
    logger.warning(f"Overlap resolution stopped after {cfg.overlap_passes} passes")
    return False


# =============================================================================
# Engine
# =============================================================================

class SimulationHandle:
    """
    Session-scoped handle on one running simulation.

    Ticks on a handle that has been superseded (its generation is no longer
    the engine's) are discarded and cancel the handle.
    """

    def __init__(self, engine: "LayoutEngine", simulation: Simulation, strategy: LayoutStrategy, generation: int):
        self._engine = engine
        self.simulation = simulation
        self.strategy = strategy
        self.generation = generation

    @property
    def is_current(self) -> bool:
        return self._engine.generation == self.generation and not self.simulation.cancelled

    @property
    def active(self) -> bool:
        return self.is_current and self.simulation.active

    @property
    def settled(self) -> bool:
        return self.simulation.settled

    def tick(self) -> Optional[float]:
        if self._engine.generation != self.generation:
            self.simulation.cancel()
            return None
        return self.simulation.tick()

    def run(self, max_ticks: Optional[int] = None) -> int:
        ticks = 0
        while self.active and (max_ticks is None or ticks < max_ticks):
            self.tick()
            ticks += 1
        return ticks

    async def run_async(self, ticks_per_yield: int = 1) -> int:
        if not self.is_current:
            return 0
        return await self.simulation.run_async(ticks_per_yield)

    def cancel(self) -> None:
        self.simulation.cancel()

    def pin(self, node_id: str, x: float, y: float) -> bool:
        return self.is_current and self.simulation.pin(node_id, x, y)

    def unpin(self, node_id: str) -> bool:
        return self.is_current and self.simulation.unpin(node_id)

    def positions(self) -> Dict[str, Position]:
        return self.simulation.positions()

    def result(self) -> LayoutResult:
        """Current positions with overlaps resolved (the live bodies are untouched)."""
        bodies = [copy.copy(b) for b in self.simulation.bodies]
        resolved = resolve_overlaps(bodies, self._engine.config)
        return LayoutResult(
            strategy=self.strategy,
            positions={b.id: (b.x, b.y) for b in bodies},
            settled=self.simulation.settled and resolved,
            iterations=self.simulation.iterations,
        )


class LayoutEngine:
    """Computes layouts and owns the live simulation handle."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or LayoutConfig()
        self.generation = 0
        self._handle: Optional[SimulationHandle] = None

    @property
    def handle(self) -> Optional[SimulationHandle]:
        return self._handle

    def _prepare(
        self,
        strategy: LayoutStrategy,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        bounds: Optional[Bounds],
        pins: Optional[Dict[str, Position]],
        initial_positions: Optional[Dict[str, Position]],
    ) -> Simulation:
        bounds = bounds or Bounds()
        ids = {n.id for n in nodes}
        kept = [e for e in edges if e.source in ids and e.target in ids]
        if len(kept) != len(edges):
            logger.debug(f"Layout ignoring {len(edges) - len(kept)} edges with unknown endpoints")

        initial = {k: v for k, v in (initial_positions or {}).items() if k in ids}
        rng = random.Random(self.config.seed)
        handler = STRATEGY_HANDLERS[LayoutStrategy(strategy)]
        prepared = handler(list(nodes), kept, bounds, self.config, initial, rng)

        for body in prepared.bodies:
            if pins and body.id in pins:
                body.fx, body.fy = pins[body.id]

        return Simulation(
            prepared.bodies,
            prepared.forces,
            config=self.config,
            alpha=prepared.alpha,
        )

    def compute_layout(
        self,
        strategy: LayoutStrategy,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        bounds: Optional[Bounds] = None,
        pins: Optional[Dict[str, Position]] = None,
        initial_positions: Optional[Dict[str, Position]] = None,
    ) -> LayoutResult:
        """Run a layout to completion. Deterministic for fixed input and seed."""
        strategy = LayoutStrategy(strategy)
        if not nodes:
            return LayoutResult(strategy=strategy)

        simulation = self._prepare(strategy, nodes, edges, bounds, pins, initial_positions)
        simulation.run()
        settled = resolve_overlaps(simulation.bodies, self.config) and simulation.settled

        logger.debug(
            f"{strategy.value} layout: {len(nodes)} nodes, {simulation.iterations} ticks, "
            f"settled={settled}"
        )
        return LayoutResult(
            strategy=strategy,
            positions=simulation.positions(),
            settled=settled,
            iterations=simulation.iterations,
        )

    def start(
        self,
        strategy: LayoutStrategy,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        bounds: Optional[Bounds] = None,
        pins: Optional[Dict[str, Position]] = None,
        initial_positions: Optional[Dict[str, Position]] = None,
    ) -> SimulationHandle:
        """Start an interactive simulation, cancelling any previous one."""
        self.cancel()
        strategy = LayoutStrategy(strategy)
        simulation = self._prepare(strategy, nodes, edges, bounds, pins, initial_positions)
        self._handle = SimulationHandle(self, simulation, strategy, self.generation)
        return self._handle

    def cancel(self) -> None:
        """Dispose of the live handle; its pending ticks become no-ops."""
        self.generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
