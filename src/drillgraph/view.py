"""
GraphView: the query interface a UI drives.

Wires the pipeline together:

    raw snapshot -> enrich -> navigator (visible subgraph) -> selector
    -> layout -> styling -> RenderFrame

and keeps the interaction state (search, filter, selection, hover, flows,
colour and layout modes, drag pins). Any change to the visible subgraph
cancels the in-flight simulation; positions from the previous layout seed
the next one so nodes stay put across updates.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from .config import EngineConfig
from .core.errors import DrillGraphError, InvalidOptionError, NodeNotFoundError, PatchError
from .core.result import Err, Ok, Result
from .core.types import (
    ColorMode,
    Edge,
    Flow,
    GraphSnapshot,
    LayoutStrategy,
    Level,
    NavigationState,
    Node,
    NodeKind,
    PatchEvent,
)
from .events import (
    EdgeHovered,
    EventBus,
    FlowChanged,
    GraphUpdated,
    LayoutSettled,
    LayoutTicked,
    NavigationChanged,
    NodeHovered,
    NodeSelected,
)
from .flows.isolator import AnimationStep, FlowIsolator, FlowState, animation_schedule
from .incremental.patches import IncrementalGraph, PatchOutcome
from .layout.engine import Bounds, LayoutEngine, LayoutResult, SimulationHandle
from .layout.selector import SMART_MODE, resolve_strategy
from .layout.simulation import Position
from .model.enrich import GraphModel
from .navigation.levels import visible_subgraph
from .navigation.navigator import DrillNavigator, SnapshotSymbolSource, SymbolSource
from .render.models import RenderEdge, RenderFrame, RenderNode
from .render.styling import edge_opacity, edge_style, node_color, node_opacity
from .scoring.engine import ScoringContext, ScoringEngine

logger = logging.getLogger(__name__)


class GraphView:
    """One visualization instance. All state is in memory and per instance."""

    def __init__(
        self,
        raw_nodes: Iterable[Any] = (),
        raw_edges: Iterable[Any] = (),
        flows: Iterable[Flow] = (),
        config: Optional[EngineConfig] = None,
        symbol_source: Optional[SymbolSource] = None,
        bus: Optional[EventBus] = None,
    ):
        self.config = config or EngineConfig()
        self.model = GraphModel(self.config.scoring)
        self.graph = IncrementalGraph(raw_nodes, raw_edges, model=self.model)
        self.navigator = DrillNavigator(
            symbol_source or SnapshotSymbolSource(self.graph.snapshot), model=self.model
        )
        self.flows = FlowState(flows)
        self.isolator = FlowIsolator()
        self.layout_engine = LayoutEngine(self.config.layout)
        self.bus = bus or EventBus()

        self.search_term = ""
        self.kind_filter: Optional[NodeKind] = None
        self.selected: Set[str] = set()
        self.hovered_node: Optional[str] = None
        self.hovered_edge: Optional[Tuple[str, str]] = None
        self.color_mode = ColorMode.SEMANTIC
        self.layout_mode: Union[str, LayoutStrategy] = SMART_MODE
        self.bounds = Bounds()

        self._pins: Dict[str, Position] = {}
        self._positions: Dict[str, Position] = {}
        self._visible: Optional[GraphSnapshot] = None
        self._layout: Optional[LayoutResult] = None
        self._handle: Optional[SimulationHandle] = None

    # --- read-only state ---

    @property
    def snapshot(self) -> GraphSnapshot:
        return self.graph.snapshot

    @property
    def state(self) -> NavigationState:
        return self.navigator.state

    def _invalidate(self) -> None:
        """The visible subgraph (or its geometry) changed: drop caches, cancel simulation."""
        self._visible = None
        self._layout = None
        self._handle = None
        self.layout_engine.cancel()

    def _lookup(self, node_id: str) -> Result[Node, NodeNotFoundError]:
        node = self.visible_graph().node(node_id) or self.snapshot.node(node_id)
        if node is None:
            return Err(NodeNotFoundError(f"Unknown node: {node_id}", node_id=node_id))
        return Ok(node)

    # --- search, filter, selection, hover ---

    def set_search_term(self, term: Optional[str]) -> str:
        term = (term or "").strip()
        if term != self.search_term:
            self.search_term = term
            self._invalidate()
        return self.search_term

    def set_filter(self, kind: Union[str, NodeKind, None]) -> Result[Optional[NodeKind], InvalidOptionError]:
        if kind is None:
            parsed = None
        else:
            parsed = NodeKind.parse(kind)
            if parsed is None:
                return Err(InvalidOptionError(f"Unknown node kind: {kind}", option=str(kind)))
        if parsed != self.kind_filter:
            self.kind_filter = parsed
            self._invalidate()
        return Ok(self.kind_filter)

    def select_node(self, node_id: str, additive: bool = False) -> Result[Tuple[str, ...], NodeNotFoundError]:
        found = self._lookup(node_id)
        if found.is_err():
            return found
        if not additive:
            self.selected = set()
        self.selected.add(node_id)
        selection = tuple(sorted(self.selected))
        self.bus.emit(NodeSelected(node_id=node_id, selected=selection))
        return Ok(selection)

    def clear_selection(self) -> None:
        self.selected = set()

    def hover_node(self, node_id: Optional[str]) -> Result[Optional[str], NodeNotFoundError]:
        if node_id is not None:
            found = self._lookup(node_id)
            if found.is_err():
                return found
        self.hovered_node = node_id
        self.bus.emit(NodeHovered(node_id=node_id))
        return Ok(node_id)

    def hover_edge(self, source: Optional[str], target: Optional[str] = None) -> Result[Optional[Tuple[str, str]], DrillGraphError]:
        if source is None:
            self.hovered_edge = None
            self.bus.emit(EdgeHovered())
            return Ok(None)
        if not self.visible_graph().index().has_edge(source, target):
            return Err(NodeNotFoundError(f"No visible edge {source} -> {target}", node_id=source))
        self.hovered_edge = (source, target)
        self.bus.emit(EdgeHovered(source=source, target=target))
        return Ok(self.hovered_edge)

    # --- navigation ---

    def _navigated(self, before: NavigationState) -> None:
        if self.navigator.state != before:
            self._invalidate()
            self.bus.emit(NavigationChanged(state=self.navigator.state))

    async def drill_down(self, node_id: str) -> Result[NavigationState, DrillGraphError]:
        found = self._lookup(node_id)
        if found.is_err():
            return found
        before = self.navigator.state
        result = await self.navigator.drill_down(found.value)
        self._navigated(before)
        return result

    def drill_up(self) -> NavigationState:
        before = self.navigator.state
        self.navigator.drill_up()
        self._navigated(before)
        return self.navigator.state

    def jump_to_breadcrumb(self, index: int) -> NavigationState:
        before = self.navigator.state
        self.navigator.jump_to_breadcrumb(index)
        self._navigated(before)
        return self.navigator.state

    def open(self, level: Union[str, Level], focus_node: Optional[str] = None) -> Result[NavigationState, DrillGraphError]:
        try:
            level = Level(level)
        except ValueError:
            return Err(InvalidOptionError(f"Unknown level: {level}", option=str(level)))
        before = self.navigator.state
        result = self.navigator.open(level, focus_node)
        self._navigated(before)
        return result

    def set_zoom(self, zoom: float) -> NavigationState:
        return self.navigator.set_zoom(zoom)

    def reset(self) -> NavigationState:
        before = self.navigator.state
        self.navigator.reset()
        self.selected = set()
        if self.flows.isolated is not None:
            self.flows.clear_isolation()
            self._invalidate()
            self._emit_flows()
        self._navigated(before)
        return self.navigator.state

    # --- flows ---

    def set_flows(self, flows: Iterable[Flow]) -> None:
        self.flows.set_flows(flows)
        self._invalidate()
        self._emit_flows()

    def _emit_flows(self) -> None:
        self.bus.emit(FlowChanged(active=tuple(sorted(self.flows.active)), isolated=self.flows.isolated))

    def toggle_flow(self, flow_id: str) -> Result:
        was_isolated = self.flows.isolated is not None
        result = self.flows.toggle(flow_id)
        if result.is_ok():
            if was_isolated:
                self._invalidate()
            self._emit_flows()
        return result

    def isolate_flow(self, flow_id: str) -> Result:
        result = self.flows.isolate(flow_id)
        if result.is_ok():
            self._invalidate()
            self._emit_flows()
        return result

    def clear_isolation(self) -> None:
        if self.flows.isolated is not None:
            self.flows.clear_isolation()
            self._invalidate()
            self._emit_flows()

    # --- updates and modes ---

    def apply_patch(self, event: Union[PatchEvent, Dict[str, Any]]) -> Result[PatchOutcome, PatchError]:
        if not isinstance(event, PatchEvent):
            try:
                event = PatchEvent.model_validate(event)
            except ValueError as e:
                return Err(PatchError(f"Malformed patch event: {e}"))

        result = self.graph.apply(event)
        if result.is_err():
            logger.warning(f"Patch rejected: {result.error}")
            return result

        outcome = result.value
        if outcome.invalidated_file_id:
            self.navigator.invalidate_symbols(outcome.invalidated_file_id)
        if isinstance(self.navigator.symbol_source, SnapshotSymbolSource):
            self.navigator.symbol_source.snapshot = outcome.snapshot
        self._invalidate()
        self.bus.emit(GraphUpdated(
            version=outcome.snapshot.version,
            node_count=len(outcome.snapshot.nodes),
            edge_count=len(outcome.snapshot.edges),
        ))
        return result

    def set_color_mode(self, mode: Union[str, ColorMode]) -> Result[ColorMode, InvalidOptionError]:
        try:
            self.color_mode = ColorMode(mode)
        except ValueError:
            return Err(InvalidOptionError(f"Unknown color mode: {mode}", option=str(mode)))
        return Ok(self.color_mode)

    def set_layout_mode(self, mode: Union[str, LayoutStrategy]) -> Result[str, InvalidOptionError]:
        if mode != SMART_MODE:
            try:
                mode = LayoutStrategy(mode)
            except ValueError:
                return Err(InvalidOptionError(f"Unknown layout mode: {mode}", option=str(mode)))
        if mode != self.layout_mode:
            self.layout_mode = mode
            self._layout = None
            self._handle = None
            self.layout_engine.cancel()
        return Ok(str(mode))

    def set_bounds(self, width: float, height: float) -> Result[Bounds, InvalidOptionError]:
        if width <= 0 or height <= 0:
            return Err(InvalidOptionError(f"Bounds must be positive, got {width}x{height}", option="bounds"))
        bounds = Bounds(width=width, height=height)
        if bounds != self.bounds:
            self.bounds = bounds
            self._layout = None
            self._handle = None
            self.layout_engine.cancel()
        return Ok(self.bounds)

    # --- drag ---

    def pin_node(self, node_id: str, x: float, y: float) -> Result[Position, NodeNotFoundError]:
        found = self._lookup(node_id)
        if found.is_err():
            return found
        self._pins[node_id] = (x, y)
        if self._handle is not None and self._handle.is_current:
            self._handle.pin(node_id, x, y)
        else:
            self._layout = None
        return Ok((x, y))

    def unpin_node(self, node_id: str) -> bool:
        if self._pins.pop(node_id, None) is None:
            return False
        if self._handle is not None and self._handle.is_current:
            self._handle.unpin(node_id)
        return True

    # --- computation ---

    def visible_graph(self) -> GraphSnapshot:
        """The subgraph currently on screen, after flow isolation, kind filter and search."""
        if self._visible is not None:
            return self._visible

        isolated = self.flows.isolated_flow
        if isolated is not None:
            graph = self.isolator.isolate(isolated, self.snapshot)
        else:
            graph = visible_subgraph(self.snapshot, self.state, self.navigator.symbols, self.model)

        if self.kind_filter is not None:
            graph = graph.subgraph(n.id for n in graph.nodes if n.kind == self.kind_filter)

        if self.search_term:
            scorer = ScoringEngine(self.config.scoring)
            graph = graph.subgraph(
                n.id for n in graph.nodes if scorer.relevance(n, self.search_term) > 0
            )

        self._visible = graph
        return graph

    def _strategy(self, graph: GraphSnapshot) -> LayoutStrategy:
        return resolve_strategy(
            self.layout_mode, graph.nodes, graph.edges, self.state.level, self.config.selector
        )

    def layout(self) -> LayoutResult:
        """Run (or reuse) a full layout of the visible subgraph."""
        if self._layout is not None:
            return self._layout
        graph = self.visible_graph()
        result = self.layout_engine.compute_layout(
            self._strategy(graph),
            graph.nodes,
            graph.edges,
            bounds=self.bounds,
            pins=self._pins,
            initial_positions=self._positions,
        )
        self._positions.update(result.positions)
        self._layout = result
        return result

    def simulate(self) -> SimulationHandle:
        """Start an interactive simulation of the visible subgraph, cancelling any other."""
        graph = self.visible_graph()
        self._handle = self.layout_engine.start(
            self._strategy(graph),
            graph.nodes,
            graph.edges,
            bounds=self.bounds,
            pins=self._pins,
            initial_positions=self._positions,
        )
        self._layout = None
        return self._handle

    def step(self, ticks: int = 1) -> int:
        """Advance the live simulation, emitting tick and settle events. Returns ticks taken."""
        handle = self._handle
        if handle is None:
            return 0
        if not handle.is_current:
            self._handle = None
            return 0
        taken = 0
        for _ in range(ticks):
            energy = handle.tick()
            if energy is None:
                break
            taken += 1
            self.bus.emit(LayoutTicked(
                generation=handle.generation,
                iteration=handle.simulation.iterations,
                energy=energy,
            ))
        if not handle.simulation.active and handle.is_current:
            result = handle.result()
            self._positions.update(result.positions)
            self._layout = result
            self._handle = None
            self.bus.emit(LayoutSettled(
                generation=handle.generation,
                strategy=result.strategy,
                settled=result.settled,
                iterations=result.iterations,
            ))
        return taken

    def _flow_path(self, graph: GraphSnapshot) -> List[AnimationStep]:
        isolated = self.flows.isolated_flow
        flows = [isolated] if isolated else [self.flows.get(f) for f in sorted(self.flows.active)]
        path: List[Edge] = []
        for flow in flows:
            if flow is not None:
                path.extend(self.isolator.ordered_path(flow, graph))
        return animation_schedule(path)

    def frame(self) -> RenderFrame:
        """Everything a renderer needs. Never raises; failures yield an empty frame."""
        try:
            return self._build_frame()
        except Exception as e:
            logger.exception(f"Frame build failed: {e}")
            return RenderFrame(navigation=self.state, breadcrumbs=self.navigator.breadcrumbs())

    def _build_frame(self) -> RenderFrame:
        graph = self.visible_graph()
        base = dict(
            navigation=self.state,
            breadcrumbs=self.navigator.breadcrumbs(),
            version=self.snapshot.version,
            isolated_flow=self.flows.isolated,
            active_flows=tuple(sorted(self.flows.active)),
        )
        if graph.is_empty:
            return RenderFrame(**base)

        if self._handle is not None and self._handle.is_current:
            result = self._handle.result()
        else:
            result = self.layout()

        isolated_ids = None
        active_ids: Set[str] = set()
        isolated = self.flows.isolated_flow
        if isolated is not None:
            isolated_ids = self.isolator.member_ids(isolated, graph)
        elif self.flows.active:
            for flow_id in self.flows.active:
                active_ids |= self.isolator.member_ids(self.flows.get(flow_id), graph)

        scorer = ScoringEngine(self.config.scoring, index=graph.index())
        context = ScoringContext(search_term=self.search_term, selected_node_ids=frozenset(self.selected))

        nodes = []
        for node in graph.nodes:
            x, y = result.positions.get(node.id, self.bounds.center)
            score = scorer.score(node, context)
            nodes.append(RenderNode(
                id=node.id,
                x=x,
                y=y,
                size=node.size,
                color=node_color(node, self.color_mode, score.importance),
                group=node.group,
                complexity_class=node.complexity_class,
                label=node.label,
                opacity=node_opacity(node.id, isolated_ids, active_ids),
                relevance=score.relevance,
                importance=score.importance,
                halo=score.halo,
            ))

        edges = []
        for edge in graph.edges:
            style = edge_style(edge)
            edges.append(RenderEdge(
                source=edge.source,
                target=edge.target,
                strength=edge.semantic_strength,
                dash_pattern=style.dash_pattern,
                color=style.color,
                width=style.width,
                opacity=edge_opacity(edge, isolated_ids, active_ids),
            ))

        return RenderFrame(
            nodes=nodes,
            edges=edges,
            strategy=result.strategy,
            settled=result.settled,
            flow_path=self._flow_path(graph),
            **base,
        )
