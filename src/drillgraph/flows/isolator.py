"""
Flow isolation.

A flow is a named, ordered list of files tracing a path through the
codebase. This module filters a graph down to a flow, extracts the ordered
edge path that connects consecutive files (best effort: missing hops are
skipped), and schedules the staged animation along that path.

``FlowState`` tracks which flows are active and which one, if any, is
isolated.
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from pydantic import BaseModel, ConfigDict

from ..core.errors import FlowNotFoundError
from ..core.result import Err, Ok, Result
from ..core.types import Edge, Flow, GraphSnapshot

logger = logging.getLogger(__name__)

DEFAULT_STAGGER = 0.3
DEFAULT_DURATION = 1.5


class AnimationStep(BaseModel):
    """One particle travelling along one edge of a flow path."""
    index: int
    source: str
    target: str
    start: float
    end: float

    model_config = ConfigDict(frozen=True)


class FlowIsolator:
    """Pure filtering and path extraction over a snapshot."""

    def member_ids(self, flow: Flow, graph: GraphSnapshot) -> Set[str]:
        files = set(flow.ordered_file_ids)
        # Layer nodes count as members when they aggregate a flow file.
        return {
            n.id for n in graph.nodes
            if n.file_id in files or n.id in files or files.intersection(n.members)
        }

    def isolate(self, flow: Flow, graph: GraphSnapshot, include_neighbors: bool = False) -> GraphSnapshot:
        """Nodes belonging to the flow's files, and the edges among them."""
        keep = self.member_ids(flow, graph)
        if include_neighbors and keep:
            index = graph.index()
            for node_id in list(keep):
                keep |= index.neighbors(node_id)
        return graph.subgraph(keep)

    def ordered_path(self, flow: Flow, graph: GraphSnapshot) -> List[Edge]:
        """
        One edge per consecutive pair of flow files. A forward edge is
        preferred, a reverse one accepted; the strongest candidate wins.
        """
        index = graph.index()
        path: List[Edge] = []
        files = flow.ordered_file_ids
        for current, following in zip(files, files[1:]):
            if current == following:
                continue
            candidates = index.edges_between(current, following) or index.edges_between(following, current)
            if not candidates:
                logger.debug(f"Flow '{flow.id}': no edge between {current} and {following}, skipping hop")
                continue
            path.append(max(candidates, key=lambda e: e.semantic_strength))
        return path


def animation_schedule(
    path: Iterable[Edge],
    stagger: float = DEFAULT_STAGGER,
    duration: float = DEFAULT_DURATION,
) -> List[AnimationStep]:
    """Staggered start times, one step per path edge."""
    return [
        AnimationStep(
            index=i,
            source=edge.source,
            target=edge.target,
            start=i * stagger,
            end=i * stagger + duration,
        )
        for i, edge in enumerate(path)
    ]


class FlowState:
    """
    Active and isolated flows.

    Toggling any flow clears isolation; isolating a flow makes it the only
    active one.
    """

    def __init__(self, flows: Iterable[Flow] = ()):
        self._flows: Dict[str, Flow] = {}
        self.active: Set[str] = set()
        self.isolated: Optional[str] = None
        self.set_flows(flows)

    @property
    def flows(self) -> List[Flow]:
        return list(self._flows.values())

    def set_flows(self, flows: Iterable[Flow]) -> None:
        self._flows = {f.id: f for f in flows}
        self.active &= set(self._flows)
        if self.isolated not in self._flows:
            self.isolated = None

    def get(self, flow_id: str) -> Optional[Flow]:
        return self._flows.get(flow_id)

    def toggle(self, flow_id: str) -> Result[FrozenSet[str], FlowNotFoundError]:
        if flow_id not in self._flows:
            return Err(FlowNotFoundError(f"Unknown flow: {flow_id}", flow_id=flow_id))
        if flow_id in self.active:
            self.active.discard(flow_id)
        else:
            self.active.add(flow_id)
        self.isolated = None
        return Ok(frozenset(self.active))

    def isolate(self, flow_id: str) -> Result[Flow, FlowNotFoundError]:
        flow = self._flows.get(flow_id)
        if flow is None:
            return Err(FlowNotFoundError(f"Unknown flow: {flow_id}", flow_id=flow_id))
        self.isolated = flow_id
        self.active = {flow_id}
        return Ok(flow)

    def clear_isolation(self) -> None:
        self.isolated = None

    @property
    def isolated_flow(self) -> Optional[Flow]:
        return self._flows.get(self.isolated) if self.isolated else None

    def active_file_ids(self) -> Set[str]:
        files: Set[str] = set()
        for flow_id in self.active:
            files.update(self._flows[flow_id].ordered_file_ids)
        return files
