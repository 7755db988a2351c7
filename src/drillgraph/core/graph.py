"""
Graph index backed by rustworkx.

``GraphIndex`` is a read-only structural view over a set of enriched (or
raw) nodes and edges. It manages:
- The bimap between string node IDs and rustworkx integer indices.
- Degree and neighbourhood queries used by scoring and layout.
- Cycle detection (strongly connected components) used to discount
  circular edges.
- Density, the shape measure the layout selector relies on.
"""

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Set, Tuple

import rustworkx as rx


class GraphIndex:
    """
    Structural index over node IDs and directed edges.

    Features:
    - O(1) id -> index lookup
    - In/out degree and undirected neighbourhood
    - Circular edge detection via strongly connected components
    """

    def __init__(self):
        self._graph = rx.PyDiGraph(multigraph=True)
        self._id_to_idx: Dict[str, int] = {}
        self._idx_to_id: Dict[int, str] = {}

    @classmethod
    def build(cls, node_ids: Iterable[str], edges: Iterable[Tuple[str, str, Any]]) -> "GraphIndex":
        """Build from ids and ``(source, target, payload)`` triples. Dangling edges are skipped."""
        index = cls()
        for node_id in node_ids:
            index.add_node(node_id)
        for source, target, payload in edges:
            index.add_edge(source, target, payload)
        return index

    @classmethod
    def from_snapshot(cls, snapshot) -> "GraphIndex":
        return cls.build(
            (n.id for n in snapshot.nodes),
            ((e.source, e.target, e) for e in snapshot.edges),
        )

    def add_node(self, node_id: str) -> None:
        if node_id in self._id_to_idx:
            return
        idx = self._graph.add_node(node_id)
        self._id_to_idx[node_id] = idx
        self._idx_to_id[idx] = node_id

    def add_edge(self, source_id: str, target_id: str, payload: Any = None) -> bool:
        """Add a directed edge. Returns False when an endpoint is unknown."""
        if source_id not in self._id_to_idx or target_id not in self._id_to_idx:
            return False
        self._graph.add_edge(self._id_to_idx[source_id], self._id_to_idx[target_id], payload)
        return True

    def has_node(self, node_id: str) -> bool:
        return node_id in self._id_to_idx

    def has_edge(self, source_id: str, target_id: str) -> bool:
        if source_id not in self._id_to_idx or target_id not in self._id_to_idx:
            return False
        return self._graph.has_edge(self._id_to_idx[source_id], self._id_to_idx[target_id])

    def edges_between(self, source_id: str, target_id: str) -> List[Any]:
        """Payloads of every edge from source to target."""
        if not self.has_edge(source_id, target_id):
            return []
        return list(
            self._graph.get_all_edge_data(self._id_to_idx[source_id], self._id_to_idx[target_id])
        )

    def in_degree(self, node_id: str) -> int:
        idx = self._id_to_idx.get(node_id)
        return 0 if idx is None else self._graph.in_degree(idx)

    def out_degree(self, node_id: str) -> int:
        idx = self._id_to_idx.get(node_id)
        return 0 if idx is None else self._graph.out_degree(idx)

    def degree(self, node_id: str) -> int:
        return self.in_degree(node_id) + self.out_degree(node_id)

    def successors(self, node_id: str) -> Set[str]:
        idx = self._id_to_idx.get(node_id)
        if idx is None:
            return set()
        return {self._idx_to_id[i] for i in self._graph.successor_indices(idx)}

    def predecessors(self, node_id: str) -> Set[str]:
        idx = self._id_to_idx.get(node_id)
        if idx is None:
            return set()
        return {self._idx_to_id[i] for i in self._graph.predecessor_indices(idx)}

    def neighbors(self, node_id: str) -> Set[str]:
        """Undirected neighbourhood, excluding the node itself."""
        result = self.successors(node_id) | self.predecessors(node_id)
        result.discard(node_id)
        return result

    def component_of(self) -> Dict[str, int]:
        """Map each node id to its strongly connected component number."""
        membership: Dict[str, int] = {}
        for number, component in enumerate(rx.strongly_connected_components(self._graph)):
            for idx in component:
                membership[self._idx_to_id[idx]] = number
        return membership

    def circular_pairs(self) -> Set[Tuple[str, str]]:
        """(source, target) pairs that sit on a directed cycle, self loops included."""
        membership = self.component_of()
        sizes: Dict[int, int] = defaultdict(int)
        for number in membership.values():
            sizes[number] += 1

        pairs = set()
        for u, v in self._graph.edge_list():
            source, target = self._idx_to_id[u], self._idx_to_id[v]
            if source == target:
                pairs.add((source, target))
            elif membership[source] == membership[target] and sizes[membership[source]] > 1:
                pairs.add((source, target))
        return pairs

    def depths(self) -> Dict[str, int]:
        """
        Longest-path depth of each node below the roots (nodes nothing points at).

        Each strongly connected component is collapsed first, so every node
        on a cycle shares one depth.
        """
        membership = self.component_of()
        condensed = rx.PyDiGraph()
        component_idx = {number: condensed.add_node(number) for number in set(membership.values())}
        for u, v in self._graph.edge_list():
            source = membership[self._idx_to_id[u]]
            target = membership[self._idx_to_id[v]]
            if source != target:
                condensed.add_edge(component_idx[source], component_idx[target], None)

        depth: Dict[int, int] = {}
        for idx in rx.topological_sort(condensed):
            depth[idx] = max((depth[p] + 1 for p in condensed.predecessor_indices(idx)), default=0)
        return {node_id: depth[component_idx[number]] for node_id, number in membership.items()}

    @property
    def node_count(self) -> int:
        return self._graph.num_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.num_edges()

    def density(self) -> float:
        """edgeCount / (n * (n - 1) / 2); 0.0 for fewer than two nodes."""
        return density(self.node_count, self.edge_count)

    def get_stats(self) -> Dict[str, Any]:
        orphans = len([
            idx for idx in self._graph.node_indices()
            if self._graph.in_degree(idx) == 0 and self._graph.out_degree(idx) == 0
        ])
        return {
            "total_nodes": self.node_count,
            "total_edges": self.edge_count,
            "density": round(self.density(), 4),
            "orphans": orphans,
            "backend": "rustworkx",
        }


def density(node_count: int, edge_count: int) -> float:
    if node_count < 2:
        return 0.0
    return edge_count / (node_count * (node_count - 1) / 2)

