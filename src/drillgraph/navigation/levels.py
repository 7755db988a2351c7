"""
Visible-subgraph rules per abstraction level.

- project: one synthetic Layer node per architectural layer, with
  aggregated metadata and aggregated cross-layer edges
- module: Module/File nodes under the focused layer or module path
- file: File nodes in the focused node's directory, plus files directly
  connected to the focus
- symbol: the cached symbol graph of the focused file
"""

import logging
import posixpath
from collections import Counter, defaultdict
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..core.types import (
    LAYER_ORDER,
    ArchitecturalLayer,
    GraphSnapshot,
    Level,
    NavigationState,
    Node,
    NodeKind,
)
from ..model.enrich import GraphModel

logger = logging.getLogger(__name__)

LAYER_NODE_PREFIX = "layer-"
STRUCTURE_KINDS = frozenset({NodeKind.MODULE, NodeKind.FILE})


def layer_node_id(layer: ArchitecturalLayer) -> str:
    return f"{LAYER_NODE_PREFIX}{layer.value}"


def _scope_path(node: Node) -> str:
    return (node.path or node.id).replace("\\", "/").rstrip("/")


def _is_under(node: Node, prefix: str) -> bool:
    path = _scope_path(node)
    return path == prefix or path.startswith(prefix + "/")


def project_view(snapshot: GraphSnapshot, model: Optional[GraphModel] = None) -> GraphSnapshot:
    """Collapse files into one node per architectural layer."""
    model = model or GraphModel()
    sources = [n for n in snapshot.nodes if n.kind == NodeKind.FILE]
    if not sources:
        sources = [n for n in snapshot.nodes if n.kind != NodeKind.LAYER]

    by_layer: Dict[ArchitecturalLayer, List[Node]] = defaultdict(list)
    for node in sources:
        by_layer[node.layer].append(node)
    layer_of = {n.id: n.layer for n in sources}

    raw_nodes: List[Dict[str, Any]] = []
    for layer in LAYER_ORDER:
        members = by_layer.get(layer)
        if not members:
            continue
        raw_nodes.append({
            "id": layer_node_id(layer),
            "kind": NodeKind.LAYER.value,
            "name": layer.value.title(),
            "layer": layer.value,
            "metadata": {
                "complexity": sum(m.metadata.complexity for m in members) / len(members),
                "reference_count": sum(m.metadata.reference_count for m in members),
                "line_count": sum(m.metadata.line_count for m in members),
                "has_tests": any(m.metadata.has_tests for m in members),
                "description": f"{len(members)} files",
            },
        })

    relationships: Dict[Tuple[ArchitecturalLayer, ArchitecturalLayer], Counter] = defaultdict(Counter)
    for edge in snapshot.edges:
        source, target = layer_of.get(edge.source), layer_of.get(edge.target)
        if source is None or target is None or source == target:
            continue
        relationships[(source, target)][edge.relationship.value] += 1

    raw_edges = [
        {
            "source": layer_node_id(source),
            "target": layer_node_id(target),
            "relationship": counts.most_common(1)[0][0],
            "weight": sum(counts.values()),
        }
        for (source, target), counts in relationships.items()
    ]

    enriched = model.enrich(raw_nodes, raw_edges, version=snapshot.version)
    nodes = tuple(
        node.model_copy(update={"members": tuple(m.id for m in by_layer[node.layer])})
        for node in enriched.nodes
    )
    return GraphSnapshot(nodes=nodes, edges=enriched.edges, version=snapshot.version)


def module_view(snapshot: GraphSnapshot, focus: Optional[Node]) -> GraphSnapshot:
    candidates = [n for n in snapshot.nodes if n.kind in STRUCTURE_KINDS]
    if focus is None:
        keep = candidates
    elif focus.kind == NodeKind.LAYER:
        keep = [n for n in candidates if n.layer == focus.layer]
    else:
        prefix = _scope_path(focus)
        keep = [n for n in candidates if _is_under(n, prefix)]
    return snapshot.subgraph(n.id for n in keep)


def file_view(snapshot: GraphSnapshot, focus: Optional[Node]) -> GraphSnapshot:
    files = [n for n in snapshot.nodes if n.kind == NodeKind.FILE]
    if focus is None:
        return snapshot.subgraph(n.id for n in files)

    if focus.kind == NodeKind.MODULE:
        directory = _scope_path(focus)
    else:
        directory = posixpath.dirname(_scope_path(focus))

    connected = snapshot.index().neighbors(focus.id)
    keep = {
        n.id for n in files
        if n.id == focus.id
        or posixpath.dirname(_scope_path(n)) == directory
        or n.id in connected
    }
    return snapshot.subgraph(keep)


def symbol_view(state: NavigationState, symbols: Mapping[str, GraphSnapshot]) -> GraphSnapshot:
    if state.focus_node and state.focus_node in symbols:
        return symbols[state.focus_node]
    logger.debug(f"No cached symbol graph for '{state.focus_node}'")
    return GraphSnapshot()


def visible_subgraph(
    snapshot: GraphSnapshot,
    state: NavigationState,
    symbols: Optional[Mapping[str, GraphSnapshot]] = None,
    model: Optional[GraphModel] = None,
) -> GraphSnapshot:
    """The subgraph to lay out for ``state``."""
    if state.level == Level.SYMBOL:
        return symbol_view(state, symbols or {})

    if state.level == Level.PROJECT:
        return project_view(snapshot, model)

    focus = snapshot.node(state.focus_node) if state.focus_node else None
    if focus is None and state.focus_node:
        # Synthetic layer nodes only exist in the project view.
        if state.focus_node.startswith(LAYER_NODE_PREFIX):
            focus = project_view(snapshot, model).node(state.focus_node)
        if focus is None:
            logger.debug(f"Focus node '{state.focus_node}' not in snapshot, showing full level")

    if state.level == Level.MODULE:
        return module_view(snapshot, focus)
    return file_view(snapshot, focus)
