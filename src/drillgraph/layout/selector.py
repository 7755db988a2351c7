"""
Layout strategy selection.

Picks a layout from graph shape alone (first match wins):
1. project level -> hierarchical (architectural layers as bands)
2. fewer than 20 nodes -> circular
3. density above 0.3 -> hierarchical
4. otherwise -> force

Selection never looks at UI state beyond its arguments, so the same shape
always yields the same strategy.
"""

from typing import Optional, Sequence, Union

from ..config import SelectorConfig
from ..core.graph import density
from ..core.types import Edge, LayoutStrategy, Level, Node

SMART_MODE = "smart"


def strategy_for_shape(
    node_count: int,
    edge_count: int,
    level: Level,
    config: Optional[SelectorConfig] = None,
) -> LayoutStrategy:
    cfg = config or SelectorConfig()
    if level == Level.PROJECT:
        return LayoutStrategy.HIERARCHICAL
    if node_count < cfg.small_graph_node_count:
        return LayoutStrategy.CIRCULAR
    if density(node_count, edge_count) > cfg.dense_graph_density:
        return LayoutStrategy.HIERARCHICAL
    return LayoutStrategy.FORCE


def select_strategy(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    level: Level,
    config: Optional[SelectorConfig] = None,
) -> LayoutStrategy:
    """Choose a strategy for the visible subgraph. Dangling edges are not counted."""
    ids = {n.id for n in nodes}
    edge_count = sum(1 for e in edges if e.source in ids and e.target in ids)
    return strategy_for_shape(len(ids), edge_count, level, config)


def resolve_strategy(
    mode: Union[str, LayoutStrategy, None],
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    level: Level,
    config: Optional[SelectorConfig] = None,
) -> LayoutStrategy:
    """
    Honour an explicit layout mode, deferring to the selector for ``smart``
    (or no mode at all). Unrecognised modes also defer.
    """
    if mode is None or mode == SMART_MODE:
        return select_strategy(nodes, edges, level, config)
    try:
        return LayoutStrategy(mode)
    except ValueError:
        return select_strategy(nodes, edges, level, config)
