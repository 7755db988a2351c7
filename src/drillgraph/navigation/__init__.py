"""
Navigation module for drillgraph.

Key Components:
- DrillNavigator: level state machine with breadcrumb history
- SymbolSource: async provider of symbol-level graphs
- visible_subgraph: what each level shows for the current focus
"""

from .levels import layer_node_id, visible_subgraph
from .navigator import DrillNavigator, SnapshotSymbolSource, SymbolSource, clamp_zoom

__all__ = [
    "DrillNavigator",
    "SnapshotSymbolSource",
    "SymbolSource",
    "clamp_zoom",
    "layer_node_id",
    "visible_subgraph",
]
