"""
Core data types, graph index and result types.
"""

from .errors import (
    ConfigError,
    DrillGraphError,
    FlowNotFoundError,
    InvalidOptionError,
    NavigationError,
    NodeNotFoundError,
    PatchError,
    SymbolFetchError,
)
from .graph import GraphIndex
from .result import Err, Ok, Result
from .types import (
    Edge,
    Flow,
    GraphSnapshot,
    Level,
    NavigationState,
    Node,
    NodeKind,
    PatchEvent,
    RawEdge,
    RawNode,
    Relationship,
)

__all__ = [
    "ConfigError",
    "DrillGraphError",
    "Edge",
    "Err",
    "Flow",
    "FlowNotFoundError",
    "GraphIndex",
    "GraphSnapshot",
    "InvalidOptionError",
    "Level",
    "NavigationError",
    "NavigationState",
    "Node",
    "NodeKind",
    "NodeNotFoundError",
    "Ok",
    "PatchError",
    "PatchEvent",
    "RawEdge",
    "RawNode",
    "Relationship",
    "Result",
    "SymbolFetchError",
]
