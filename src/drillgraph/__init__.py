"""
drillgraph: Multi-level code dependency graph visualization engine.

Turns a scanned code graph into positioned, styled render frames that a
renderer can draw, with drill-down navigation across abstraction levels,
adaptive layout, semantic scoring and flow isolation.
"""

from .config import EngineConfig, load_config
from .core import (
    DrillGraphError,
    Err,
    Flow,
    GraphSnapshot,
    Level,
    NavigationState,
    Node,
    NodeKind,
    Ok,
    PatchEvent,
    Result,
)
from .events import EventBus
from .model import GraphModel, enrich
from .render import RenderFrame
from .view import GraphView

__version__ = "0.1.0"

__all__ = [
    "DrillGraphError",
    "EngineConfig",
    "Err",
    "EventBus",
    "Flow",
    "GraphModel",
    "GraphSnapshot",
    "GraphView",
    "Level",
    "NavigationState",
    "Node",
    "NodeKind",
    "Ok",
    "PatchEvent",
    "RenderFrame",
    "Result",
    "enrich",
    "load_config",
]
