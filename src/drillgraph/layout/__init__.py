"""
Layout module for drillgraph.

Key Components:
- selector: picks a strategy from graph shape and abstraction level
- forces / simulation: d3-style steppable force simulation
- engine: the four layout strategies and overlap resolution
"""

from .engine import (
    STRATEGY_HANDLERS,
    Bounds,
    LayoutEngine,
    LayoutResult,
    SimulationHandle,
    resolve_overlaps,
)
from .selector import resolve_strategy, select_strategy, strategy_for_shape
from .simulation import Simulation

__all__ = [
    "STRATEGY_HANDLERS",
    "Bounds",
    "LayoutEngine",
    "LayoutResult",
    "Simulation",
    "SimulationHandle",
    "resolve_overlaps",
    "resolve_strategy",
    "select_strategy",
    "strategy_for_shape",
]
