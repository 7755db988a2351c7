"""
Render output for drillgraph: styling rules and frame records.
"""

from .models import RenderEdge, RenderFrame, RenderNode
from .styling import (
    COLOR_HANDLERS,
    EDGE_STYLES,
    EdgeStyle,
    edge_opacity,
    edge_style,
    node_color,
    node_opacity,
)

__all__ = [
    "COLOR_HANDLERS",
    "EDGE_STYLES",
    "EdgeStyle",
    "RenderEdge",
    "RenderFrame",
    "RenderNode",
    "edge_opacity",
    "edge_style",
    "node_color",
    "node_opacity",
]
