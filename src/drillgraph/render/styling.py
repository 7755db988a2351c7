"""
Visual encoding for nodes and edges.

Colour modes are a closed set; each has exactly one handler registered in
``COLOR_HANDLERS``. Edge styles are looked up per relationship and their
width scales with semantic strength. Opacity encodes flow focus.
"""

from typing import AbstractSet, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict

from ..config import STRENGTH_MAX
from ..core.types import ArchitecturalLayer, ColorMode, ComplexityClass, Edge, Node, NodeKind, Relationship

NEUTRAL = "#6b7280"

KIND_COLORS: Dict[NodeKind, str] = {
    NodeKind.FILE: "#2563eb",
    NodeKind.MODULE: "#059669",
    NodeKind.FUNCTION: "#dc2626",
    NodeKind.CLASS: "#ea580c",
    NodeKind.VARIABLE: "#7c3aed",
    NodeKind.TYPE: "#c026d3",
    NodeKind.INTERFACE: "#0891b2",
    NodeKind.IMPORT: NEUTRAL,
    NodeKind.LAYER: "#475569",
}

COMPLEXITY_COLORS: Dict[ComplexityClass, str] = {
    ComplexityClass.LOW: "#22c55e",
    ComplexityClass.MEDIUM: "#eab308",
    ComplexityClass.HIGH: "#f97316",
    ComplexityClass.CRITICAL: "#ef4444",
}

LAYER_COLORS: Dict[ArchitecturalLayer, str] = {
    ArchitecturalLayer.PRESENTATION: "#3b82f6",
    ArchitecturalLayer.BUSINESS: "#10b981",
    ArchitecturalLayer.DATA: "#8b5cf6",
    ArchitecturalLayer.INFRASTRUCTURE: NEUTRAL,
    ArchitecturalLayer.UNKNOWN: "#94a3b8",
}

# (lower bound, colour), highest first
IMPORTANCE_BUCKETS = (
    (15.0, "#ef4444"),
    (10.0, "#f97316"),
    (5.0, "#eab308"),
    (0.0, "#94a3b8"),
)


class EdgeStyle(BaseModel):
    color: str
    width: float
    dash_pattern: Optional[str] = None

    model_config = ConfigDict(frozen=True)


EDGE_STYLES: Dict[Relationship, EdgeStyle] = {
    Relationship.DEFINES: EdgeStyle(color="#059669", width=3.0),
    Relationship.USES: EdgeStyle(color="#2563eb", width=2.0),
    Relationship.IMPORTS: EdgeStyle(color="#7c3aed", width=2.5, dash_pattern="8,4"),
    Relationship.EXPORTS: EdgeStyle(color="#ea580c", width=2.0, dash_pattern="3,3"),
    Relationship.EXTENDS: EdgeStyle(color="#dc2626", width=3.0),
    Relationship.IMPLEMENTS: EdgeStyle(color="#0891b2", width=2.0, dash_pattern="6,2"),
    Relationship.REFERENCES: EdgeStyle(color=NEUTRAL, width=1.5, dash_pattern="5,5"),
    Relationship.CONTAINS: EdgeStyle(color="#10b981", width=2.0),
}


# --- colour handlers, one per ColorMode ---

def semantic_color(node: Node, importance: float) -> str:
    return KIND_COLORS.get(node.kind, NEUTRAL)


def complexity_color(node: Node, importance: float) -> str:
    return COMPLEXITY_COLORS[node.complexity_class]


def importance_color(node: Node, importance: float) -> str:
    for lower, color in IMPORTANCE_BUCKETS:
        if importance >= lower:
            return color
    return IMPORTANCE_BUCKETS[-1][1]


def layer_color(node: Node, importance: float) -> str:
    return LAYER_COLORS[node.layer]


ColorHandler = Callable[[Node, float], str]

COLOR_HANDLERS: Dict[ColorMode, ColorHandler] = {
    ColorMode.SEMANTIC: semantic_color,
    ColorMode.COMPLEXITY: complexity_color,
    ColorMode.IMPORTANCE: importance_color,
    ColorMode.LAYER: layer_color,
}


def node_color(node: Node, mode: ColorMode, importance: Optional[float] = None) -> str:
    """Colour under ``mode``; ``importance`` defaults to the static score."""
    score = node.importance_score if importance is None else importance
    return COLOR_HANDLERS[ColorMode(mode)](node, score)


def edge_style(edge: Edge) -> EdgeStyle:
    """Relationship style with width scaled by semantic strength."""
    base = EDGE_STYLES[edge.relationship]
    width = base.width * (0.5 + edge.semantic_strength / STRENGTH_MAX)
    return base.model_copy(update={"width": round(width, 3)})


# --- flow focus ---

def node_opacity(
    node_id: str,
    isolated_ids: Optional[AbstractSet[str]] = None,
    active_ids: AbstractSet[str] = frozenset(),
) -> float:
    if isolated_ids is not None:
        return 1.0 if node_id in isolated_ids else 0.2
    if active_ids:
        return 1.0 if node_id in active_ids else 0.3
    return 1.0


def edge_opacity(
    edge: Edge,
    isolated_ids: Optional[AbstractSet[str]] = None,
    active_ids: AbstractSet[str] = frozenset(),
) -> float:
    if isolated_ids is not None:
        return 0.8 if edge.source in isolated_ids and edge.target in isolated_ids else 0.1
    if active_ids:
        return 1.0 if edge.source in active_ids and edge.target in active_ids else 0.3
    return 0.7
