"""
Graph enrichment.

Turns raw scanner output into an immutable ``GraphSnapshot``:
- Validates raw records, skipping malformed nodes and dangling edges
- Computes per-node metrics (complexity class, importance, semantic score,
  size, semantic group, architectural layer, label)
- Computes per-edge metrics (relationship type, semantic strength,
  circularity)

Enrichment is pure: the same input always yields the same snapshot.
"""

import logging
import re
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError

from ..config import ScoringConfig
from ..core.graph import GraphIndex
from ..core.types import (
    ArchitecturalLayer,
    ComplexityClass,
    Edge,
    GraphSnapshot,
    Node,
    NodeKind,
    NodeMetadata,
    RawEdge,
    RawNode,
    Relationship,
    RelationshipType,
    SemanticGroup,
)

logger = logging.getLogger(__name__)

RawNodeInput = Union[RawNode, Dict[str, Any]]
RawEdgeInput = Union[RawEdge, Dict[str, Any]]

KIND_GROUPS: Dict[NodeKind, SemanticGroup] = {
    NodeKind.FILE: SemanticGroup.FOUNDATION,
    NodeKind.LAYER: SemanticGroup.FOUNDATION,
    NodeKind.MODULE: SemanticGroup.STRUCTURE,
    NodeKind.CLASS: SemanticGroup.STRUCTURE,
    NodeKind.FUNCTION: SemanticGroup.ACTION,
    NodeKind.VARIABLE: SemanticGroup.DATA,
    NodeKind.TYPE: SemanticGroup.DEFINITION,
    NodeKind.INTERFACE: SemanticGroup.CONTRACT,
    NodeKind.IMPORT: SemanticGroup.DEPENDENCY,
}

RELATIONSHIP_TYPES: Dict[Relationship, RelationshipType] = {
    Relationship.IMPORTS: RelationshipType.STRUCTURAL,
    Relationship.EXPORTS: RelationshipType.STRUCTURAL,
    Relationship.USES: RelationshipType.FUNCTIONAL,
    Relationship.EXTENDS: RelationshipType.HIERARCHICAL,
    Relationship.IMPLEMENTS: RelationshipType.HIERARCHICAL,
    Relationship.DEFINES: RelationshipType.COMPOSITIONAL,
    Relationship.CONTAINS: RelationshipType.COMPOSITIONAL,
    Relationship.REFERENCES: RelationshipType.GENERAL,
}

LAYER_KEYWORDS: List[Tuple[ArchitecturalLayer, Tuple[str, ...]]] = [
    (ArchitecturalLayer.PRESENTATION, ("component", "page", "view", "ui", "layout")),
    (ArchitecturalLayer.BUSINESS, ("service", "business", "logic", "hook", "store")),
    (ArchitecturalLayer.DATA, ("model", "data", "api", "database", "repository")),
    (ArchitecturalLayer.INFRASTRUCTURE, ("util", "helper", "config", "lib", "shared", "common")),
]

CHILD_RELATIONSHIPS = frozenset({Relationship.CONTAINS, Relationship.DEFINES})
CALLABLE_KINDS = frozenset({NodeKind.FUNCTION, NodeKind.CLASS})

_CAMEL_SPLIT = re.compile(r"(?=[A-Z])")


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _singular(segment: str) -> str:
    if segment.endswith("ies"):
        return segment[:-3] + "y"
    if segment.endswith("s"):
        return segment[:-1]
    return segment


def detect_layer(path: Optional[str], explicit: Optional[str] = None) -> ArchitecturalLayer:
    """
    Classify a path into an architectural layer.

    An explicit, recognised layer wins. Otherwise path segments are checked
    left to right; ``services`` and ``utils`` match like ``service`` and ``util``.
    """
    if explicit:
        try:
            return ArchitecturalLayer(explicit.strip().lower())
        except ValueError:
            logger.debug(f"Ignoring unknown explicit layer '{explicit}'")

    if not path:
        return ArchitecturalLayer.UNKNOWN

    segments = [s for s in re.split(r"[\\/]", path.lower()) if s]
    # The file name itself is not a directory hint.
    for segment in segments[:-1] if len(segments) > 1 else segments:
        candidates = {segment, _singular(segment)}
        for layer, keywords in LAYER_KEYWORDS:
            if candidates.intersection(keywords):
                return layer
    return ArchitecturalLayer.UNKNOWN


def make_label(name: str, kind: NodeKind, config: ScoringConfig) -> str:
    """Shorten a display name while keeping its most meaningful parts."""
    max_length = config.label_max_file if kind == NodeKind.FILE else config.label_max_other
    if len(name) <= max_length:
        return name

    if "." in name:
        base, ext = name.rsplit(".", 1)
        available = max_length - len(ext) - 1
        if len(base) > available:
            return base[: max(available - 3, 1)] + "..." + "." + ext
        return name

    if re.search(r"[A-Z]", name):
        words = [w for w in _CAMEL_SPLIT.split(name) if w]
        if len(words) > 1:
            return words[0] + words[-1]

    return name[: max_length - 3] + "..."


def complexity_score(metadata: NodeMetadata, config: ScoringConfig) -> float:
    return (
        metadata.complexity
        + metadata.reference_count * config.complexity_reference_weight
        + metadata.line_count / config.complexity_lines_divisor
    )


def complexity_class(metadata: NodeMetadata, config: ScoringConfig) -> ComplexityClass:
    score = complexity_score(metadata, config)
    if score <= config.complexity_low_max:
        return ComplexityClass.LOW
    if score <= config.complexity_medium_max:
        return ComplexityClass.MEDIUM
    if score <= config.complexity_high_max:
        return ComplexityClass.HIGH
    return ComplexityClass.CRITICAL


def importance_score(kind: NodeKind, metadata: NodeMetadata, config: ScoringConfig) -> float:
    score = metadata.reference_count * config.importance_per_reference
    if metadata.is_public:
        score += config.importance_public_bonus
    if metadata.has_tests:
        score += config.importance_tested_bonus
    if kind in CALLABLE_KINDS:
        score += config.importance_callable_bonus
    return min(score, config.importance_max)


def semantic_score(
    metadata: NodeMetadata,
    children: int,
    degree: int,
    config: ScoringConfig,
) -> float:
    """Blend complexity, symbol density and relationship density into 0-10."""
    complexity_part = (
        min(metadata.complexity / config.semantic_complexity_saturation, 1.0)
        * config.semantic_complexity_weight
    )

    if metadata.line_count > 0:
        per_hundred_lines = children * 100.0 / metadata.line_count
    else:
        per_hundred_lines = float(children)
    density_part = (
        min(per_hundred_lines / config.semantic_symbol_density_saturation, 1.0)
        * config.semantic_symbol_density_weight
    )

    relation_part = (
        min(degree / config.semantic_relation_saturation, 1.0) * config.semantic_relation_weight
    )
    return clamp(complexity_part + density_part + relation_part, 0.0, 10.0)


def node_size(
    kind: NodeKind,
    cx_class: ComplexityClass,
    importance: float,
    config: ScoringConfig,
) -> float:
    base = config.size_base_by_kind.get(kind.value, config.size_default_base)
    multiplier = config.size_complexity_multiplier.get(cx_class.value, 1.0)
    size = base * multiplier * (1 + importance / config.size_importance_divisor)
    return clamp(size, config.size_min, config.size_max)


def edge_strength(
    relationship: Relationship,
    weight: float,
    circular: bool,
    config: ScoringConfig,
) -> float:
    base = config.strength_base_by_relationship.get(relationship.value, 1.0)
    factor = clamp(
        1 + (weight - 1) * config.strength_weight_step,
        config.strength_weight_factor_min,
        config.strength_weight_factor_max,
    )
    strength = base * factor
    if circular:
        strength *= config.strength_circular_discount
    return clamp(strength, 0.0, config.strength_max)


class GraphModel:
    """Normalizes raw graphs into enriched snapshots."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    def enrich(
        self,
        raw_nodes: Iterable[RawNodeInput],
        raw_edges: Iterable[RawEdgeInput],
        version: int = 0,
    ) -> GraphSnapshot:
        nodes = self._validate_nodes(raw_nodes)
        edges = self._validate_edges(raw_edges, nodes)

        index = GraphIndex.build(
            nodes.keys(),
            ((e.source, e.target, e) for e, _ in edges),
        )
        circular = index.circular_pairs()

        children: Counter = Counter()
        for edge, relationship in edges:
            if relationship in CHILD_RELATIONSHIPS:
                children[edge.source] += 1

        enriched_nodes = tuple(
            self._enrich_node(raw, kind, children[raw.id], index.degree(raw.id))
            for raw, kind in nodes.values()
        )
        enriched_edges = tuple(
            Edge(
                source=raw.source,
                target=raw.target,
                relationship=relationship,
                weight=raw.weight,
                relationship_type=RELATIONSHIP_TYPES[relationship],
                semantic_strength=edge_strength(
                    relationship, raw.weight, (raw.source, raw.target) in circular, self.config
                ),
                is_circular=(raw.source, raw.target) in circular,
            )
            for raw, relationship in edges
        )

        logger.debug(
            f"Enriched snapshot v{version}: {len(enriched_nodes)} nodes, {len(enriched_edges)} edges"
        )
        return GraphSnapshot(nodes=enriched_nodes, edges=enriched_edges, version=version)

    def summarize(self, snapshot: GraphSnapshot) -> Dict[str, Any]:
        """Counts by kind, relationship, complexity class and layer."""
        stats = snapshot.index().get_stats()
        return {
            "version": snapshot.version,
            "total_nodes": stats["total_nodes"],
            "total_edges": stats["total_edges"],
            "density": stats["density"],
            "orphans": stats["orphans"],
            "circular_edges": sum(1 for e in snapshot.edges if e.is_circular),
            "nodes_by_kind": dict(Counter(n.kind.value for n in snapshot.nodes)),
            "edges_by_relationship": dict(Counter(e.relationship.value for e in snapshot.edges)),
            "complexity": dict(Counter(n.complexity_class.value for n in snapshot.nodes)),
            "layers": dict(Counter(n.layer.value for n in snapshot.nodes)),
        }

    # --- internals ---

    def _validate_nodes(
        self, raw_nodes: Iterable[RawNodeInput]
    ) -> Dict[str, Tuple[RawNode, NodeKind]]:
        accepted: Dict[str, Tuple[RawNode, NodeKind]] = {}
        for position, item in enumerate(raw_nodes):
            raw = _coerce(RawNode, item)
            if raw is None:
                logger.warning(f"Skipping malformed node at position {position}")
                continue
            if raw.id in accepted:
                logger.warning(f"Duplicate node id '{raw.id}' ignored")
                continue

            kind = NodeKind.parse(raw.kind)
            if kind is None:
                logger.warning(f"Unknown kind '{raw.kind}' for node '{raw.id}', treating as File")
                kind = NodeKind.FILE
            accepted[raw.id] = (raw, kind)
        return accepted

    def _validate_edges(
        self,
        raw_edges: Iterable[RawEdgeInput],
        nodes: Dict[str, Any],
    ) -> List[Tuple[RawEdge, Relationship]]:
        accepted = []
        for position, item in enumerate(raw_edges):
            raw = _coerce(RawEdge, item)
            if raw is None:
                logger.warning(f"Skipping malformed edge at position {position}")
                continue
            if raw.source not in nodes or raw.target not in nodes:
                logger.warning(f"Dropping dangling edge {raw.source} -> {raw.target}")
                continue

            relationship = Relationship.parse(raw.relationship)
            if relationship is None:
                logger.warning(
                    f"Unknown relationship '{raw.relationship}' on {raw.source} -> {raw.target}, "
                    f"treating as references"
                )
                relationship = Relationship.REFERENCES
            accepted.append((raw, relationship))
        return accepted

    def _enrich_node(self, raw: RawNode, kind: NodeKind, children: int, degree: int) -> Node:
        cfg = self.config
        metadata = raw.metadata
        cx_class = complexity_class(metadata, cfg)
        importance = importance_score(kind, metadata, cfg)
        name = raw.display_name

        if kind == NodeKind.FILE:
            file_id = raw.id
        else:
            file_id = raw.file

        return Node(
            id=raw.id,
            kind=kind,
            name=name,
            label=make_label(name, kind, cfg),
            path=raw.path,
            file_id=file_id,
            layer=detect_layer(raw.path or raw.id, raw.layer),
            metadata=metadata,
            complexity_class=cx_class,
            importance_score=importance,
            semantic_score=semantic_score(metadata, children, degree, cfg),
            size=node_size(kind, cx_class, importance, cfg),
            group=KIND_GROUPS[kind],
        )


def _coerce(model, item):
    if isinstance(item, model):
        return item
    if not isinstance(item, dict):
        return None
    try:
        return model.model_validate(item)
    except ValidationError:
        return None


def enrich(
    raw_nodes: Iterable[RawNodeInput],
    raw_edges: Iterable[RawEdgeInput],
    version: int = 0,
    config: Optional[ScoringConfig] = None,
) -> GraphSnapshot:
    """Enrich with a default (or supplied) scoring configuration."""
    return GraphModel(config).enrich(raw_nodes, raw_edges, version=version)
