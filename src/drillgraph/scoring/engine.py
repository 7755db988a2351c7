"""
Context-dependent node scoring.

Static metrics are computed once at enrichment. This module adds the parts
that depend on what the user is doing right now:
- relevance of a node to the current search term (0-1)
- importance boosted around the current selection ("focus halo")

Scores are pure functions of ``(node, context)``.
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import ScoringConfig
from ..core.graph import GraphIndex
from ..core.types import Node

logger = logging.getLogger(__name__)


class ScoringContext(BaseModel):
    """What the user is searching for and which nodes are selected."""
    search_term: str = ""
    selected_node_ids: FrozenSet[str] = Field(default_factory=frozenset)

    model_config = ConfigDict(frozen=True)

    @field_validator("search_term", mode="before")
    @classmethod
    def _normalize_term(cls, value):
        return (value or "").strip()


class NodeScore(BaseModel):
    node_id: str
    relevance: float = 0.0
    importance: float = 0.0
    halo: bool = False

    model_config = ConfigDict(frozen=True)


class ScoringEngine:
    """
    Scores nodes against a ``ScoringContext``.

    The optional ``GraphIndex`` supplies neighbourhoods for the selection
    boost. Without one, only directly selected nodes are boosted.
    """

    def __init__(self, config: Optional[ScoringConfig] = None, index: Optional[GraphIndex] = None):
        self.config = config or ScoringConfig()
        self.index = index

    def relevance(self, node: Node, search_term: str) -> float:
        term = (search_term or "").strip().lower()
        if not term:
            return 0.0

        cfg = self.config
        score = 0.0
        if term in node.name.lower() or term in node.label.lower():
            score += cfg.relevance_name_weight

        content = [node.id, node.path or ""] + node.metadata.text_fields()
        if any(term in text.lower() for text in content if text):
            score += cfg.relevance_content_weight

        if node.kind.value.lower() in term:
            score += cfg.relevance_kind_weight

        return max(0.0, min(score, 1.0))

    def importance(self, node: Node, selected: FrozenSet[str]) -> Tuple[float, bool]:
        """Returns ``(importance, halo)``."""
        cfg = self.config
        if node.id in selected:
            boosted = node.importance_score + cfg.focus_selected_boost
            return min(boosted, cfg.focus_importance_max), True

        if selected and self.index is not None:
            if self.index.neighbors(node.id) & selected:
                boosted = node.importance_score + cfg.focus_neighbor_boost
                return min(boosted, cfg.focus_importance_max), True

        return node.importance_score, False

    def score(self, node: Node, context: Optional[ScoringContext] = None) -> NodeScore:
        context = context or ScoringContext()
        importance, halo = self.importance(node, context.selected_node_ids)
        return NodeScore(
            node_id=node.id,
            relevance=self.relevance(node, context.search_term),
            importance=importance,
            halo=halo,
        )

    def score_all(self, nodes: Iterable[Node], context: Optional[ScoringContext] = None) -> Dict[str, NodeScore]:
        return {node.id: self.score(node, context) for node in nodes}

    def rank(self, nodes: Iterable[Node], context: Optional[ScoringContext] = None) -> List[NodeScore]:
        """Most relevant first, then most important, then by id."""
        scores = self.score_all(nodes, context).values()
        return sorted(scores, key=lambda s: (-s.relevance, -s.importance, s.node_id))
