"""
Scoring module for drillgraph.

Relevance-to-query and focus-aware importance for enriched nodes.
"""

from .engine import NodeScore, ScoringContext, ScoringEngine

__all__ = ["NodeScore", "ScoringContext", "ScoringEngine"]
