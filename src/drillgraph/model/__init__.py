"""
Graph model for drillgraph.

Normalizes raw scanner output into enriched, immutable snapshots.
"""

from .enrich import GraphModel, detect_layer, enrich, make_label

__all__ = ["GraphModel", "detect_layer", "enrich", "make_label"]
