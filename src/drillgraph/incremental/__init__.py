"""
Incremental updates for drillgraph.
"""

from .patches import ApplyReport, IncrementalGraph, PatchOutcome

__all__ = ["ApplyReport", "IncrementalGraph", "PatchOutcome"]
