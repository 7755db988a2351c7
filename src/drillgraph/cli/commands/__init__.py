"""
CLI commands for drillgraph.
"""

from . import flows, layout, stats

__all__ = ["flows", "layout", "stats"]
