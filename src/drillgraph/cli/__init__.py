"""
Command line interface for drillgraph.
"""

from .main import main

__all__ = ["main"]
