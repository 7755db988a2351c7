"""
Flow isolation for drillgraph.

Filters the graph to a named trace of files and derives the ordered,
animation-ready edge path through it.
"""

from .isolator import AnimationStep, FlowIsolator, FlowState, animation_schedule

__all__ = ["AnimationStep", "FlowIsolator", "FlowState", "animation_schedule"]
