"""
Renderer-facing output records.

A ``RenderFrame`` is everything a downstream renderer needs for one draw:
positioned, styled nodes and edges plus navigation and flow state for the
breadcrumb and legend UI. Frames are plain data and serialize to JSON.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..core.types import ComplexityClass, LayoutStrategy, NavigationEntry, NavigationState, SemanticGroup
from ..flows.isolator import AnimationStep


class RenderNode(BaseModel):
    id: str
    x: float
    y: float
    size: float
    color: str
    group: SemanticGroup
    complexity_class: ComplexityClass
    label: str
    opacity: float = 1.0
    relevance: float = 0.0
    importance: float = 0.0
    halo: bool = False

    model_config = ConfigDict(frozen=True)


class RenderEdge(BaseModel):
    source: str
    target: str
    strength: float
    dash_pattern: Optional[str] = None
    color: str
    width: float
    opacity: float = 0.7

    model_config = ConfigDict(frozen=True)


class RenderFrame(BaseModel):
    nodes: List[RenderNode] = Field(default_factory=list)
    edges: List[RenderEdge] = Field(default_factory=list)
    navigation: NavigationState = Field(default_factory=NavigationState)
    breadcrumbs: List[NavigationEntry] = Field(default_factory=list)
    strategy: Optional[LayoutStrategy] = None
    settled: bool = True
    version: int = 0
    isolated_flow: Optional[str] = None
    active_flows: Tuple[str, ...] = ()
    flow_path: List[AnimationStep] = Field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.nodes

    def to_dict(self) -> dict:
        data = self.model_dump(mode="json")
        data["empty"] = self.empty
        return data
