"""
Core type definitions for drillgraph.

Raw records (``RawNode``/``RawEdge``) mirror what the scanner hands us and
tolerate partial or noisy data. Enriched records (``Node``/``Edge``) are
frozen and carry the derived metrics the layout and rendering stages need.
Positions and drag pins are deliberately absent here: they are UI state and
live in the layout layer.
"""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    field_validator,
)


class NodeKind(StrEnum):
    """Categories of code artifacts in the knowledge graph."""
    FILE = "File"
    MODULE = "Module"
    FUNCTION = "Function"
    CLASS = "Class"
    VARIABLE = "Variable"
    INTERFACE = "Interface"
    TYPE = "Type"
    LAYER = "Layer"
    IMPORT = "Import"

    @classmethod
    def parse(cls, value: Any) -> Optional["NodeKind"]:
        """Case-insensitive lookup. Returns None for unknown kinds."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for kind in cls:
            if kind.value.lower() == text:
                return kind
        return None


class Relationship(StrEnum):
    """Relationships between code artifacts."""
    DEFINES = "defines"
    USES = "uses"
    IMPORTS = "imports"
    EXPORTS = "exports"
    EXTENDS = "extends"
    IMPLEMENTS = "implements"
    REFERENCES = "references"
    CONTAINS = "contains"

    @classmethod
    def parse(cls, value: Any) -> Optional["Relationship"]:
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        try:
            return cls(text)
        except ValueError:
            return None


class RelationshipType(StrEnum):
    """Coarse relationship family used for styling and legends."""
    STRUCTURAL = "structural"
    FUNCTIONAL = "functional"
    HIERARCHICAL = "hierarchical"
    COMPOSITIONAL = "compositional"
    GENERAL = "general"


class ComplexityClass(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SemanticGroup(StrEnum):
    """Coarse buckets, declared in layering priority order."""
    FOUNDATION = "foundation"
    STRUCTURE = "structure"
    ACTION = "action"
    DATA = "data"
    DEFINITION = "definition"
    CONTRACT = "contract"
    DEPENDENCY = "dependency"


GROUP_ORDER: Tuple[SemanticGroup, ...] = tuple(SemanticGroup)


class ArchitecturalLayer(StrEnum):
    """Architectural bands used at the project level."""
    PRESENTATION = "presentation"
    BUSINESS = "business"
    DATA = "data"
    INFRASTRUCTURE = "infrastructure"
    UNKNOWN = "unknown"


LAYER_ORDER: Tuple[ArchitecturalLayer, ...] = tuple(ArchitecturalLayer)


class Level(StrEnum):
    """Abstraction levels, from least to most specific."""
    PROJECT = "project"
    MODULE = "module"
    FILE = "file"
    SYMBOL = "symbol"

    @property
    def depth(self) -> int:
        return LEVEL_ORDER.index(self)

    def next(self) -> Optional["Level"]:
        """The next more specific level, or None at the bottom."""
        if self.depth + 1 < len(LEVEL_ORDER):
            return LEVEL_ORDER[self.depth + 1]
        return None


LEVEL_ORDER: Tuple[Level, ...] = tuple(Level)


class LayoutStrategy(StrEnum):
    FORCE = "force"
    HIERARCHICAL = "hierarchical"
    CIRCULAR = "circular"
    CLUSTERED = "clustered"


class ColorMode(StrEnum):
    SEMANTIC = "semantic"
    COMPLEXITY = "complexity"
    IMPORTANCE = "importance"
    LAYER = "layer"


class PatchType(StrEnum):
    NODE_ADDED = "node_added"
    NODE_MODIFIED = "node_modified"
    EDGE_ADDED = "edge_added"
    SYMBOL_CHANGED = "symbol_changed"


# =============================================================================
# Raw input
# =============================================================================

class NodeMetadata(BaseModel):
    """
    Structural metadata reported by the scanner.

    Counts are clamped to zero. Extra keys are kept (not validated) so that
    free-text fields can take part in relevance matching.
    """
    complexity: float = 0.0
    reference_count: float = Field(
        0.0, validation_alias=AliasChoices("referenceCount", "reference_count")
    )
    line_count: float = Field(
        0.0, validation_alias=AliasChoices("lineCount", "line_count", "lines")
    )
    is_public: bool = Field(True, validation_alias=AliasChoices("isPublic", "is_public"))
    has_tests: bool = Field(False, validation_alias=AliasChoices("hasTests", "has_tests"))
    last_modified: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("lastModified", "last_modified")
    )
    description: Optional[str] = None

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    @field_validator("complexity", "reference_count", "line_count", mode="before")
    @classmethod
    def _non_negative(cls, value: Any) -> float:
        if value is None:
            return 0.0
        return max(float(value), 0.0)

    @field_validator("is_public", mode="before")
    @classmethod
    def _public_default(cls, value: Any) -> bool:
        # Only an explicit False makes a node private.
        return value is not False

    @field_validator("last_modified", mode="wrap")
    @classmethod
    def _lenient_timestamp(cls, value: Any, handler) -> Optional[datetime]:
        try:
            return handler(value)
        except ValidationError:
            return None

    def text_fields(self) -> List[str]:
        """Free-text values (description plus string extras) for content search."""
        values = [self.description] if self.description else []
        for value in (self.model_extra or {}).values():
            if isinstance(value, str):
                values.append(value)
        return values


class RawNode(BaseModel):
    """A node as supplied by the scanner/CKG service."""
    id: str = Field(min_length=1)
    kind: Any = Field(None, validation_alias=AliasChoices("kind", "type"))
    name: Optional[str] = None
    path: Optional[str] = Field(None, validation_alias=AliasChoices("path", "filePath", "file_path"))
    file: Optional[str] = Field(None, validation_alias=AliasChoices("file", "fileId", "file_id"))
    layer: Optional[str] = None
    metadata: NodeMetadata = Field(default_factory=NodeMetadata)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("id", mode="before")
    @classmethod
    def _strip_id(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_default(cls, value: Any) -> Any:
        return value if value is not None else {}

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        base = self.path or self.id
        return base.rstrip("/").split("/")[-1] or self.id


class RawEdge(BaseModel):
    """A relationship as supplied by the scanner/CKG service."""
    source: str = Field(validation_alias=AliasChoices("source", "from_node_id", "source_id"))
    target: str = Field(validation_alias=AliasChoices("target", "to_node_id", "target_id"))
    relationship: Any = Field(None, validation_alias=AliasChoices("relationship", "type"))
    weight: float = 1.0

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("weight", mode="before")
    @classmethod
    def _weight(cls, value: Any) -> float:
        if value is None:
            return 1.0
        return max(float(value), 0.0)


# =============================================================================
# Enriched model
# =============================================================================

class Node(BaseModel):
    """An enriched, immutable node. Identity is the ``id``."""
    id: str
    kind: NodeKind
    name: str
    label: str
    path: Optional[str] = None
    file_id: Optional[str] = None
    layer: ArchitecturalLayer = ArchitecturalLayer.UNKNOWN
    metadata: NodeMetadata = Field(default_factory=NodeMetadata)
    complexity_class: ComplexityClass = ComplexityClass.LOW
    importance_score: float = 0.0
    semantic_score: float = 0.0
    size: float = 12.0
    group: SemanticGroup = SemanticGroup.FOUNDATION
    members: Tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if isinstance(other, Node):
            return self.id == other.id
        return False


class Edge(BaseModel):
    """An enriched, immutable directed relationship."""
    source: str
    target: str
    relationship: Relationship
    weight: float = 1.0
    relationship_type: RelationshipType = RelationshipType.GENERAL
    semantic_strength: float = 0.0
    is_circular: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.source, self.target, self.relationship.value)

    def touches(self, node_id: str) -> bool:
        return node_id in (self.source, self.target)


class GraphSnapshot(BaseModel):
    """
    An immutable enriched graph.

    A new snapshot is produced for every scan result or applied patch; a
    snapshot is never mutated in place.
    """
    nodes: Tuple[Node, ...] = ()
    edges: Tuple[Edge, ...] = ()
    version: int = 0

    model_config = ConfigDict(frozen=True)

    _by_id: Dict[str, Node] = PrivateAttr(default_factory=dict)
    _index: Any = PrivateAttr(default=None)

    def model_post_init(self, __context) -> None:
        self._by_id = {node.id: node for node in self.nodes}

    def node(self, node_id: str) -> Optional[Node]:
        return self._by_id.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._by_id

    @property
    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def iter_nodes(self) -> Iterator[Node]:
        return iter(self.nodes)

    def iter_edges(self) -> Iterator[Edge]:
        return iter(self.edges)

    def index(self):
        """Lazily built rustworkx index over this snapshot."""
        if self._index is None:
            from .graph import GraphIndex
            self._index = GraphIndex.from_snapshot(self)
        return self._index

    def subgraph(self, node_ids) -> "GraphSnapshot":
        """Nodes in ``node_ids`` (input order kept) and the edges between them."""
        keep = set(node_ids)
        return GraphSnapshot(
            nodes=tuple(n for n in self.nodes if n.id in keep),
            edges=tuple(e for e in self.edges if e.source in keep and e.target in keep),
            version=self.version,
        )


# =============================================================================
# Flows, navigation and patches
# =============================================================================

class Flow(BaseModel):
    """A named, ordered trace of files through the codebase (read-only input)."""
    id: str
    name: str = ""
    ordered_file_ids: Tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("ordered_file_ids", "orderedFileIds", "files"),
    )
    is_critical: bool = Field(False, validation_alias=AliasChoices("is_critical", "isCritical"))
    color: str = "#3b82f6"
    description: str = ""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class NavigationEntry(BaseModel):
    """One breadcrumb: the view that was current before a drill-down."""
    level: Level
    focus_node: Optional[str] = None
    zoom: float = 1.0

    model_config = ConfigDict(frozen=True)


class NavigationState(BaseModel):
    """Current navigation position plus the breadcrumb stack."""
    level: Level = Level.PROJECT
    focus_node: Optional[str] = None
    zoom: float = 1.0
    history: Tuple[NavigationEntry, ...] = ()
    loading: bool = False

    model_config = ConfigDict(frozen=True)

    def entry(self) -> NavigationEntry:
        return NavigationEntry(level=self.level, focus_node=self.focus_node, zoom=self.zoom)


class PatchEvent(BaseModel):
    """An incremental update from the scanner feed."""
    type: PatchType
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(extra="ignore", frozen=True)
