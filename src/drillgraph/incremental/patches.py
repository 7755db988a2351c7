"""
Incremental graph updates.

``IncrementalGraph`` keeps the raw records behind the current snapshot and
applies scanner patch events to them. Every accepted patch re-enriches the
whole graph into a new snapshot with ``version + 1``; node ids are never
reassigned, so positions and selections keyed by id survive updates.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from ..core.errors import PatchError
from ..core.result import Err, Ok, Result
from ..core.types import GraphSnapshot, PatchEvent, PatchType
from ..model.enrich import GraphModel

logger = logging.getLogger(__name__)

NODE_ID_KEYS = ("id", "node_id", "nodeId")


class PatchOutcome(BaseModel):
    """What an accepted patch changed."""
    snapshot: GraphSnapshot
    event_type: PatchType
    node_id: Optional[str] = None
    invalidated_file_id: Optional[str] = None
    added_nodes: Tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)


@dataclass
class ApplyReport:
    """Result of applying a batch of events."""
    snapshot: GraphSnapshot
    applied: int = 0
    failures: List[PatchError] = field(default_factory=list)


def _node_id(data: Dict[str, Any]) -> Optional[str]:
    for key in NODE_ID_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _merge(existing: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow merge of fields with a nested merge of ``metadata``. ``id`` is kept."""
    merged = dict(existing)
    for key, value in update.items():
        if key in NODE_ID_KEYS:
            continue
        if key == "metadata" and isinstance(value, dict):
            metadata = dict(merged.get("metadata") or {})
            metadata.update(value)
            merged["metadata"] = metadata
        else:
            merged[key] = value
    return merged


class IncrementalGraph:
    """Raw node/edge records plus the snapshot enriched from them."""

    def __init__(
        self,
        raw_nodes: Iterable[Dict[str, Any]] = (),
        raw_edges: Iterable[Dict[str, Any]] = (),
        model: Optional[GraphModel] = None,
        version: int = 0,
    ):
        self.model = model or GraphModel()
        self._nodes: Dict[str, Dict[str, Any]] = {}
        self._order: List[str] = []
        self._anonymous: List[Dict[str, Any]] = []
        for raw in raw_nodes:
            self._upsert(dict(raw))
        self._edges: List[Dict[str, Any]] = [dict(e) for e in raw_edges]
        self.snapshot = self._rebuild(version)

    @property
    def version(self) -> int:
        return self.snapshot.version

    def raw_node(self, node_id: str) -> Optional[Dict[str, Any]]:
        raw = self._nodes.get(node_id)
        return dict(raw) if raw is not None else None

    def _upsert(self, raw: Dict[str, Any]) -> Optional[str]:
        node_id = _node_id(raw)
        if node_id is None:
            # Kept so enrichment reports it, like any malformed scanner record.
            self._anonymous.append(raw)
            return None
        raw["id"] = node_id
        if node_id not in self._nodes:
            self._order.append(node_id)
        self._nodes[node_id] = raw
        return node_id

    def _rebuild(self, version: int) -> GraphSnapshot:
        raw_nodes = [self._nodes[i] for i in self._order] + self._anonymous
        return self.model.enrich(raw_nodes, self._edges, version=version)

    def apply(self, event: PatchEvent) -> Result[PatchOutcome, PatchError]:
        data = dict(event.data or {})
        node_id = _node_id(data)
        invalidated = None
        added: Tuple[str, ...] = ()

        if event.type == PatchType.NODE_ADDED:
            if node_id is None:
                return Err(PatchError("node_added requires an id", event_type=event.type.value))
            if node_id in self._nodes:
                logger.warning(f"node_added for existing id '{node_id}', replacing record")
            else:
                added = (node_id,)
            self._upsert(data)

        elif event.type == PatchType.NODE_MODIFIED:
            if node_id is None or node_id not in self._nodes:
                return Err(PatchError(
                    f"node_modified for unknown node '{node_id}'", event_type=event.type.value
                ))
            self._nodes[node_id] = _merge(self._nodes[node_id], data)

        elif event.type == PatchType.EDGE_ADDED:
            if not data:
                return Err(PatchError("edge_added without data", event_type=event.type.value))
            self._edges.append(data)

        elif event.type == PatchType.SYMBOL_CHANGED:
            if node_id is not None and node_id in self._nodes:
                self._nodes[node_id] = _merge(self._nodes[node_id], data)
            invalidated = self._owning_file(node_id, data)
            if invalidated is None:
                return Err(PatchError(
                    "symbol_changed does not identify a file", event_type=event.type.value
                ))

        self.snapshot = self._rebuild(self.snapshot.version + 1)
        logger.info(f"Applied {event.type.value}, snapshot now v{self.snapshot.version}")
        return Ok(PatchOutcome(
            snapshot=self.snapshot,
            event_type=event.type,
            node_id=node_id,
            invalidated_file_id=invalidated,
            added_nodes=added,
        ))

    def _owning_file(self, node_id: Optional[str], data: Dict[str, Any]) -> Optional[str]:
        for key in ("file", "fileId", "file_id"):
            if isinstance(data.get(key), str):
                return data[key]
        if node_id is None:
            return None
        node = self.snapshot.node(node_id)
        if node is not None and node.file_id:
            return node.file_id
        return node_id

    def apply_all(self, events: Iterable[PatchEvent]) -> ApplyReport:
        """Apply in order; failures are collected, not fatal."""
        applied = 0
        failures: List[PatchError] = []
        for event in events:
            result = self.apply(event)
            if result.is_ok():
                applied += 1
            else:
                failures.append(result.error)
        return ApplyReport(snapshot=self.snapshot, applied=applied, failures=failures)
