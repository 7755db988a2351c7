"""
Drill-down navigation state machine.

States are the abstraction levels ``project < module < file < symbol``.
Each drill-down pushes the current ``{level, focus, zoom}`` onto the history
and moves exactly one level deeper; drill-up pops it back. Breadcrumb jumps
may return directly to any ancestor.

Reaching the symbol level needs an asynchronous fetch from a
``SymbolSource``. While it is pending the navigator stays on the file level
with ``loading`` set. A failed fetch leaves the state exactly as it was and
returns ``Err(SymbolFetchError)``. A fetch overtaken by any other
navigation is discarded when it completes.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from ..config import ZOOM_MAX, ZOOM_MIN
from ..core.errors import NavigationError, SymbolFetchError
from ..core.result import Err, Ok, Result
from ..core.types import GraphSnapshot, Level, NavigationEntry, NavigationState, Node, NodeKind
from ..model.enrich import GraphModel

logger = logging.getLogger(__name__)

DRILL_RULES: Dict[Level, frozenset] = {
    Level.PROJECT: frozenset({NodeKind.LAYER, NodeKind.MODULE}),
    Level.MODULE: frozenset({NodeKind.MODULE, NodeKind.FILE}),
    Level.FILE: frozenset({NodeKind.FILE}),
}


@runtime_checkable
class SymbolSource(Protocol):
    """External provider of a file's symbol-level graph as raw ``{nodes, edges}``."""

    async def fetch_symbols(self, file_node: Node) -> Mapping[str, Any]:
        ...


class SnapshotSymbolSource:
    """
    Serves symbols already present in a snapshot: every non-file node whose
    owning file is the requested one, plus the edges between them.
    """

    def __init__(self, snapshot: GraphSnapshot):
        self.snapshot = snapshot

    async def fetch_symbols(self, file_node: Node) -> Mapping[str, Any]:
        members = [
            n for n in self.snapshot.nodes
            if n.file_id == file_node.id and n.kind != NodeKind.FILE
        ]
        ids = {n.id for n in members}
        return {
            "nodes": [
                {
                    "id": n.id,
                    "kind": n.kind.value,
                    "name": n.name,
                    "path": n.path,
                    "file": n.file_id,
                    "metadata": n.metadata.model_dump(),
                }
                for n in members
            ],
            "edges": [
                {
                    "source": e.source,
                    "target": e.target,
                    "relationship": e.relationship.value,
                    "weight": e.weight,
                }
                for e in self.snapshot.edges
                if e.source in ids and e.target in ids
            ],
        }


def clamp_zoom(zoom: float) -> float:
    return max(ZOOM_MIN, min(ZOOM_MAX, zoom))


class DrillNavigator:
    """Owns the ``NavigationState`` and the per-file symbol cache."""

    def __init__(
        self,
        symbol_source: Optional[SymbolSource] = None,
        model: Optional[GraphModel] = None,
    ):
        self.symbol_source = symbol_source
        self.model = model or GraphModel()
        self.symbols: Dict[str, GraphSnapshot] = {}
        self._state = NavigationState()
        self._fetch_token = 0

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state.loading

    def next_level(self, node: Node) -> Optional[Level]:
        """The level a drill into ``node`` would reach, or None when not drillable."""
        allowed = DRILL_RULES.get(self._state.level)
        if allowed is None or node.kind not in allowed:
            return None
        return self._state.level.next()

    def _push(self, target: Level, node: Node) -> NavigationState:
        current = self._state
        return NavigationState(
            level=target,
            focus_node=node.id,
            zoom=1.0,
            history=current.history + (current.entry(),),
        )

    def _supersede(self) -> None:
        """Invalidate any in-flight symbol fetch."""
        self._fetch_token += 1
        if self._state.loading:
            self._state = self._state.model_copy(update={"loading": False})

    async def drill_down(self, node: Node) -> Result[NavigationState, NavigationError]:
        target = self.next_level(node)
        if target is None:
            logger.debug(f"Ignoring drill into {node.kind.value} '{node.id}' at {self._state.level.value}")
            return Ok(self._state)

        if target != Level.SYMBOL:
            self._supersede()
            self._state = self._push(target, node)
            return Ok(self._state)

        if node.id in self.symbols:
            self._supersede()
            self._state = self._push(target, node)
            return Ok(self._state)

        return await self._drill_into_symbols(node)

    def _finish_loading(self) -> None:
        # Keeps any zoom change made while the fetch was pending.
        self._state = self._state.model_copy(update={"loading": False})

    async def _drill_into_symbols(self, node: Node) -> Result[NavigationState, NavigationError]:
        if self.symbol_source is None:
            return Err(SymbolFetchError("No symbol source configured", file_id=node.id))

        self._supersede()
        token = self._fetch_token
        self._state = self._state.model_copy(update={"loading": True})

        try:
            raw = await self.symbol_source.fetch_symbols(node)
        except asyncio.CancelledError:
            if token == self._fetch_token:
                self._finish_loading()
            raise
        except Exception as e:
            if token != self._fetch_token:
                return Ok(self._state)
            self._finish_loading()
            logger.warning(f"Symbol fetch failed for '{node.id}': {e}")
            return Err(SymbolFetchError(
                f"Could not load symbols for {node.id}", file_id=node.id, cause=str(e)
            ))

        if token != self._fetch_token:
            logger.debug(f"Discarding superseded symbol fetch for '{node.id}'")
            return Ok(self._state)

        if not isinstance(raw, Mapping):
            self._finish_loading()
            return Err(SymbolFetchError(
                f"Malformed symbol payload for {node.id}", file_id=node.id, cause=type(raw).__name__
            ))

        self.symbols[node.id] = self.model.enrich(raw.get("nodes") or [], raw.get("edges") or [])
        self._finish_loading()
        self._state = self._push(Level.SYMBOL, node)
        logger.info(f"Loaded {len(self.symbols[node.id].nodes)} symbols for '{node.id}'")
        return Ok(self._state)

    def drill_up(self) -> NavigationState:
        self._supersede()
        history = self._state.history
        if not history:
            return self._state
        previous = history[-1]
        self._state = NavigationState(
            level=previous.level,
            focus_node=previous.focus_node,
            zoom=previous.zoom,
            history=history[:-1],
        )
        return self._state

    def jump_to_breadcrumb(self, index: int) -> NavigationState:
        """
        Restore ``history[index]``, keeping the entries before it.

        This intentionally differs from truncating the path to ``index + 1``
        entries: the restored entry becomes the current position rather than
        staying in the history too, so ``len(history)`` always equals the
        number of levels above the current one and ``drill_up`` never
        returns to the position it is already at.
        """
        history = self._state.history
        if not 0 <= index < len(history):
            logger.debug(f"Breadcrumb index {index} out of range ({len(history)} entries)")
            return self._state
        self._supersede()
        entry = history[index]
        self._state = NavigationState(
            level=entry.level,
            focus_node=entry.focus_node,
            zoom=entry.zoom,
            history=history[:index],
        )
        return self._state

    def reset(self) -> NavigationState:
        self._supersede()
        self._state = NavigationState()
        return self._state

    def open(self, level: Level, focus_node: Optional[str] = None) -> Result[NavigationState, NavigationError]:
        """Jump straight to a structural level with an empty history (deep links, CLI)."""
        if level == Level.SYMBOL:
            return Err(NavigationError("The symbol level is only reachable by drilling into a file"))
        self._supersede()
        self._state = NavigationState(level=level, focus_node=focus_node)
        return Ok(self._state)

    def set_zoom(self, zoom: float) -> NavigationState:
        self._state = self._state.model_copy(update={"zoom": clamp_zoom(zoom)})
        return self._state

    def breadcrumbs(self) -> List[NavigationEntry]:
        """History entries followed by the current position."""
        return list(self._state.history) + [self._state.entry()]

    def invalidate_symbols(self, file_id: str) -> bool:
        return self.symbols.pop(file_id, None) is not None
