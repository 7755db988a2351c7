"""
Typed event bus.

The view emits events instead of invoking UI callbacks directly. Subscribers
register per event class; a failing handler is logged and does not stop
delivery to the others.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict

from .core.types import LayoutStrategy, NavigationState

logger = logging.getLogger(__name__)


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class NodeSelected(Event):
    node_id: str
    selected: Tuple[str, ...] = ()


class NodeHovered(Event):
    node_id: Optional[str] = None


class EdgeHovered(Event):
    source: Optional[str] = None
    target: Optional[str] = None


class NavigationChanged(Event):
    state: NavigationState


class FlowChanged(Event):
    active: Tuple[str, ...] = ()
    isolated: Optional[str] = None


class LayoutTicked(Event):
    generation: int
    iteration: int
    energy: float


class LayoutSettled(Event):
    generation: int
    strategy: LayoutStrategy
    settled: bool
    iterations: int


class GraphUpdated(Event):
    version: int
    node_count: int
    edge_count: int


E = TypeVar("E", bound=Event)
Handler = Callable[[Event], None]


class EventBus:
    def __init__(self):
        self._handlers: Dict[Type[Event], List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> Callable[[], None]:
        """Register ``handler``. Returns a callable that removes it again."""
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def emit(self, event: Event) -> int:
        """Deliver to handlers of the event's class and its bases. Returns the delivery count."""
        delivered = 0
        for event_type in type(event).__mro__:
            for handler in list(self._handlers.get(event_type, ())):
                try:
                    handler(event)
                    delivered += 1
                except Exception as e:
                    logger.error(f"Handler for {type(event).__name__} failed: {e}")
            if event_type is Event:
                break
        return delivered

    def clear(self) -> None:
        self._handlers.clear()
