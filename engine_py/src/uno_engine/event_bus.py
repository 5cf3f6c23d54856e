"""
Synchronous publish/subscribe bus for engine notifications.

Handlers run in subscription order on the caller's thread. A failing
handler is logged and skipped; the remaining handlers still run.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

# Subscribe to this kind to receive every event
ALL_EVENTS = '*'


@dataclass
class GameEvent:
    """A one-shot notification emitted alongside a state transition."""
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[float] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = time.time()

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'payload': dict(self.payload), 'timestamp': self.timestamp}


EventHandler = Callable[[GameEvent], None]


class EventBus:
    """Maps event kinds to ordered handler lists."""

    def __init__(self):
        self._subscribers: Dict[str, List[EventHandler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` and return a function that unregisters it."""
        with self._lock:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)

        def unsubscribe():
            self.unsubscribe(event_type, handler)

        return unsubscribe

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        with self._lock:
            if event_type in self._subscribers:
                self._subscribers[event_type] = [
                    h for h in self._subscribers[event_type] if h != handler
                ]

    def emit(self, event: GameEvent) -> None:
        with self._lock:
            handlers = list(self._subscribers.get(event.type, []))
            handlers += [h for h in self._subscribers.get(ALL_EVENTS, []) if h not in handlers]
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(f"Error in handler for '{event.type}'")

    def publish(self, events: Iterable[GameEvent]) -> None:
        for event in events:
            self.emit(event)

    def handler_count(self, event_type: Optional[str] = None) -> int:
        with self._lock:
            if event_type is not None:
                return len(self._subscribers.get(event_type, []))
            return sum(len(h) for h in self._subscribers.values())

    def clear(self, event_type: Optional[str] = None) -> None:
        with self._lock:
            if event_type is None:
                self._subscribers.clear()
            else:
                self._subscribers.pop(event_type, None)
