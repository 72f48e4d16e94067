# src/formengine/utils/events.py
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class EventEmitter:
    """Minimal named-event dispatcher shared by the model, the fill orchestrator and the bridge."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable[..., Any]]] = {}

    def on(self, event: str, callback: Callable[..., Any]) -> Callable[[], None]:
        """Registers a listener and returns a function that removes it again."""
        self._listeners.setdefault(event, []).append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def emit(self, event: str, payload: Any = None) -> None:
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(payload)
            except Exception as e:
                # A faulty listener must not break the emitting operation.
                logger.error("Listener for '%s' failed: %s", event, e, exc_info=True)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))
