"""
Event Emitter
=============

Ordered, synchronous listener lists. A listener that returns `False`
stops the remaining listeners from running and makes `emit()` return
`False`, which lets the emitting code treat the event as vetoed.
"""

from typing import Any, Callable, Dict, List, Optional

Listener = Callable[[Any], Optional[bool]]


class EventEmitter:
    """Base class for objects that raise named events."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event: str, listener: Listener) -> None:
        """Register a listener; registering the same one twice is a no-op."""
        listeners = self._listeners.setdefault(event, [])
        if listener not in listeners:
            listeners.append(listener)

    def off(self, event: str, listener: Listener) -> None:
        """Unregister a listener."""
        listeners = self._listeners.get(event)
        if not listeners:
            return
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            del self._listeners[event]

    def remove_all_listeners(self, event: Optional[str] = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, data: Any = None) -> bool:
        """
        Call each listener of `event` in registration order.

        Returns:
            False if a listener returned False (later listeners are
            skipped), True otherwise.
        """
        # Copy so listeners may unsubscribe while being called
        for listener in list(self._listeners.get(event, ())):
            if listener(data) is False:
                return False
        return True
