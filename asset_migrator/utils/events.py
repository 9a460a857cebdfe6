from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, DefaultDict, List
import asyncio
import inspect
import logging
logger = logging.getLogger(__name__)


@dataclass
class BatchProgress:
    """Running totals after one batch."""
    batch: int
    batch_size: int
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    failed: int = 0


class EventEmitter:
    """
    Named-event dispatcher for orchestrator progress.

    Listeners may be plain functions or coroutine functions. A listener that
    raises is logged and skipped; it never interrupts a run.
    """

    def __init__(self):
        self._listeners: DefaultDict[str, List[Callable]] = defaultdict(list)
        self._lock = asyncio.Lock()

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event. Subscribing twice is a no-op."""
        if callback not in self._listeners[event_name]:
            self._listeners[event_name].append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if callback in self._listeners.get(event_name, ()):
            self._listeners[event_name].remove(callback)

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, ()))

    async def emit(self, event_name: str, *args, **kwargs):
        """Deliver an event to its listeners, one event at a time."""
        listeners = list(self._listeners.get(event_name, ()))
        if not listeners:
            return

        # workers emit concurrently; keep console output ordered
        async with self._lock:
            for callback in listeners:
                try:
                    result = callback(*args, **kwargs)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(f"Error in event listener for {event_name}: {e}")
