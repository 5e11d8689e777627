"""
In-process event bus for notification status changes.
The real-time broadcast layer subscribes here; emit() never waits on or fails
because of a subscriber.
"""
import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Union

logger = logging.getLogger(__name__)

NOTIFICATION_CREATED = "notification:created"
NOTIFICATION_UPDATED = "notification:updated"

Handler = Callable[[dict[str, Any]], Union[None, Awaitable[None]]]


class EventBus:
    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, event: str, handler: Handler) -> None:
        self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: Handler) -> None:
        if handler in self._handlers.get(event, []):
            self._handlers[event].remove(handler)

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        """Fire-and-forget. Coroutine handlers are scheduled on the running loop."""
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._pending.add(task)
                    task.add_done_callback(self._on_task_done)
            except Exception as e:
                logger.exception("Event handler failed for %s: %s", event, e)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Async event handler failed: %s", task.exception())


event_bus = EventBus()


def notification_payload(log) -> dict[str, Any]:
    """JSON-safe snapshot of a NotificationLog row for subscribers."""
    from app.api.v1.notifications.schemas import NotificationLogRead

    return NotificationLogRead.model_validate(log).model_dump(mode="json")
