"""In-process publish/subscribe channel for named events."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Union

logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class NotificationBus:
    """
    Deliver events to every subscriber of a name.

    ``publish`` waits for all handlers to finish. A failing handler is logged
    and never affects the publisher or the other handlers.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def subscribers(self, event: str) -> List[EventHandler]:
        return list(self._handlers.get(event, []))

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        handlers = self.subscribers(event)
        if not handlers:
            return
        await asyncio.gather(
            *(self._deliver(event, handler, payload) for handler in handlers)
        )

    @staticmethod
    async def _deliver(event: str, handler: EventHandler, payload: Dict[str, Any]) -> None:
        try:
            result = handler(dict(payload))
            if inspect.isawaitable(result):
                await result
        except Exception:  # pylint: disable=broad-except
            logger.exception("Subscriber failed handling %s", event)


__all__ = ["EventHandler", "NotificationBus"]
