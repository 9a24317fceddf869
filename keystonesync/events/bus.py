"""
Internal publish/subscribe registry.
"""

import itertools
from typing import Any, Dict

import structlog

from .types import ONE_SHOT_EVENTS, Handler, LibraryEvent, Unsubscribe

logger = structlog.get_logger(__name__)


class EventBus:
    """Typed event registry.

    ``subscribe`` hands back an unsubscribe callable bound to the token issued
    at registration, so removing one registration never touches another that
    happens to use the same function. Handlers must not rely on the order in
    which they are called relative to each other.
    """

    def __init__(self):
        self._handlers: Dict[LibraryEvent, Dict[int, Handler]] = {}
        self._tokens = itertools.count(1)

    def subscribe(self, event: LibraryEvent, handler: Handler) -> Unsubscribe:
        """Register a handler and return a callable that removes it."""
        token = next(self._tokens)
        self._handlers.setdefault(event, {})[token] = handler
        logger.debug("Registered listener", event_name=event.value, token=token)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event)
            if handlers is not None and handlers.pop(token, None) is not None:
                logger.debug("Removed listener", event_name=event.value, token=token)

        return unsubscribe

    def publish(self, event: LibraryEvent, *args: Any) -> int:
        """Invoke every handler for ``event``; return how many failed."""
        if event in ONE_SHOT_EVENTS:
            return self.publish_once(event, *args)
        return self._dispatch(event, args)

    def publish_once(self, event: LibraryEvent, *args: Any) -> int:
        """Publish and then drop every handler registered for ``event``."""
        failures = self._dispatch(event, args)
        self._handlers.pop(event, None)
        return failures

    def _dispatch(self, event: LibraryEvent, args: tuple) -> int:
        # Snapshot so handlers may (un)subscribe while we iterate
        handlers = list(self._handlers.get(event, {}).items())
        logger.debug("Triggering event", event_name=event.value, listeners=len(handlers))

        failures = 0
        for token, handler in handlers:
            try:
                handler(*args)
            except Exception:
                failures += 1
                logger.error(
                    "Event listener failed",
                    event_name=event.value,
                    token=token,
                    exc_info=True,
                )
        return failures

    def handler_count(self, event: LibraryEvent) -> int:
        """Number of handlers currently registered for ``event``."""
        return len(self._handlers.get(event, {}))

    def clear(self) -> None:
        """Drop every registration."""
        self._handlers.clear()
