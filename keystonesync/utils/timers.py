"""
Timer scheduling primitives.

Everything in KeystoneSync runs on host callback dispatch, so a "suspended"
retry is just a pending timer handle. An ``asyncio`` event loop satisfies
:class:`Scheduler` directly.
"""

import itertools
from typing import Any, Callable, Dict, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class TimerGroup:
    """A set of pending timers that can be cancelled as one batch."""

    def __init__(self, scheduler: Scheduler):
        self._scheduler = scheduler
        self._handles: Dict[int, TimerHandle] = {}
        self._tokens = itertools.count()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        token = next(self._tokens)
        handle = self._scheduler.call_later(delay, self._fire, token, callback, args)
        self._handles[token] = handle
        return handle

    def _fire(self, token: int, callback: Callable[..., Any], args: tuple) -> None:
        self._handles.pop(token, None)
        callback(*args)

    def cancel_all(self) -> int:
        """Cancel every pending timer and return how many were pending."""
        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            handle.cancel()
        return len(handles)

    def __len__(self) -> int:
        return len(self._handles)
