"""
Event bus package for KeystoneSync.
"""

from .bus import EventBus
from .types import LibraryEvent, Handler, Unsubscribe

__all__ = [
    "EventBus",
    "LibraryEvent",
    "Handler",
    "Unsubscribe"
]
