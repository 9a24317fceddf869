"""
Event names published on the KeystoneSync event bus.
"""

from enum import Enum
from typing import Any, Callable

Handler = Callable[..., Any]
Unsubscribe = Callable[[], None]


class LibraryEvent(str, Enum):
    """Events published on the internal bus."""

    # Public events
    API_READY = "OnApiReady"
    KEYSTONE_SLOTTED = "OnKeystoneSlotted"
    SESSION_STARTED = "OnSessionStarted"
    SESSION_COMPLETED = "OnSessionCompleted"
    SESSION_ABANDONED = "OnSessionAbandoned"
    SESSION_RESET = "OnSessionReset"
    INSTANCE_LEFT = "OnInstanceLeft"
    INSTANCE_REENTERED = "OnInstanceReentered"
    DEATH_RECORDED = "OnDeathRecorded"

    # Internal signals
    SEASON_ID_LOADED = "OnSeasonIdLoaded"
    AFFIXES_LOADED = "OnAffixesLoaded"
    MAPS_LOADED = "OnMapsLoaded"
    SEASON_UNAVAILABLE = "OnSeasonUnavailable"
    INSTANCE_RESET_DETECTED = "OnInstanceResetDetected"


# Events that clear their handler set after firing
ONE_SHOT_EVENTS = frozenset({LibraryEvent.API_READY})
