"""
Public API handed to consumers once seasonal data is ready.
"""

from typing import Callable, List, Optional

from .challenge.keystones import affixes_for_level, owned_keystone, slotted_keystone
from .challenge.state_machine import SessionStateMachine
from .database.models import Affix, Keystone, Season, Session
from .events import EventBus, LibraryEvent, Unsubscribe
from .host.api import GameHost


class KeystoneApi:
    """Queries and event subscriptions over keystones and the active session."""

    def __init__(self, host: GameHost, bus: EventBus, season: Season, machine: SessionStateMachine):
        self._host = host
        self._bus = bus
        self._season = season
        self._machine = machine

    @property
    def current_season(self) -> Season:
        return self._season.model_copy(deep=True)

    # Queries

    def get_active_session(self) -> Optional[Session]:
        return self._machine.get_active_session()

    def is_session_active(self) -> bool:
        """Whether a run is in progress, even if the player zoned out of it."""
        return self._machine.is_active()

    def is_session_active_and_player_present(self) -> bool:
        return self._machine.is_active_and_player_present()

    def get_owned_keystone(self) -> Optional[Keystone]:
        return owned_keystone(self._host, self._season)

    def get_slotted_keystone(self) -> Optional[Keystone]:
        return slotted_keystone(self._host, self._season)

    def affixes_for_level(self, level: int) -> List[Affix]:
        return affixes_for_level(self._season.affixes, level)

    def get_current_rating(self) -> int:
        return self._host.get_overall_dungeon_score()

    # Events

    def on_keystone_slotted(self, listener: Callable[[Keystone], None]) -> Unsubscribe:
        return self._bus.subscribe(LibraryEvent.KEYSTONE_SLOTTED, listener)

    def on_session_started(self, listener: Callable[[Session], None]) -> Unsubscribe:
        return self._bus.subscribe(LibraryEvent.SESSION_STARTED, listener)

    def on_session_completed(self, listener: Callable[[Session], None]) -> Unsubscribe:
        return self._bus.subscribe(LibraryEvent.SESSION_COMPLETED, listener)

    def on_session_abandoned(self, listener: Callable[[Session], None]) -> Unsubscribe:
        return self._bus.subscribe(LibraryEvent.SESSION_ABANDONED, listener)

    def on_session_reset(self, listener: Callable[[], None]) -> Unsubscribe:
        return self._bus.subscribe(LibraryEvent.SESSION_RESET, listener)

    def on_instance_left(self, listener: Callable[[Session], None]) -> Unsubscribe:
        return self._bus.subscribe(LibraryEvent.INSTANCE_LEFT, listener)

    def on_instance_reentered(self, listener: Callable[[Session], None]) -> Unsubscribe:
        return self._bus.subscribe(LibraryEvent.INSTANCE_REENTERED, listener)

    def on_death_recorded(self, listener: Callable[[Session], None]) -> Unsubscribe:
        return self._bus.subscribe(LibraryEvent.DEATH_RECORDED, listener)
