"""
Interfaces to the host game client and its addon message channel.

KeystoneSync never talks to the game directly; everything it knows about
units, keystones and the running challenge comes through :class:`GameHost`.
"""

from enum import Enum
from typing import Any, Callable, List, Optional, Protocol, Tuple

from pydantic import BaseModel


class HostEvent(str, Enum):
    """Host signals KeystoneSync listens to."""

    KEYSTONE_SLOTTED = "CHALLENGE_MODE_KEYSTONE_SLOTTED"
    CHALLENGE_STARTED = "CHALLENGE_MODE_START"
    CHALLENGE_COMPLETED = "CHALLENGE_MODE_COMPLETED"
    CHALLENGE_RESET = "CHALLENGE_MODE_RESET"
    CURRENT_AFFIX_UPDATED = "MYTHIC_PLUS_CURRENT_AFFIX_UPDATE"
    SYSTEM_CHAT_MESSAGE = "CHAT_MSG_SYSTEM"
    PLAYER_ENTERING_WORLD = "PLAYER_ENTERING_WORLD"
    CHALLENGE_DEATH = "CHALLENGE_MODE_DEATH_COUNT_UPDATED"
    INSPECT_READY = "INSPECT_READY"


class Distribution(str, Enum):
    """Scopes a peer message can be broadcast to."""

    PARTY = "PARTY"
    GUILD = "GUILD"
    FRIENDS = "FRIEND"


class AffixRef(BaseModel):
    """An entry of the host's current-affix list."""

    id: int
    season_id: int


class CompletionInfo(BaseModel):
    """What the host reports once a challenge completes."""

    map_id: int
    level: int
    time_taken: int
    on_time: bool
    upgrade_levels: int
    old_score: Optional[int] = None
    new_score: Optional[int] = None
    is_eligible_for_score: bool = False


class GameHost(Protocol):
    # Season data
    def is_mythic_plus_active(self) -> bool: ...
    def get_current_season(self) -> int: ...
    def get_current_affixes(self) -> Optional[List[AffixRef]]: ...
    def get_affix_info(self, affix_id: int) -> Tuple[str, str, Optional[int]]: ...
    def get_map_table(self) -> Optional[List[int]]: ...
    def get_map_ui_info(self, map_id: int) -> Tuple[str, int, Optional[int], Optional[int]]: ...
    def request_map_info(self) -> None: ...
    def request_current_affixes(self) -> None: ...
    def request_rewards(self) -> None: ...

    # Keystones and the running challenge
    def get_active_keystone_level(self) -> Optional[int]: ...
    def get_active_challenge_map_id(self) -> Optional[int]: ...
    def get_owned_keystone_map_id(self) -> Optional[int]: ...
    def get_owned_keystone_level(self) -> Optional[int]: ...
    def has_slotted_keystone(self) -> bool: ...
    def get_slotted_keystone_info(self) -> Tuple[int, int]: ...
    def get_completion_info(self) -> CompletionInfo: ...
    def get_death_count(self) -> Tuple[int, int]: ...
    def is_challenge_mode_active(self) -> bool: ...
    def get_overall_dungeon_score(self) -> int: ...

    # Units
    def unit_guid(self, unit: str) -> Optional[str]: ...
    def unit_name(self, unit: str) -> Tuple[Optional[str], Optional[str]]: ...
    def get_realm_name(self) -> str: ...
    def unit_faction(self, unit: str) -> Optional[str]: ...
    def unit_race(self, unit: str) -> Optional[str]: ...
    def unit_class(self, unit: str) -> Optional[str]: ...
    def unit_role(self, unit: str) -> Optional[str]: ...
    def unit_guild(self, unit: str) -> Optional[str]: ...
    def unit_is_group_leader(self, unit: str) -> bool: ...
    def is_in_guild(self) -> bool: ...
    def in_guild_party(self) -> bool: ...
    def get_server_time(self) -> int: ...

    # Local player gear
    def player_specialization(self) -> Optional[int]: ...
    def player_item_level(self) -> Optional[float]: ...

    # Inspection
    def can_inspect(self, unit: str) -> bool: ...
    def notify_inspect(self, unit: str) -> None: ...
    def clear_inspect_player(self) -> None: ...
    def inspect_specialization(self, unit: str) -> Optional[int]: ...
    def inspect_item_level(self, unit: str) -> Optional[float]: ...

    # Signals
    def register_event(self, event: HostEvent, handler: Callable[..., Any]) -> None: ...
    def unregister_event(self, event: HostEvent) -> None: ...


class PeerChannel(Protocol):
    def register(self, prefix: str, handler: Callable[[str, Distribution, str], Any]) -> None: ...
    def unregister(self, prefix: str) -> None: ...
    def send(self, prefix: str, message: str, distribution: Distribution) -> None: ...
