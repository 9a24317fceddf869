"""
Shared fixtures and host fakes for KeystoneSync tests.
"""

from collections import Counter
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from keystonesync.challenge import SessionStateMachine
from keystonesync.config import Config
from keystonesync.database import MemorySessionStore
from keystonesync.database.models import Affix, MapInfo, Season
from keystonesync.events import EventBus, LibraryEvent
from keystonesync.host.api import AffixRef, CompletionInfo, Distribution, HostEvent

PLAYER_GUID = "Player-1-0001"


class FakeTimer:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Manual clock implementing ``call_later``."""

    def __init__(self):
        self.now = 0.0
        self.timers: List[FakeTimer] = []

    def call_later(self, delay, callback, *args):
        timer = FakeTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def run_next(self) -> bool:
        pending = self.pending
        if not pending:
            return False
        timer = min(pending, key=lambda t: t.when)
        self.now = max(self.now, timer.when)
        timer.fired = True
        timer.callback(*timer.args)
        return True

    def advance(self, seconds: float):
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.when <= target]
            if not due:
                break
            self.run_next()
        self.now = target


class FakeHost:
    """In-memory stand-in for the game client API."""

    def __init__(self):
        self.mythic_plus_active = True
        self.season_id = 10
        self.affix_refs: Optional[List[AffixRef]] = [
            AffixRef(id=9, season_id=10),
            AffixRef(id=7, season_id=10),
            AffixRef(id=13, season_id=10),
            AffixRef(id=132, season_id=10),
        ]
        self.affix_info = {
            9: ("Tyrannical", "Bosses are tougher.", 236401),
            7: ("Bolstering", "Deaths empower allies.", 132333),
            13: ("Explosive", "Orbs spawn in combat.", 2175503),
            132: ("Thundering", "Primal overload.", 1385910),
        }
        self.map_ids: Optional[List[int]] = [375, 376]
        self.map_info = {
            375: ("Mists of Tirna Scithe", 1800, 3759, 3759),
            376: ("The Necrotic Wake", 2160, 3760, 3760),
        }
        self.requests = Counter()

        self.active_level: Optional[int] = 10
        self.active_map_id: Optional[int] = 375
        self.owned: Optional[Tuple[int, int]] = None
        self.slotted: Optional[Tuple[int, int]] = None
        self.completion = CompletionInfo(
            map_id=375, level=10, time_taken=1650000, on_time=True, upgrade_levels=1,
            old_score=2400, new_score=2450, is_eligible_for_score=True,
        )
        self.death_count = (0, 0)
        self.challenge_mode_active = False
        self.score = 2400

        self.units: Dict[str, Dict[str, Any]] = {
            "player": self._unit(PLAYER_GUID, "Adaxion", None, leader=True),
        }
        self.realm = "Area52"
        self.in_guild = False
        self.guild_party = False
        self.server_time = 1_700_000_000

        self.player_spec = 250
        self.player_ilvl = 415.5
        self.inspect_data: Dict[str, Tuple[int, float]] = {}
        self.inspect_requests: List[str] = []
        self.clear_inspect_calls = 0

        self.handlers: Dict[HostEvent, Callable[..., Any]] = {}

    @staticmethod
    def _unit(guid, name, realm, leader=False, guild=None):
        return {"guid": guid, "name": name, "realm": realm, "faction": "Horde", "race": "Orc",
                "class": "DEATHKNIGHT", "role": "TANK", "guild": guild, "leader": leader}

    def add_party_member(self, unit: str, guid: str, name: str, realm: Optional[str] = "Illidan",
                         guild: Optional[str] = None, spec: int = 262, ilvl: float = 410.0):
        self.units[unit] = self._unit(guid, name, realm, guild=guild)
        self.inspect_data[unit] = (spec, ilvl)

    # Season data
    def is_mythic_plus_active(self):
        return self.mythic_plus_active

    def get_current_season(self):
        return self.season_id

    def get_current_affixes(self):
        return self.affix_refs

    def get_affix_info(self, affix_id):
        return self.affix_info[affix_id]

    def get_map_table(self):
        return self.map_ids

    def get_map_ui_info(self, map_id):
        return self.map_info[map_id]

    def request_map_info(self):
        self.requests["map_info"] += 1

    def request_current_affixes(self):
        self.requests["affixes"] += 1

    def request_rewards(self):
        self.requests["rewards"] += 1

    # Keystones
    def get_active_keystone_level(self):
        return self.active_level

    def get_active_challenge_map_id(self):
        return self.active_map_id

    def get_owned_keystone_map_id(self):
        return self.owned[0] if self.owned else None

    def get_owned_keystone_level(self):
        return self.owned[1] if self.owned else None

    def has_slotted_keystone(self):
        return self.slotted is not None

    def get_slotted_keystone_info(self):
        return self.slotted

    def get_completion_info(self):
        return self.completion

    def get_death_count(self):
        return self.death_count

    def is_challenge_mode_active(self):
        return self.challenge_mode_active

    def get_overall_dungeon_score(self):
        return self.score

    # Units
    def unit_guid(self, unit):
        return self.units.get(unit, {}).get("guid")

    def unit_name(self, unit):
        info = self.units.get(unit)
        if info is None:
            return None, None
        return info["name"], info["realm"]

    def get_realm_name(self):
        return self.realm

    def unit_faction(self, unit):
        return self.units[unit]["faction"]

    def unit_race(self, unit):
        return self.units[unit]["race"]

    def unit_class(self, unit):
        return self.units[unit]["class"]

    def unit_role(self, unit):
        return self.units[unit]["role"]

    def unit_guild(self, unit):
        return self.units[unit]["guild"]

    def unit_is_group_leader(self, unit):
        return self.units[unit]["leader"]

    def is_in_guild(self):
        return self.in_guild

    def in_guild_party(self):
        return self.guild_party

    def get_server_time(self):
        return self.server_time

    def player_specialization(self):
        return self.player_spec

    def player_item_level(self):
        return self.player_ilvl

    # Inspection
    def can_inspect(self, unit):
        return unit in self.units

    def notify_inspect(self, unit):
        self.inspect_requests.append(unit)

    def clear_inspect_player(self):
        self.clear_inspect_calls += 1

    def inspect_specialization(self, unit):
        return self.inspect_data[unit][0]

    def inspect_item_level(self, unit):
        return self.inspect_data[unit][1]

    # Signals
    def register_event(self, event, handler):
        self.handlers[event] = handler

    def unregister_event(self, event):
        self.handlers.pop(event, None)

    def fire(self, event: HostEvent, *args):
        return self.handlers[event](*args)


class FakeChannel:
    """Records outbound peer messages and delivers inbound ones."""

    def __init__(self):
        self.sent: List[Tuple[str, str, Distribution]] = []
        self.handlers: Dict[str, Callable[..., Any]] = {}

    def register(self, prefix, handler):
        self.handlers[prefix] = handler

    def unregister(self, prefix):
        self.handlers.pop(prefix, None)

    def send(self, prefix, message, distribution):
        self.sent.append((prefix, message, distribution))

    def deliver(self, prefix, message, distribution=Distribution.PARTY, sender="Peer"):
        return self.handlers[prefix](message, distribution, sender)


class Recorder:
    """Collects what a bus event was published with."""

    def __init__(self):
        self.calls: List[tuple] = []

    def __call__(self, *args):
        self.calls.append(args)

    @property
    def count(self) -> int:
        return len(self.calls)

    @property
    def last(self):
        return self.calls[-1][0] if self.calls and self.calls[-1] else None


@pytest.fixture()
def config() -> Config:
    return Config(mongodb_url=None, log_level="DEBUG")


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture()
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture()
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture()
def season() -> Season:
    affixes = [
        Affix(id=9, season_id=10, name="Tyrannical"),
        Affix(id=7, season_id=10, name="Bolstering"),
        Affix(id=13, season_id=10, name="Explosive"),
        Affix(id=132, season_id=10, name="Thundering"),
    ]
    maps = {
        375: MapInfo(id=375, name="Mists of Tirna Scithe", time_limit=1800),
        376: MapInfo(id=376, name="The Necrotic Wake", time_limit=2160),
    }
    return Season(id=10, description="Dragonflight Season 2", affixes=affixes, maps=maps)


@pytest.fixture()
def machine(host, bus, season, store, scheduler, config) -> SessionStateMachine:
    return SessionStateMachine(host, bus, season, store, scheduler, config)


@pytest.fixture()
def recorder_for(bus):
    def subscribe(event: LibraryEvent) -> Recorder:
        recorder = Recorder()
        bus.subscribe(event, recorder)
        return recorder
    return subscribe
