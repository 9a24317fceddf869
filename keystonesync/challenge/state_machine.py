"""
Session state machine for KeystoneSync.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Pattern, Set

import structlog

from ..config import Config, get_config
from ..database.models import Keystone, Season, Session
from ..database.operations import ActiveSessionStore
from ..errors import PreconditionViolation
from ..events import EventBus, LibraryEvent
from ..host.api import GameHost
from ..party import InspectionQueue, PLAYER_UNIT, capture_party
from ..utils.timers import Scheduler
from .keystones import build_keystone, slotted_keystone

logger = structlog.get_logger(__name__)

REASON_COMPLETED = "SuccessfulCompletion"
REASON_INSTANCE_RESET = "InstanceReset"
REASON_PEER_INSTANCE_RESET = "PeerInstanceReset"
REASON_ACTIVE_DURING_RESET = "ChallengeActiveDuringReset"


class SessionState(str, Enum):
    """Session state enumeration."""
    IDLE = "idle"
    ACTIVE = "active"


def compile_reset_pattern(message_format: str) -> Pattern[str]:
    """Turn the host's localized ``"%s has been reset."`` format into a regex."""
    parts = [re.escape(part) for part in message_format.split("%s")]
    return re.compile(".+".join(parts))


class SessionStateMachine:
    """Owns the single active session slot and every transition on it.

    The slot is the source of truth for whether a run is in progress: it is
    always cleared before a terminal event is published, so listeners asking
    ``is_active()`` from inside the callback see ``False``.
    """

    VALID_TRANSITIONS: Dict[SessionState, Set[SessionState]] = {
        SessionState.IDLE: {
            SessionState.ACTIVE
        },
        SessionState.ACTIVE: {
            SessionState.ACTIVE,  # Re-entry
            SessionState.IDLE
        },
    }

    def __init__(self, host: GameHost, bus: EventBus, season: Season,
                 store: ActiveSessionStore, scheduler: Scheduler,
                 config: Optional[Config] = None):
        self.host = host
        self.bus = bus
        self.season = season
        self.store = store
        self.config = config or get_config()
        self.character_id = host.unit_guid(PLAYER_UNIT)
        if self.character_id is None:
            raise PreconditionViolation("The local player must have a GUID")

        self.inspection = InspectionQueue(
            host, self, scheduler, timeout=self.config.inspect_timeout_seconds
        )
        self._reset_pattern = compile_reset_pattern(self.config.instance_reset_message)

        self._session: Optional[Session] = store.load(self.character_id)
        if self._session is not None:
            logger.info("Restored active session", map_id=self._session.keystone.map_id,
                        level=self._session.keystone.level)

        self.state_history: List[tuple[SessionState, datetime]] = [
            (self.current_state, datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> SessionState:
        return SessionState.ACTIVE if self._session is not None else SessionState.IDLE

    def can_transition_to(self, new_state: SessionState) -> bool:
        return new_state in self.VALID_TRANSITIONS.get(self.current_state, set())

    def is_active(self) -> bool:
        return self._session is not None

    def is_active_and_player_present(self) -> bool:
        return self.is_active() and bool(self.host.is_challenge_mode_active())

    def get_active_session(self) -> Optional[Session]:
        """A copy of the active session, or ``None``."""
        if self._session is None:
            return None
        return self._session.model_copy(deep=True)

    # Transitions

    def on_challenge_started(self, *_args) -> Session:
        """Host handler: CHALLENGE_MODE_START."""
        # The host fires the start signal again when the player zones back
        # into a run that is still going.
        if self._session is not None:
            logger.info("Instance re-entered while a session is active")
            self._record_transition(SessionState.ACTIVE)
            snapshot = self.get_active_session()
            self.bus.publish(LibraryEvent.INSTANCE_REENTERED, snapshot)
            return snapshot

        keystone = self._active_keystone()

        self.inspection.reset()
        party = capture_party(self.host)
        if not party or party[0].unit != PLAYER_UNIT:
            raise PreconditionViolation("The local player must be part of the session party")
        for member in party[1:]:
            self.inspection.enqueue(member.unit)

        is_guild_party = bool(self.host.in_guild_party())
        session = Session(
            keystone=keystone,
            party=party,
            started_at=self._now(),
            is_guild_party=is_guild_party,
            guild=self.host.unit_guild(PLAYER_UNIT) if is_guild_party else None,
        )

        self._require_transition(SessionState.ACTIVE)
        self._session = session
        self.store.save(self.character_id, session)
        self._record_transition(SessionState.ACTIVE)
        logger.info("Session started", map_id=keystone.map_id, level=keystone.level,
                    party_size=len(party), is_guild_party=is_guild_party)

        self.inspection.pop_and_dispatch()
        snapshot = self.get_active_session()
        self.bus.publish(LibraryEvent.SESSION_STARTED, snapshot)
        return snapshot

    def on_challenge_completed(self, *_args) -> Session:
        """Host handler: CHALLENGE_MODE_COMPLETED."""
        self._require_active("complete")
        info = self.host.get_completion_info()
        finished = self._finish(
            result=info.upgrade_levels,
            reason=REASON_COMPLETED,
            is_completed=True,
            time_taken=info.time_taken,
            old_score=info.old_score,
            new_score=info.new_score,
            is_eligible_for_score=info.is_eligible_for_score,
        )
        logger.info("Session completed", upgrade_levels=info.upgrade_levels, time_taken=info.time_taken)
        self.bus.publish(LibraryEvent.SESSION_COMPLETED, finished)
        return finished

    def abandon(self, reason: str) -> Session:
        """Mark the active session abandoned for ``reason``."""
        self._require_active("abandon")
        finished = self._finish(result=-1, reason=reason, is_completed=False)
        logger.info("Session abandoned", reason=reason)
        self.bus.publish(LibraryEvent.SESSION_ABANDONED, finished)
        return finished

    def on_challenge_reset(self, *_args):
        """Host handler: CHALLENGE_MODE_RESET."""
        if self._session is not None:
            self.abandon(REASON_ACTIVE_DURING_RESET)
        self.bus.publish(LibraryEvent.SESSION_RESET)

    def on_system_message(self, message: str, *_args) -> bool:
        """Host handler: CHAT_MSG_SYSTEM.

        Only the party leader sees the reset announcement, so after abandoning
        the rest of the party is told over the peer channel.
        """
        if not message or not self._reset_pattern.search(message):
            return False

        # Resetting instances with no run in progress is perfectly normal
        if self._session is None:
            logger.debug("Instance reset observed without an active session")
            return False

        self.abandon(REASON_INSTANCE_RESET)
        self.bus.publish(LibraryEvent.INSTANCE_RESET_DETECTED)
        return True

    def on_death_count_updated(self, *_args) -> Session:
        """Host handler: CHALLENGE_MODE_DEATH_COUNT_UPDATED."""
        self._require_active("record a death")
        deaths, time_lost = self.host.get_death_count()
        self._session.deaths = deaths
        self._session.time_lost_to_deaths = time_lost
        self.store.save(self.character_id, self._session)

        logger.info("Death recorded", deaths=deaths, time_lost=time_lost)
        snapshot = self.get_active_session()
        self.bus.publish(LibraryEvent.DEATH_RECORDED, snapshot)
        return snapshot

    def record_instance_left(self) -> bool:
        """Publish that the player is no longer inside the active run."""
        if self._session is None:
            logger.debug("Zone change without an active session")
            return False

        logger.info("Player left the instance during an active session")
        self.bus.publish(LibraryEvent.INSTANCE_LEFT, self.get_active_session())
        return True

    def on_keystone_slotted(self, *_args) -> Keystone:
        """Host handler: CHALLENGE_MODE_KEYSTONE_SLOTTED."""
        keystone = slotted_keystone(self.host, self.season)
        if keystone is None:
            raise PreconditionViolation("A keystone must be slotted when the keystone slotted signal fires")

        logger.info("Keystone slotted", map_id=keystone.map_id, level=keystone.level)
        self.bus.publish(LibraryEvent.KEYSTONE_SLOTTED, keystone)
        return keystone

    def apply_inspection(self, member_id: str, spec: Optional[int], item_level: Optional[float]) -> bool:
        """Fill a party member's inspection data; returns whether one matched."""
        if self._session is None:
            return False

        member = self._session.find_member(member_id)
        if member is None:
            return False

        member.spec = spec
        member.item_level = item_level
        self.store.save(self.character_id, self._session)
        return True

    # Internals

    def _finish(self, **fields) -> Session:
        # Stamp the outcome on a copy and clear the slot in the same step so
        # no listener ever sees an occupied slot that is already finished.
        self._require_transition(SessionState.IDLE)
        finished = self._session.model_copy(deep=True, update={"finished_at": self._now(), **fields})
        self._session = None
        self.inspection.reset()
        self.store.clear(self.character_id)
        self._record_transition(SessionState.IDLE)
        return finished

    def _active_keystone(self) -> Keystone:
        level = self.host.get_active_keystone_level()
        map_id = self.host.get_active_challenge_map_id()
        if level is None:
            raise PreconditionViolation("Expected an active keystone level but the host reported none")
        if map_id is None:
            raise PreconditionViolation("Expected an active keystone map ID but the host reported none")
        return build_keystone(self.season, level, map_id)

    def _require_active(self, action: str):
        if self._session is None:
            raise PreconditionViolation(f"Cannot {action} without an active session")

    def _require_transition(self, new_state: SessionState):
        if not self.can_transition_to(new_state):
            raise PreconditionViolation(
                f"Invalid session transition from {self.current_state.value} to {new_state.value}"
            )

    def _record_transition(self, new_state: SessionState):
        old_state = self.state_history[-1][0]
        self.state_history.append((new_state, datetime.now(timezone.utc)))
        logger.debug("Session state transitioned", old_state=old_state, new_state=new_state)

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.host.get_server_time(), tz=timezone.utc)
