"""
Seasonal reference data loading.

The host only answers season queries some time after the matching request
calls have been made, and answers with a "not ready" sentinel until then
(a negative season id, ``None`` for affixes and maps). Each field therefore
retries on a timer. The host can also silently stop answering a follow-up
query, and only re-issuing the whole request batch recovers from that, so a
field that exhausts its attempts escalates to a full re-fetch.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

import structlog

from ..config import Config, get_config
from ..database.models import Affix, MapInfo, Season
from ..errors import SeasonDataNotRequested
from ..events import EventBus, LibraryEvent
from ..host.api import GameHost
from ..utils.timers import Scheduler, TimerGroup

logger = structlog.get_logger(__name__)

SEASON_ID = "season_id"
AFFIXES = "affixes"
MAPS = "maps"
FIELDS = (SEASON_ID, AFFIXES, MAPS)


@dataclass(frozen=True)
class RetryPolicy:
    """How long to wait between attempts and when to give up and re-fetch."""

    max_attempts: int = 5
    delay: float = 1.0

    @classmethod
    def from_config(cls, config: Config) -> "RetryPolicy":
        return cls(max_attempts=config.max_load_attempts, delay=config.retry_delay_seconds)


def describe_season(season_id: int, config: Optional[Config] = None) -> str:
    """Human readable name for a season ID.

    Season IDs are global counters; the first season of the current
    expansion follows the last season of the previous one.
    """
    config = config or get_config()
    if season_id == config.previous_expansion_last_season_id:
        return f"{config.previous_expansion_name} Season {config.previous_expansion_last_season}"
    return f"{config.current_expansion_name} Season {season_id - config.previous_expansion_last_season_id}"


class SeasonalDataLoader:
    """Loads season id, affixes and maps from the host with bounded retry."""

    def __init__(self, host: GameHost, bus: EventBus, scheduler: Scheduler,
                 config: Optional[Config] = None, retry: Optional[RetryPolicy] = None):
        self.host = host
        self.bus = bus
        self.config = config or get_config()
        self.retry = retry or RetryPolicy.from_config(self.config)
        self.season = Season()

        self.season_active: Optional[bool] = None
        self.requested = False
        self.affix_notification_seen = False
        self.attempts: Dict[str, int] = {field: 0 for field in FIELDS}
        self.refetch_count = 0

        self._timers = TimerGroup(scheduler)

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    def start(self):
        """Request season data once the host has had a moment to settle."""
        self._timers.call_later(self.config.startup_delay_seconds, self.request_all)

    def request_all(self):
        """Issue the host request batch and begin loading."""
        if not self._check_season_active():
            return

        self._issue_requests()
        # Affixes are loaded from the host's affix update notification
        self.load_season_id()
        self.load_maps()

    def refetch(self):
        """Cancel every pending retry and re-issue the whole request batch."""
        cancelled = self._timers.cancel_all()
        self._reset_attempts()
        self.refetch_count += 1
        logger.warning(
            "Too many attempts to fetch seasonal data, refetching",
            cancelled_timers=cancelled,
            refetch_count=self.refetch_count,
        )

        if not self._check_season_active():
            return

        self._issue_requests()
        self._timers.call_later(self.retry.delay, self.load_season_id)
        self._timers.call_later(self.retry.delay, self.load_maps)
        if self.affix_notification_seen:
            self._timers.call_later(self.retry.delay, self.load_affixes)

    def cancel(self):
        """Cancel all pending timers."""
        self._timers.cancel_all()

    def on_affixes_updated(self, *_args):
        """Host handler: MYTHIC_PLUS_CURRENT_AFFIX_UPDATE."""
        self.affix_notification_seen = True
        if not self.requested:
            logger.debug("Ignoring affix update received before season data was requested")
            return
        self.load_affixes()

    def load_season_id(self):
        if self.season.id is not None:
            return
        self._require_requested(SEASON_ID)

        season_id = self.host.get_current_season()
        logger.debug("Attempting to load the current season", received=season_id)
        if season_id is None or season_id < 0:
            self._not_ready(SEASON_ID, self.load_season_id)
            return

        self.season.id = season_id
        self.season.description = describe_season(season_id, self.config)
        logger.info("Loaded current season", season_id=season_id, description=self.season.description)
        self.bus.publish(LibraryEvent.SEASON_ID_LOADED, season_id)

    def load_affixes(self):
        if self.season.affixes is not None:
            return
        self._require_requested(AFFIXES)
        if not self.affix_notification_seen:
            raise SeasonDataNotRequested("Affixes cannot be loaded before the host announced an affix update")

        affix_refs = self.host.get_current_affixes()
        logger.debug("Attempting to load affixes for the current season")
        if affix_refs is None:
            self._not_ready(AFFIXES, self.load_affixes)
            return

        affixes = []
        for ref in affix_refs:
            name, description, icon = self.host.get_affix_info(ref.id)
            affixes.append(Affix(
                id=ref.id,
                season_id=ref.season_id,
                name=name,
                description=description or "",
                icon=icon,
            ))

        self.season.affixes = affixes
        logger.info("Loaded current season affixes", affixes=[affix.name for affix in affixes])
        self.bus.publish(LibraryEvent.AFFIXES_LOADED, list(affixes))

    def load_maps(self):
        if self.season.maps is not None:
            return
        self._require_requested(MAPS)

        map_ids = self.host.get_map_table()
        logger.debug("Attempting to load the available maps for the current season")
        if map_ids is None:
            self._not_ready(MAPS, self.load_maps)
            return

        maps = {}
        for map_id in map_ids:
            name, time_limit, texture, background = self.host.get_map_ui_info(map_id)
            maps[map_id] = MapInfo(
                id=map_id,
                name=name,
                time_limit=time_limit,
                texture=texture,
                background_texture=background,
            )

        self.season.maps = maps
        logger.info("Loaded current season maps", count=len(maps))
        self.bus.publish(LibraryEvent.MAPS_LOADED, dict(maps))

    def _check_season_active(self) -> bool:
        self.season_active = bool(self.host.is_mythic_plus_active())
        if not self.season_active:
            logger.info("Mythic+ is not active at this time")
            self.bus.publish(LibraryEvent.SEASON_UNAVAILABLE)
        return self.season_active

    def _reset_attempts(self):
        for field in FIELDS:
            self.attempts[field] = 0

    def _issue_requests(self):
        self._reset_attempts()
        self.host.request_map_info()
        self.host.request_current_affixes()
        self.host.request_rewards()
        self.requested = True
        logger.debug("Requested seasonal Mythic+ data from the host")

    def _require_requested(self, field: str):
        if not self.requested:
            raise SeasonDataNotRequested(f"Cannot load {field} before the season request batch was issued")

    def _not_ready(self, field: str, retry: Callable[[], None]):
        self.attempts[field] += 1
        attempts = self.attempts[field]
        if attempts >= self.retry.max_attempts:
            self.refetch()
            return

        logger.debug("Seasonal data not ready, will retry", field=field, attempt=attempts, delay=self.retry.delay)
        self._timers.call_later(self.retry.delay, retry)
