"""
Readiness gate for the KeystoneSync API.
"""

from typing import Any, Callable, List, Optional

import structlog

from ..config import Config, get_config
from ..events import EventBus, LibraryEvent, Unsubscribe
from ..utils.timers import Scheduler, TimerHandle
from .loader import SeasonalDataLoader

logger = structlog.get_logger(__name__)

_READINESS_SIGNALS = (
    LibraryEvent.SEASON_ID_LOADED,
    LibraryEvent.AFFIXES_LOADED,
    LibraryEvent.MAPS_LOADED,
    LibraryEvent.SEASON_UNAVAILABLE,
)


def _noop() -> None:
    return None


class ReadinessGate:
    """Decides when the API can be handed to consumers.

    The gate resolves once, either with the API handle when all seasonal data
    is loaded or with ``None`` when Mythic+ is not active this cycle. Listeners
    registered after resolution are invoked immediately with the same payload.
    """

    def __init__(self, loader: SeasonalDataLoader, bus: EventBus, scheduler: Scheduler,
                 api: Any, config: Optional[Config] = None):
        self.loader = loader
        self.bus = bus
        self.api = api
        self.config = config or get_config()
        self.resolved = False
        self.payload: Any = None
        self.checks = 0

        self._scheduler = scheduler
        self._timer: Optional[TimerHandle] = None
        self._subscriptions: List[Unsubscribe] = [
            bus.subscribe(signal, self._on_signal) for signal in _READINESS_SIGNALS
        ]

    def is_ready(self) -> bool:
        return self.loader.season.is_loaded

    def on_api_ready(self, listener: Callable[[Any], Any]) -> Unsubscribe:
        """Invoke ``listener`` with the API once it is ready, or now if it already is."""
        if self.resolved:
            logger.debug("API already resolved, invoking listener immediately")
            listener(self.payload)
            return _noop

        return self.bus.subscribe(LibraryEvent.API_READY, listener)

    def evaluate(self) -> bool:
        """Resolve the gate if the data allows it; returns whether it is resolved."""
        if self.resolved:
            return True

        if self.is_ready():
            logger.info("Seasonal data available, API is ready")
            self._resolve(self.api)
        elif self.loader.season_active is False:
            logger.info("Mythic+ is not active, resolving API without data")
            self._resolve(None)

        return self.resolved

    def start(self):
        """Start the watchdog that re-fetches when data never arrives."""
        self._schedule_check()

    def check(self):
        self._timer = None
        if self.evaluate():
            return

        self.checks += 1
        if self.checks > self.config.max_load_attempts:
            logger.warning("Seasonal data still unavailable, forcing a refetch", checks=self.checks)
            self.checks = 0
            self.loader.refetch()
        else:
            logger.debug("Seasonal data not available yet", checks=self.checks)

        self._schedule_check()

    def cancel(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()

    def _on_signal(self, *_args):
        self.evaluate()

    def _schedule_check(self):
        self._timer = self._scheduler.call_later(self.config.readiness_check_interval, self.check)

    def _resolve(self, payload: Any):
        self.resolved = True
        self.payload = payload
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.bus.publish_once(LibraryEvent.API_READY, payload)
