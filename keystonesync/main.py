"""
Application wiring for KeystoneSync.
"""

import asyncio
from typing import Any, Callable, Optional

import structlog

from .api import KeystoneApi
from .challenge import SessionStateMachine, ZoneWatcher
from .config import Config, get_config
from .database import ActiveSessionStore, create_session_store
from .events import EventBus, Unsubscribe
from .host.api import GameHost, HostEvent, PeerChannel
from .season import ReadinessGate, SeasonalDataLoader
from .sync import PeerSyncProtocol
from .utils.logging import setup_logging
from .utils.timers import Scheduler

logger = structlog.get_logger(__name__)


class KeystoneSync:
    """Wires the loader, state machine and peer protocol to a host."""

    def __init__(self, host: GameHost, channel: PeerChannel,
                 scheduler: Optional[Scheduler] = None,
                 store: Optional[ActiveSessionStore] = None,
                 config: Optional[Config] = None):
        self.config = config or get_config()
        self.host = host
        self.channel = channel
        self.scheduler = scheduler
        self.store = store
        self.bus = EventBus()

        self.loader: Optional[SeasonalDataLoader] = None
        self.machine: Optional[SessionStateMachine] = None
        self.api: Optional[KeystoneApi] = None
        self.gate: Optional[ReadinessGate] = None
        self.protocol: Optional[PeerSyncProtocol] = None
        self.zone_watcher: Optional[ZoneWatcher] = None
        self.is_running = False

    def startup(self, configure_logging: bool = True) -> bool:
        """Build every component and register with the host."""
        if configure_logging:
            setup_logging(self.config)
        logger.info("Starting KeystoneSync")

        if self.scheduler is None:
            self.scheduler = asyncio.get_running_loop()

        if self.store is None:
            self.store, kind = create_session_store(self.config)
            logger.info("Session store ready", kind=kind)

        self.loader = SeasonalDataLoader(self.host, self.bus, self.scheduler, self.config)
        self.machine = SessionStateMachine(
            self.host, self.bus, self.loader.season, self.store, self.scheduler, self.config
        )
        self.api = KeystoneApi(self.host, self.bus, self.loader.season, self.machine)
        self.gate = ReadinessGate(self.loader, self.bus, self.scheduler, self.api, self.config)
        self.protocol = PeerSyncProtocol(self.host, self.channel, self.bus, self.machine, self.config)
        self.zone_watcher = ZoneWatcher(
            self.host, self.machine, self.scheduler, debounce=self.config.zone_debounce_seconds
        )

        self._register_host_events()
        self.protocol.attach()

        self.loader.start()
        self.gate.start()
        self.is_running = True

        logger.info("KeystoneSync started")
        return True

    def shutdown(self):
        """Cancel timers and detach from the host."""
        logger.info("Shutting down KeystoneSync")
        self.is_running = False

        if self.loader:
            self.loader.cancel()
        if self.gate:
            self.gate.cancel()
        if self.zone_watcher:
            self.zone_watcher.cancel()
        if self.machine:
            self.machine.inspection.reset()
        if self.protocol:
            self.protocol.detach()

        for event in HostEvent:
            self.host.unregister_event(event)

        if self.store:
            self.store.close()
        self.bus.clear()

        logger.info("KeystoneSync shutdown complete")

    def stop(self):
        """Ask :meth:`run` to shut down."""
        self.is_running = False

    async def run(self) -> bool:
        """Run on the current event loop until :meth:`stop` is called."""
        if not self.startup():
            return False

        try:
            while self.is_running:
                await asyncio.sleep(1)
        finally:
            self.shutdown()

        return True

    def on_api_ready(self, listener: Callable[[Optional[KeystoneApi]], Any]) -> Unsubscribe:
        """Invoke ``listener`` with the API once ready, or ``None`` when no season is active."""
        if self.gate is None:
            raise RuntimeError("KeystoneSync not started")
        return self.gate.on_api_ready(listener)

    def _register_host_events(self):
        handlers = {
            HostEvent.KEYSTONE_SLOTTED: self.machine.on_keystone_slotted,
            HostEvent.CURRENT_AFFIX_UPDATED: self.loader.on_affixes_updated,
            HostEvent.CHALLENGE_STARTED: self.machine.on_challenge_started,
            HostEvent.CHALLENGE_COMPLETED: self.machine.on_challenge_completed,
            HostEvent.SYSTEM_CHAT_MESSAGE: self.machine.on_system_message,
            HostEvent.PLAYER_ENTERING_WORLD: self.zone_watcher.on_zone_changed,
            HostEvent.CHALLENGE_DEATH: self.machine.on_death_count_updated,
            HostEvent.CHALLENGE_RESET: self.machine.on_challenge_reset,
            HostEvent.INSPECT_READY: self.machine.inspection.on_inspect_ready,
        }
        for event, handler in handlers.items():
            self.host.register_event(event, handler)
        logger.debug("Registered host event handlers", count=len(handlers))
