"""
Debounced zone change detection.
"""

from typing import Optional

import structlog

from ..host.api import GameHost
from ..utils.timers import Scheduler, TimerHandle
from .state_machine import SessionStateMachine

logger = structlog.get_logger(__name__)


class ZoneWatcher:
    """Coalesces bursts of zone change signals into one evaluation.

    Loading into an instance fires the host signal several times in a row;
    evaluating each one would report the player leaving the instance right
    before the start signal reports them entering it.
    """

    def __init__(self, host: GameHost, machine: SessionStateMachine,
                 scheduler: Scheduler, debounce: float = 1.0):
        self.host = host
        self.machine = machine
        self.debounce = debounce

        self._scheduler = scheduler
        self._timer: Optional[TimerHandle] = None
        self._is_login = False
        self._is_reload = False
        self.coalesced = 0

    def on_zone_changed(self, is_login: bool = False, is_reload: bool = False, *_args):
        """Host handler: PLAYER_ENTERING_WORLD."""
        self._is_login = self._is_login or bool(is_login)
        self._is_reload = self._is_reload or bool(is_reload)

        if self._timer is not None:
            self.coalesced += 1
            return
        self._timer = self._scheduler.call_later(self.debounce, self.flush)

    def flush(self):
        is_login, is_reload = self._is_login, self._is_reload
        self._timer = None
        self._is_login = self._is_reload = False

        if is_login or is_reload:
            self._reconcile_after_load()
            return

        if self.machine.is_active() and not self.host.is_challenge_mode_active():
            self.machine.record_instance_left()

    def cancel(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._is_login = self._is_reload = False

    def _reconcile_after_load(self):
        # A reload during the countdown can swallow the start signal
        if not self.machine.is_active() and self.host.is_challenge_mode_active():
            if not self.machine.season.is_loaded:
                logger.warning("Challenge is running but seasonal data is not loaded yet, cannot recover session")
                return
            logger.info("Challenge is running but no session was recorded, starting one")
            self.machine.on_challenge_started()
