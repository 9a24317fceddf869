"""
Sequential unit inspection.

The host serves one inspection request at a time, so party members are
inspected strictly in order with at most one request outstanding.
"""

from collections import deque
from typing import TYPE_CHECKING, Deque, List, Optional

import structlog

from ..host.api import GameHost
from ..utils.timers import Scheduler, TimerHandle

if TYPE_CHECKING:
    from ..challenge.state_machine import SessionStateMachine

logger = structlog.get_logger(__name__)


class InspectionQueue:
    """FIFO of units waiting to have their spec and item level inspected."""

    def __init__(self, host: GameHost, machine: "SessionStateMachine",
                 scheduler: Scheduler, timeout: float = 5.0):
        self.host = host
        self.machine = machine
        self.timeout = timeout
        self.outstanding: Optional[str] = None

        self._pending: Deque[str] = deque()
        self._scheduler = scheduler
        self._timer: Optional[TimerHandle] = None

    @property
    def pending(self) -> List[str]:
        return list(self._pending)

    def enqueue(self, unit: str):
        self._pending.append(unit)
        logger.debug("Added unit to inspect queue", unit=unit, queued=len(self._pending))

    def pop_and_dispatch(self) -> Optional[str]:
        """Send the next inspection request unless one is already outstanding."""
        if self.outstanding is not None:
            logger.debug("Inspection already outstanding", unit=self.outstanding)
            return None
        if not self._pending:
            logger.debug("Inspect queue is empty")
            return None

        unit = self._pending.popleft()
        self.outstanding = unit
        self._timer = self._scheduler.call_later(self.timeout, self._on_timeout, unit)
        logger.debug("Sending inspect request", unit=unit)
        self.host.notify_inspect(unit)
        return unit

    def on_inspect_ready(self, guid: str, *_args):
        """Host handler: INSPECT_READY."""
        session = self.machine.get_active_session()
        if session is None:
            logger.debug("Ignoring inspection result without an active session", guid=guid)
            self.host.clear_inspect_player()
            self._resolve_outstanding()
            self.pop_and_dispatch()
            return

        member = session.find_member(guid)
        if member is None or not self.host.can_inspect(member.unit):
            logger.debug("Inspection result is not for a party member", guid=guid)
            return

        spec = self.host.inspect_specialization(member.unit)
        item_level = self.host.inspect_item_level(member.unit)
        self.machine.apply_inspection(guid, spec, item_level)
        logger.info("Inspected party member", unit=member.unit, spec=spec, item_level=item_level)

        # Only the answer to our own request frees the host for the next one
        if member.unit != self.outstanding:
            logger.debug("Inspection result for a unit other than the outstanding one",
                         unit=member.unit, outstanding=self.outstanding)
            return

        self.host.clear_inspect_player()
        self._resolve_outstanding()
        self.pop_and_dispatch()

    def reset(self):
        """Forget queued units and any outstanding request."""
        self._pending.clear()
        self._resolve_outstanding()

    def _resolve_outstanding(self):
        self.outstanding = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timeout(self, unit: str):
        if self.outstanding != unit:
            return
        logger.warning("Inspection request timed out", unit=unit)
        self._timer = None
        self.host.clear_inspect_player()
        self.outstanding = None
        self.pop_and_dispatch()
