"""
Peer synchronization over the addon message channel.
"""

import json
from typing import Any, List, Optional

from pydantic import ValidationError
import structlog

from ..challenge.state_machine import REASON_PEER_INSTANCE_RESET, SessionStateMachine
from ..config import Config, get_config
from ..database.models import Keystone, Session
from ..errors import ProtocolViolation
from ..events import EventBus, LibraryEvent, Unsubscribe
from ..host.api import Distribution, GameHost, PeerChannel
from .messages import (
    KNOWN_EVENTS,
    PEER_MESSAGE_ADAPTER,
    InstanceResetMessage,
    KeystonePayload,
    KeystoneSlottedMessage,
    PeerMessage,
    SessionAbandonedMessage,
    SessionCompletedMessage,
    SessionPayload,
    SessionStartedMessage,
)

logger = structlog.get_logger(__name__)


class PeerSyncProtocol:
    """Broadcasts local session facts and applies what peers report.

    Peers are untrusted and the channel is lossy, so anything that does not
    decode is dropped quietly. A decodable message with no sender is a
    contract breach and raises.
    """

    def __init__(self, host: GameHost, channel: PeerChannel, bus: EventBus,
                 machine: SessionStateMachine, config: Optional[Config] = None):
        self.host = host
        self.channel = channel
        self.bus = bus
        self.machine = machine
        self.config = config or get_config()
        self.prefix = self.config.comm_prefix
        self.local_id = machine.character_id

        self._subscriptions: List[Unsubscribe] = []

    def attach(self):
        """Start listening to the channel and to local session events."""
        self.channel.register(self.prefix, self.handle_message)
        self._subscriptions = [
            self.bus.subscribe(LibraryEvent.KEYSTONE_SLOTTED, self._on_keystone_slotted),
            self.bus.subscribe(LibraryEvent.INSTANCE_RESET_DETECTED, self._on_instance_reset_detected),
            self.bus.subscribe(LibraryEvent.SESSION_STARTED, self._on_session_started),
            self.bus.subscribe(LibraryEvent.SESSION_COMPLETED, self._on_session_completed),
            self.bus.subscribe(LibraryEvent.SESSION_ABANDONED, self._on_session_abandoned),
        ]
        logger.info("Registered for peer communication", prefix=self.prefix)

    def detach(self):
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()
        self.channel.unregister(self.prefix)

    def broadcast(self, message: PeerMessage, distribution: Distribution):
        self.channel.send(self.prefix, message.serialize(), distribution)
        logger.debug("Sent peer message", peer_event=message.event, distribution=distribution.value)

    # Inbound

    def handle_message(self, raw: Any, distribution: Optional[Distribution] = None,
                       sender: Optional[str] = None) -> Optional[PeerMessage]:
        """Channel handler; returns the applied message, if any."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("Received a peer message that could not be deserialized", sender=sender)
            return None

        if not isinstance(data, dict):
            logger.debug("Received a peer message that is not an object", sender=sender)
            return None

        sender_id = data.get("senderId")
        if sender_id is None or sender_id == "":
            raise ProtocolViolation("Every peer message must carry the sender's unit GUID")

        # Our own broadcast: the transition it describes already happened here
        if sender_id == self.local_id:
            return None

        event = data.get("event")
        if event not in KNOWN_EVENTS:
            logger.debug("Ignoring unknown peer event", peer_event=event, sender=sender)
            return None

        try:
            message = PEER_MESSAGE_ADAPTER.validate_python(data)
        except ValidationError as e:
            logger.debug("Dropping malformed peer message", peer_event=event, sender=sender,
                         errors=e.error_count())
            return None

        self._dispatch(message, sender)
        return message

    def _dispatch(self, message: PeerMessage, sender: Optional[str]):
        if isinstance(message, InstanceResetMessage):
            if self.machine.is_active():
                logger.info("Peer reported an instance reset", sender=sender)
                self.machine.abandon(REASON_PEER_INSTANCE_RESET)
            else:
                logger.debug("Peer instance reset without an active session", sender=sender)
            return

        logger.debug("Received peer update", peer_event=message.event, sender=sender)

    # Outbound

    def _on_keystone_slotted(self, keystone: Keystone):
        message = KeystoneSlottedMessage(sender_id=self.local_id, payload=KeystonePayload(keystone=keystone))
        self.broadcast(message, Distribution.PARTY)

    def _on_instance_reset_detected(self, *_args):
        self.broadcast(InstanceResetMessage(sender_id=self.local_id), Distribution.PARTY)

    def _on_session_started(self, session: Session):
        self._broadcast_to_guild(SessionStartedMessage(
            sender_id=self.local_id, payload=SessionPayload(session=session)
        ))

    def _on_session_completed(self, session: Session):
        self._broadcast_to_guild(SessionCompletedMessage(
            sender_id=self.local_id, payload=SessionPayload(session=session)
        ))

    def _on_session_abandoned(self, session: Session):
        self._broadcast_to_guild(SessionAbandonedMessage(
            sender_id=self.local_id, payload=SessionPayload(session=session)
        ))

    def _broadcast_to_guild(self, message: PeerMessage):
        if self.host.is_in_guild():
            self.broadcast(message, Distribution.GUILD)
