"""
Peer synchronization package for KeystoneSync.
"""

from .messages import (
    PeerMessage,
    InstanceResetMessage,
    KeystoneSlottedMessage,
    SessionStartedMessage,
    SessionCompletedMessage,
    SessionAbandonedMessage,
)
from .protocol import PeerSyncProtocol

__all__ = [
    "PeerMessage",
    "InstanceResetMessage",
    "KeystoneSlottedMessage",
    "SessionStartedMessage",
    "SessionCompletedMessage",
    "SessionAbandonedMessage",
    "PeerSyncProtocol"
]
