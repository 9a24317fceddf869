"""
Host interfaces package for KeystoneSync.
"""

from .api import GameHost, PeerChannel, HostEvent, Distribution, AffixRef, CompletionInfo

__all__ = [
    "GameHost",
    "PeerChannel",
    "HostEvent",
    "Distribution",
    "AffixRef",
    "CompletionInfo"
]
