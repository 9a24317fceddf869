"""
Party package for KeystoneSync.
"""

from .inspection import InspectionQueue
from .members import build_party_member, capture_party, PLAYER_UNIT

__all__ = [
    "InspectionQueue",
    "build_party_member",
    "capture_party",
    "PLAYER_UNIT"
]
