"""
Challenge session package for KeystoneSync.
"""

from .keystones import affixes_for_level, build_keystone, owned_keystone, slotted_keystone
from .state_machine import SessionStateMachine, SessionState
from .zone_watcher import ZoneWatcher

__all__ = [
    "affixes_for_level",
    "build_keystone",
    "owned_keystone",
    "slotted_keystone",
    "SessionStateMachine",
    "SessionState",
    "ZoneWatcher"
]
