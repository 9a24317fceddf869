"""
Utilities package for KeystoneSync.
"""

from .logging import setup_logging
from .timers import Scheduler, TimerGroup, TimerHandle

__all__ = [
    "setup_logging",
    "Scheduler",
    "TimerGroup",
    "TimerHandle"
]
