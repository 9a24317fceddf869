"""
KeystoneSync: Mythic+ keystone session tracking shared across a party.
"""

from .api import KeystoneApi
from .events import LibraryEvent
from .main import KeystoneSync

__version__ = "0.1.0"

__all__ = [
    "KeystoneApi",
    "KeystoneSync",
    "LibraryEvent",
    "__version__"
]
