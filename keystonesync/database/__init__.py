"""
Data model and persistence package for KeystoneSync.
"""

from .connection import DatabaseManager
from .models import Affix, MapInfo, Season, Keystone, PartyMember, Session
from .operations import (
    ActiveSessionStore,
    MemorySessionStore,
    MongoSessionStore,
    create_session_store,
)

__all__ = [
    "DatabaseManager",
    "Affix",
    "MapInfo",
    "Season",
    "Keystone",
    "PartyMember",
    "Session",
    "ActiveSessionStore",
    "MemorySessionStore",
    "MongoSessionStore",
    "create_session_store"
]
