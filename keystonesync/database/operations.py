"""
Active session persistence for KeystoneSync.

The durable region is keyed by the local character's GUID and holds at most
one active session, so an in-progress run survives a client reload.
"""

from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from pymongo.collection import Collection
from pymongo.errors import PyMongoError
import structlog

from ..config import Config, get_config, get_db_config
from .connection import DatabaseManager
from .models import Session

logger = structlog.get_logger(__name__)


class ActiveSessionStore:
    """Base store for the per-character active session slot."""

    def load(self, character_id: str) -> Optional[Session]:
        raise NotImplementedError

    def save(self, character_id: str, session: Session) -> None:
        raise NotImplementedError

    def clear(self, character_id: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Release any held resources."""


class MemorySessionStore(ActiveSessionStore):
    """Process-local store; sessions do not outlive the process."""

    def __init__(self):
        self._sessions: Dict[str, dict] = {}

    def load(self, character_id: str) -> Optional[Session]:
        data = self._sessions.get(character_id)
        if data is None:
            return None
        return Session.model_validate(data)

    def save(self, character_id: str, session: Session) -> None:
        self._sessions[character_id] = session.model_dump(mode="json")

    def clear(self, character_id: str) -> None:
        self._sessions.pop(character_id, None)


class MongoSessionStore(ActiveSessionStore):
    """MongoDB backed store, one document per character."""

    def __init__(self, collection: Collection, manager: Optional[DatabaseManager] = None):
        self.collection = collection
        self._manager = manager

    def load(self, character_id: str) -> Optional[Session]:
        try:
            document = self.collection.find_one({"_id": character_id})
        except PyMongoError as e:
            logger.error("Failed to load active session", character_id=character_id, error=str(e))
            raise

        if not document or document.get("session") is None:
            return None
        return Session.model_validate(document["session"])

    def save(self, character_id: str, session: Session) -> None:
        document = {
            "_id": character_id,
            "session": session.model_dump(mode="json"),
            "updated_at": datetime.now(timezone.utc),
        }
        try:
            self.collection.replace_one({"_id": character_id}, document, upsert=True)
        except PyMongoError as e:
            logger.error("Failed to save active session", character_id=character_id, error=str(e))
            raise

    def clear(self, character_id: str) -> None:
        try:
            self.collection.delete_one({"_id": character_id})
        except PyMongoError as e:
            logger.error("Failed to clear active session", character_id=character_id, error=str(e))
            raise

    def close(self) -> None:
        if self._manager is not None:
            self._manager.disconnect()


def create_session_store(config: Optional[Config] = None) -> Tuple[ActiveSessionStore, str]:
    """Build the configured store; returns the store and its kind."""
    config = config or get_config()
    if not config.mongodb_url:
        return MemorySessionStore(), "memory"

    manager = DatabaseManager(config)
    if not manager.connect():
        raise RuntimeError("Failed to connect to database")

    collection = manager.get_collection(get_db_config().sessions_collection)
    return MongoSessionStore(collection, manager), "mongodb"
