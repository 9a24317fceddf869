"""
Database connection management for KeystoneSync.
"""

from typing import Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure
import structlog

from ..config import Config, DatabaseConfig, get_config, get_db_config

logger = structlog.get_logger(__name__)


class DatabaseManager:
    """MongoDB connection manager."""

    def __init__(self, config: Optional[Config] = None, db_config: Optional[DatabaseConfig] = None):
        self.client: Optional[MongoClient] = None
        self.database: Optional[Database] = None
        self.config = config or get_config()
        self.db_config = db_config or get_db_config()

    def connect(self) -> bool:
        """Connect to MongoDB."""
        if not self.config.mongodb_url:
            logger.error("No MongoDB URL configured")
            return False

        try:
            self.client = MongoClient(
                self.config.mongodb_url,
                serverSelectionTimeoutMS=self.db_config.connection_timeout * 1000,
            )

            # Test the connection
            self.client.admin.command("ping")

            self.database = self.client[self.config.database_name]

            if self.db_config.enable_indexes:
                self._create_indexes()

            logger.info("Connected to MongoDB", database=self.config.database_name)
            return True

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            self.disconnect()
            return False

    def disconnect(self):
        """Disconnect from MongoDB."""
        if self.client is not None:
            self.client.close()
            self.client = None
            self.database = None
            logger.info("Disconnected from MongoDB")

    def _create_indexes(self):
        sessions = self.get_collection(self.db_config.sessions_collection)
        sessions.create_index("updated_at")
        logger.info("Database indexes created successfully")

    def get_collection(self, collection_name: str) -> Collection:
        """Get a specific collection."""
        if self.database is None:
            raise RuntimeError("Database not connected")
        return self.database[collection_name]
