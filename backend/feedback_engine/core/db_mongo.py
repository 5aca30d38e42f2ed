"""
MongoDB client for feedback storage.
This module owns the Motor connection lifecycle and index setup; queries live
in the feedback store accessor.
"""

from motor.motor_asyncio import AsyncIOMotorClient
from typing import Optional
import logging

from ..config import settings

logger = logging.getLogger(__name__)


class MongoDBClient:
    """Async MongoDB client."""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.database = None
        self.available = False  # Flag to indicate if service is available

    @property
    def feedbacks(self):
        """The feedback collection, or None when not connected."""
        if self.database is None:
            return None
        return self.database[settings.feedback_collection]

    def is_connected(self) -> bool:
        """Check if MongoDB is currently connected."""
        return self.available and self.client is not None

    async def connect(self) -> bool:
        """Establish connection to MongoDB."""
        try:
            if not settings.mongodb_uri:
                logger.warning("MongoDB URI not configured, running without MongoDB")
                self.available = False
                return False

            is_atlas = "mongodb+srv" in settings.mongodb_uri
            conn_type = "MongoDB Atlas" if is_atlas else "Local MongoDB"

            logger.info(f"Attempting to connect to {conn_type}...")
            self.client = AsyncIOMotorClient(
                settings.mongodb_uri,
                serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
                tz_aware=True
            )
            self.database = self.client[settings.mongodb_db]

            # Test connection
            await self.client.admin.command('ping')
            logger.info(f"✅ Successfully connected to {conn_type}: {settings.mongodb_db}")
            self.available = True

            await self._create_indexes()
            return True

        except Exception as e:
            logger.error(f"❌ Failed to connect to MongoDB: {e}")
            logger.warning("💡 TIP: Ensure MongoDB is running locally (mongod) or Atlas credentials are correct")
            if self.client is not None:
                self.client.close()
            self.client = None
            self.database = None
            self.available = False
            return False

    def disconnect(self):
        """Close MongoDB connection."""
        if self.client is not None:
            self.client.close()
            logger.info("Disconnected from MongoDB")
        self.client = None
        self.database = None
        self.available = False

    async def ping(self) -> bool:
        """Actively check the connection."""
        if self.client is None:
            return False
        try:
            await self.client.admin.command('ping')
            return True
        except Exception as e:
            logger.debug(f"MongoDB ping failed: {e}")
            return False

    async def _create_indexes(self):
        """Create indexes used by listing filters and analytics windows."""
        try:
            collection = self.feedbacks
            await collection.create_index([("createdAt", -1)])
            await collection.create_index([("rating", 1)])
            await collection.create_index([("sentiment", 1)])
            logger.info("MongoDB indexes created successfully")
        except Exception as e:
            logger.error(f"Failed to create indexes: {e}")


# Global MongoDB client instance
mongodb_client = MongoDBClient()


def get_mongodb_client() -> MongoDBClient:
    """Dependency injection for MongoDB client."""
    return mongodb_client
