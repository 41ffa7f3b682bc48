"""
MongoDB database connection and utilities
"""
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING
from typing import Optional
import logging

from ...config import settings

logger = logging.getLogger(__name__)


class MongoDB:
    """MongoDB connection manager"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None
        self.users: Optional[AsyncIOMotorCollection] = None
        self.posts: Optional[AsyncIOMotorCollection] = None
        self.conversations: Optional[AsyncIOMotorCollection] = None
        self.messages: Optional[AsyncIOMotorCollection] = None
        self.notifications: Optional[AsyncIOMotorCollection] = None

    async def connect(self):
        """Connect to MongoDB"""
        self.client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=False)
        self.db = self.client[settings.MONGODB_DATABASE]
        self.users = self.db["users"]
        self.posts = self.db["meal_posts"]
        self.conversations = self.db["chat_conversations"]
        self.messages = self.db["chat_messages"]
        self.notifications = self.db["notifications"]

        await self.create_indexes()

        logger.info(f"Connected to MongoDB at {settings.MONGODB_URL}")
        logger.info(f"Using database: {settings.MONGODB_DATABASE}")

    async def disconnect(self):
        """Disconnect from MongoDB"""
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")

    async def create_indexes(self):
        """Create database indexes for optimization"""
        # Emails are unique and compared exactly
        await self.users.create_index("email", unique=True)

        # Discovery scans approved, available posts newest first
        await self.posts.create_index([
            ("moderation_status", ASCENDING),
            ("is_available", ASCENDING),
            ("is_removed", ASCENDING),
            ("created_at", DESCENDING),
        ])
        await self.posts.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
        await self.posts.create_index("claimed_by_user_id")
        await self.posts.create_index([("report_count", DESCENDING)])

        # At most one active conversation per (post, claimer)
        await self.conversations.create_index(
            [("meal_post_id", ASCENDING), ("claimer_user_id", ASCENDING)],
            unique=True,
            partialFilterExpression={"is_active": True},
            name="active_conversation_per_claimer",
        )
        await self.conversations.create_index("creator_user_id")
        await self.conversations.create_index("claimer_user_id")
        await self.conversations.create_index([("last_message_at", DESCENDING)])

        await self.messages.create_index([("conversation_id", ASCENDING), ("sent_at", ASCENDING)])

        await self.notifications.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])

        logger.info("MongoDB indexes created")


# Global MongoDB instance
mongodb = MongoDB()
