"""
Storage manager - selects and wires the repository backend
"""
from typing import Optional
import logging

from ...config import settings
from ...domain.repositories import (
    IConversationRepository,
    IMealPostRepository,
    IMessageRepository,
    INotificationRepository,
    IUserRepository,
)
from .memory import (
    InMemoryConversationRepository,
    InMemoryMealPostRepository,
    InMemoryMessageRepository,
    InMemoryNotificationRepository,
    InMemoryStore,
    InMemoryUserRepository,
)
from .mongodb import mongodb
from .repositories import (
    ConversationRepository,
    MealPostRepository,
    MessageRepository,
    NotificationRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


class StorageManager:
    """Holds the repositories of the configured backend"""

    def __init__(self):
        self.backend: Optional[str] = None
        self.memory_store: Optional[InMemoryStore] = None
        self.users: Optional[IUserRepository] = None
        self.posts: Optional[IMealPostRepository] = None
        self.conversations: Optional[IConversationRepository] = None
        self.messages: Optional[IMessageRepository] = None
        self.notifications: Optional[INotificationRepository] = None

    async def connect(self, backend: Optional[str] = None):
        """Connect the configured backend and build its repositories"""
        self.backend = (backend or settings.STORAGE_BACKEND).lower()

        if self.backend == "memory":
            self.use_memory(InMemoryStore())
        elif self.backend == "mongodb":
            await mongodb.connect()
            self.users = UserRepository(mongodb)
            self.posts = MealPostRepository(mongodb)
            self.conversations = ConversationRepository(mongodb)
            self.messages = MessageRepository(mongodb)
            self.notifications = NotificationRepository(mongodb)
        else:
            raise ValueError(f"Unknown storage backend: {self.backend}")

        logger.info(f"Storage backend ready: {self.backend}")

    def use_memory(self, store: InMemoryStore):
        """Wire in-memory repositories over the given store"""
        self.backend = "memory"
        self.memory_store = store
        self.users = InMemoryUserRepository(store)
        self.posts = InMemoryMealPostRepository(store)
        self.conversations = InMemoryConversationRepository(store)
        self.messages = InMemoryMessageRepository(store)
        self.notifications = InMemoryNotificationRepository(store)

    async def disconnect(self):
        """Disconnect the backend"""
        if self.backend == "mongodb":
            await mongodb.disconnect()
        logger.info("Storage backend closed")


# Global storage instance
storage = StorageManager()


async def get_storage() -> StorageManager:
    """Dependency for getting the storage manager"""
    return storage
