"""
Notification dispatcher - Turns domain events into addressed notifications
"""
from typing import Optional, Union
import logging
import uuid

from ..domain.errors import Failure, is_failure
from ..domain.models import Notification, NotificationType
from ..domain.repositories import INotificationRepository, IUserRepository
from ..infrastructure.clock import Clock, utcnow
from .sequences import LazySequence

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Creates notification records for users"""

    def __init__(
        self,
        notification_repository: INotificationRepository,
        user_repository: IUserRepository,
        clock: Clock = utcnow,
    ):
        self.notification_repo = notification_repository
        self.user_repo = user_repository
        self.clock = clock

    async def notify(
        self,
        user_id: str,
        title: str,
        body: str,
        type: NotificationType,
        related_post_id: Optional[str] = None,
    ) -> Union[Notification, Failure]:
        """Create a notification addressed to an existing user"""
        if not await self.user_repo.find_by_id(user_id):
            return Failure.not_found("User", user_id)

        notification = Notification(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            body=body,
            type=type,
            created_at=self.clock(),
            related_post_id=related_post_id,
        )
        return await self.notification_repo.add(notification)

    async def dispatch(
        self,
        user_id: str,
        title: str,
        body: str,
        type: NotificationType,
        related_post_id: Optional[str] = None,
    ) -> Optional[Notification]:
        """
        Fire-and-forget notify

        Failures are logged and never raised, so the caller's committed
        transition stands.
        """
        try:
            result = await self.notify(user_id, title, body, type, related_post_id)
        except Exception as e:
            logger.error(f"Failed to store {type.value} notification for user {user_id}: {e}")
            return None

        if is_failure(result):
            logger.warning(f"Skipped {type.value} notification: {result.message}")
            return None
        return result

    def for_user(self, user_id: str, unread_only: bool = False) -> LazySequence[Notification]:
        """Notifications of a user, newest first"""
        return LazySequence(lambda: self.notification_repo.iter_for_user(user_id, unread_only))

    async def unread_count(self, user_id: str) -> int:
        return await self.notification_repo.count_unread(user_id)

    async def mark_read(self, notification_id: str, user_id: str) -> Union[Notification, Failure]:
        notification = await self.notification_repo.mark_read(notification_id, user_id)
        if not notification:
            return Failure.not_found("Notification", notification_id)
        return notification

    async def mark_all_read(self, user_id: str) -> int:
        updated = await self.notification_repo.mark_all_read(user_id)
        logger.debug(f"Marked {updated} notification(s) read for user {user_id}")
        return updated
