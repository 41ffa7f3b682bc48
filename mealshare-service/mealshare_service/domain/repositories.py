"""
Repository interfaces - Define contracts for data access

Conditional updates (claim, report, conversation lookup-or-insert, unread
counters) are compare-and-swap operations: each returns the updated entity,
or None when the stored state did not satisfy the condition.
"""
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import AsyncIterator, Optional

from .models import (
    ChatConversation,
    ChatMessage,
    Location,
    MealPost,
    ModerationStatus,
    Notification,
    ParticipantRole,
    User,
)


class IUserRepository(ABC):
    """User repository interface"""

    @abstractmethod
    async def create(self, user: User) -> Optional[User]:
        """Insert a user, None if the email is already registered"""
        pass

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[User]:
        """Find user by ID"""
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        """Find user by exact email"""
        pass

    @abstractmethod
    async def update_location(self, user_id: str, location: Location,
                              updated_at: datetime) -> Optional[User]:
        """Replace the home location"""
        pass

    @abstractmethod
    async def update_password(self, user_id: str, password_hash: str,
                              updated_at: datetime) -> Optional[User]:
        """Replace the credential hash"""
        pass

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Hard delete a user"""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Count registered users"""
        pass


class IMealPostRepository(ABC):
    """Meal post repository interface"""

    @abstractmethod
    async def create(self, post: MealPost) -> MealPost:
        """Insert a new post"""
        pass

    @abstractmethod
    async def find_by_id(self, post_id: str) -> Optional[MealPost]:
        """Find post by ID"""
        pass

    @abstractmethod
    async def set_moderation(self, post_id: str, status: ModerationStatus,
                             comment: str) -> Optional[MealPost]:
        """Record a moderation decision"""
        pass

    @abstractmethod
    async def claim(self, post_id: str, claimant_id: str, claimed_at: datetime,
                    today: date) -> Optional[MealPost]:
        """
        Claim a post if it is approved, available, not removed, not expired
        and not owned by the claimant
        """
        pass

    @abstractmethod
    async def add_report(self, post_id: str, reporter_id: str,
                         reason: str) -> Optional[MealPost]:
        """Add a reporter if not already present"""
        pass

    @abstractmethod
    async def clear_reports(self, post_id: str) -> Optional[MealPost]:
        """Reset report counter, reporters and last reason"""
        pass

    @abstractmethod
    async def mark_removed(self, post_id: str, comment: str,
                           removed_at: datetime) -> Optional[MealPost]:
        """Set the removal flag"""
        pass

    @abstractmethod
    def iter_discoverable(self, today: date) -> AsyncIterator[MealPost]:
        """Approved, available, not removed, unexpired posts, newest first"""
        pass

    @abstractmethod
    def iter_by_owner(self, user_id: str) -> AsyncIterator[MealPost]:
        """Posts created by a user, newest first"""
        pass

    @abstractmethod
    def iter_claimed_by(self, user_id: str) -> AsyncIterator[MealPost]:
        """Posts claimed by a user, most recent claim first"""
        pass

    @abstractmethod
    def iter_pending(self) -> AsyncIterator[MealPost]:
        """Pending, not removed posts, newest first"""
        pass

    @abstractmethod
    def iter_not_removed(self) -> AsyncIterator[MealPost]:
        """All posts not removed, newest first"""
        pass

    @abstractmethod
    def iter_reported(self) -> AsyncIterator[MealPost]:
        """Reported, not removed posts by report count descending"""
        pass

    @abstractmethod
    def iter_all(self) -> AsyncIterator[MealPost]:
        """Every stored post, newest first"""
        pass


class IConversationRepository(ABC):
    """Chat conversation repository interface"""

    @abstractmethod
    async def get_or_create(self, candidate: ChatConversation) -> ChatConversation:
        """
        Return the active conversation for (post, claimer), inserting the
        candidate when there is none
        """
        pass

    @abstractmethod
    async def find_by_id(self, conversation_id: str) -> Optional[ChatConversation]:
        """Find conversation by ID"""
        pass

    @abstractmethod
    async def record_message(self, conversation_id: str, recipient: ParticipantRole,
                             preview: str, sent_at: datetime) -> Optional[ChatConversation]:
        """
        Increment the recipient counter and update activity on an active
        conversation. The stored last_message_at is the reserved send time,
        strictly greater than the previous one.
        """
        pass

    @abstractmethod
    async def undo_message(self, conversation_id: str, recipient: ParticipantRole,
                           sent_at: datetime, previous_preview: str,
                           previous_sent_at: datetime) -> Optional[ChatConversation]:
        """
        Revert a record_message whose message was never stored.

        The recipient counter drops by one, never below zero. Preview and
        activity time go back to the previous values only while sent_at is
        still the latest recorded send.
        """
        pass

    @abstractmethod
    async def reset_unread(self, conversation_id: str,
                           reader: ParticipantRole) -> Optional[ChatConversation]:
        """Reset one participant's counter"""
        pass

    @abstractmethod
    async def close(self, conversation_id: str,
                    closed_at: datetime) -> Optional[ChatConversation]:
        """Deactivate an active conversation"""
        pass

    @abstractmethod
    def iter_active_for_user(self, user_id: str) -> AsyncIterator[ChatConversation]:
        """Active conversations of a participant, latest activity first"""
        pass

    @abstractmethod
    def iter_active_for_post(self, post_id: str) -> AsyncIterator[ChatConversation]:
        """Active conversations attached to a post"""
        pass

    @abstractmethod
    def iter_active(self) -> AsyncIterator[ChatConversation]:
        """All active conversations"""
        pass

    @abstractmethod
    def iter_idle_since(self, cutoff: datetime) -> AsyncIterator[ChatConversation]:
        """Active conversations with no activity since cutoff"""
        pass

    @abstractmethod
    async def count(self, active_only: bool = False) -> int:
        """Count conversations"""
        pass


class IMessageRepository(ABC):
    """Chat message repository interface"""

    @abstractmethod
    async def add(self, message: ChatMessage) -> ChatMessage:
        """Store a message"""
        pass

    @abstractmethod
    def iter_for_conversation(self, conversation_id: str) -> AsyncIterator[ChatMessage]:
        """Messages ascending by send time"""
        pass

    @abstractmethod
    async def mark_read(self, conversation_id: str, reader_id: str,
                        up_to: Optional[datetime] = None) -> int:
        """Mark messages not sent by reader, sent no later than up_to, as read"""
        pass


class INotificationRepository(ABC):
    """Notification repository interface"""

    @abstractmethod
    async def add(self, notification: Notification) -> Notification:
        """Store a notification"""
        pass

    @abstractmethod
    def iter_for_user(self, user_id: str,
                      unread_only: bool = False) -> AsyncIterator[Notification]:
        """Notifications of a user, newest first"""
        pass

    @abstractmethod
    async def count_unread(self, user_id: str) -> int:
        """Count unread notifications of a user"""
        pass

    @abstractmethod
    async def mark_read(self, notification_id: str,
                        user_id: str) -> Optional[Notification]:
        """Mark a notification owned by user as read"""
        pass

    @abstractmethod
    async def mark_all_read(self, user_id: str) -> int:
        """Mark every notification of a user as read"""
        pass
