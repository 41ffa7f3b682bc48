"""
In-memory repository implementations

Used with STORAGE_BACKEND=memory for development and tests. Conditional
updates hold a per-aggregate asyncio.Lock so they behave like the MongoDB
find_one_and_update filters.
"""
import asyncio
import copy
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, TypeVar

from ...domain.models import (
    ChatConversation,
    ChatMessage,
    Location,
    MealPost,
    ModerationStatus,
    Notification,
    ParticipantRole,
    User,
)
from ...domain.repositories import (
    IConversationRepository,
    IMealPostRepository,
    IMessageRepository,
    INotificationRepository,
    IUserRepository,
)

T = TypeVar("T")


class KeyedLock:
    """One asyncio.Lock per key"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def __call__(self, key: str) -> asyncio.Lock:
        return self._locks[key]


class InMemoryStore:
    """Process local storage shared by the in-memory repositories"""

    def __init__(self):
        self.users: Dict[str, User] = {}
        self.posts: Dict[str, MealPost] = {}
        self.conversations: Dict[str, ChatConversation] = {}
        self.messages: Dict[str, ChatMessage] = {}
        self.notifications: Dict[str, Notification] = {}
        self.locks = KeyedLock()

    def clear(self):
        self.users.clear()
        self.posts.clear()
        self.conversations.clear()
        self.messages.clear()
        self.notifications.clear()


async def _iterate(items: Iterable[T]) -> AsyncIterator[T]:
    for item in items:
        yield copy.deepcopy(item)


def _sorted(items: Iterable[T], key: Callable[[T], object], reverse: bool = False) -> List[T]:
    # insertion order breaks ties, so equal timestamps still list the later insert first
    indexed = list(enumerate(items))
    indexed.sort(key=lambda pair: (key(pair[1]), pair[0]), reverse=reverse)
    return [item for _, item in indexed]


class InMemoryUserRepository(IUserRepository):
    """User repository implementation backed by a dict"""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def create(self, user: User) -> Optional[User]:
        async with self.store.locks(f"user-email:{user.email}"):
            if any(u.email == user.email for u in self.store.users.values()):
                return None
            self.store.users[user.id] = copy.deepcopy(user)
            return copy.deepcopy(user)

    async def find_by_id(self, user_id: str) -> Optional[User]:
        return copy.deepcopy(self.store.users.get(user_id))

    async def find_by_email(self, email: str) -> Optional[User]:
        for user in self.store.users.values():
            if user.email == email:
                return copy.deepcopy(user)
        return None

    async def update_location(self, user_id: str, location: Location,
                              updated_at: datetime) -> Optional[User]:
        user = self.store.users.get(user_id)
        if not user:
            return None
        user.location = copy.deepcopy(location)
        user.updated_at = updated_at
        return copy.deepcopy(user)

    async def update_password(self, user_id: str, password_hash: str,
                              updated_at: datetime) -> Optional[User]:
        user = self.store.users.get(user_id)
        if not user:
            return None
        user.password_hash = password_hash
        user.updated_at = updated_at
        return copy.deepcopy(user)

    async def delete(self, user_id: str) -> bool:
        return self.store.users.pop(user_id, None) is not None

    async def count(self) -> int:
        return len(self.store.users)


class InMemoryMealPostRepository(IMealPostRepository):
    """Meal post repository implementation backed by a dict"""

    def __init__(self, store: InMemoryStore):
        self.store = store

    def _lock(self, post_id: str) -> asyncio.Lock:
        return self.store.locks(f"post:{post_id}")

    def _newest_first(self, predicate: Callable[[MealPost], bool]) -> List[MealPost]:
        return _sorted(
            (p for p in self.store.posts.values() if predicate(p)),
            key=lambda p: p.created_at,
            reverse=True,
        )

    async def create(self, post: MealPost) -> MealPost:
        self.store.posts[post.id] = copy.deepcopy(post)
        return copy.deepcopy(post)

    async def find_by_id(self, post_id: str) -> Optional[MealPost]:
        return copy.deepcopy(self.store.posts.get(post_id))

    async def set_moderation(self, post_id: str, status: ModerationStatus,
                             comment: str) -> Optional[MealPost]:
        async with self._lock(post_id):
            post = self.store.posts.get(post_id)
            if not post:
                return None
            post.moderation_status = status
            post.admin_comment = comment
            return copy.deepcopy(post)

    async def claim(self, post_id: str, claimant_id: str, claimed_at: datetime,
                    today: date) -> Optional[MealPost]:
        async with self._lock(post_id):
            post = self.store.posts.get(post_id)
            if not post or post.is_owned_by(claimant_id) or not post.is_claimable(today):
                return None
            post.is_available = False
            post.claimed_by_user_id = claimant_id
            post.claimed_at = claimed_at
            return copy.deepcopy(post)

    async def add_report(self, post_id: str, reporter_id: str,
                         reason: str) -> Optional[MealPost]:
        async with self._lock(post_id):
            post = self.store.posts.get(post_id)
            if not post or post.has_reported(reporter_id):
                return None
            post.reported_by.append(reporter_id)
            post.report_count = len(post.reported_by)
            post.last_report_reason = reason
            return copy.deepcopy(post)

    async def clear_reports(self, post_id: str) -> Optional[MealPost]:
        async with self._lock(post_id):
            post = self.store.posts.get(post_id)
            if not post:
                return None
            post.reported_by = []
            post.report_count = 0
            post.last_report_reason = ""
            return copy.deepcopy(post)

    async def mark_removed(self, post_id: str, comment: str,
                           removed_at: datetime) -> Optional[MealPost]:
        async with self._lock(post_id):
            post = self.store.posts.get(post_id)
            if not post:
                return None
            post.is_removed = True
            post.admin_comment = comment
            if post.removed_at is None:
                post.removed_at = removed_at
            return copy.deepcopy(post)

    def iter_discoverable(self, today: date) -> AsyncIterator[MealPost]:
        return _iterate(self._newest_first(lambda p: p.is_claimable(today)))

    def iter_by_owner(self, user_id: str) -> AsyncIterator[MealPost]:
        return _iterate(self._newest_first(lambda p: p.user_id == user_id))

    def iter_claimed_by(self, user_id: str) -> AsyncIterator[MealPost]:
        claimed = _sorted(
            (p for p in self.store.posts.values() if p.claimed_by_user_id == user_id),
            key=lambda p: p.claimed_at or p.created_at,
            reverse=True,
        )
        return _iterate(claimed)

    def iter_pending(self) -> AsyncIterator[MealPost]:
        return _iterate(self._newest_first(
            lambda p: p.moderation_status == ModerationStatus.PENDING and not p.is_removed
        ))

    def iter_not_removed(self) -> AsyncIterator[MealPost]:
        return _iterate(self._newest_first(lambda p: not p.is_removed))

    def iter_reported(self) -> AsyncIterator[MealPost]:
        reported = self._newest_first(lambda p: p.report_count > 0 and not p.is_removed)
        # stable sort keeps newest first among equal counts
        return _iterate(sorted(reported, key=lambda p: p.report_count, reverse=True))

    def iter_all(self) -> AsyncIterator[MealPost]:
        return _iterate(self._newest_first(lambda p: True))


class InMemoryConversationRepository(IConversationRepository):
    """Conversation repository implementation backed by a dict"""

    def __init__(self, store: InMemoryStore):
        self.store = store

    def _lock(self, conversation_id: str) -> asyncio.Lock:
        return self.store.locks(f"conversation:{conversation_id}")

    def _active(self, predicate: Callable[[ChatConversation], bool]) -> List[ChatConversation]:
        return [c for c in self.store.conversations.values() if c.is_active and predicate(c)]

    async def get_or_create(self, candidate: ChatConversation) -> ChatConversation:
        key = f"conversation-pair:{candidate.meal_post_id}:{candidate.claimer_user_id}"
        async with self.store.locks(key):
            existing = self._active(
                lambda c: c.meal_post_id == candidate.meal_post_id
                and c.claimer_user_id == candidate.claimer_user_id
            )
            if existing:
                return copy.deepcopy(existing[0])
            self.store.conversations[candidate.id] = copy.deepcopy(candidate)
            return copy.deepcopy(candidate)

    async def find_by_id(self, conversation_id: str) -> Optional[ChatConversation]:
        return copy.deepcopy(self.store.conversations.get(conversation_id))

    async def record_message(self, conversation_id: str, recipient: ParticipantRole,
                             preview: str, sent_at: datetime) -> Optional[ChatConversation]:
        async with self._lock(conversation_id):
            conversation = self.store.conversations.get(conversation_id)
            if not conversation or not conversation.is_active:
                return None
            if sent_at <= conversation.last_message_at:
                sent_at = conversation.last_message_at + timedelta(microseconds=1)
            conversation.last_message_at = sent_at
            conversation.last_message = preview
            if recipient is ParticipantRole.CREATOR:
                conversation.unread_count_creator += 1
            else:
                conversation.unread_count_claimer += 1
            return copy.deepcopy(conversation)

    async def undo_message(self, conversation_id: str, recipient: ParticipantRole,
                           sent_at: datetime, previous_preview: str,
                           previous_sent_at: datetime) -> Optional[ChatConversation]:
        async with self._lock(conversation_id):
            conversation = self.store.conversations.get(conversation_id)
            if not conversation:
                return None
            if recipient is ParticipantRole.CREATOR:
                conversation.unread_count_creator = max(conversation.unread_count_creator - 1, 0)
            else:
                conversation.unread_count_claimer = max(conversation.unread_count_claimer - 1, 0)
            if conversation.last_message_at == sent_at:
                conversation.last_message = previous_preview
                conversation.last_message_at = previous_sent_at
            return copy.deepcopy(conversation)

    async def reset_unread(self, conversation_id: str,
                           reader: ParticipantRole) -> Optional[ChatConversation]:
        async with self._lock(conversation_id):
            conversation = self.store.conversations.get(conversation_id)
            if not conversation:
                return None
            if reader is ParticipantRole.CREATOR:
                conversation.unread_count_creator = 0
            else:
                conversation.unread_count_claimer = 0
            return copy.deepcopy(conversation)

    async def close(self, conversation_id: str,
                    closed_at: datetime) -> Optional[ChatConversation]:
        async with self._lock(conversation_id):
            conversation = self.store.conversations.get(conversation_id)
            if not conversation or not conversation.is_active:
                return None
            conversation.is_active = False
            conversation.closed_at = closed_at
            return copy.deepcopy(conversation)

    def iter_active_for_user(self, user_id: str) -> AsyncIterator[ChatConversation]:
        conversations = self._active(lambda c: c.is_participant(user_id))
        return _iterate(_sorted(conversations, key=lambda c: c.last_message_at, reverse=True))

    def iter_active_for_post(self, post_id: str) -> AsyncIterator[ChatConversation]:
        return _iterate(self._active(lambda c: c.meal_post_id == post_id))

    def iter_active(self) -> AsyncIterator[ChatConversation]:
        return _iterate(self._active(lambda c: True))

    def iter_idle_since(self, cutoff: datetime) -> AsyncIterator[ChatConversation]:
        return _iterate(self._active(lambda c: c.last_message_at < cutoff))

    async def count(self, active_only: bool = False) -> int:
        if active_only:
            return len(self._active(lambda c: True))
        return len(self.store.conversations)


class InMemoryMessageRepository(IMessageRepository):
    """Message repository implementation backed by a dict"""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def add(self, message: ChatMessage) -> ChatMessage:
        self.store.messages[message.id] = copy.deepcopy(message)
        return copy.deepcopy(message)

    def iter_for_conversation(self, conversation_id: str) -> AsyncIterator[ChatMessage]:
        messages = _sorted(
            (m for m in self.store.messages.values() if m.conversation_id == conversation_id),
            key=lambda m: m.sent_at,
        )
        return _iterate(messages)

    async def mark_read(self, conversation_id: str, reader_id: str,
                        up_to: Optional[datetime] = None) -> int:
        updated = 0
        for message in self.store.messages.values():
            if (message.conversation_id == conversation_id
                    and message.sender_id != reader_id
                    and not message.is_read
                    and (up_to is None or message.sent_at <= up_to)):
                message.is_read = True
                updated += 1
        return updated


class InMemoryNotificationRepository(INotificationRepository):
    """Notification repository implementation backed by a dict"""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def add(self, notification: Notification) -> Notification:
        self.store.notifications[notification.id] = copy.deepcopy(notification)
        return copy.deepcopy(notification)

    def iter_for_user(self, user_id: str,
                      unread_only: bool = False) -> AsyncIterator[Notification]:
        notifications = _sorted(
            (n for n in self.store.notifications.values()
             if n.user_id == user_id and not (unread_only and n.is_read)),
            key=lambda n: n.created_at,
            reverse=True,
        )
        return _iterate(notifications)

    async def count_unread(self, user_id: str) -> int:
        return sum(
            1 for n in self.store.notifications.values()
            if n.user_id == user_id and not n.is_read
        )

    async def mark_read(self, notification_id: str,
                        user_id: str) -> Optional[Notification]:
        notification = self.store.notifications.get(notification_id)
        if not notification or notification.user_id != user_id:
            return None
        notification.is_read = True
        return copy.deepcopy(notification)

    async def mark_all_read(self, user_id: str) -> int:
        updated = 0
        for notification in self.store.notifications.values():
            if notification.user_id == user_id and not notification.is_read:
                notification.is_read = True
                updated += 1
        return updated
