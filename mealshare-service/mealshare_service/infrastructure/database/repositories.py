"""
Repository implementations - MongoDB data access layer
"""
from dataclasses import asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from ...domain.models import (
    ChatConversation,
    ChatMessage,
    Location,
    MealPost,
    MessageType,
    ModerationStatus,
    Notification,
    NotificationType,
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
from .mongodb import MongoDB


def _to_doc(entity: Any) -> Dict[str, Any]:
    """Convert a domain dataclass to a BSON friendly document"""
    doc = asdict(entity)
    doc["_id"] = doc.pop("id")
    for key, value in doc.items():
        if isinstance(value, Enum):
            doc[key] = value.value
    return doc


def _user_from_doc(doc: Optional[Dict[str, Any]]) -> Optional[User]:
    if not doc:
        return None
    doc = dict(doc)
    return User(
        id=doc.pop("_id"),
        location=Location(**doc.pop("location", {})),
        **doc,
    )


def _post_to_doc(post: MealPost) -> Dict[str, Any]:
    doc = _to_doc(post)
    # BSON has no date type; ISO strings keep lexical order
    doc["expiry_date"] = post.expiry_date.isoformat()
    return doc


def _post_from_doc(doc: Optional[Dict[str, Any]]) -> Optional[MealPost]:
    if not doc:
        return None
    doc = dict(doc)
    return MealPost(
        id=doc.pop("_id"),
        location=Location(**doc.pop("location", {})),
        expiry_date=date.fromisoformat(doc.pop("expiry_date")),
        moderation_status=ModerationStatus(doc.pop("moderation_status")),
        **doc,
    )


def _conversation_from_doc(doc: Optional[Dict[str, Any]]) -> Optional[ChatConversation]:
    if not doc:
        return None
    doc = dict(doc)
    return ChatConversation(id=doc.pop("_id"), **doc)


def _message_from_doc(doc: Dict[str, Any]) -> ChatMessage:
    doc = dict(doc)
    return ChatMessage(id=doc.pop("_id"), type=MessageType(doc.pop("type")), **doc)


def _notification_from_doc(doc: Optional[Dict[str, Any]]) -> Optional[Notification]:
    if not doc:
        return None
    doc = dict(doc)
    return Notification(id=doc.pop("_id"), type=NotificationType(doc.pop("type")), **doc)


def _unread_field(role: ParticipantRole) -> str:
    return "unread_count_creator" if role is ParticipantRole.CREATOR else "unread_count_claimer"


class UserRepository(IUserRepository):
    """User repository implementation using MongoDB"""

    def __init__(self, db: MongoDB):
        self.collection = db.users

    async def create(self, user: User) -> Optional[User]:
        try:
            await self.collection.insert_one(_to_doc(user))
        except DuplicateKeyError:
            return None
        return user

    async def find_by_id(self, user_id: str) -> Optional[User]:
        return _user_from_doc(await self.collection.find_one({"_id": user_id}))

    async def find_by_email(self, email: str) -> Optional[User]:
        return _user_from_doc(await self.collection.find_one({"email": email}))

    async def update_location(self, user_id: str, location: Location,
                              updated_at: datetime) -> Optional[User]:
        doc = await self.collection.find_one_and_update(
            {"_id": user_id},
            {"$set": {"location": asdict(location), "updated_at": updated_at}},
            return_document=ReturnDocument.AFTER,
        )
        return _user_from_doc(doc)

    async def update_password(self, user_id: str, password_hash: str,
                              updated_at: datetime) -> Optional[User]:
        doc = await self.collection.find_one_and_update(
            {"_id": user_id},
            {"$set": {"password_hash": password_hash, "updated_at": updated_at}},
            return_document=ReturnDocument.AFTER,
        )
        return _user_from_doc(doc)

    async def delete(self, user_id: str) -> bool:
        result = await self.collection.delete_one({"_id": user_id})
        return result.deleted_count > 0

    async def count(self) -> int:
        return await self.collection.count_documents({})


class MealPostRepository(IMealPostRepository):
    """Meal post repository implementation using MongoDB"""

    def __init__(self, db: MongoDB):
        self.collection = db.posts

    async def _update(self, query: Dict[str, Any], update: Any) -> Optional[MealPost]:
        doc = await self.collection.find_one_and_update(
            query, update, return_document=ReturnDocument.AFTER
        )
        return _post_from_doc(doc)

    async def _iterate(self, query: Dict[str, Any], sort) -> AsyncIterator[MealPost]:
        async for doc in self.collection.find(query).sort(sort):
            yield _post_from_doc(doc)

    async def create(self, post: MealPost) -> MealPost:
        await self.collection.insert_one(_post_to_doc(post))
        return post

    async def find_by_id(self, post_id: str) -> Optional[MealPost]:
        return _post_from_doc(await self.collection.find_one({"_id": post_id}))

    async def set_moderation(self, post_id: str, status: ModerationStatus,
                             comment: str) -> Optional[MealPost]:
        return await self._update(
            {"_id": post_id},
            {"$set": {"moderation_status": status.value, "admin_comment": comment}},
        )

    async def claim(self, post_id: str, claimant_id: str, claimed_at: datetime,
                    today: date) -> Optional[MealPost]:
        return await self._update(
            {
                "_id": post_id,
                "user_id": {"$ne": claimant_id},
                "moderation_status": ModerationStatus.APPROVED.value,
                "is_available": True,
                "is_removed": False,
                "expiry_date": {"$gte": today.isoformat()},
            },
            {"$set": {
                "is_available": False,
                "claimed_by_user_id": claimant_id,
                "claimed_at": claimed_at,
            }},
        )

    async def add_report(self, post_id: str, reporter_id: str,
                         reason: str) -> Optional[MealPost]:
        return await self._update(
            {"_id": post_id, "reported_by": {"$ne": reporter_id}},
            {
                "$push": {"reported_by": reporter_id},
                "$inc": {"report_count": 1},
                "$set": {"last_report_reason": reason},
            },
        )

    async def clear_reports(self, post_id: str) -> Optional[MealPost]:
        return await self._update(
            {"_id": post_id},
            {"$set": {"report_count": 0, "reported_by": [], "last_report_reason": ""}},
        )

    async def mark_removed(self, post_id: str, comment: str,
                           removed_at: datetime) -> Optional[MealPost]:
        return await self._update(
            {"_id": post_id},
            [{"$set": {
                "is_removed": True,
                "admin_comment": {"$literal": comment},
                "removed_at": {"$ifNull": ["$removed_at", removed_at]},
            }}],
        )

    def iter_discoverable(self, today: date) -> AsyncIterator[MealPost]:
        return self._iterate(
            {
                "moderation_status": ModerationStatus.APPROVED.value,
                "is_available": True,
                "is_removed": False,
                "expiry_date": {"$gte": today.isoformat()},
            },
            [("created_at", DESCENDING)],
        )

    def iter_by_owner(self, user_id: str) -> AsyncIterator[MealPost]:
        return self._iterate({"user_id": user_id}, [("created_at", DESCENDING)])

    def iter_claimed_by(self, user_id: str) -> AsyncIterator[MealPost]:
        return self._iterate({"claimed_by_user_id": user_id}, [("claimed_at", DESCENDING)])

    def iter_pending(self) -> AsyncIterator[MealPost]:
        return self._iterate(
            {"moderation_status": ModerationStatus.PENDING.value, "is_removed": False},
            [("created_at", DESCENDING)],
        )

    def iter_not_removed(self) -> AsyncIterator[MealPost]:
        return self._iterate({"is_removed": False}, [("created_at", DESCENDING)])

    def iter_reported(self) -> AsyncIterator[MealPost]:
        return self._iterate(
            {"report_count": {"$gt": 0}, "is_removed": False},
            [("report_count", DESCENDING), ("created_at", DESCENDING)],
        )

    def iter_all(self) -> AsyncIterator[MealPost]:
        return self._iterate({}, [("created_at", DESCENDING)])


class ConversationRepository(IConversationRepository):
    """Conversation repository implementation using MongoDB"""

    def __init__(self, db: MongoDB):
        self.collection = db.conversations

    async def _iterate(self, query: Dict[str, Any], sort=None) -> AsyncIterator[ChatConversation]:
        cursor = self.collection.find(query)
        if sort:
            cursor = cursor.sort(sort)
        async for doc in cursor:
            yield _conversation_from_doc(doc)

    async def get_or_create(self, candidate: ChatConversation) -> ChatConversation:
        query = {
            "meal_post_id": candidate.meal_post_id,
            "claimer_user_id": candidate.claimer_user_id,
            "is_active": True,
        }
        on_insert = {k: v for k, v in _to_doc(candidate).items() if k not in query}
        try:
            doc = await self.collection.find_one_and_update(
                query,
                {"$setOnInsert": on_insert},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # Lost the upsert race, the winner's document is the one to use
            doc = await self.collection.find_one(query)
        return _conversation_from_doc(doc)

    async def find_by_id(self, conversation_id: str) -> Optional[ChatConversation]:
        return _conversation_from_doc(await self.collection.find_one({"_id": conversation_id}))

    async def record_message(self, conversation_id: str, recipient: ParticipantRole,
                             preview: str, sent_at: datetime) -> Optional[ChatConversation]:
        counter = _unread_field(recipient)
        doc = await self.collection.find_one_and_update(
            {"_id": conversation_id, "is_active": True},
            [{"$set": {
                # one millisecond past the previous send keeps order strict
                "last_message_at": {"$max": [sent_at, {"$add": ["$last_message_at", 1]}]},
                "last_message": {"$literal": preview},
                counter: {"$add": [f"${counter}", 1]},
            }}],
            return_document=ReturnDocument.AFTER,
        )
        return _conversation_from_doc(doc)

    async def undo_message(self, conversation_id: str, recipient: ParticipantRole,
                           sent_at: datetime, previous_preview: str,
                           previous_sent_at: datetime) -> Optional[ChatConversation]:
        counter = _unread_field(recipient)
        still_latest = {"$eq": ["$last_message_at", sent_at]}
        doc = await self.collection.find_one_and_update(
            {"_id": conversation_id},
            [{"$set": {
                counter: {"$max": [0, {"$subtract": [f"${counter}", 1]}]},
                "last_message": {"$cond": [still_latest, {"$literal": previous_preview}, "$last_message"]},
                "last_message_at": {"$cond": [still_latest, previous_sent_at, "$last_message_at"]},
            }}],
            return_document=ReturnDocument.AFTER,
        )
        return _conversation_from_doc(doc)

    async def reset_unread(self, conversation_id: str,
                           reader: ParticipantRole) -> Optional[ChatConversation]:
        doc = await self.collection.find_one_and_update(
            {"_id": conversation_id},
            {"$set": {_unread_field(reader): 0}},
            return_document=ReturnDocument.AFTER,
        )
        return _conversation_from_doc(doc)

    async def close(self, conversation_id: str,
                    closed_at: datetime) -> Optional[ChatConversation]:
        doc = await self.collection.find_one_and_update(
            {"_id": conversation_id, "is_active": True},
            {"$set": {"is_active": False, "closed_at": closed_at}},
            return_document=ReturnDocument.AFTER,
        )
        return _conversation_from_doc(doc)

    def iter_active_for_user(self, user_id: str) -> AsyncIterator[ChatConversation]:
        return self._iterate(
            {
                "is_active": True,
                "$or": [{"creator_user_id": user_id}, {"claimer_user_id": user_id}],
            },
            [("last_message_at", DESCENDING)],
        )

    def iter_active_for_post(self, post_id: str) -> AsyncIterator[ChatConversation]:
        return self._iterate({"meal_post_id": post_id, "is_active": True})

    def iter_active(self) -> AsyncIterator[ChatConversation]:
        return self._iterate({"is_active": True})

    def iter_idle_since(self, cutoff: datetime) -> AsyncIterator[ChatConversation]:
        return self._iterate({"is_active": True, "last_message_at": {"$lt": cutoff}})

    async def count(self, active_only: bool = False) -> int:
        return await self.collection.count_documents({"is_active": True} if active_only else {})


class MessageRepository(IMessageRepository):
    """Message repository implementation using MongoDB"""

    def __init__(self, db: MongoDB):
        self.collection = db.messages

    async def add(self, message: ChatMessage) -> ChatMessage:
        await self.collection.insert_one(_to_doc(message))
        return message

    async def iter_for_conversation(self, conversation_id: str) -> AsyncIterator[ChatMessage]:
        cursor = self.collection.find({"conversation_id": conversation_id}).sort("sent_at", ASCENDING)
        async for doc in cursor:
            yield _message_from_doc(doc)

    async def mark_read(self, conversation_id: str, reader_id: str,
                        up_to: Optional[datetime] = None) -> int:
        query: Dict[str, Any] = {
            "conversation_id": conversation_id,
            "sender_id": {"$ne": reader_id},
            "is_read": False,
        }
        if up_to is not None:
            query["sent_at"] = {"$lte": up_to}
        result = await self.collection.update_many(query, {"$set": {"is_read": True}})
        return result.modified_count


class NotificationRepository(INotificationRepository):
    """Notification repository implementation using MongoDB"""

    def __init__(self, db: MongoDB):
        self.collection = db.notifications

    async def add(self, notification: Notification) -> Notification:
        await self.collection.insert_one(_to_doc(notification))
        return notification

    async def iter_for_user(self, user_id: str,
                            unread_only: bool = False) -> AsyncIterator[Notification]:
        query: Dict[str, Any] = {"user_id": user_id}
        if unread_only:
            query["is_read"] = False
        async for doc in self.collection.find(query).sort("created_at", DESCENDING):
            yield _notification_from_doc(doc)

    async def count_unread(self, user_id: str) -> int:
        return await self.collection.count_documents({"user_id": user_id, "is_read": False})

    async def mark_read(self, notification_id: str,
                        user_id: str) -> Optional[Notification]:
        doc = await self.collection.find_one_and_update(
            {"_id": notification_id, "user_id": user_id},
            {"$set": {"is_read": True}},
            return_document=ReturnDocument.AFTER,
        )
        return _notification_from_doc(doc)

    async def mark_all_read(self, user_id: str) -> int:
        result = await self.collection.update_many(
            {"user_id": user_id, "is_read": False},
            {"$set": {"is_read": True}},
        )
        return result.modified_count
