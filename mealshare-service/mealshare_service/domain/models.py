"""
Domain models - Core business entities
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, NamedTuple, Optional


class UserRole(str, Enum):
    """Role resolved for a session"""
    USER = "USER"
    ADMIN = "ADMIN"


class ModerationStatus(str, Enum):
    """Moderation outcome of a meal post"""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ModerationDecision(str, Enum):
    """Decision taken by a moderator"""
    APPROVE = "APPROVE"
    REJECT = "REJECT"

    @property
    def status(self) -> ModerationStatus:
        if self is ModerationDecision.APPROVE:
            return ModerationStatus.APPROVED
        return ModerationStatus.REJECTED


class NotificationType(str, Enum):
    """Notification type tag"""
    POST_APPROVED = "POST_APPROVED"
    POST_REJECTED = "POST_REJECTED"
    POST_CLAIMED = "POST_CLAIMED"
    NEW_MESSAGE = "NEW_MESSAGE"
    CHAT_CLOSED = "CHAT_CLOSED"
    POST_REMOVED_BY_ADMIN = "POST_REMOVED_BY_ADMIN"
    POST_REPORTED = "POST_REPORTED"


class MessageType(str, Enum):
    """Chat message content type"""
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    AUDIO = "AUDIO"


class ParticipantRole(str, Enum):
    """Side of a conversation a user is on"""
    CREATOR = "creator"
    CLAIMER = "claimer"

    @property
    def other(self) -> "ParticipantRole":
        if self is ParticipantRole.CREATOR:
            return ParticipantRole.CLAIMER
        return ParticipantRole.CREATOR


class Coordinate(NamedTuple):
    """Latitude/longitude pair in degrees"""
    latitude: float
    longitude: float


@dataclass
class Location:
    """Location value object"""
    city: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    postal_code: str = ""
    country: str = "Spain"

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


@dataclass
class User:
    """User domain model"""
    id: str
    email: str
    password_hash: str
    display_name: str = ""
    location: Location = field(default_factory=Location)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Admin:
    """Admin registry entry"""
    id: str
    email: str
    user_id: str


@dataclass
class SessionContext:
    """Identity of the caller, with the role resolved at login"""
    user_id: str
    email: str
    display_name: str = ""
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass
class MealPost:
    """Meal post domain model"""
    id: str
    user_id: str
    user_name: str
    title: str
    description: str
    photos: List[str]
    expiry_date: date
    location: Location
    created_at: datetime
    moderation_status: ModerationStatus = ModerationStatus.PENDING
    admin_comment: str = ""
    is_available: bool = True
    claimed_by_user_id: Optional[str] = None
    claimed_at: Optional[datetime] = None
    report_count: int = 0
    reported_by: List[str] = field(default_factory=list)
    last_report_reason: str = ""
    is_removed: bool = False
    removed_at: Optional[datetime] = None

    def is_owned_by(self, user_id: str) -> bool:
        """Ownership predicate for owner-only actions"""
        return self.user_id == user_id

    def is_expired(self, today: date) -> bool:
        return self.expiry_date < today

    def is_claimable(self, today: date) -> bool:
        """Approved, still available, not removed and not expired"""
        return (
            self.moderation_status == ModerationStatus.APPROVED
            and self.is_available
            and not self.is_removed
            and not self.is_expired(today)
        )

    def has_reported(self, user_id: str) -> bool:
        return user_id in self.reported_by

    @property
    def is_reported(self) -> bool:
        return self.report_count > 0


@dataclass
class ChatConversation:
    """Conversation spawned by a successful claim"""
    id: str
    meal_post_id: str
    meal_post_title: str
    creator_user_id: str
    creator_user_name: str
    claimer_user_id: str
    claimer_user_name: str
    created_at: datetime
    last_message_at: datetime
    is_active: bool = True
    closed_at: Optional[datetime] = None
    unread_count_creator: int = 0
    unread_count_claimer: int = 0
    last_message: str = ""

    def role_of(self, user_id: str) -> Optional[ParticipantRole]:
        """Resolve the participant role from stored ids"""
        if user_id == self.creator_user_id:
            return ParticipantRole.CREATOR
        if user_id == self.claimer_user_id:
            return ParticipantRole.CLAIMER
        return None

    def is_participant(self, user_id: str) -> bool:
        return self.role_of(user_id) is not None

    def unread_for(self, role: ParticipantRole) -> int:
        if role is ParticipantRole.CREATOR:
            return self.unread_count_creator
        return self.unread_count_claimer

    def user_id_for(self, role: ParticipantRole) -> str:
        if role is ParticipantRole.CREATOR:
            return self.creator_user_id
        return self.claimer_user_id


@dataclass
class MessageBody:
    """Text and/or content reference of a chat message"""
    text: str = ""
    media_ref: Optional[str] = None
    type: MessageType = MessageType.TEXT

    def preview(self) -> str:
        if self.type == MessageType.IMAGE:
            return "📷 Photo"
        if self.type == MessageType.AUDIO:
            return "🎤 Audio"
        return self.text


@dataclass
class ChatMessage:
    """Chat message domain model"""
    id: str
    conversation_id: str
    sender_id: str
    sender_name: str
    text: str
    sent_at: datetime
    type: MessageType = MessageType.TEXT
    media_ref: Optional[str] = None
    is_read: bool = False


@dataclass
class Notification:
    """Notification addressed to a user"""
    id: str
    user_id: str
    title: str
    body: str
    type: NotificationType
    created_at: datetime
    related_post_id: Optional[str] = None
    is_read: bool = False
