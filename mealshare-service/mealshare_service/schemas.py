"""
Pydantic schemas for Mealshare Service
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import date, datetime

from .domain.models import (
    MessageType,
    ModerationDecision,
    ModerationStatus,
    NotificationType,
    UserRole,
)


class LocationSchema(BaseModel):
    """Location payload"""
    city: str = Field("", max_length=120)
    latitude: float = Field(0.0, ge=-90, le=90)
    longitude: float = Field(0.0, ge=-180, le=180)
    postal_code: str = Field("", max_length=20)
    country: str = Field("Spain", max_length=80)

    class Config:
        from_attributes = True


# Auth

class UserRegister(BaseModel):
    """User registration request"""
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=128)
    display_name: str = Field(..., max_length=100)
    location: LocationSchema = Field(default_factory=LocationSchema)


class UserLogin(BaseModel):
    """Login request"""
    email: str
    password: str


class UserProfile(BaseModel):
    """User profile response"""
    id: str
    email: str
    display_name: str
    location: LocationSchema
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """Token response"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    role: UserRole
    user: UserProfile


class UpdateLocation(BaseModel):
    """Location change request"""
    location: LocationSchema


class ChangePassword(BaseModel):
    """Password change request"""
    current_password: str
    new_password: str


# Posts

class PostCreate(BaseModel):
    """Post creation request"""
    title: str = Field(..., max_length=120)
    description: str = Field("", max_length=2000)
    photos: List[str] = Field(default_factory=list, max_length=10)
    expiry_date: date
    location: Optional[LocationSchema] = None


class PostResponse(BaseModel):
    """Post response"""
    id: str
    user_id: str
    user_name: str
    title: str
    description: str
    photos: List[str]
    expiry_date: date
    location: LocationSchema
    created_at: datetime
    moderation_status: ModerationStatus
    admin_comment: str = ""
    is_available: bool
    claimed_by_user_id: Optional[str] = None
    claimed_at: Optional[datetime] = None
    report_count: int = 0
    last_report_reason: str = ""
    is_removed: bool = False
    removed_at: Optional[datetime] = None
    distance_km: Optional[float] = None

    class Config:
        from_attributes = True


class PostListResponse(BaseModel):
    """Paginated post list"""
    posts: List[PostResponse]
    page: int
    page_size: int


class ReportRequest(BaseModel):
    """Post report request"""
    reason: str = Field(..., min_length=1, max_length=500)


class ModerationRequest(BaseModel):
    """Moderation decision request"""
    decision: ModerationDecision
    comment: str = Field("", max_length=500)


class RemovalRequest(BaseModel):
    """Administrative removal request"""
    admin_comment: str = Field(..., min_length=1, max_length=500)


# Conversations

class ConversationResponse(BaseModel):
    """Conversation response"""
    id: str
    meal_post_id: str
    meal_post_title: str
    creator_user_id: str
    creator_user_name: str
    claimer_user_id: str
    claimer_user_name: str
    created_at: datetime
    last_message_at: datetime
    is_active: bool
    closed_at: Optional[datetime] = None
    unread_count_creator: int = 0
    unread_count_claimer: int = 0
    last_message: str = ""

    class Config:
        from_attributes = True


class ClaimResponse(BaseModel):
    """Claim outcome"""
    post: PostResponse
    conversation: Optional[ConversationResponse] = None
    conversation_error: Optional[str] = None


class MessageCreate(BaseModel):
    """Chat message request"""
    text: str = Field("", max_length=2000)
    type: MessageType = MessageType.TEXT
    media_ref: Optional[str] = Field(None, max_length=500)


class ChatMessageResponse(BaseModel):
    """Chat message response"""
    id: str
    conversation_id: str
    sender_id: str
    sender_name: str
    text: str
    type: MessageType
    media_ref: Optional[str] = None
    sent_at: datetime
    is_read: bool

    class Config:
        from_attributes = True


class UnreadCountResponse(BaseModel):
    unread_count: int


# Notifications

class NotificationResponse(BaseModel):
    """Notification response"""
    id: str
    user_id: str
    title: str
    body: str
    type: NotificationType
    related_post_id: Optional[str] = None
    created_at: datetime
    is_read: bool

    class Config:
        from_attributes = True


# Admin

class OwnerPostCountResponse(BaseModel):
    user_id: str
    user_name: str
    post_count: int

    class Config:
        from_attributes = True


class StatisticsResponse(BaseModel):
    """Application statistics"""
    total_users: int
    total_posts: int
    removed_posts: int
    reported_posts: int
    claimed_posts: int
    expired_posts: int
    active_posts: int
    pending_posts: int
    total_conversations: int
    active_conversations: int
    total_messages: int
    posts_by_city: Dict[str, int]
    posts_by_day: Dict[str, int]
    top_users: List[OwnerPostCountResponse]
    generated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PostReportRowResponse(BaseModel):
    """Report row with export-safe scalars"""
    id: str
    title: str
    user_name: str
    city: str
    status: str
    created_at: str
    expiry_date: str
    available: bool
    report_count: int
    last_report_reason: str

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    """Generic message response"""
    message: str
    success: bool = True
