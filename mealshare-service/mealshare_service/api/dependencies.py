"""
FastAPI dependencies
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from ..config import settings
from ..domain.models import SessionContext
from ..application.accounts import AccountService
from ..application.conversations import ConversationThread
from ..application.moderation import ModerationLedger
from ..application.notifications import NotificationDispatcher
from ..application.posts import PostLifecycle
from ..application.statistics import StatisticsAggregator
from ..infrastructure.admin_registry import AdminRegistry, get_admin_registry
from ..infrastructure.database.connection import StorageManager, get_storage
from ..infrastructure.kafka_producer import KafkaProducerManager, get_kafka_producer
from ..infrastructure.security import decode_token, session_from_payload


# Security scheme
security = HTTPBearer(auto_error=False)


async def get_account_service(
    storage: StorageManager = Depends(get_storage),
    registry: AdminRegistry = Depends(get_admin_registry),
) -> AccountService:
    """Get account service dependency"""
    return AccountService(storage.users, registry, settings.PASSWORD_MIN_LENGTH)


async def get_notification_dispatcher(
    storage: StorageManager = Depends(get_storage),
) -> NotificationDispatcher:
    """Get notification dispatcher dependency"""
    return NotificationDispatcher(storage.notifications, storage.users)


async def get_conversation_thread(
    storage: StorageManager = Depends(get_storage),
    notifications: NotificationDispatcher = Depends(get_notification_dispatcher),
    producer: KafkaProducerManager = Depends(get_kafka_producer),
) -> ConversationThread:
    """Get conversation thread dependency"""
    return ConversationThread(
        storage.conversations,
        storage.messages,
        storage.posts,
        storage.users,
        notifications,
        producer,
    )


async def get_post_lifecycle(
    storage: StorageManager = Depends(get_storage),
    conversations: ConversationThread = Depends(get_conversation_thread),
    notifications: NotificationDispatcher = Depends(get_notification_dispatcher),
    registry: AdminRegistry = Depends(get_admin_registry),
    producer: KafkaProducerManager = Depends(get_kafka_producer),
) -> PostLifecycle:
    """Get post lifecycle dependency"""
    return PostLifecycle(
        storage.posts,
        storage.users,
        conversations,
        notifications,
        registry,
        producer,
        default_radius_km=settings.DEFAULT_SEARCH_RADIUS_KM,
    )


async def get_moderation_ledger(storage: StorageManager = Depends(get_storage)) -> ModerationLedger:
    """Get moderation ledger dependency"""
    return ModerationLedger(storage.posts)


async def get_statistics_aggregator(
    storage: StorageManager = Depends(get_storage),
) -> StatisticsAggregator:
    """Get statistics aggregator dependency"""
    return StatisticsAggregator(
        storage.posts,
        storage.users,
        storage.conversations,
        top_users_limit=settings.TOP_USERS_LIMIT,
        days_window=settings.STATS_DAYS_WINDOW,
    )


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    storage: StorageManager = Depends(get_storage),
) -> SessionContext:
    """
    Get the session of the authenticated caller

    Raises:
        HTTPException: If the token is missing or invalid, or the user no longer exists
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    session = session_from_payload(payload) if payload else None
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Tokens outlive deleted accounts
    if not await storage.users.find_by_id(session.user_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return session


async def require_admin(session: SessionContext = Depends(get_current_session)) -> SessionContext:
    """Allow only sessions resolved as ADMIN"""
    if not session.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "admin_required", "message": "Administrator access required"},
        )
    return session


def page_params(page: int = 1, page_size: int = settings.DEFAULT_PAGE_SIZE) -> dict:
    """Clamp pagination query parameters"""
    return {
        "page": max(page, 1),
        "page_size": min(max(page_size, 1), settings.MAX_PAGE_SIZE),
    }
