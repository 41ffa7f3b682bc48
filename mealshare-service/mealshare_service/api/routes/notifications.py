"""
Notification routes
"""
from fastapi import APIRouter, Depends
from typing import List

from ...domain.models import SessionContext
from ...schemas import MessageResponse, NotificationResponse, UnreadCountResponse
from ...application.notifications import NotificationDispatcher
from ..dependencies import get_current_session, get_notification_dispatcher, page_params
from ..errors import unwrap


router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    paging: dict = Depends(page_params),
    session: SessionContext = Depends(get_current_session),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    """Notifications of the current user, newest first"""
    notifications = await dispatcher.for_user(session.user_id, unread_only).page(**paging)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    session: SessionContext = Depends(get_current_session),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    return UnreadCountResponse(unread_count=await dispatcher.unread_count(session.user_id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    session: SessionContext = Depends(get_current_session),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    return NotificationResponse.model_validate(
        unwrap(await dispatcher.mark_read(notification_id, session.user_id))
    )


@router.post("/read-all", response_model=MessageResponse)
async def mark_all_read(
    session: SessionContext = Depends(get_current_session),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    """Mark every notification of the current user as read"""
    updated = await dispatcher.mark_all_read(session.user_id)
    return MessageResponse(message=f"{updated} notification(s) marked as read")
