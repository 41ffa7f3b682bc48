"""
Conversation routes
"""
from fastapi import APIRouter, Depends, status
from typing import List

from ...domain.errors import Failure
from ...domain.models import ChatConversation, MessageBody, SessionContext
from ...schemas import (
    ChatMessageResponse,
    ConversationResponse,
    MessageCreate,
    UnreadCountResponse,
)
from ...application.conversations import ConversationThread
from ..dependencies import get_conversation_thread, get_current_session
from ..errors import unwrap


router = APIRouter(prefix="/api/v1/conversations", tags=["Conversations"])


async def _participant_conversation(
    conversation_id: str, session: SessionContext, thread: ConversationThread
) -> ChatConversation:
    conversation = unwrap(await thread.get(conversation_id))
    if not conversation.is_participant(session.user_id):
        unwrap(Failure.unauthorized("not_a_participant", "You are not part of this conversation"))
    return conversation


@router.get("", response_model=List[ConversationResponse])
async def list_conversations(
    session: SessionContext = Depends(get_current_session),
    thread: ConversationThread = Depends(get_conversation_thread)
):
    """Active conversations of the current user, latest activity first"""
    conversations = await thread.active_for_user(session.user_id).to_list()
    return [ConversationResponse.model_validate(c) for c in conversations]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    session: SessionContext = Depends(get_current_session),
    thread: ConversationThread = Depends(get_conversation_thread)
):
    """Total unread messages over active conversations"""
    return UnreadCountResponse(unread_count=await thread.total_unread(session.user_id))


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    session: SessionContext = Depends(get_current_session),
    thread: ConversationThread = Depends(get_conversation_thread)
):
    """Get a conversation the current user takes part in"""
    conversation = await _participant_conversation(conversation_id, session, thread)
    return ConversationResponse.model_validate(conversation)


@router.get("/{conversation_id}/messages", response_model=List[ChatMessageResponse])
async def list_messages(
    conversation_id: str,
    session: SessionContext = Depends(get_current_session),
    thread: ConversationThread = Depends(get_conversation_thread)
):
    """Messages in send order"""
    await _participant_conversation(conversation_id, session, thread)
    messages = await thread.messages(conversation_id).to_list()
    return [ChatMessageResponse.model_validate(m) for m in messages]


@router.post("/{conversation_id}/messages", response_model=ChatMessageResponse,
             status_code=status.HTTP_201_CREATED)
async def send_message(
    conversation_id: str,
    message_data: MessageCreate,
    session: SessionContext = Depends(get_current_session),
    thread: ConversationThread = Depends(get_conversation_thread)
):
    """
    Send a message

    - **text**: Message text (required for TEXT)
    - **type**: TEXT, IMAGE or AUDIO
    - **media_ref**: Content reference for IMAGE and AUDIO
    """
    message = unwrap(await thread.send(
        conversation_id,
        session.user_id,
        session.display_name,
        MessageBody(text=message_data.text, media_ref=message_data.media_ref, type=message_data.type),
    ))
    return ChatMessageResponse.model_validate(message)


@router.post("/{conversation_id}/read", response_model=ConversationResponse)
async def mark_read(
    conversation_id: str,
    session: SessionContext = Depends(get_current_session),
    thread: ConversationThread = Depends(get_conversation_thread)
):
    """Mark the other participant's messages as read"""
    return ConversationResponse.model_validate(unwrap(await thread.mark_read(conversation_id, session.user_id)))


@router.post("/{conversation_id}/close", response_model=ConversationResponse)
async def close_conversation(
    conversation_id: str,
    session: SessionContext = Depends(get_current_session),
    thread: ConversationThread = Depends(get_conversation_thread)
):
    """Close a conversation; the other participant is notified"""
    return ConversationResponse.model_validate(
        unwrap(await thread.close(conversation_id, closed_by=session.user_id))
    )


@router.post("/by-post/{post_id}/close", response_model=List[ConversationResponse])
async def close_post_conversations(
    post_id: str,
    session: SessionContext = Depends(get_current_session),
    thread: ConversationThread = Depends(get_conversation_thread)
):
    """Close every active conversation the current user holds as creator on a post"""
    closed = await thread.close_for_post(post_id, session.user_id)
    return [ConversationResponse.model_validate(c) for c in closed]
