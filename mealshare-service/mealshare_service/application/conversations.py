"""
Conversation thread - Chat between a post owner and its claimer
"""
from datetime import timedelta
from typing import List, Optional, Union
import logging
import uuid

from ..domain.errors import Failure
from ..domain.models import (
    ChatConversation,
    ChatMessage,
    MessageBody,
    MessageType,
    NotificationType,
)
from ..domain.repositories import (
    IConversationRepository,
    IMealPostRepository,
    IMessageRepository,
    IUserRepository,
)
from ..infrastructure.clock import Clock, utcnow
from ..infrastructure.kafka_producer import KafkaProducerManager
from .notifications import NotificationDispatcher
from .sequences import LazySequence

logger = logging.getLogger(__name__)

DEFAULT_INACTIVE_DAYS = 7


class ConversationThread:
    """Conversation service"""

    def __init__(
        self,
        conversation_repository: IConversationRepository,
        message_repository: IMessageRepository,
        post_repository: IMealPostRepository,
        user_repository: IUserRepository,
        notifications: NotificationDispatcher,
        kafka_producer: Optional[KafkaProducerManager] = None,
        clock: Clock = utcnow,
    ):
        self.conversation_repo = conversation_repository
        self.message_repo = message_repository
        self.post_repo = post_repository
        self.user_repo = user_repository
        self.notifications = notifications
        self.kafka_producer = kafka_producer
        self.clock = clock

    async def _display_name(self, user_id: str, fallback: str = "") -> str:
        user = await self.user_repo.find_by_id(user_id)
        if user and user.display_name:
            return user.display_name
        return fallback

    async def get(self, conversation_id: str) -> Union[ChatConversation, Failure]:
        """Get conversation by ID"""
        conversation = await self.conversation_repo.find_by_id(conversation_id)
        if not conversation:
            return Failure.not_found("Conversation", conversation_id)
        return conversation

    async def get_or_create(
        self, post_id: str, creator_id: str, claimer_id: str
    ) -> Union[ChatConversation, Failure]:
        """
        Get the active conversation for (post, claimer), creating it if needed

        Repeated calls with the same arguments return the same conversation.
        """
        post = await self.post_repo.find_by_id(post_id)
        if not post:
            return Failure.not_found("Post", post_id)
        if creator_id != post.user_id:
            return Failure.invalid("not_post_owner", "Conversation creator must own the post")
        if claimer_id == creator_id:
            return Failure.invalid("self_claim", "Post owner cannot be the claimer")

        now = self.clock()
        candidate = ChatConversation(
            id=str(uuid.uuid4()),
            meal_post_id=post.id,
            meal_post_title=post.title,
            creator_user_id=creator_id,
            creator_user_name=await self._display_name(creator_id, post.user_name),
            claimer_user_id=claimer_id,
            claimer_user_name=await self._display_name(claimer_id),
            created_at=now,
            last_message_at=now,
        )
        conversation = await self.conversation_repo.get_or_create(candidate)
        if conversation.id == candidate.id:
            logger.info(f"Opened conversation {conversation.id} for post {post_id}")
        return conversation

    async def send(
        self,
        conversation_id: str,
        sender_id: str,
        sender_name: str,
        body: MessageBody,
    ) -> Union[ChatMessage, Failure]:
        """
        Send a message

        The recipient is the participant whose stored id differs from the
        sender's; only the recipient's unread counter moves.
        """
        conversation = await self.conversation_repo.find_by_id(conversation_id)
        if not conversation:
            return Failure.not_found("Conversation", conversation_id)
        if not conversation.is_active:
            return Failure.conflict("inactive", "Conversation is closed")

        sender_role = conversation.role_of(sender_id)
        if sender_role is None:
            return Failure.unauthorized("not_a_participant", "Sender is not part of this conversation")

        if body.type == MessageType.TEXT and not body.text.strip():
            return Failure.invalid("empty_message", "Message text is required")
        if body.type != MessageType.TEXT and not body.media_ref:
            return Failure.invalid("missing_content", "Content reference is required")

        recipient_role = sender_role.other
        updated = await self.conversation_repo.record_message(
            conversation_id, recipient_role, body.preview(), self.clock()
        )
        if not updated:
            # closed between the read and the update
            return Failure.conflict("inactive", "Conversation is closed")

        message = ChatMessage(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            sender_id=sender_id,
            sender_name=sender_name,
            text=body.text,
            sent_at=updated.last_message_at,
            type=body.type,
            media_ref=body.media_ref,
        )
        try:
            await self.message_repo.add(message)
        except Exception:
            await self.conversation_repo.undo_message(
                conversation_id,
                recipient_role,
                updated.last_message_at,
                conversation.last_message,
                conversation.last_message_at,
            )
            logger.error(f"Message store failed in conversation {conversation_id}, send reverted")
            raise

        recipient_id = updated.user_id_for(recipient_role)
        await self.notifications.dispatch(
            recipient_id,
            f"New message from {sender_name}",
            updated.last_message,
            NotificationType.NEW_MESSAGE,
            updated.meal_post_id,
        )
        if self.kafka_producer:
            await self.kafka_producer.publish_chat_message(updated, message, recipient_id)

        return message

    def messages(self, conversation_id: str) -> LazySequence[ChatMessage]:
        """Messages ascending by send time"""
        return LazySequence(lambda: self.message_repo.iter_for_conversation(conversation_id))

    async def mark_read(self, conversation_id: str, reader_id: str) -> Union[ChatConversation, Failure]:
        """Mark the other side's messages read and reset the reader's counter"""
        conversation = await self.conversation_repo.find_by_id(conversation_id)
        if not conversation:
            return Failure.not_found("Conversation", conversation_id)

        reader_role = conversation.role_of(reader_id)
        if reader_role is None:
            return Failure.unauthorized("not_a_participant", "Reader is not part of this conversation")

        # counter first; messages recorded after the reset stay unread and counted
        updated = await self.conversation_repo.reset_unread(conversation_id, reader_role) or conversation
        await self.message_repo.mark_read(conversation_id, reader_id, up_to=updated.last_message_at)
        return updated

    async def close(
        self, conversation_id: str, closed_by: Optional[str] = None
    ) -> Union[ChatConversation, Failure]:
        """
        Deactivate a conversation

        Participants other than closed_by are notified. A None closed_by
        (system close) notifies both.
        """
        conversation = await self.conversation_repo.find_by_id(conversation_id)
        if not conversation:
            return Failure.not_found("Conversation", conversation_id)
        if closed_by is not None and not conversation.is_participant(closed_by):
            return Failure.unauthorized("not_a_participant", "Only participants can close a conversation")

        closed = await self.conversation_repo.close(conversation_id, self.clock())
        if not closed:
            return Failure.conflict("already_closed", "Conversation is already closed")

        for user_id in (closed.creator_user_id, closed.claimer_user_id):
            if user_id == closed_by:
                continue
            await self.notifications.dispatch(
                user_id,
                "Chat closed",
                f"The chat about '{closed.meal_post_title}' has been closed",
                NotificationType.CHAT_CLOSED,
                closed.meal_post_id,
            )
        if self.kafka_producer:
            await self.kafka_producer.publish_chat_closed(closed, closed_by)

        logger.info(f"Closed conversation {conversation_id}")
        return closed

    async def total_unread(self, user_id: str) -> int:
        """Sum of the user's own counters over active conversations"""
        total = 0
        async for conversation in self.conversation_repo.iter_active_for_user(user_id):
            role = conversation.role_of(user_id)
            if role is not None:
                total += conversation.unread_for(role)
        return total

    def active_for_user(self, user_id: str) -> LazySequence[ChatConversation]:
        """Active conversations, latest activity first"""
        return LazySequence(lambda: self.conversation_repo.iter_active_for_user(user_id))

    async def close_for_post(self, post_id: str, creator_id: str) -> List[ChatConversation]:
        """Close the active conversations the creator holds on a post"""
        targets = [
            c async for c in self.conversation_repo.iter_active_for_post(post_id)
            if c.creator_user_id == creator_id
        ]
        closed: List[ChatConversation] = []
        for conversation in targets:
            result = await self.close(conversation.id, closed_by=creator_id)
            if isinstance(result, ChatConversation):
                closed.append(result)
        return closed

    async def close_inactive(self, older_than_days: int = DEFAULT_INACTIVE_DAYS) -> int:
        """
        Close active conversations without activity for older_than_days

        Returns:
            Number of conversations closed
        """
        cutoff = self.clock() - timedelta(days=older_than_days)
        idle = [c async for c in self.conversation_repo.iter_idle_since(cutoff)]

        closed = 0
        for conversation in idle:
            result = await self.close(conversation.id)
            if isinstance(result, ChatConversation):
                closed += 1

        if closed:
            logger.info(f"Closed {closed} inactive conversation(s)")
        return closed
