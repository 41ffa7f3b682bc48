"""
Kafka producer for publishing meal post and chat events
"""
from aiokafka import AIOKafkaProducer
from typing import Optional, Dict, Any
import json
import logging

from ..config import settings
from ..domain.models import ChatConversation, ChatMessage, MealPost

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


class KafkaProducerManager:
    """Kafka producer manager for publishing events"""

    def __init__(self):
        self.producer: Optional[AIOKafkaProducer] = None

    async def start(self):
        """Start Kafka producer"""
        if not settings.KAFKA_ENABLED:
            logger.info("Kafka is disabled")
            return

        try:
            self.producer = AIOKafkaProducer(
                bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
                value_serializer=lambda v: json.dumps(v).encode("utf-8"),
                key_serializer=lambda k: k.encode("utf-8") if k else None,
            )
            await self.producer.start()
            logger.info(f"Kafka producer started at {settings.KAFKA_BOOTSTRAP_SERVERS}")
        except Exception as e:
            logger.warning(f"Failed to start Kafka producer: {e}. Continuing without Kafka.")
            self.producer = None

    async def stop(self):
        """Stop Kafka producer"""
        if self.producer:
            await self.producer.stop()
            self.producer = None
            logger.info("Kafka producer stopped")

    async def publish_event(self, topic: str, key: str, event_data: Dict[str, Any]) -> bool:
        """
        Publish an event to Kafka

        Args:
            topic: Kafka topic name
            key: Message key (post_id or conversation_id)
            event_data: Event payload

        Returns:
            True if successful, False otherwise
        """
        if not self.producer:
            logger.debug(f"Kafka disabled, skipping event: {topic}")
            return False

        try:
            await self.producer.send(topic, value=event_data, key=key)
            logger.info(f"Published event to topic '{topic}' with key '{key}'")
            return True
        except Exception as e:
            logger.error(f"Failed to publish event to topic '{topic}': {e}")
            return False

    async def publish_post_created(self, post: MealPost) -> bool:
        """Publish post created event"""
        event = {
            "event_type": "post_created",
            "post_id": post.id,
            "user_id": post.user_id,
            "title": post.title,
            "city": post.location.city,
            "latitude": post.location.latitude,
            "longitude": post.location.longitude,
            "expiry_date": _iso(post.expiry_date),
            "timestamp": _iso(post.created_at),
        }
        return await self.publish_event(settings.KAFKA_TOPIC_POST_CREATED, post.id, event)

    async def publish_post_moderated(self, post: MealPost) -> bool:
        """Publish post moderated event"""
        event = {
            "event_type": "post_moderated",
            "post_id": post.id,
            "user_id": post.user_id,
            "moderation_status": post.moderation_status.value,
            "admin_comment": post.admin_comment,
        }
        return await self.publish_event(settings.KAFKA_TOPIC_POST_MODERATED, post.id, event)

    async def publish_post_claimed(self, post: MealPost,
                                   conversation_id: Optional[str] = None) -> bool:
        """Publish post claimed event"""
        event = {
            "event_type": "post_claimed",
            "post_id": post.id,
            "post_owner_id": post.user_id,
            "claimer_user_id": post.claimed_by_user_id,
            "conversation_id": conversation_id,
            "timestamp": _iso(post.claimed_at),
        }
        return await self.publish_event(settings.KAFKA_TOPIC_POST_CLAIMED, post.id, event)

    async def publish_post_reported(self, post: MealPost, reporter_id: str) -> bool:
        """Publish post reported event"""
        event = {
            "event_type": "post_reported",
            "post_id": post.id,
            "post_owner_id": post.user_id,
            "reporter_user_id": reporter_id,
            "report_count": post.report_count,
            "reason": post.last_report_reason,
        }
        return await self.publish_event(settings.KAFKA_TOPIC_POST_REPORTED, post.id, event)

    async def publish_post_removed(self, post: MealPost) -> bool:
        """Publish post removed event"""
        event = {
            "event_type": "post_removed",
            "post_id": post.id,
            "post_owner_id": post.user_id,
            "admin_comment": post.admin_comment,
            "timestamp": _iso(post.removed_at),
        }
        return await self.publish_event(settings.KAFKA_TOPIC_POST_REMOVED, post.id, event)

    async def publish_chat_message(self, conversation: ChatConversation,
                                   message: ChatMessage, recipient_id: str) -> bool:
        """Publish chat message event"""
        event = {
            "event_type": "chat_message",
            "conversation_id": conversation.id,
            "post_id": conversation.meal_post_id,
            "message_id": message.id,
            "sender_id": message.sender_id,
            "recipient_id": recipient_id,
            "type": message.type.value,
            "preview": conversation.last_message,
            "timestamp": _iso(message.sent_at),
        }
        return await self.publish_event(settings.KAFKA_TOPIC_CHAT_MESSAGE, conversation.id, event)

    async def publish_chat_closed(self, conversation: ChatConversation,
                                  closed_by: Optional[str] = None) -> bool:
        """Publish chat closed event"""
        event = {
            "event_type": "chat_closed",
            "conversation_id": conversation.id,
            "post_id": conversation.meal_post_id,
            "closed_by": closed_by,
            "timestamp": _iso(conversation.closed_at),
        }
        return await self.publish_event(settings.KAFKA_TOPIC_CHAT_CLOSED, conversation.id, event)


# Global Kafka producer instance
kafka_producer = KafkaProducerManager()


async def get_kafka_producer() -> KafkaProducerManager:
    """Dependency for getting Kafka producer instance"""
    return kafka_producer
