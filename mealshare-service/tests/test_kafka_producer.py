"""
Tests for the Kafka event producer.
"""
from mealshare_service.config import settings
from mealshare_service.infrastructure.kafka_producer import KafkaProducerManager


class RecordingProducer:
    """Stands in for a started AIOKafkaProducer."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send(self, topic, value=None, key=None):
        if self.fail:
            raise ConnectionError("broker down")
        self.sent.append((topic, key, value))

    async def stop(self):
        pass


class TestPublish:
    """Event publishing."""

    async def test_disabled_start_keeps_producer_off(self):
        manager = KafkaProducerManager()
        await manager.start()
        assert manager.producer is None
        assert await manager.publish_event("topic", "key", {}) is False

    async def test_claim_event(self, lifecycle, people, make_post):
        manager = KafkaProducerManager()
        manager.producer = RecordingProducer()
        lifecycle.kafka_producer = manager

        post = await make_post()
        outcome = await lifecycle.claim(post.id, "claimer")

        topic, key, value = manager.producer.sent[-1]
        assert topic == settings.KAFKA_TOPIC_POST_CLAIMED
        assert key == post.id
        assert value["claimer_user_id"] == "claimer"
        assert value["conversation_id"] == outcome.conversation.id

    async def test_lifecycle_events(self, lifecycle, people, make_post):
        manager = KafkaProducerManager()
        manager.producer = RecordingProducer()
        lifecycle.kafka_producer = manager

        post = await make_post()
        await lifecycle.report(post.id, "claimer", "odd")
        await lifecycle.remove(post.id, "spam")

        topics = [topic for topic, _, _ in manager.producer.sent]
        assert topics == [
            settings.KAFKA_TOPIC_POST_CREATED,
            settings.KAFKA_TOPIC_POST_MODERATED,
            settings.KAFKA_TOPIC_POST_REPORTED,
            settings.KAFKA_TOPIC_POST_REMOVED,
        ]

    async def test_send_failure_is_reported_not_raised(self):
        manager = KafkaProducerManager()
        manager.producer = RecordingProducer(fail=True)
        assert await manager.publish_event("topic", "key", {"a": 1}) is False

    async def test_stop(self):
        manager = KafkaProducerManager()
        manager.producer = RecordingProducer()
        await manager.stop()
        assert manager.producer is None
