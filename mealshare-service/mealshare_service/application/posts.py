"""
Post lifecycle - Creation, moderation, discovery, claim, report and removal
"""
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Union
import logging
import uuid

from ..domain.errors import Failure, ErrorKind, is_failure
from ..domain.models import (
    ChatConversation,
    Coordinate,
    Location,
    MealPost,
    ModerationDecision,
    ModerationStatus,
    NotificationType,
)
from ..domain.repositories import IMealPostRepository, IUserRepository
from ..infrastructure.admin_registry import AdminRegistry
from ..infrastructure.clock import Clock, utcnow
from ..infrastructure.kafka_producer import KafkaProducerManager
from .conversations import ConversationThread
from .geo import DEFAULT_RADIUS_KM, within
from .notifications import NotificationDispatcher
from .sequences import LazySequence

logger = logging.getLogger(__name__)


@dataclass
class ClaimOutcome:
    """Committed claim plus its conversation side effect"""
    post: MealPost
    conversation: Optional[ChatConversation] = None
    conversation_error: Optional[Failure] = None


class PostLifecycle:
    """Meal post service"""

    def __init__(
        self,
        post_repository: IMealPostRepository,
        user_repository: IUserRepository,
        conversations: ConversationThread,
        notifications: NotificationDispatcher,
        admin_registry: AdminRegistry,
        kafka_producer: Optional[KafkaProducerManager] = None,
        default_radius_km: float = DEFAULT_RADIUS_KM,
        clock: Clock = utcnow,
    ):
        self.post_repo = post_repository
        self.user_repo = user_repository
        self.conversations = conversations
        self.notifications = notifications
        self.admin_registry = admin_registry
        self.kafka_producer = kafka_producer
        self.default_radius_km = default_radius_km
        self.clock = clock

    def _today(self) -> date:
        return self.clock().date()

    async def create(
        self,
        owner_id: str,
        title: str,
        description: str,
        photos: List[str],
        expiry: date,
        location: Location,
    ) -> Union[MealPost, Failure]:
        """Create a new post awaiting moderation"""
        owner = await self.user_repo.find_by_id(owner_id)
        if not owner:
            return Failure.not_found("User", owner_id)
        if not title or not title.strip():
            return Failure.invalid("blank_title", "Title is required")
        if not photos:
            return Failure.invalid("no_photos", "At least one photo is required")
        if expiry < self._today():
            return Failure.invalid("expiry_in_past", "Expiry date cannot be in the past")

        post = MealPost(
            id=str(uuid.uuid4()),
            user_id=owner.id,
            user_name=owner.display_name,
            title=title.strip(),
            description=description,
            photos=list(photos),
            expiry_date=expiry,
            location=location,
            created_at=self.clock(),
        )
        post = await self.post_repo.create(post)
        logger.info(f"Post {post.id} created by user {owner_id}")

        if self.kafka_producer:
            await self.kafka_producer.publish_post_created(post)
        return post

    async def get(self, post_id: str) -> Union[MealPost, Failure]:
        """Get post by ID"""
        post = await self.post_repo.find_by_id(post_id)
        if not post:
            return Failure.not_found("Post", post_id)
        return post

    async def moderate(
        self, post_id: str, decision: ModerationDecision, comment: str = ""
    ) -> Union[MealPost, Failure]:
        """Approve or reject a post; the latest decision wins"""
        post = await self.post_repo.set_moderation(post_id, decision.status, comment)
        if not post:
            return Failure.not_found("Post", post_id)

        if post.is_removed:
            # removed posts stay hidden whatever the decision
            logger.info(f"Post {post_id} is removed, owner not notified of moderation")
        elif post.moderation_status == ModerationStatus.APPROVED:
            await self.notifications.dispatch(
                post.user_id,
                "Post approved",
                f"Your post '{post.title}' has been approved and is now visible",
                NotificationType.POST_APPROVED,
                post.id,
            )
        else:
            reason = f": {comment}" if comment else ""
            await self.notifications.dispatch(
                post.user_id,
                "Post rejected",
                f"Your post '{post.title}' has been rejected{reason}",
                NotificationType.POST_REJECTED,
                post.id,
            )

        logger.info(f"Post {post_id} moderated: {post.moderation_status.value}")
        if self.kafka_producer:
            await self.kafka_producer.publish_post_moderated(post)
        return post

    def discover(
        self,
        center: Coordinate,
        radius_km: Optional[float] = None,
        today: Optional[date] = None,
    ) -> LazySequence[MealPost]:
        """
        Claimable posts within radius_km of center, newest first

        The query runs each time the sequence is iterated.
        """
        radius = self.default_radius_km if radius_km is None else radius_km

        def query():
            return self.post_repo.iter_discoverable(today or self._today())

        return LazySequence(query).filter(
            lambda post: within(center, post.location.coordinate, radius)
        )

    async def claim(self, post_id: str, claimant_id: str) -> Union[ClaimOutcome, Failure]:
        """
        Claim a post

        At most one claimant ever succeeds. The claim is committed before
        the conversation and the owner notification are produced.
        """
        post = await self.post_repo.find_by_id(post_id)
        if not post:
            return Failure.not_found("Post", post_id)
        if post.is_owned_by(claimant_id):
            return Failure.invalid("self_claim", "You cannot claim your own post")

        claimant = await self.user_repo.find_by_id(claimant_id)
        if not claimant:
            return Failure.not_found("User", claimant_id)

        claimed = await self.post_repo.claim(post_id, claimant_id, self.clock(), self._today())
        if not claimed:
            current = await self.post_repo.find_by_id(post_id)
            if not current:
                return Failure.not_found("Post", post_id)
            if current.claimed_by_user_id is not None:
                return Failure.conflict("already_claimed", "This post has already been claimed")
            return Failure.conflict("not_claimable", "This post is not available for claiming")

        logger.info(f"Post {post_id} claimed by user {claimant_id}")
        outcome = ClaimOutcome(post=claimed)

        try:
            conversation = await self.conversations.get_or_create(
                claimed.id, claimed.user_id, claimant_id
            )
        except Exception as e:
            logger.error(f"Claim of post {post_id} committed but conversation failed: {e}")
            conversation = Failure(ErrorKind.CONFLICT, "conversation_unavailable", str(e))

        if is_failure(conversation):
            outcome.conversation_error = conversation
        else:
            outcome.conversation = conversation

        await self.notifications.dispatch(
            claimed.user_id,
            "Food claimed",
            f"{claimant.display_name} has claimed your food: {claimed.title}",
            NotificationType.POST_CLAIMED,
            claimed.id,
        )
        if self.kafka_producer:
            await self.kafka_producer.publish_post_claimed(
                claimed, outcome.conversation.id if outcome.conversation else None
            )
        return outcome

    async def open_conversation(
        self, post_id: str, user_id: str
    ) -> Union[ChatConversation, Failure]:
        """
        Get or create the conversation of a claimed post

        Owner and claimer come from the stored post; the caller must be
        one of them. Retries a claim whose conversation step failed.
        """
        post = await self.post_repo.find_by_id(post_id)
        if not post:
            return Failure.not_found("Post", post_id)
        if post.claimed_by_user_id is None:
            return Failure.conflict("not_claimed", "This post has not been claimed")
        if user_id not in (post.user_id, post.claimed_by_user_id):
            return Failure.unauthorized("not_a_participant", "Only the owner or the claimer can open this chat")

        return await self.conversations.get_or_create(
            post.id, post.user_id, post.claimed_by_user_id
        )

    async def report(self, post_id: str, reporter_id: str, reason: str) -> Union[MealPost, Failure]:
        """Report a post; each user counts once"""
        post = await self.post_repo.find_by_id(post_id)
        if not post:
            return Failure.not_found("Post", post_id)
        if post.is_owned_by(reporter_id):
            return Failure.invalid("self_report", "You cannot report your own post")

        reported = await self.post_repo.add_report(post_id, reporter_id, reason)
        if not reported:
            if not await self.post_repo.find_by_id(post_id):
                return Failure.not_found("Post", post_id)
            return Failure.conflict("already_reported", "You have already reported this post")

        logger.info(f"Post {post_id} reported ({reported.report_count} report(s))")
        for admin_user_id in self.admin_registry.admin_user_ids():
            await self.notifications.dispatch(
                admin_user_id,
                "Post reported",
                f"'{reported.title}' was reported: {reason}",
                NotificationType.POST_REPORTED,
                reported.id,
            )
        if self.kafka_producer:
            await self.kafka_producer.publish_post_reported(reported, reporter_id)
        return reported

    async def remove(self, post_id: str, admin_comment: str) -> Union[MealPost, Failure]:
        """Administratively remove a post"""
        removed = await self.post_repo.mark_removed(post_id, admin_comment, self.clock())
        if not removed:
            return Failure.not_found("Post", post_id)

        await self.notifications.dispatch(
            removed.user_id,
            "Post removed",
            f"Your post '{removed.title}' was removed by an administrator: {admin_comment}",
            NotificationType.POST_REMOVED_BY_ADMIN,
            removed.id,
        )
        logger.info(f"Post {post_id} removed by admin")
        if self.kafka_producer:
            await self.kafka_producer.publish_post_removed(removed)
        return removed

    async def approve_reported(self, post_id: str) -> Union[MealPost, Failure]:
        """Dismiss the reports on a post, leaving its moderation status alone"""
        cleared = await self.post_repo.clear_reports(post_id)
        if not cleared:
            return Failure.not_found("Post", post_id)
        logger.info(f"Reports on post {post_id} dismissed")
        return cleared

    def posts_by_owner(self, user_id: str) -> LazySequence[MealPost]:
        return LazySequence(lambda: self.post_repo.iter_by_owner(user_id))

    def posts_claimed_by(self, user_id: str) -> LazySequence[MealPost]:
        return LazySequence(lambda: self.post_repo.iter_claimed_by(user_id))

    def pending(self) -> LazySequence[MealPost]:
        """Posts waiting for moderation"""
        return LazySequence(self.post_repo.iter_pending)

    def all_active(self) -> LazySequence[MealPost]:
        """Every post that has not been removed"""
        return LazySequence(self.post_repo.iter_not_removed)
