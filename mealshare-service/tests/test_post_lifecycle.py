"""
Tests for the meal post lifecycle.
"""
import asyncio
from datetime import timedelta

import pytest

from mealshare_service.application.posts import ClaimOutcome
from mealshare_service.domain.errors import ErrorKind, Failure
from mealshare_service.domain.models import (
    ModerationDecision,
    ModerationStatus,
    NotificationType,
)

from conftest import ADMIN_USER_ID, BARCELONA, MADRID, MADRID_NEARBY


async def notification_types(dispatcher, user_id):
    return [n.type for n in await dispatcher.for_user(user_id).to_list()]


class TestCreate:
    """Post creation."""

    async def test_new_post_is_pending_and_available(self, lifecycle, people, clock):
        post = await lifecycle.create(
            "owner", "Lentils", "Big pot", ["photo://a"], clock.today, MADRID
        )
        assert post.moderation_status == ModerationStatus.PENDING
        assert post.is_available
        assert post.claimed_by_user_id is None
        assert post.report_count == 0
        assert post.user_name == "Olga"

    async def test_rejects_past_expiry(self, lifecycle, people, clock):
        result = await lifecycle.create(
            "owner", "Lentils", "", ["photo://a"], clock.today - timedelta(days=1), MADRID
        )
        assert isinstance(result, Failure)
        assert result.kind == ErrorKind.INVALID_INPUT

    async def test_requires_photo(self, lifecycle, people, clock):
        result = await lifecycle.create("owner", "Lentils", "", [], clock.today, MADRID)
        assert result.reason == "no_photos"

    async def test_requires_title(self, lifecycle, people, clock):
        result = await lifecycle.create("owner", "   ", "", ["photo://a"], clock.today, MADRID)
        assert result.reason == "blank_title"

    async def test_unknown_owner(self, lifecycle, clock):
        result = await lifecycle.create("ghost", "Lentils", "", ["photo://a"], clock.today, MADRID)
        assert result.kind == ErrorKind.NOT_FOUND


class TestModerate:
    """Moderation decisions."""

    async def test_approve_notifies_owner(self, lifecycle, dispatcher, people, make_post):
        post = await make_post(approve=False)
        approved = await lifecycle.moderate(post.id, ModerationDecision.APPROVE)
        assert approved.moderation_status == ModerationStatus.APPROVED
        assert NotificationType.POST_APPROVED in await notification_types(dispatcher, "owner")

    async def test_reject_notifies_owner_with_comment(self, lifecycle, dispatcher, people, make_post):
        post = await make_post(approve=False)
        rejected = await lifecycle.moderate(post.id, ModerationDecision.REJECT, "Blurry photo")
        assert rejected.moderation_status == ModerationStatus.REJECTED
        assert rejected.admin_comment == "Blurry photo"
        latest = (await dispatcher.for_user("owner").to_list())[0]
        assert latest.type == NotificationType.POST_REJECTED
        assert "Blurry photo" in latest.body

    async def test_last_decision_wins(self, lifecycle, people, make_post):
        post = await make_post(approve=False)
        await lifecycle.moderate(post.id, ModerationDecision.REJECT)
        final = await lifecycle.moderate(post.id, ModerationDecision.APPROVE)
        assert final.moderation_status == ModerationStatus.APPROVED

    async def test_unknown_post(self, lifecycle):
        result = await lifecycle.moderate("missing", ModerationDecision.APPROVE)
        assert result.kind == ErrorKind.NOT_FOUND

    async def test_removed_post_owner_not_told_it_is_visible(self, lifecycle, dispatcher, people, make_post):
        post = await make_post(approve=False)
        await lifecycle.remove(post.id, "Not food")

        approved = await lifecycle.moderate(post.id, ModerationDecision.APPROVE)
        assert approved.moderation_status == ModerationStatus.APPROVED
        assert approved.is_removed
        types = await notification_types(dispatcher, "owner")
        assert NotificationType.POST_APPROVED not in types
        assert types == [NotificationType.POST_REMOVED_BY_ADMIN]


class TestDiscover:
    """Proximity discovery."""

    async def test_only_claimable_posts_nearby(self, lifecycle, people, make_post, clock):
        visible = await make_post(title="Visible")
        await make_post(title="Pending", approve=False)
        await make_post(title="Far", location=BARCELONA)
        claimed = await make_post(title="Claimed")
        await lifecycle.claim(claimed.id, "claimer")
        removed = await make_post(title="Removed")
        await lifecycle.remove(removed.id, "spam")

        found = await lifecycle.discover(MADRID.coordinate).to_list()
        assert [p.id for p in found] == [visible.id]

    async def test_expired_posts_are_hidden(self, lifecycle, people, make_post, clock):
        post = await make_post(expiry_days=1)
        tomorrow = clock.today + timedelta(days=1)
        later = clock.today + timedelta(days=2)
        assert [p.id for p in await lifecycle.discover(MADRID.coordinate, today=tomorrow).to_list()] == [post.id]
        assert await lifecycle.discover(MADRID.coordinate, today=later).to_list() == []

    async def test_newest_first(self, lifecycle, people, make_post, clock):
        first = await make_post(title="First")
        clock.advance(minutes=5)
        second = await make_post(title="Second", location=MADRID_NEARBY)
        found = await lifecycle.discover(MADRID.coordinate).to_list()
        assert [p.id for p in found] == [second.id, first.id]

    async def test_radius_override(self, lifecycle, people, make_post):
        await make_post(location=BARCELONA)
        assert await lifecycle.discover(MADRID.coordinate).to_list() == []
        assert len(await lifecycle.discover(MADRID.coordinate, radius_km=700).to_list()) == 1

    async def test_sequence_is_restartable(self, lifecycle, people, make_post):
        await make_post()
        sequence = lifecycle.discover(MADRID.coordinate)
        assert len(await sequence.to_list()) == 1
        await make_post(title="Another")
        assert len(await sequence.to_list()) == 2


class TestClaim:
    """Claiming."""

    async def test_claim_creates_conversation_and_notifies(self, lifecycle, dispatcher, people, make_post):
        post = await make_post()
        outcome = await lifecycle.claim(post.id, "claimer")

        assert isinstance(outcome, ClaimOutcome)
        assert not outcome.post.is_available
        assert outcome.post.claimed_by_user_id == "claimer"
        assert outcome.post.claimed_at is not None
        assert outcome.conversation.creator_user_id == "owner"
        assert outcome.conversation.claimer_user_id == "claimer"
        assert outcome.conversation_error is None

        latest = (await dispatcher.for_user("owner").to_list())[0]
        assert latest.type == NotificationType.POST_CLAIMED
        assert latest.body == "Carlos has claimed your food: Paella"

    async def test_self_claim_rejected(self, lifecycle, people, make_post):
        post = await make_post()
        result = await lifecycle.claim(post.id, "owner")
        assert result.kind == ErrorKind.INVALID_INPUT
        assert result.reason == "self_claim"

    async def test_second_claim_conflicts(self, lifecycle, people, make_post):
        post = await make_post()
        await lifecycle.claim(post.id, "claimer")
        result = await lifecycle.claim(post.id, "other")
        assert result.kind == ErrorKind.CONFLICT
        assert result.reason == "already_claimed"

    async def test_pending_post_not_claimable(self, lifecycle, people, make_post):
        post = await make_post(approve=False)
        result = await lifecycle.claim(post.id, "claimer")
        assert result.kind == ErrorKind.CONFLICT
        assert result.reason == "not_claimable"

    async def test_expired_post_not_claimable(self, lifecycle, people, make_post, clock):
        post = await make_post(expiry_days=0)
        clock.advance(days=1)
        result = await lifecycle.claim(post.id, "claimer")
        assert result.reason == "not_claimable"

    async def test_missing_post(self, lifecycle, people):
        result = await lifecycle.claim("missing", "claimer")
        assert result.kind == ErrorKind.NOT_FOUND

    async def test_concurrent_claims_single_winner(self, lifecycle, people, make_post):
        post = await make_post()
        results = await asyncio.gather(
            lifecycle.claim(post.id, "claimer"),
            lifecycle.claim(post.id, "other"),
        )
        winners = [r for r in results if isinstance(r, ClaimOutcome)]
        losers = [r for r in results if isinstance(r, Failure)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert losers[0].kind == ErrorKind.CONFLICT

    async def test_conversation_failure_keeps_claim(self, lifecycle, thread, people, make_post, post_repo, monkeypatch):
        post = await make_post()

        async def broken(*args, **kwargs):
            raise RuntimeError("storage offline")

        monkeypatch.setattr(thread, "get_or_create", broken)
        outcome = await lifecycle.claim(post.id, "claimer")

        assert isinstance(outcome, ClaimOutcome)
        assert outcome.conversation is None
        assert outcome.conversation_error is not None
        stored = await post_repo.find_by_id(post.id)
        assert stored.claimed_by_user_id == "claimer"

    async def test_conversation_retry_after_failed_claim_step(self, lifecycle, thread, people, make_post,
                                                             monkeypatch):
        post = await make_post()
        get_or_create = thread.get_or_create
        attempts = []

        async def flaky(*args, **kwargs):
            attempts.append(args)
            if len(attempts) == 1:
                raise RuntimeError("storage offline")
            return await get_or_create(*args, **kwargs)

        monkeypatch.setattr(thread, "get_or_create", flaky)
        outcome = await lifecycle.claim(post.id, "claimer")
        assert outcome.conversation is None

        retried = await lifecycle.open_conversation(post.id, "claimer")
        assert retried.creator_user_id == "owner"
        assert retried.claimer_user_id == "claimer"
        assert (await lifecycle.open_conversation(post.id, "owner")).id == retried.id

    async def test_open_conversation_guards(self, lifecycle, people, make_post):
        post = await make_post()
        unclaimed = await lifecycle.open_conversation(post.id, "owner")
        assert unclaimed.kind == ErrorKind.CONFLICT
        assert unclaimed.reason == "not_claimed"

        await lifecycle.claim(post.id, "claimer")
        outsider = await lifecycle.open_conversation(post.id, "other")
        assert outsider.kind == ErrorKind.UNAUTHORIZED
        assert (await lifecycle.open_conversation("missing", "owner")).kind == ErrorKind.NOT_FOUND


class TestReport:
    """Reporting."""

    async def test_report_counts_and_notifies_admins(self, lifecycle, dispatcher, people, make_post):
        post = await make_post()
        reported = await lifecycle.report(post.id, "claimer", "Looks spoiled")
        assert reported.report_count == 1
        assert reported.reported_by == ["claimer"]
        assert reported.last_report_reason == "Looks spoiled"
        assert NotificationType.POST_REPORTED in await notification_types(dispatcher, ADMIN_USER_ID)

    async def test_duplicate_report_counted_once(self, lifecycle, people, make_post):
        post = await make_post()
        await lifecycle.report(post.id, "claimer", "first")
        result = await lifecycle.report(post.id, "claimer", "second")
        assert result.kind == ErrorKind.CONFLICT
        assert result.reason == "already_reported"
        stored = await lifecycle.get(post.id)
        assert stored.report_count == 1 == len(stored.reported_by)

    async def test_concurrent_duplicate_reports(self, lifecycle, people, make_post):
        post = await make_post()
        await asyncio.gather(*[lifecycle.report(post.id, "claimer", "x") for _ in range(5)])
        stored = await lifecycle.get(post.id)
        assert stored.report_count == 1

    async def test_self_report_rejected(self, lifecycle, people, make_post):
        post = await make_post()
        result = await lifecycle.report(post.id, "owner", "mine")
        assert result.reason == "self_report"

    async def test_removed_post_can_still_be_reported(self, lifecycle, people, make_post):
        post = await make_post()
        await lifecycle.remove(post.id, "spam")
        reported = await lifecycle.report(post.id, "other", "still bad")
        assert reported.report_count == 1


class TestRemoval:
    """Administrative removal and report dismissal."""

    async def test_remove_hides_and_blocks_claim(self, lifecycle, dispatcher, people, make_post):
        post = await make_post()
        removed = await lifecycle.remove(post.id, "Not food")
        assert removed.is_removed
        assert removed.admin_comment == "Not food"
        assert removed.removed_at is not None
        assert (await lifecycle.claim(post.id, "claimer")).reason == "not_claimable"
        assert NotificationType.POST_REMOVED_BY_ADMIN in await notification_types(dispatcher, "owner")

    async def test_removed_posts_kept_for_audit(self, lifecycle, people, make_post):
        post = await make_post()
        await lifecycle.remove(post.id, "spam")
        stored = await lifecycle.get(post.id)
        assert stored.is_removed
        assert post.id not in [p.id for p in await lifecycle.all_active().to_list()]

    async def test_approve_reported_clears_reports_only(self, lifecycle, people, make_post):
        post = await make_post()
        await lifecycle.report(post.id, "claimer", "bad")
        await lifecycle.report(post.id, "other", "worse")
        cleared = await lifecycle.approve_reported(post.id)
        assert cleared.report_count == 0
        assert cleared.reported_by == []
        assert cleared.last_report_reason == ""
        assert cleared.moderation_status == ModerationStatus.APPROVED

    async def test_remove_missing(self, lifecycle):
        assert (await lifecycle.remove("missing", "x")).kind == ErrorKind.NOT_FOUND
        assert (await lifecycle.approve_reported("missing")).kind == ErrorKind.NOT_FOUND


class TestViews:
    """Owner, claimant and admin listings."""

    async def test_owner_and_claimant_views(self, lifecycle, people, make_post):
        post = await make_post()
        await lifecycle.claim(post.id, "claimer")
        assert [p.id for p in await lifecycle.posts_by_owner("owner").to_list()] == [post.id]
        assert [p.id for p in await lifecycle.posts_claimed_by("claimer").to_list()] == [post.id]

    async def test_pending_view_ignores_location(self, lifecycle, people, make_post):
        far = await make_post(location=BARCELONA, approve=False)
        await make_post()
        assert [p.id for p in await lifecycle.pending().to_list()] == [far.id]
