"""
Tests for statistics and report rows.
"""
from datetime import timedelta

from mealshare_service.application.statistics import UNKNOWN_CITY, StatisticsAggregator, csv_escape
from mealshare_service.domain.models import Location, MessageBody

from conftest import BARCELONA


class TestCompute:
    """Statistics snapshot."""

    async def test_lifecycle_buckets_are_disjoint(self, lifecycle, aggregator, people, make_post, clock):
        await make_post(title="Active")
        claimed = await make_post(title="Claimed")
        await lifecycle.claim(claimed.id, "claimer")
        # claimed and reported counts once, as reported
        await lifecycle.report(claimed.id, "other", "late")
        removed = await make_post(title="Removed")
        await lifecycle.report(removed.id, "other", "spam")
        await lifecycle.remove(removed.id, "spam")
        await make_post(title="Expiring", expiry_days=0)
        await make_post(title="Pending", approve=False)

        stats = await aggregator.compute(today=clock.today + timedelta(days=1))

        assert stats.total_posts == 5
        assert stats.removed_posts == 1
        assert stats.reported_posts == 1
        assert stats.claimed_posts == 0
        assert stats.expired_posts == 1
        assert stats.active_posts == 1
        assert stats.pending_posts == 1
        buckets = (stats.removed_posts + stats.reported_posts + stats.claimed_posts
                   + stats.expired_posts + stats.active_posts)
        assert buckets <= stats.total_posts

    async def test_claimed_bucket(self, lifecycle, aggregator, people, make_post):
        post = await make_post()
        await lifecycle.claim(post.id, "claimer")
        stats = await aggregator.compute()
        assert stats.claimed_posts == 1
        assert stats.active_posts == 0

    async def test_users_and_conversations(self, lifecycle, thread, aggregator, people, make_post):
        post = await make_post()
        outcome = await lifecycle.claim(post.id, "claimer")
        await thread.send(outcome.conversation.id, "claimer", "Carlos", MessageBody(text="Hi"))
        await thread.send(outcome.conversation.id, "owner", "Olga", MessageBody(text="Hello"))

        stats = await aggregator.compute()
        assert stats.total_users == 4
        assert stats.total_conversations == 1
        assert stats.active_conversations == 1
        assert stats.total_messages == 2

        await thread.close(outcome.conversation.id)
        stats = await aggregator.compute()
        assert stats.total_conversations == 1
        assert stats.active_conversations == 0
        assert stats.total_messages == 0

    async def test_posts_by_city_groups_blank(self, aggregator, people, make_post):
        await make_post()
        await make_post(location=BARCELONA)
        await make_post(location=Location(city="  ", latitude=40.0, longitude=-3.0))

        stats = await aggregator.compute()
        assert stats.posts_by_city == {"Madrid": 1, "Barcelona": 1, UNKNOWN_CITY: 1}

    async def test_posts_by_day_window(self, aggregator, people, make_post, clock):
        await make_post()
        clock.advance(days=10)
        await make_post(title="Recent", expiry_days=1)

        stats = await aggregator.compute()
        assert len(stats.posts_by_day) == 7
        assert stats.posts_by_day[clock.today.isoformat()] == 1
        assert sum(stats.posts_by_day.values()) == 1

    async def test_top_users(self, aggregator, make_user, make_post):
        await make_user("owner", "Olga")
        await make_user("cook", "Pepe")
        for _ in range(3):
            await make_post(owner_id="cook")
        await make_post(owner_id="owner")

        stats = await aggregator.compute()
        assert [(u.user_name, u.post_count) for u in stats.top_users] == [("Pepe", 3), ("Olga", 1)]

    async def test_top_users_limit(self, post_repo, user_repo, conversation_repo, make_user, make_post, clock):
        for i in range(4):
            await make_user(f"user{i}")
            await make_post(owner_id=f"user{i}")
        aggregator = StatisticsAggregator(post_repo, user_repo, conversation_repo, top_users_limit=2, clock=clock)
        assert len((await aggregator.compute()).top_users) == 2


class TestReportRows:
    """Export rows."""

    async def test_filters(self, lifecycle, aggregator, people, make_post):
        await make_post()
        await make_post(location=BARCELONA)
        pending = await make_post(approve=False)
        removed = await make_post()
        await lifecycle.remove(removed.id, "spam")

        assert len(await aggregator.post_report_rows()) == 4
        assert [r.id for r in await aggregator.post_report_rows(status="pending")] == [pending.id]
        assert [r.id for r in await aggregator.post_report_rows(status="REMOVED")] == [removed.id]
        assert len(await aggregator.post_report_rows(city="barcelona")) == 1

    async def test_csv_line_escapes_quotes(self, aggregator, people, make_post):
        await make_post(title='Say "cheese"')
        row = (await aggregator.post_report_rows())[0]
        line = row.to_csv_line()
        assert '"Say ""cheese"""' in line
        assert ",APPROVED," in line
        assert ",Yes,0," in line

    def test_csv_escape(self):
        assert csv_escape('a"b') == '"a""b"'
        assert csv_escape("plain") == '"plain"'
