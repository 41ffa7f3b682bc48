"""
Tests for the moderation ledger.
"""


class TestReportedQueue:
    """Reported posts as seen by moderators."""

    async def test_ordered_by_report_count(self, lifecycle, ledger, people, make_post):
        once = await make_post(title="Once")
        twice = await make_post(title="Twice")
        await make_post(title="Clean")
        await lifecycle.report(once.id, "claimer", "meh")
        await lifecycle.report(twice.id, "claimer", "bad")
        await lifecycle.report(twice.id, "other", "very bad")

        queue = await ledger.reported_queue().to_list()
        assert [p.id for p in queue] == [twice.id, once.id]

    async def test_removed_posts_leave_the_queue(self, lifecycle, ledger, people, make_post):
        post = await make_post()
        await lifecycle.report(post.id, "claimer", "spam")
        await lifecycle.remove(post.id, "confirmed spam")
        assert await ledger.reported_queue().to_list() == []

    async def test_dismissed_posts_leave_the_queue(self, lifecycle, ledger, people, make_post):
        post = await make_post()
        await lifecycle.report(post.id, "claimer", "spam")
        await lifecycle.approve_reported(post.id)
        assert await ledger.reported_queue().to_list() == []

    async def test_moderation_report_rows(self, lifecycle, ledger, people, make_post):
        post = await make_post(title='The "best" paella')
        await lifecycle.report(post.id, "claimer", "Smells odd")

        rows = await ledger.moderation_report()
        assert len(rows) == 1
        row = rows[0]
        assert row.id == post.id
        assert row.title == 'The "best" paella'
        assert row.status == "APPROVED"
        assert row.report_count == 1
        assert row.last_report_reason == "Smells odd"
        assert row.available is True
