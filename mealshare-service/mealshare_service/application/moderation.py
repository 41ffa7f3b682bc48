"""
Moderation ledger - Administrator views over reported posts
"""
from typing import List

from ..domain.models import MealPost
from ..domain.repositories import IMealPostRepository
from .sequences import LazySequence
from .statistics import PostReportRow


class ModerationLedger:
    """Read-side projection for moderators"""

    def __init__(self, post_repository: IMealPostRepository):
        self.post_repo = post_repository

    def reported_queue(self) -> LazySequence[MealPost]:
        """Reported posts that are not removed, most reported first"""
        return LazySequence(self.post_repo.iter_reported)

    async def moderation_report(self) -> List[PostReportRow]:
        return [PostReportRow.from_post(post) async for post in self.reported_queue()]
