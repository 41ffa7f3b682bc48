"""
Statistics aggregator - Read-only rollups for reporting
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from ..domain.models import MealPost, ModerationStatus
from ..domain.repositories import IConversationRepository, IMealPostRepository, IUserRepository
from ..infrastructure.clock import Clock, utcnow

UNKNOWN_CITY = "Unknown"
REMOVED_STATUS = "REMOVED"

REPORT_COLUMNS = [
    "ID", "Title", "User", "City", "Status", "Created",
    "Expiry", "Available", "Reports", "LastReason",
]


def csv_escape(value: str) -> str:
    """Quote a CSV field, doubling embedded quotes"""
    return '"' + str(value).replace('"', '""') + '"'


@dataclass
class OwnerPostCount:
    user_id: str
    user_name: str
    post_count: int


@dataclass
class AppStatistics:
    """Snapshot of application activity"""
    total_users: int = 0
    total_posts: int = 0
    removed_posts: int = 0
    reported_posts: int = 0
    claimed_posts: int = 0
    expired_posts: int = 0
    active_posts: int = 0
    pending_posts: int = 0
    total_conversations: int = 0
    active_conversations: int = 0
    total_messages: int = 0
    posts_by_city: Dict[str, int] = field(default_factory=dict)
    posts_by_day: Dict[str, int] = field(default_factory=dict)
    top_users: List[OwnerPostCount] = field(default_factory=list)
    generated_at: Optional[datetime] = None


@dataclass
class PostReportRow:
    """One post rendered as export-safe scalars"""
    id: str
    title: str
    user_name: str
    city: str
    status: str
    created_at: str
    expiry_date: str
    available: bool
    report_count: int
    last_report_reason: str

    @classmethod
    def from_post(cls, post: MealPost) -> "PostReportRow":
        return cls(
            id=post.id,
            title=post.title,
            user_name=post.user_name,
            city=post.location.city,
            status=REMOVED_STATUS if post.is_removed else post.moderation_status.value,
            created_at=post.created_at.isoformat(timespec="seconds"),
            expiry_date=post.expiry_date.isoformat(),
            available=post.is_available,
            report_count=post.report_count,
            last_report_reason=post.last_report_reason,
        )

    def to_csv_line(self) -> str:
        return ",".join([
            self.id,
            csv_escape(self.title),
            csv_escape(self.user_name),
            csv_escape(self.city),
            self.status,
            self.created_at,
            self.expiry_date,
            "Yes" if self.available else "No",
            str(self.report_count),
            csv_escape(self.last_report_reason),
        ])


class StatisticsAggregator:
    """Computes statistics from storage snapshots"""

    def __init__(
        self,
        post_repository: IMealPostRepository,
        user_repository: IUserRepository,
        conversation_repository: IConversationRepository,
        top_users_limit: int = 5,
        days_window: int = 7,
        clock: Clock = utcnow,
    ):
        self.post_repo = post_repository
        self.user_repo = user_repository
        self.conversation_repo = conversation_repository
        self.top_users_limit = top_users_limit
        self.days_window = days_window
        self.clock = clock

    async def compute(self, today: Optional[date] = None) -> AppStatistics:
        """
        Compute application statistics

        Each post falls in at most one lifecycle bucket, checked in the
        order removed, reported, claimed, expired, active.
        """
        today = today or self.clock().date()
        stats = AppStatistics(generated_at=self.clock())

        window_start = today - timedelta(days=self.days_window - 1)
        by_day = {
            (window_start + timedelta(days=offset)).isoformat(): 0
            for offset in range(self.days_window)
        }
        by_city: Counter = Counter()
        by_owner: Counter = Counter()
        owner_names: Dict[str, str] = {}

        async for post in self.post_repo.iter_all():
            stats.total_posts += 1

            if post.is_removed:
                stats.removed_posts += 1
            elif post.is_reported:
                stats.reported_posts += 1
            elif not post.is_available:
                stats.claimed_posts += 1
            elif post.is_expired(today):
                stats.expired_posts += 1
            elif post.moderation_status == ModerationStatus.APPROVED:
                stats.active_posts += 1

            if post.moderation_status == ModerationStatus.PENDING and not post.is_removed:
                stats.pending_posts += 1

            by_city[post.location.city.strip() or UNKNOWN_CITY] += 1

            day = post.created_at.date().isoformat()
            if day in by_day:
                by_day[day] += 1

            by_owner[post.user_id] += 1
            owner_names.setdefault(post.user_id, post.user_name)

        stats.posts_by_city = dict(by_city.most_common())
        stats.posts_by_day = by_day
        stats.top_users = [
            OwnerPostCount(user_id, owner_names[user_id], count)
            for user_id, count in by_owner.most_common(self.top_users_limit)
        ]

        stats.total_users = await self.user_repo.count()
        stats.total_conversations = await self.conversation_repo.count()
        async for conversation in self.conversation_repo.iter_active():
            stats.active_conversations += 1
            stats.total_messages += conversation.unread_count_creator + conversation.unread_count_claimer

        return stats

    async def post_report_rows(
        self, status: Optional[str] = None, city: Optional[str] = None
    ) -> List[PostReportRow]:
        """
        Report rows for every post, optionally filtered

        Args:
            status: PENDING, APPROVED, REJECTED or REMOVED
            city: City name, compared case-insensitively
        """
        rows: List[PostReportRow] = []
        async for post in self.post_repo.iter_all():
            row = PostReportRow.from_post(post)
            if status and row.status != status.upper():
                continue
            if city and row.city.lower() != city.lower():
                continue
            rows.append(row)
        return rows
