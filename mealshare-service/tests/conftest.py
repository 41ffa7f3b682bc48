"""
Pytest configuration for Mealshare Service.
"""
import os
from datetime import date, datetime, timedelta

# Test settings must be in place before the package reads them
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("KAFKA_ENABLED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest

from mealshare_service.application.accounts import AccountService
from mealshare_service.application.conversations import ConversationThread
from mealshare_service.application.moderation import ModerationLedger
from mealshare_service.application.notifications import NotificationDispatcher
from mealshare_service.application.posts import PostLifecycle
from mealshare_service.application.statistics import StatisticsAggregator
from mealshare_service.domain.models import Admin, Location, ModerationDecision, User
from mealshare_service.infrastructure.admin_registry import AdminRegistry
from mealshare_service.infrastructure.database.memory import (
    InMemoryConversationRepository,
    InMemoryMealPostRepository,
    InMemoryMessageRepository,
    InMemoryNotificationRepository,
    InMemoryStore,
    InMemoryUserRepository,
)

MADRID = Location(city="Madrid", latitude=40.4168, longitude=-3.7038, postal_code="28013")
MADRID_NEARBY = Location(city="Madrid", latitude=40.4200, longitude=-3.7000, postal_code="28004")
BARCELONA = Location(city="Barcelona", latitude=41.3874, longitude=2.1686, postal_code="08002")

ADMIN_EMAIL = "admin@mealshare.test"
ADMIN_USER_ID = "admin-user"


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)

    @property
    def today(self) -> date:
        return self.now.date()


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 6, 1, 12, 0, 0))


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def user_repo(store):
    return InMemoryUserRepository(store)


@pytest.fixture
def post_repo(store):
    return InMemoryMealPostRepository(store)


@pytest.fixture
def conversation_repo(store):
    return InMemoryConversationRepository(store)


@pytest.fixture
def message_repo(store):
    return InMemoryMessageRepository(store)


@pytest.fixture
def notification_repo(store):
    return InMemoryNotificationRepository(store)


@pytest.fixture
def registry():
    return AdminRegistry([Admin(id="admin-1", email=ADMIN_EMAIL, user_id=ADMIN_USER_ID)])


@pytest.fixture
def dispatcher(notification_repo, user_repo, clock):
    return NotificationDispatcher(notification_repo, user_repo, clock=clock)


@pytest.fixture
def thread(conversation_repo, message_repo, post_repo, user_repo, dispatcher, clock):
    return ConversationThread(
        conversation_repo, message_repo, post_repo, user_repo, dispatcher, clock=clock
    )


@pytest.fixture
def lifecycle(post_repo, user_repo, thread, dispatcher, registry, clock):
    return PostLifecycle(post_repo, user_repo, thread, dispatcher, registry, clock=clock)


@pytest.fixture
def ledger(post_repo):
    return ModerationLedger(post_repo)


@pytest.fixture
def aggregator(post_repo, user_repo, conversation_repo, clock):
    return StatisticsAggregator(post_repo, user_repo, conversation_repo, clock=clock)


@pytest.fixture
def accounts(user_repo, registry, clock):
    return AccountService(user_repo, registry, password_min_length=6, clock=clock)


@pytest.fixture
def make_user(user_repo, clock):
    """Insert a user directly, skipping password hashing."""

    async def _make(user_id: str, name: str = "", email: str = "", location: Location = MADRID):
        user = User(
            id=user_id,
            email=email or f"{user_id}@mealshare.test",
            password_hash="not-a-real-hash",
            display_name=name or user_id.capitalize(),
            location=location,
            created_at=clock(),
        )
        return await user_repo.create(user)

    return _make


@pytest.fixture
async def people(make_user):
    """Owner, claimer, a bystander and the registered admin."""
    return {
        "owner": await make_user("owner", "Olga"),
        "claimer": await make_user("claimer", "Carlos"),
        "other": await make_user("other", "Berta"),
        "admin": await make_user(ADMIN_USER_ID, "Admin", email=ADMIN_EMAIL),
    }


@pytest.fixture
def make_post(lifecycle, clock):
    """Create a post, approved unless told otherwise."""

    async def _make(owner_id: str = "owner", title: str = "Paella", location: Location = MADRID,
                    expiry_days: int = 2, approve: bool = True):
        post = await lifecycle.create(
            owner_id=owner_id,
            title=title,
            description="Homemade",
            photos=["photo://1"],
            expiry=clock.today + timedelta(days=expiry_days),
            location=location,
        )
        if approve:
            post = await lifecycle.moderate(post.id, ModerationDecision.APPROVE)
        return post

    return _make
