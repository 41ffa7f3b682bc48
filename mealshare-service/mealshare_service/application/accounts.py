"""
Account service - Registration, login and profile changes
"""
from typing import Optional, Tuple, Union
import logging
import re
import uuid

from ..domain.errors import Failure
from ..domain.models import Location, SessionContext, User, UserRole
from ..domain.repositories import IUserRepository
from ..infrastructure.admin_registry import AdminRegistry
from ..infrastructure.clock import Clock, utcnow
from ..infrastructure.security import hash_password, verify_password

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AccountService:
    """Account service - handles identity and session logic"""

    def __init__(
        self,
        user_repository: IUserRepository,
        admin_registry: AdminRegistry,
        password_min_length: int = 6,
        clock: Clock = utcnow,
    ):
        self.user_repo = user_repository
        self.admin_registry = admin_registry
        self.password_min_length = password_min_length
        self.clock = clock

    def _check_password(self, password: str) -> Optional[Failure]:
        if len(password or "") < self.password_min_length:
            return Failure.invalid(
                "weak_password",
                f"Password must be at least {self.password_min_length} characters long",
            )
        return None

    def establish_session(self, user: User) -> SessionContext:
        """Resolve the caller's role from the admin registry"""
        role = UserRole.ADMIN if self.admin_registry.is_admin(user.email) else UserRole.USER
        return SessionContext(
            user_id=user.id,
            email=user.email,
            display_name=user.display_name,
            role=role,
        )

    async def register(
        self,
        email: str,
        password: str,
        display_name: str,
        location: Location,
    ) -> Union[Tuple[User, SessionContext], Failure]:
        """
        Register a new user

        Returns:
            Tuple of (user, session)
        """
        email = (email or "").strip()
        if not EMAIL_PATTERN.match(email):
            return Failure.invalid("invalid_email", "Email address is not valid")
        weak = self._check_password(password)
        if weak:
            return weak
        if not display_name or not display_name.strip():
            return Failure.invalid("blank_name", "Display name is required")

        now = self.clock()
        user = User(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=hash_password(password),
            display_name=display_name.strip(),
            location=location,
            created_at=now,
            updated_at=now,
        )
        created = await self.user_repo.create(user)
        if not created:
            return Failure.conflict("email_taken", "Email is already registered")

        logger.info(f"Registered user {created.id}")
        return created, self.establish_session(created)

    async def login(self, email: str, password: str) -> Union[Tuple[User, SessionContext], Failure]:
        """
        Login with email and password

        Returns:
            Tuple of (user, session)
        """
        user = await self.user_repo.find_by_email((email or "").strip())
        if not user or not verify_password(password, user.password_hash):
            return Failure.unauthorized("invalid_credentials", "Invalid email or password")
        return user, self.establish_session(user)

    async def get_user(self, user_id: str) -> Union[User, Failure]:
        """Get user by ID"""
        user = await self.user_repo.find_by_id(user_id)
        if not user:
            return Failure.not_found("User", user_id)
        return user

    async def update_location(self, user_id: str, location: Location) -> Union[User, Failure]:
        user = await self.user_repo.update_location(user_id, location, self.clock())
        if not user:
            return Failure.not_found("User", user_id)
        return user

    async def change_password(
        self, user_id: str, current_password: str, new_password: str
    ) -> Union[User, Failure]:
        """Change password after verifying the current one"""
        user = await self.user_repo.find_by_id(user_id)
        if not user:
            return Failure.not_found("User", user_id)
        if not verify_password(current_password, user.password_hash):
            return Failure.unauthorized("invalid_credentials", "Current password is incorrect")
        weak = self._check_password(new_password)
        if weak:
            return weak

        updated = await self.user_repo.update_password(
            user_id, hash_password(new_password), self.clock()
        )
        if not updated:
            return Failure.not_found("User", user_id)
        logger.info(f"Password changed for user {user_id}")
        return updated

    async def delete_account(self, user_id: str) -> Union[User, Failure]:
        """Hard delete the account"""
        user = await self.user_repo.find_by_id(user_id)
        if not user or not await self.user_repo.delete(user_id):
            return Failure.not_found("User", user_id)
        logger.info(f"Deleted user {user_id}")
        return user
