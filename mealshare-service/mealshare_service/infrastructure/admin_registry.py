"""
Admin registry - Static list of administrators loaded at startup
"""
from pathlib import Path
from typing import List, Optional
import json
import logging

from pydantic import BaseModel, Field, ValidationError

from ..domain.models import Admin

logger = logging.getLogger(__name__)


class AdminEntry(BaseModel):
    """One entry of the admin registry file"""
    id: str
    email: str
    user_id: str = Field(alias="userId")

    def to_domain(self) -> Admin:
        return Admin(id=self.id, email=self.email, user_id=self.user_id)


class AdminRegistry:
    """Read-only admin directory, matched by exact email"""

    def __init__(self, admins: Optional[List[Admin]] = None):
        self._admins: List[Admin] = list(admins or [])

    def load(self, path: str) -> int:
        """
        Replace the registry contents with the file at path

        Any read or parse failure leaves an empty registry.

        Returns:
            Number of admins loaded
        """
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("admin registry must be a JSON list")
            self._admins = [AdminEntry.model_validate(item).to_domain() for item in raw]
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Could not load admin registry from '{path}': {e}. No admins configured.")
            self._admins = []
            return 0

        logger.info(f"Loaded {len(self._admins)} admin(s) from '{path}'")
        return len(self._admins)

    def is_admin(self, email: str) -> bool:
        """Case-sensitive exact match on email"""
        return any(admin.email == email for admin in self._admins)

    def find_by_email(self, email: str) -> Optional[Admin]:
        for admin in self._admins:
            if admin.email == email:
                return admin
        return None

    def admins(self) -> List[Admin]:
        return list(self._admins)

    def admin_user_ids(self) -> List[str]:
        """Linked user ids, in registry order, without duplicates"""
        seen: List[str] = []
        for admin in self._admins:
            if admin.user_id not in seen:
                seen.append(admin.user_id)
        return seen


# Global registry instance
admin_registry = AdminRegistry()


def get_admin_registry() -> AdminRegistry:
    """Dependency for getting the admin registry"""
    return admin_registry
