import logging
from typing import List

from app.core.exceptions import PermissionDeniedError
from app.models.profile import UserProfile, UserRole

logger = logging.getLogger(__name__)

BASE_PAGES = ["home", "products", "entries", "exits", "alerts", "reports"]
ADMIN_PAGES = ["user-management"]


class AccessPolicy:
    """
    Role-based authorization for one authenticated profile.

    Services receive the policy for the current session and re-check it at
    every mutating operation.
    """

    def __init__(self, profile: UserProfile):
        self.profile = profile

    @property
    def user_id(self) -> str:
        return self.profile.id

    @property
    def is_active(self) -> bool:
        return bool(self.profile.is_active) and self.profile.role != UserRole.PENDING

    @property
    def is_admin(self) -> bool:
        return self.is_active and self.profile.role == UserRole.ADMIN

    def can_record_movements(self) -> bool:
        return self.is_active and self.profile.role in (UserRole.SIMPLE, UserRole.ADMIN)

    def can_modify_movements(self) -> bool:
        return self.is_admin

    def can_manage_products(self) -> bool:
        return self.is_admin

    def can_manage_users(self) -> bool:
        return self.is_admin

    def visible_pages(self) -> List[str]:
        """Pages the front end may render for this profile."""
        if not self.is_active:
            return []
        pages = list(BASE_PAGES)
        if self.is_admin:
            pages.extend(ADMIN_PAGES)
        return pages

    def require_active(self):
        if not self.is_active:
            self._deny("Your account is awaiting activation by an administrator")

    def require_admin(self):
        self.require_active()
        if not self.is_admin:
            self._deny("Administrator access is required")

    def require_record_movements(self):
        self.require_active()
        if not self.can_record_movements():
            self._deny("You do not have permission to record stock movements")

    def require_modify_movements(self):
        self.require_active()
        if not self.can_modify_movements():
            self._deny("Only administrators can edit or delete stock movements")

    def require_manage_products(self):
        self.require_active()
        if not self.can_manage_products():
            self._deny("Only administrators can manage products")

    def require_manage_users(self):
        self.require_active()
        if not self.can_manage_users():
            self._deny("Only administrators can manage users")

    def require_not_self(self, target_user_id: str):
        # Applies to every role, admins included
        if target_user_id == self.profile.id:
            self._deny("You cannot change the role or activation of your own account")

    def _deny(self, message: str):
        logger.warning(f"Access denied for user {self.profile.id}: {message}")
        raise PermissionDeniedError(message)
