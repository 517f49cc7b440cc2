import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import StoreError, ValidationError
from app.database.session import atomic
from app.models.profile import UserProfile, UserRole
from app.services.access.policy import AccessPolicy
from app.services.stock.store import LedgerStore

logger = logging.getLogger(__name__)


def get_or_provision(db: Session, user_id: str, email: Optional[str] = None) -> UserProfile:
    """
    Return the profile for an authenticated identity.

    A first-time user gets a pending, inactive profile that an administrator
    must activate before any page opens.
    """
    store = LedgerStore(db)
    profile = store.get_profile(user_id)
    if profile:
        return profile

    try:
        with atomic(db):
            profile = store.add_profile(UserProfile(
                id=user_id,
                email=email,
                role=UserRole.PENDING,
                is_active=False,
            ))
    except StoreError as e:
        # A concurrent first request inserted the same identity
        if not isinstance(e.__cause__, IntegrityError):
            raise
        profile = store.get_profile(user_id)
        if not profile:
            raise
        logger.info(f"Profile for user {user_id} was provisioned by a concurrent request")
        return profile

    logger.info(f"Provisioned pending profile for user {user_id} ({email})")
    return profile


class UserService:
    """Administrator operations on user profiles."""

    def __init__(self, db: Session, policy: AccessPolicy):
        self.db = db
        self.store = LedgerStore(db)
        self.policy = policy

    def list_profiles(self) -> List[UserProfile]:
        self.policy.require_manage_users()
        return self.store.list_profiles()

    def toggle_active(self, user_id: str) -> UserProfile:
        self.policy.require_not_self(user_id)
        self.policy.require_manage_users()

        with atomic(self.db):
            profile = self.store.require_profile(user_id)
            profile.is_active = not profile.is_active
            self.db.flush()

        logger.info(f"User {user_id} {'activated' if profile.is_active else 'deactivated'} by {self.policy.user_id}")
        return profile

    def change_role(self, user_id: str, role) -> UserProfile:
        self.policy.require_not_self(user_id)
        self.policy.require_manage_users()

        try:
            new_role = UserRole(role)
        except ValueError:
            raise ValidationError(
                f"Invalid role '{role}'; expected one of {', '.join(r.value for r in UserRole)}"
            )

        with atomic(self.db):
            profile = self.store.require_profile(user_id)
            profile.role = new_role
            self.db.flush()

        logger.info(f"User {user_id} role changed to {new_role.value} by {self.policy.user_id}")
        return profile
