"""
Profile Store
Read-only access to users and their role-specific profiles
"""

from typing import List, Optional, Tuple, Union
from sqlalchemy.orm import Session
import structlog

from matcher.models import User, CreatorProfile, BrandProfile, UserRole

logger = structlog.get_logger(__name__)

Profile = Union[CreatorProfile, BrandProfile]


def profile_model(role: UserRole):
    """Profile model class for a role."""
    return CreatorProfile if UserRole(role) is UserRole.creator else BrandProfile


class ProfileStore:
    """
    Lookups return None for missing rows instead of raising; callers decide
    whether absence is an error.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_creator_profile(self, user_id: str) -> Optional[CreatorProfile]:
        return self.db.get(CreatorProfile, user_id)

    def get_brand_profile(self, user_id: str) -> Optional[BrandProfile]:
        return self.db.get(BrandProfile, user_id)

    def get_profile(self, user_id: str, role: UserRole) -> Optional[Profile]:
        return self.db.get(profile_model(role), user_id)

    def list_pool(self, role: UserRole) -> List[Tuple[User, Optional[Profile]]]:
        """
        All users of a role with their profile (None when the user has none yet).

        Ordered by user id so discovery ranking is deterministic across requests.
        """
        role = UserRole(role)
        model = profile_model(role)

        rows = self.db.query(User, model).outerjoin(
            model, model.user_id == User.id
        ).filter(
            User.role == role.value
        ).order_by(
            User.id.asc()
        ).all()

        logger.debug("candidate_pool_loaded", role=role.value, count=len(rows))
        return [(user, profile) for user, profile in rows]
