# backend/timebank/repositories/profile_repository.py
"""
Profile Repository

Balance rows live on profiles, so this repository also owns the ordered
locking used by every multi-profile credit movement.
"""

import logging
from typing import Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..database.session_utils import supports_row_locks
from ..models.profile import Profile
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ProfileRepository(BaseRepository[Profile]):
    """Repository for profile and balance access."""

    def __init__(self, db: Session):
        super().__init__(db, Profile)
        self.logger = logging.getLogger(__name__)

    def get_by_user_id(self, user_id: str) -> Optional[Profile]:
        return self.find_one_by(user_id=user_id)

    def lock_profiles(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
        """
        Lock the given profiles in ascending user_id order and return them keyed by user_id.

        A fixed lock order means two settlements touching the same pair of users
        can never deadlock. Missing profiles are simply absent from the result.
        """
        ordered = sorted(set(user_ids))
        locked: Dict[str, Profile] = {}
        try:
            for user_id in ordered:
                query = self.db.query(Profile).filter(Profile.user_id == user_id)
                if supports_row_locks(self.db):
                    query = query.with_for_update()
                profile = query.populate_existing().first()
                if profile is not None:
                    locked[user_id] = profile
        except SQLAlchemyError as exc:
            self.logger.error("Failed to lock profiles %s: %s", ordered, exc)
            raise RepositoryException(f"Failed to lock profiles: {exc}") from exc
        return locked

    def update_rating(self, user_id: str, rating: float, total_reviews: int) -> Optional[Profile]:
        profile = self.get_by_user_id(user_id)
        if profile is None:
            return None
        profile.rating = rating
        profile.total_reviews = total_reviews
        self.flush()
        return profile
