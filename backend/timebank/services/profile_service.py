# backend/timebank/services/profile_service.py
"""
Profile Service

Account-creation side of the ledger: a new profile starts with the signup
bonus. Every later balance change goes through the SettlementService.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ConflictException, ProfileNotFoundException
from ..models.profile import Profile
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class ProfileService(BaseService):
    """Creates profiles and reads balances."""

    def __init__(self, db: Session, signup_bonus: Optional[int] = None):
        super().__init__(db)
        self.profile_repository = RepositoryFactory.create_profile_repository(db)
        self.signup_bonus = settings.signup_bonus_credits if signup_bonus is None else signup_bonus

    @BaseService.measure_operation("create_profile")
    def create_profile(
        self, user_id: str, full_name: str, email: str, bio: Optional[str] = None
    ) -> Profile:
        """
        Create the profile for a newly registered user.

        Raises:
            ConflictException: the user already has a profile
        """
        with self.transaction():
            if self.profile_repository.get_by_user_id(user_id) is not None:
                raise ConflictException(
                    "Profile already exists",
                    code="PROFILE_EXISTS",
                    details={"user_id": user_id},
                )
            profile = self.profile_repository.create(
                user_id=user_id,
                full_name=full_name,
                email=email,
                bio=bio,
                time_credits=self.signup_bonus,
                rating=0.0,
                total_reviews=0,
            )

        logger.info(f"Created profile for {user_id} with {self.signup_bonus} signup credits")
        return profile

    def get_profile(self, user_id: str) -> Profile:
        profile = self.profile_repository.get_by_user_id(user_id)
        if profile is None:
            raise ProfileNotFoundException(user_id)
        return profile

    def get_balance(self, user_id: str) -> int:
        """Current time-credit balance of the user."""
        return int(self.get_profile(user_id).time_credits)
