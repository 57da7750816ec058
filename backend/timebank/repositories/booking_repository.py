# backend/timebank/repositories/booking_repository.py
"""
Booking Repository

Implements data access for booking requests:
- Locked lookups used by every lifecycle transition
- Participant listings
- Session watch windows (starting soon, today, awaiting confirmation, awaiting review)
"""

from datetime import datetime
import logging
from typing import List, Optional, cast

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session, joinedload

from ..core.constants import DEFAULT_QUERY_LIMIT
from ..core.exceptions import RepositoryException
from ..models.booking import BookingRequest, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[BookingRequest]):
    """Repository for booking request data access."""

    def __init__(self, db: Session):
        super().__init__(db, BookingRequest)
        self.logger = logging.getLogger(__name__)

    def get_for_update(self, booking_id: str) -> Optional[BookingRequest]:
        """Load a booking with its row lock held until the transaction ends."""
        return self.get_by_id_for_update(booking_id)

    def _participant_query(self, user_id: str) -> Query:
        return self.db.query(BookingRequest).filter(
            or_(BookingRequest.learner_id == user_id, BookingRequest.provider_id == user_id)
        )

    def list_for_user(
        self,
        user_id: str,
        status: Optional[BookingStatus] = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> List[BookingRequest]:
        """
        Bookings where the user is either party, newest first.

        Args:
            user_id: Learner or provider user id
            status: Optional status filter
            limit: Maximum rows

        Returns:
            List of bookings
        """
        try:
            query = self._participant_query(user_id)
            if status is not None:
                query = query.filter(BookingRequest.status == status.value)
            query = query.order_by(BookingRequest.created_at.desc(), BookingRequest.id.desc())
            return cast(List[BookingRequest], query.limit(limit).all())
        except Exception as e:
            self.logger.error(f"Error listing bookings for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}") from e

    def get_confirmed_starting_between(
        self, user_id: str, window_start: datetime, window_end: datetime, limit: int
    ) -> List[BookingRequest]:
        """Confirmed bookings for the user whose start lies in [window_start, window_end]."""
        try:
            query = (
                self._participant_query(user_id)
                .filter(
                    BookingRequest.status == BookingStatus.CONFIRMED.value,
                    BookingRequest.requested_start_time >= window_start,
                    BookingRequest.requested_start_time <= window_end,
                )
                .order_by(BookingRequest.requested_start_time.asc(), BookingRequest.id.asc())
                .limit(limit)
            )
            return cast(List[BookingRequest], query.all())
        except Exception as e:
            self.logger.error(f"Error getting starting sessions for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to get starting sessions: {str(e)}") from e

    def get_confirmed_awaiting_confirmation(
        self, user_id: str, now: datetime, limit: int
    ) -> List[BookingRequest]:
        """
        Ended confirmed sessions that still need this user's post-session confirmation.

        Bookings with an open dispute are excluded; nothing the user confirms
        there would complete them.
        """
        try:
            query = (
                self.db.query(BookingRequest)
                .filter(
                    BookingRequest.status == BookingStatus.CONFIRMED.value,
                    BookingRequest.requested_end_time <= now,
                    BookingRequest.dispute_status == "none",
                    or_(
                        (BookingRequest.learner_id == user_id)
                        & BookingRequest.learner_confirmed.is_(False),
                        (BookingRequest.provider_id == user_id)
                        & BookingRequest.provider_confirmed.is_(False),
                    ),
                )
                .order_by(BookingRequest.requested_end_time.desc(), BookingRequest.id.asc())
                .limit(limit)
            )
            return cast(List[BookingRequest], query.all())
        except Exception as e:
            self.logger.error(f"Error getting sessions awaiting confirmation: {str(e)}")
            raise RepositoryException(f"Failed to get sessions awaiting confirmation: {str(e)}") from e

    def get_completed_awaiting_review(self, learner_id: str, limit: int) -> List[BookingRequest]:
        try:
            query = (
                self.db.query(BookingRequest)
                .options(joinedload(BookingRequest.service))
                .filter(
                    BookingRequest.learner_id == learner_id,
                    BookingRequest.status == BookingStatus.COMPLETED.value,
                    BookingRequest.review_submitted.is_(False),
                )
                .order_by(BookingRequest.completed_at.desc(), BookingRequest.id.asc())
                .limit(limit)
            )
            return cast(List[BookingRequest], query.all())
        except Exception as e:
            self.logger.error(f"Error getting bookings awaiting review: {str(e)}")
            raise RepositoryException(f"Failed to get bookings awaiting review: {str(e)}") from e

    def get_for_user_between(
        self, user_id: str, range_start: datetime, range_end: datetime
    ) -> List[BookingRequest]:
        """Pending or confirmed bookings for the user starting in [range_start, range_end)."""
        try:
            query = (
                self._participant_query(user_id)
                .filter(
                    BookingRequest.status.in_(
                        [BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value]
                    ),
                    BookingRequest.requested_start_time >= range_start,
                    BookingRequest.requested_start_time < range_end,
                )
                .order_by(BookingRequest.requested_start_time.asc(), BookingRequest.id.asc())
            )
            return cast(List[BookingRequest], query.all())
        except Exception as e:
            self.logger.error(f"Error getting bookings in range for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to get bookings in range: {str(e)}") from e
