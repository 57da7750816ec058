# backend/timebank/repositories/notification_repository.py
"""
Notification Repository

Inbox reads for users and due-item reads for the external delivery poller.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.notification import Notification
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class NotificationRepository(BaseRepository[Notification]):
    """Repository for notification rows."""

    def __init__(self, db: Session):
        super().__init__(db, Notification)
        self.logger = logging.getLogger(__name__)

    def list_for_user(
        self, user_id: str, *, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> List[Notification]:
        query = self._build_query().filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        query = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return self._execute_query(query)

    def get_for_user(self, notification_id: str, user_id: str) -> Optional[Notification]:
        return self.find_one_by(id=notification_id, user_id=user_id)

    def mark_all_read(self, user_id: str) -> int:
        try:
            updated = (
                self.db.query(Notification)
                .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
                .update({Notification.is_read: True}, synchronize_session=False)
            )
            self.db.flush()
            return int(updated or 0)
        except SQLAlchemyError as exc:
            self.logger.error("Failed to mark notifications read for %s: %s", user_id, exc)
            raise RepositoryException("Failed to mark notifications read") from exc

    def count_unread(self, user_id: str) -> int:
        try:
            return (
                self.db.query(Notification)
                .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
                .count()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to count unread notifications for %s: %s", user_id, exc)
            raise RepositoryException("Failed to count unread notifications") from exc

    def get_due(self, now: datetime, limit: int = 100) -> List[Notification]:
        """
        Unsent notifications whose delivery time has arrived.

        Immediate notifications have no ``scheduled_for`` and are due at once.
        """
        query = (
            self._build_query()
            .filter(
                Notification.sent_at.is_(None),
                (Notification.scheduled_for.is_(None)) | (Notification.scheduled_for <= now),
            )
            .order_by(Notification.created_at.asc(), Notification.id.asc())
            .limit(limit)
        )
        return self._execute_query(query)
