"""Notification service - In-app notifications and booking event templates"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import ForbiddenError, NotFoundError
from ...models import Booking, Notification, User
from ...shared.timeutils import to_naive_utc, utcnow
from ..auth.repository import UserRepository
from .repository import NotificationRepository
from .schemas import NotificationCreate
from .templates import render_booking_template

logger = logging.getLogger(__name__)


class NotificationService:
    """Service layer for notification business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository()

    def list_notifications(self, user: User, limit: int, offset: int, **filters) -> tuple[list[Notification], int]:
        return self.repo.list_notifications(self.db, user.id, limit=limit, offset=offset, **filters)

    def unread_count(self, user: User) -> int:
        return self.repo.count_unread(self.db, user.id)

    def get_stats(self, user: User) -> dict:
        by_type = self.repo.count_by_type(self.db, user.id)
        return {
            "total": sum(by_type.values()),
            "unread": self.repo.count_unread(self.db, user.id),
            "by_type": by_type,
        }

    def get_notification(self, notification_id: int, user: User) -> Notification:
        notification = self.repo.get_notification_by_id(self.db, notification_id)
        if not notification:
            raise NotFoundError("Notification not found")
        if notification.user_id != user.id:
            raise ForbiddenError("You can only access your own notifications")
        return notification

    def mark_read(self, notification_id: int, user: User) -> Notification:
        notification = self.get_notification(notification_id, user)
        if notification.read_at is not None:
            return notification
        return self.repo.mark_read(self.db, notification, utcnow())

    def mark_all_read(self, user: User) -> int:
        count = self.repo.mark_all_read(self.db, user.id, utcnow())
        logger.info(f"✅ Marked {count} notifications read for user {user.id}")
        return count

    def delete_notification(self, notification_id: int, user: User) -> None:
        notification = self.get_notification(notification_id, user)
        self.repo.delete_notification(self.db, notification)

    def create_notification(self, data: NotificationCreate) -> Notification:
        if not UserRepository.get_by_id(self.db, data.user_id):
            raise NotFoundError("User not found")

        fields = data.model_dump()
        fields["scheduled_for"] = to_naive_utc(data.scheduled_for)
        fields["expires_at"] = to_naive_utc(data.expires_at)
        return self.repo.create_notification(self.db, status="sent", sent_at=utcnow(), **fields)

    def send_booking_notification(
        self, booking: Booking, notification_type: str, old_start=None
    ) -> Optional[Notification]:
        """Store a templated notification for the booking's customer; guests get none"""
        if booking.customer_id is None:
            logger.debug(f"Skipping {notification_type} for guest booking {booking.id}")
            return None

        title, message, priority = render_booking_template(notification_type, booking, old_start)
        notification = self.repo.create_notification(
            self.db,
            user_id=booking.customer_id,
            title=title,
            message=message,
            type=notification_type,
            channels=["app"],
            priority=priority,
            status="sent",
            sent_at=utcnow(),
            related_entity_type="booking",
            related_entity_id=booking.id,
            data={"booking_number": booking.booking_number, "booking_uuid": booking.uuid},
        )
        logger.info(f"📨 {notification_type} notification {notification.id} for booking {booking.id}")
        return notification

    def notify_booking_event(self, booking: Booking, notification_type: str, old_start=None) -> None:
        """send_booking_notification for side effects of booking writes; failures are logged only"""
        try:
            self.send_booking_notification(booking, notification_type, old_start)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to store {notification_type} for booking {booking.id}: {e}")
