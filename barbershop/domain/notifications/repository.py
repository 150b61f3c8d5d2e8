"""Notification repository - Database operations for notifications"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Notification


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def get_notification_by_id(db: Session, notification_id: int) -> Optional[Notification]:
        return db.query(Notification).filter(Notification.id == notification_id).first()

    @staticmethod
    def list_notifications(
        db: Session,
        user_id: int,
        notification_type: Optional[str] = None,
        status: Optional[str] = None,
        unread_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Notification], int]:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if notification_type:
            query = query.filter(Notification.type == notification_type)
        if status:
            query = query.filter(Notification.status == status)
        if unread_only:
            query = query.filter(Notification.read_at.is_(None))

        total = query.count()
        items = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def count_unread(db: Session, user_id: int) -> int:
        return (
            db.query(func.count(Notification.id))
            .filter(Notification.user_id == user_id, Notification.read_at.is_(None))
            .scalar()
        ) or 0

    @staticmethod
    def count_by_type(db: Session, user_id: int) -> dict[str, int]:
        rows = (
            db.query(Notification.type, func.count(Notification.id))
            .filter(Notification.user_id == user_id)
            .group_by(Notification.type)
            .all()
        )
        return {notification_type: count for notification_type, count in rows}

    @staticmethod
    def create_notification(db: Session, **data) -> Notification:
        notification = Notification(**data)
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def mark_read(db: Session, notification: Notification, read_at: datetime) -> Notification:
        notification.read_at = read_at
        notification.status = "read"
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def mark_all_read(db: Session, user_id: int, read_at: datetime) -> int:
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.read_at.is_(None))
            .update({"read_at": read_at, "status": "read"}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def delete_notification(db: Session, notification: Notification) -> None:
        db.delete(notification)
        db.commit()
