"""Notifications router - the current user's in-app notifications"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...errors import InvalidArgumentError, NotFoundError
from ...models import User
from ...shared.constants import ADMIN, BARBER
from ...shared.responses import MessageData, Pagination, SuccessResponse, ok, paginated
from ..bookings.repository import BookingRepository
from ..bookings.state_machine import check_ownership
from .schemas import (
    BookingNotificationRequest,
    NotificationCreate,
    NotificationResponse,
    NotificationStats,
    UnreadCount,
)
from .service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


def serialize(notifications) -> list:
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.get("", response_model=SuccessResponse[list[NotificationResponse]])
def list_notifications(
    notification_type: Optional[str] = Query(None, alias="type"),
    status_filter: Optional[str] = Query(None, alias="status"),
    unread_only: bool = False,
    pagination: Pagination = Depends(),
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    items, total = service.list_notifications(
        current_user,
        pagination.limit,
        pagination.offset,
        notification_type=notification_type,
        status=status_filter,
        unread_only=unread_only,
    )
    return paginated(serialize(items), total, pagination)


@router.get("/unread", response_model=SuccessResponse[list[NotificationResponse]])
def list_unread(
    pagination: Pagination = Depends(),
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    items, total = service.list_notifications(
        current_user, pagination.limit, pagination.offset, unread_only=True
    )
    return paginated(serialize(items), total, pagination)


@router.get("/unread/count", response_model=SuccessResponse[UnreadCount])
def unread_count(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return ok({"unread_count": service.unread_count(current_user)})


@router.get("/stats", response_model=SuccessResponse[NotificationStats])
def notification_stats(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return ok(service.get_stats(current_user))


@router.patch("/read-all", response_model=SuccessResponse[MessageData])
def mark_all_read(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    count = service.mark_all_read(current_user)
    return ok({"message": f"Marked {count} notifications as read"})


@router.post("", response_model=SuccessResponse[NotificationResponse], status_code=status.HTTP_201_CREATED)
def create_notification(
    data: NotificationCreate,
    current_user: User = Depends(require_roles(ADMIN)),
    service: NotificationService = Depends(get_notification_service),
):
    return ok(service.create_notification(data))


@router.post("/booking", response_model=SuccessResponse[NotificationResponse], status_code=status.HTTP_201_CREATED)
def send_booking_notification(
    data: BookingNotificationRequest,
    current_user: User = Depends(require_roles(BARBER, ADMIN)),
    db: Session = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
):
    """Send a templated notification to a booking's customer"""
    booking = BookingRepository.get_booking_by_id(db, data.booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    check_ownership(booking, current_user)

    notification = service.send_booking_notification(booking, data.type)
    if notification is None:
        raise InvalidArgumentError("Guest bookings have no account to notify")
    return ok(notification)


@router.get("/{notification_id}", response_model=SuccessResponse[NotificationResponse])
def get_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return ok(service.get_notification(notification_id, current_user))


@router.patch("/{notification_id}/read", response_model=SuccessResponse[NotificationResponse])
def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return ok(service.mark_read(notification_id, current_user))


@router.delete("/{notification_id}", response_model=SuccessResponse[MessageData])
def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    service.delete_notification(notification_id, current_user)
    return ok({"message": "Notification deleted successfully"})
