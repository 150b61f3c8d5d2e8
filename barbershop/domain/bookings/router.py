"""Bookings router - availability, creation, lookups and status changes"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...cache import Cache, get_cache
from ...database import get_db
from ...models import User
from ...shared.responses import Pagination, SuccessResponse, ok, paginated
from .schemas import (
    AvailabilityResponse,
    BookingCreate,
    BookingHistoryResponse,
    BookingResponse,
    BookingUpdate,
    CancelRequest,
    RescheduleRequest,
    StatusUpdate,
    TransitionsResponse,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(
    db: Session = Depends(get_db), cache: Cache = Depends(get_cache)
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, cache)


def serialize(bookings) -> list:
    return [BookingResponse.model_validate(b) for b in bookings]


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("/availability", response_model=SuccessResponse[AvailabilityResponse])
def check_availability(
    barber_id: int = Query(..., gt=0),
    start_time: datetime = Query(...),
    duration: int = Query(...),
    service: BookingService = Depends(get_booking_service),
):
    """Check whether a barber is free for [start_time, start_time + duration)"""
    return ok(service.check_availability(barber_id, start_time, duration))


@router.get("/uuid/{booking_uuid}", response_model=SuccessResponse[BookingResponse])
def get_booking_by_uuid(booking_uuid: str, service: BookingService = Depends(get_booking_service)):
    return ok(service.get_booking_by_uuid(booking_uuid))


@router.get("/number/{booking_number}", response_model=SuccessResponse[BookingResponse])
def get_booking_by_number(booking_number: str, service: BookingService = Depends(get_booking_service)):
    return ok(service.get_booking_by_number(booking_number))


# ============================================================================
# AUTHENTICATED
# ============================================================================


@router.post("", response_model=SuccessResponse[BookingResponse], status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """
    Create a pending booking.

    Customers always book for themselves. Barbers and admins may book for a
    registered customer (customer_id) or for a guest (name plus email or phone).
    """
    return ok(service.create_booking(data, current_user))


@router.get("/me", response_model=SuccessResponse[list[BookingResponse]])
def my_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    pagination: Pagination = Depends(),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    items, total = service.list_my_bookings(current_user, status_filter, pagination.limit, pagination.offset)
    return paginated(serialize(items), total, pagination)


@router.get("/{booking_id}", response_model=SuccessResponse[BookingResponse])
def get_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return ok(service.get_booking_for_actor(booking_id, current_user))


@router.get("/{booking_id}/history", response_model=SuccessResponse[list[BookingHistoryResponse]])
def get_booking_history(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return ok(service.get_history(booking_id, current_user))


@router.get("/{booking_id}/transitions", response_model=SuccessResponse[TransitionsResponse])
def get_allowed_transitions(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Statuses the current user may move this booking to"""
    return ok(service.get_allowed_transitions(booking_id, current_user))


@router.put("/{booking_id}", response_model=SuccessResponse[BookingResponse])
def update_booking(
    booking_id: int,
    data: BookingUpdate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return ok(service.update_booking(booking_id, data, current_user))


@router.patch("/{booking_id}/status", response_model=SuccessResponse[BookingResponse])
def update_booking_status(
    booking_id: int,
    data: StatusUpdate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return ok(service.update_status(booking_id, data.status, current_user, data.reason))


@router.put("/{booking_id}/reschedule", response_model=SuccessResponse[BookingResponse])
def reschedule_booking(
    booking_id: int,
    data: RescheduleRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return ok(service.reschedule_booking(booking_id, data, current_user))


@router.delete("/{booking_id}", response_model=SuccessResponse[BookingResponse])
def cancel_booking(
    booking_id: int,
    data: Optional[CancelRequest] = Body(None),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel a booking; the body is optional"""
    return ok(service.cancel_booking(booking_id, current_user, data))
