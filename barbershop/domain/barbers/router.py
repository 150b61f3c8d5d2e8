"""Barbers router - profiles, search, statistics and per-barber bookings and reviews"""

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...cache import Cache, get_cache
from ...database import get_db
from ...models import User
from ...shared.constants import ADMIN, BARBER
from ...shared.responses import MessageData, Pagination, SuccessResponse, ok, paginated
from ..bookings.schemas import BookingResponse, BookingStats
from ..bookings.service import BookingService
from ..catalog.schemas import OfferingResponse
from ..reviews.schemas import ReviewResponse, ReviewStats
from ..reviews.service import ReviewService
from .schemas import (
    BarberCreate,
    BarberResponse,
    BarberStatistics,
    BarberStatusUpdate,
    BarberUpdate,
    NearbyBarberResponse,
)
from .service import BarberProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/barbers", tags=["Barbers"])

SortBy = Literal["rating", "created_at", "total_reviews", "shop_name"]


def get_barber_service(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)) -> BarberProfileService:
    """Dependency injection for BarberProfileService"""
    return BarberProfileService(db, cache)


def get_booking_service(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)) -> BookingService:
    return BookingService(db, cache)


def get_review_service(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)) -> ReviewService:
    return ReviewService(db, cache)


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("", response_model=SuccessResponse[list[BarberResponse]])
def list_barbers(
    status_filter: Optional[str] = Query(None, alias="status"),
    city: Optional[str] = None,
    state: Optional[str] = None,
    is_verified: Optional[bool] = None,
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    search: Optional[str] = None,
    sort_by: SortBy = "rating",
    pagination: Pagination = Depends(),
    service: BarberProfileService = Depends(get_barber_service),
):
    items, total = service.list_barbers(
        pagination.limit,
        pagination.offset,
        status=status_filter,
        city=city,
        state=state,
        is_verified=is_verified,
        min_rating=min_rating,
        search=search,
        sort_by=sort_by,
    )
    return paginated([BarberResponse.model_validate(b) for b in items], total, pagination)


@router.get("/search", response_model=SuccessResponse[list[BarberResponse]])
def search_barbers(
    q: str = Query(...),
    pagination: Pagination = Depends(),
    service: BarberProfileService = Depends(get_barber_service),
):
    items, total = service.search_barbers(q, pagination.limit, pagination.offset)
    return paginated(items, total, pagination)


@router.get("/nearby", response_model=SuccessResponse[list[NearbyBarberResponse]])
def nearby_barbers(
    latitude: float = Query(...),
    longitude: float = Query(...),
    radius_km: float = Query(10.0, gt=0, le=500),
    limit: int = Query(20, ge=1, le=100),
    service: BarberProfileService = Depends(get_barber_service),
):
    """Active barbers within radius_km, closest first"""
    return ok(service.find_nearby(latitude, longitude, radius_km, limit))


@router.get("/uuid/{barber_uuid}", response_model=SuccessResponse[BarberResponse])
def get_barber_by_uuid(barber_uuid: str, service: BarberProfileService = Depends(get_barber_service)):
    return ok(service.get_barber_by_uuid(barber_uuid))


@router.get("/{barber_id}", response_model=SuccessResponse[BarberResponse])
def get_barber(barber_id: int, service: BarberProfileService = Depends(get_barber_service)):
    return ok(service.get_barber(barber_id))


@router.get("/{barber_id}/statistics", response_model=SuccessResponse[BarberStatistics])
def get_barber_statistics(barber_id: int, service: BarberProfileService = Depends(get_barber_service)):
    return ok(service.get_statistics(barber_id))


@router.get("/{barber_id}/services", response_model=SuccessResponse[list[OfferingResponse]])
def get_barber_services(barber_id: int, service: BarberProfileService = Depends(get_barber_service)):
    return ok(service.get_offerings(barber_id))


@router.get("/{barber_id}/reviews", response_model=SuccessResponse[list[ReviewResponse]])
def get_barber_reviews(
    barber_id: int,
    min_rating: Optional[int] = Query(None, ge=1, le=5),
    pagination: Pagination = Depends(),
    service: ReviewService = Depends(get_review_service),
):
    items, total = service.list_barber_reviews(barber_id, pagination.limit, pagination.offset, min_rating)
    return paginated([ReviewResponse.model_validate(r) for r in items], total, pagination)


@router.get("/{barber_id}/reviews/stats", response_model=SuccessResponse[ReviewStats])
def get_barber_review_stats(barber_id: int, service: ReviewService = Depends(get_review_service)):
    return ok(service.get_barber_stats(barber_id))


# ============================================================================
# BARBER OWNER / ADMIN
# ============================================================================


@router.get("/{barber_id}/bookings", response_model=SuccessResponse[list[BookingResponse]])
def get_barber_bookings(
    barber_id: int,
    status_filter: Optional[str] = Query(None, alias="status"),
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    pagination: Pagination = Depends(),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    items, total = service.list_barber_bookings(
        barber_id,
        current_user,
        pagination.limit,
        pagination.offset,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
    )
    return paginated([BookingResponse.model_validate(b) for b in items], total, pagination)


@router.get("/{barber_id}/bookings/today", response_model=SuccessResponse[list[BookingResponse]])
def get_today_bookings(
    barber_id: int,
    pagination: Pagination = Depends(),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    items, total = service.list_today_bookings(barber_id, current_user, pagination.limit, pagination.offset)
    return paginated([BookingResponse.model_validate(b) for b in items], total, pagination)


@router.get("/{barber_id}/bookings/stats", response_model=SuccessResponse[BookingStats])
def get_booking_stats(
    barber_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return ok(service.get_booking_stats(barber_id, current_user))


@router.post("", response_model=SuccessResponse[BarberResponse], status_code=status.HTTP_201_CREATED)
def create_barber(
    data: BarberCreate,
    current_user: User = Depends(require_roles(BARBER, ADMIN)),
    service: BarberProfileService = Depends(get_barber_service),
):
    """Create a barber profile; it starts pending until an admin activates it"""
    return ok(service.create_barber(data, current_user))


@router.put("/{barber_id}", response_model=SuccessResponse[BarberResponse])
def update_barber(
    barber_id: int,
    data: BarberUpdate,
    current_user: User = Depends(get_current_user),
    service: BarberProfileService = Depends(get_barber_service),
):
    return ok(service.update_barber(barber_id, data, current_user))


@router.delete("/{barber_id}", response_model=SuccessResponse[MessageData])
def delete_barber(
    barber_id: int,
    current_user: User = Depends(get_current_user),
    service: BarberProfileService = Depends(get_barber_service),
):
    service.delete_barber(barber_id, current_user)
    return ok({"message": "Barber deleted successfully"})


@router.patch("/{barber_id}/status", response_model=SuccessResponse[BarberResponse])
def update_barber_status(
    barber_id: int,
    data: BarberStatusUpdate,
    current_user: User = Depends(require_roles(ADMIN)),
    service: BarberProfileService = Depends(get_barber_service),
):
    return ok(service.update_status(barber_id, data))
