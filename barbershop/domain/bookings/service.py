"""Booking service - Availability, conflict-checked creation, status changes and rescheduling"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import LONG_TTL, Cache, barber_booking_stats_key
from ...config import DEFAULT_CURRENCY, TAX_RATE
from ...errors import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
)
from ...models import Barber, Booking, User
from ...shared.constants import (
    ADMIN,
    BARBER_ACTIVE,
    CUSTOMER,
    MAX_BOOKING_DURATION,
    MIN_BOOKING_DURATION,
)
from ...shared.timeutils import to_naive_utc, utcnow
from ...utils.sanitization import sanitize_text
from ..auth.repository import UserRepository
from ..barbers.repository import BarberRepository
from ..barbers.service import ensure_can_manage_barber
from ..catalog.repository import CatalogRepository
from ..notifications.service import NotificationService
from ..notifications.templates import (
    BOOKING_CANCELLED,
    BOOKING_CONFIRMATION,
    BOOKING_RESCHEDULED,
    REVIEW_REQUEST,
)
from . import state_machine as sm
from .repository import BookingRepository
from .schemas import BookingCreate, BookingStats, BookingUpdate, CancelRequest, RescheduleRequest

logger = logging.getLogger(__name__)

BOOKING_NUMBER_PREFIX = "BK"
BOOKING_NUMBER_ATTEMPTS = 10

# Notification sent to the customer when a booking enters a status
STATUS_NOTIFICATIONS = {
    sm.CONFIRMED: BOOKING_CONFIRMATION,
    sm.CANCELLED: BOOKING_CANCELLED,
    sm.COMPLETED: REVIEW_REQUEST,
}


def validate_booking_window(start_time: datetime, duration_minutes: int, now: Optional[datetime] = None):
    """
    Check a candidate appointment interval and return it as naive UTC (start, end).

    Raises:
        InvalidArgumentError: start is not strictly in the future, or duration is out of bounds
    """
    if start_time is None or duration_minutes is None:
        raise InvalidArgumentError("start_time and duration_minutes are required")

    start = to_naive_utc(start_time)
    if start <= (now or utcnow()):
        raise InvalidArgumentError("Booking start time must be in the future")
    if duration_minutes < MIN_BOOKING_DURATION:
        raise InvalidArgumentError(f"Duration must be at least {MIN_BOOKING_DURATION} minutes")
    if duration_minutes > MAX_BOOKING_DURATION:
        raise InvalidArgumentError(f"Duration cannot exceed {MAX_BOOKING_DURATION} minutes")

    return start, start + timedelta(minutes=duration_minutes)


def calculate_pricing(price: float, discount: float = 0.0, tax_rate: float = TAX_RATE) -> dict:
    if discount > price:
        raise InvalidArgumentError("Discount cannot exceed the service price")
    subtotal = price - discount
    tax = round(subtotal * tax_rate, 2)
    return {
        "service_price": round(price, 2),
        "discount_amount": round(discount, 2),
        "tax_amount": tax,
        "total_price": round(subtotal + tax, 2),
    }


def conflict_summary(booking: Booking) -> dict:
    return {
        "id": booking.id,
        "start_time": booking.scheduled_start_time,
        "end_time": booking.scheduled_end_time,
        "status": booking.status,
    }


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session, cache: Cache):
        self.db = db
        self.cache = cache
        self.repo = BookingRepository()
        self.notifications = NotificationService(db)

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.repo.get_booking_by_id(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def _lock_booking(self, booking_id: int) -> Booking:
        booking = self.repo.lock_booking(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def get_booking_for_actor(self, booking_id: int, actor: User) -> Booking:
        booking = self.get_booking(booking_id)
        sm.check_ownership(booking, actor)
        return booking

    def get_booking_by_uuid(self, booking_uuid: str) -> Booking:
        booking = self.repo.get_booking_by_uuid(self.db, booking_uuid)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def get_booking_by_number(self, booking_number: str) -> Booking:
        booking = self.repo.get_booking_by_number(self.db, booking_number.upper())
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def get_history(self, booking_id: int, actor: User):
        booking = self.get_booking_for_actor(booking_id, actor)
        return self.repo.get_history(self.db, booking.id)

    def get_allowed_transitions(self, booking_id: int, actor: User) -> dict:
        booking = self.get_booking_for_actor(booking_id, actor)
        return {
            "booking_id": booking.id,
            "current_status": booking.status,
            "allowed": sm.allowed_transitions(booking, actor),
        }

    def list_my_bookings(self, actor: User, status: Optional[str], limit: int, offset: int):
        """A barber sees their shop's bookings, everybody else the bookings they made"""
        barber = BarberRepository.get_barber_by_user_id(self.db, actor.id)
        if barber is not None and actor.user_type != CUSTOMER:
            return self.repo.list_bookings(
                self.db, barber_id=barber.id, status=status, limit=limit, offset=offset
            )
        return self.repo.list_bookings(
            self.db, customer_id=actor.id, status=status, limit=limit, offset=offset
        )

    def list_barber_bookings(
        self,
        barber_id: int,
        actor: User,
        limit: int,
        offset: int,
        status: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ):
        self._get_managed_barber(barber_id, actor)
        return self.repo.list_bookings(
            self.db,
            barber_id=barber_id,
            status=status,
            date_from=to_naive_utc(date_from),
            date_to=to_naive_utc(date_to),
            limit=limit,
            offset=offset,
        )

    def list_today_bookings(self, barber_id: int, actor: User, limit: int, offset: int):
        today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        return self.list_barber_bookings(
            barber_id, actor, limit, offset, date_from=today, date_to=today + timedelta(days=1)
        )

    def get_booking_stats(self, barber_id: int, actor: User) -> dict:
        self._get_managed_barber(barber_id, actor)
        key = barber_booking_stats_key(barber_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        stats = BookingStats(**self.repo.get_booking_stats(self.db, barber_id)).model_dump()
        self.cache.set(key, stats, LONG_TTL)
        return stats

    # ========================================================================
    # AVAILABILITY
    # ========================================================================

    def check_availability(self, barber_id: int, start_time: datetime, duration_minutes: int) -> dict:
        """Read-only check of a candidate interval against the barber's active bookings"""
        start, end = validate_booking_window(start_time, duration_minutes)

        if not BarberRepository.get_barber_by_id(self.db, barber_id):
            raise NotFoundError("Barber not found")

        conflicts = self.repo.find_conflicts(self.db, barber_id, start, end)
        return {
            "available": not conflicts,
            "barber_id": barber_id,
            "start_time": start,
            "end_time": end,
            "duration_minutes": duration_minutes,
            "conflicts": [conflict_summary(b) for b in conflicts],
        }

    # ========================================================================
    # CREATE
    # ========================================================================

    def create_booking(self, data: BookingCreate, actor: User) -> Booking:
        """
        Create a pending booking.

        The barber row is locked and the overlap check runs inside the same
        transaction as the insert, so two requests for the same slot cannot
        both succeed.
        """
        start, end = validate_booking_window(data.start_time, data.duration_minutes)
        customer_fields = self._resolve_customer(data, actor)

        logger.info(
            f"📥 Creating booking for barber {data.barber_id} at {start.isoformat()} ({data.duration_minutes} min)"
        )

        try:
            barber = BarberRepository.lock_barber(self.db, data.barber_id)
            if not barber:
                raise NotFoundError("Barber not found")
            if barber.status != BARBER_ACTIVE:
                raise InvalidArgumentError("Barber is not accepting bookings")

            service = CatalogRepository.get_service_by_id(self.db, data.service_id)
            if not service:
                raise NotFoundError("Service not found")
            if not service.is_active:
                raise InvalidArgumentError("Service is not available")

            offering = CatalogRepository.get_offering(self.db, barber.id, service.id)
            base_price = offering.price if offering and offering.is_active else service.suggested_price_min
            pricing = calculate_pricing(base_price, data.discount_amount)

            conflicts = self.repo.find_conflicts(self.db, barber.id, start, end)
            if conflicts:
                logger.warning(
                    f"⚠️ Booking conflict for barber {barber.id}: {[b.id for b in conflicts]}"
                )
                raise ConflictError("The barber already has a booking that overlaps this time slot")

            booking = self.repo.add_booking(
                self.db,
                Booking(
                    booking_number=self._generate_booking_number(),
                    barber_id=barber.id,
                    service_id=service.id,
                    scheduled_start_time=start,
                    scheduled_end_time=end,
                    duration_minutes=data.duration_minutes,
                    status=sm.PENDING,
                    currency=service.currency or DEFAULT_CURRENCY,
                    notes=self._clean(data.notes),
                    special_requests=self._clean(data.special_requests),
                    **customer_fields,
                    **pricing,
                ),
            )
            self.repo.add_history(
                self.db,
                booking.id,
                "created",
                changed_by=actor.id,
                new_values={
                    "status": sm.PENDING,
                    "start_time": start.isoformat(),
                    "end_time": end.isoformat(),
                },
            )
            barber.total_bookings = (barber.total_bookings or 0) + 1
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        self.cache.invalidate_barber(booking.barber_id)
        logger.info(f"✅ Created booking {booking.booking_number} (id={booking.id})")

        self.notifications.notify_booking_event(booking, BOOKING_CONFIRMATION)
        return booking

    def _resolve_customer(self, data: BookingCreate, actor: User) -> dict:
        """Customer columns for a new booking: the actor, a named customer, or a guest"""
        contact = {
            "customer_name": data.customer_name,
            "customer_email": data.customer_email,
            "customer_phone": data.customer_phone,
        }

        if actor.user_type == CUSTOMER:
            if data.customer_id is not None and data.customer_id != actor.id:
                raise ForbiddenError("Customers can only book for themselves")
            return {
                "customer_id": actor.id,
                "customer_name": data.customer_name or actor.name,
                "customer_email": data.customer_email or actor.email,
                "customer_phone": data.customer_phone or actor.phone,
            }

        if data.customer_id is not None:
            customer = UserRepository.get_by_id(self.db, data.customer_id)
            if not customer:
                raise NotFoundError("Customer not found")
            return {
                "customer_id": customer.id,
                "customer_name": data.customer_name or customer.name,
                "customer_email": data.customer_email or customer.email,
                "customer_phone": data.customer_phone or customer.phone,
            }

        # Guest booking made by staff
        if not data.customer_name or not (data.customer_email or data.customer_phone):
            raise InvalidArgumentError(
                "Guest bookings require customer_name and either customer_email or customer_phone"
            )
        return {"customer_id": None, **contact}

    def _generate_booking_number(self) -> str:
        date_part = utcnow().strftime("%Y%m%d")
        for _ in range(BOOKING_NUMBER_ATTEMPTS):
            candidate = f"{BOOKING_NUMBER_PREFIX}{date_part}{secrets.token_hex(3).upper()}"
            if not self.repo.booking_number_exists(self.db, candidate):
                return candidate
        raise ConflictError("Could not allocate a booking number, please retry")

    # ========================================================================
    # STATUS CHANGES
    # ========================================================================

    def update_status(self, booking_id: int, target: str, actor: User, reason: Optional[str] = None) -> Booking:
        return self._transition(booking_id, target, actor, reason)

    def cancel_booking(self, booking_id: int, actor: User, data: Optional[CancelRequest] = None) -> Booking:
        data = data or CancelRequest()
        return self._transition(booking_id, sm.CANCELLED, actor, data.reason, cancel_request=data)

    def _transition(
        self,
        booking_id: int,
        target: str,
        actor: User,
        reason: Optional[str],
        cancel_request: Optional[CancelRequest] = None,
    ) -> Booking:
        """
        Authorize and apply a status change.

        The booking row is locked before the transition table is consulted, so
        the status being checked is the status being overwritten.
        """
        try:
            booking = self._lock_booking(booking_id)
            role = sm.authorize_transition(booking, actor, target)
            old_status = booking.status

            booking.status = target
            stamp = sm.STATUS_TIMESTAMPS.get(target)
            if stamp:
                setattr(booking, stamp, utcnow())
            if cancel_request is not None:
                booking.cancellation_reason = self._clean(cancel_request.reason)
                booking.cancelled_by = (
                    CUSTOMER if (cancel_request.is_by_customer or role == CUSTOMER) else role
                )

            self.repo.add_history(
                self.db,
                booking.id,
                "cancelled" if target == sm.CANCELLED else "status_changed",
                changed_by=actor.id,
                old_values={"status": old_status},
                new_values={"status": target, "by": role},
                reason=self._clean(reason),
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        self.cache.invalidate_barber(booking.barber_id)
        logger.info(f"🔄 Booking {booking.id} {old_status} -> {target} by {role} {actor.id}")

        if target in STATUS_NOTIFICATIONS:
            self.notifications.notify_booking_event(booking, STATUS_NOTIFICATIONS[target])
        return booking

    # ========================================================================
    # RESCHEDULE / UPDATE
    # ========================================================================

    def reschedule_booking(self, booking_id: int, data: RescheduleRequest, actor: User) -> Booking:
        """Move a pending or confirmed booking; the barber row, then the booking row, are locked"""
        barber_id = self.get_booking(booking_id).barber_id

        try:
            BarberRepository.lock_barber(self.db, barber_id)
            booking = self._lock_booking(booking_id)
            sm.check_ownership(booking, actor)

            if booking.status not in sm.RESCHEDULABLE_STATUSES:
                raise InvalidTransitionError(f"Cannot reschedule a booking that is {booking.status}")

            duration = data.duration_minutes if data.duration_minutes is not None else booking.duration_minutes
            start, end = validate_booking_window(data.new_start_time, duration)

            conflicts = self.repo.find_conflicts(
                self.db, booking.barber_id, start, end, exclude_booking_id=booking.id
            )
            if conflicts:
                raise ConflictError("The barber already has a booking that overlaps the new time slot")

            old_start, old_end = booking.scheduled_start_time, booking.scheduled_end_time
            booking.scheduled_start_time = start
            booking.scheduled_end_time = end
            booking.duration_minutes = duration
            self.repo.add_history(
                self.db,
                booking.id,
                "rescheduled",
                changed_by=actor.id,
                old_values={"start_time": old_start.isoformat(), "end_time": old_end.isoformat()},
                new_values={"start_time": start.isoformat(), "end_time": end.isoformat()},
                reason=self._clean(data.reason),
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        self.cache.invalidate_barber(booking.barber_id)
        logger.info(f"🔄 Booking {booking.id} rescheduled {old_start.isoformat()} -> {start.isoformat()}")

        self.notifications.notify_booking_event(booking, BOOKING_RESCHEDULED, old_start=old_start)
        return booking

    def update_booking(self, booking_id: int, data: BookingUpdate, actor: User) -> Booking:
        try:
            booking = self._lock_booking(booking_id)
            sm.check_ownership(booking, actor)
            if sm.is_terminal(booking.status):
                raise InvalidTransitionError(f"Cannot modify a booking that is {booking.status}")

            updates = data.model_dump(exclude_unset=True)
            for field in ("notes", "special_requests"):
                if field in updates:
                    updates[field] = self._clean(updates[field])
            if not updates:
                return booking

            old_values = {key: getattr(booking, key) for key in updates}
            for key, value in updates.items():
                setattr(booking, key, value)
            self.repo.add_history(
                self.db, booking.id, "updated", changed_by=actor.id, old_values=old_values, new_values=updates
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        return booking

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _get_managed_barber(self, barber_id: int, actor: User) -> Barber:
        barber = BarberRepository.get_barber_by_id(self.db, barber_id)
        if not barber:
            raise NotFoundError("Barber not found")
        if actor.user_type != ADMIN:
            ensure_can_manage_barber(barber, actor)
        return barber

    @staticmethod
    def _clean(value: Optional[str]) -> Optional[str]:
        try:
            return sanitize_text(value, max_length=1000)
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e
