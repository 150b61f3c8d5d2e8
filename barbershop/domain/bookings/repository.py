"""Booking repository - Database operations for bookings and their history"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Booking, BookingHistory
from .state_machine import ACTIVE_STATUSES, COMPLETED


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking_by_id(db: Session, booking_id: int) -> Optional[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.barber))
            .filter(Booking.id == booking_id)
            .first()
        )

    @staticmethod
    def lock_booking(db: Session, booking_id: int) -> Optional[Booking]:
        """SELECT ... FOR UPDATE on the booking row, refreshing any copy already in the session"""
        return (
            db.query(Booking)
            .filter(Booking.id == booking_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    @staticmethod
    def get_booking_by_uuid(db: Session, booking_uuid: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.uuid == booking_uuid).first()

    @staticmethod
    def get_booking_by_number(db: Session, booking_number: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.booking_number == booking_number).first()

    @staticmethod
    def booking_number_exists(db: Session, booking_number: str) -> bool:
        return (
            db.query(Booking.id).filter(Booking.booking_number == booking_number).first() is not None
        )

    @staticmethod
    def find_conflicts(
        db: Session,
        barber_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> list[Booking]:
        """
        Active bookings for a barber whose [start, end) interval overlaps [start, end).

        Intervals that only touch (one ends exactly when the other starts) do not conflict.
        """
        query = db.query(Booking).filter(
            Booking.barber_id == barber_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.scheduled_start_time < end,
            Booking.scheduled_end_time > start,
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.order_by(Booking.scheduled_start_time.asc()).all()

    @staticmethod
    def add_booking(db: Session, booking: Booking) -> Booking:
        """Stage a booking in the current transaction; the caller commits"""
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def add_history(
        db: Session,
        booking_id: int,
        action: str,
        changed_by: Optional[int] = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        reason: Optional[str] = None,
    ) -> BookingHistory:
        entry = BookingHistory(
            booking_id=booking_id,
            action=action,
            changed_by=changed_by,
            old_values=old_values,
            new_values=new_values,
            reason=reason,
        )
        db.add(entry)
        return entry

    @staticmethod
    def get_history(db: Session, booking_id: int) -> list[BookingHistory]:
        return (
            db.query(BookingHistory)
            .filter(BookingHistory.booking_id == booking_id)
            .order_by(BookingHistory.id.asc())
            .all()
        )

    @staticmethod
    def list_bookings(
        db: Session,
        customer_id: Optional[int] = None,
        barber_id: Optional[int] = None,
        status: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Booking], int]:
        query = db.query(Booking)
        if customer_id is not None:
            query = query.filter(Booking.customer_id == customer_id)
        if barber_id is not None:
            query = query.filter(Booking.barber_id == barber_id)
        if status:
            query = query.filter(Booking.status == status)
        if date_from is not None:
            query = query.filter(Booking.scheduled_start_time >= date_from)
        if date_to is not None:
            query = query.filter(Booking.scheduled_start_time < date_to)

        total = query.count()
        items = (
            query.order_by(Booking.scheduled_start_time.asc(), Booking.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def get_booking_stats(db: Session, barber_id: int) -> dict:
        rows = (
            db.query(Booking.status, func.count(Booking.id))
            .filter(Booking.barber_id == barber_id)
            .group_by(Booking.status)
            .all()
        )
        by_status = {status: count for status, count in rows}

        revenue, average = (
            db.query(func.sum(Booking.total_price), func.avg(Booking.total_price))
            .filter(Booking.barber_id == barber_id, Booking.status == COMPLETED)
            .one()
        )
        return {
            "barber_id": barber_id,
            "total_bookings": sum(by_status.values()),
            "by_status": by_status,
            "total_revenue": round(float(revenue or 0), 2),
            "average_price": round(float(average or 0), 2),
        }
