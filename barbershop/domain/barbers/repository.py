"""Barber repository - Database operations for barber profiles"""

from typing import Optional

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from ...models import Barber, BarberOffering, Booking, Review
from ...shared.constants import BARBER_ACTIVE

SORT_COLUMNS = {
    "rating": Barber.rating.desc(),
    "total_reviews": Barber.total_reviews.desc(),
    "created_at": Barber.created_at.desc(),
    "shop_name": Barber.shop_name.asc(),
}


class BarberRepository:
    """Repository for barber database operations"""

    @staticmethod
    def get_barber_by_id(db: Session, barber_id: int) -> Optional[Barber]:
        """Get a barber by ID (soft-deleted barbers are excluded)"""
        return (
            db.query(Barber)
            .filter(Barber.id == barber_id, Barber.deleted_at.is_(None))
            .first()
        )

    @staticmethod
    def get_barber_by_uuid(db: Session, barber_uuid: str) -> Optional[Barber]:
        return (
            db.query(Barber)
            .filter(Barber.uuid == barber_uuid, Barber.deleted_at.is_(None))
            .first()
        )

    @staticmethod
    def get_barber_by_user_id(db: Session, user_id: int) -> Optional[Barber]:
        """Get a user's barber profile, including a soft-deleted one"""
        return db.query(Barber).filter(Barber.user_id == user_id).first()

    @staticmethod
    def lock_barber(db: Session, barber_id: int) -> Optional[Barber]:
        """SELECT ... FOR UPDATE on the barber row; serializes booking writes per barber"""
        return (
            db.query(Barber)
            .filter(Barber.id == barber_id, Barber.deleted_at.is_(None))
            .with_for_update()
            .first()
        )

    @staticmethod
    def list_barbers(
        db: Session,
        status: Optional[str] = None,
        city: Optional[str] = None,
        state: Optional[str] = None,
        is_verified: Optional[bool] = None,
        min_rating: Optional[float] = None,
        search: Optional[str] = None,
        sort_by: str = "rating",
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Barber], int]:
        query = db.query(Barber).filter(Barber.deleted_at.is_(None))

        if status:
            query = query.filter(Barber.status == status)
        if city:
            query = query.filter(func.lower(Barber.city) == city.lower())
        if state:
            query = query.filter(func.lower(Barber.state) == state.lower())
        if is_verified is not None:
            query = query.filter(Barber.is_verified == is_verified)
        if min_rating is not None:
            query = query.filter(Barber.rating >= min_rating)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(Barber.shop_name).like(pattern),
                    func.lower(Barber.business_name).like(pattern),
                    func.lower(Barber.city).like(pattern),
                    func.lower(Barber.description).like(pattern),
                )
            )

        total = query.count()
        order = SORT_COLUMNS.get(sort_by, SORT_COLUMNS["rating"])
        items = query.order_by(order, Barber.id.asc()).offset(offset).limit(limit).all()
        return items, total

    @staticmethod
    def get_active_barbers_with_location(db: Session) -> list[Barber]:
        return (
            db.query(Barber)
            .filter(
                Barber.deleted_at.is_(None),
                Barber.status == BARBER_ACTIVE,
                Barber.latitude.isnot(None),
                Barber.longitude.isnot(None),
            )
            .all()
        )

    @staticmethod
    def create_barber(db: Session, **barber_data) -> Barber:
        barber = Barber(**barber_data)
        db.add(barber)
        db.commit()
        db.refresh(barber)
        return barber

    @staticmethod
    def update_barber(db: Session, barber: Barber, **updates) -> Barber:
        """Update a barber with provided fields"""
        for key, value in updates.items():
            setattr(barber, key, value)
        db.commit()
        db.refresh(barber)
        return barber

    @staticmethod
    def get_offerings(db: Session, barber_id: int) -> list[BarberOffering]:
        return (
            db.query(BarberOffering)
            .filter(BarberOffering.barber_id == barber_id, BarberOffering.is_active.is_(True))
            .order_by(BarberOffering.id.asc())
            .all()
        )

    @staticmethod
    def get_statistics(db: Session, barber_id: int) -> dict:
        """Booking and review aggregates for one barber"""
        booking_row = (
            db.query(
                func.count(Booking.id),
                func.sum(case((Booking.status == "completed", 1), else_=0)),
                func.sum(case((Booking.status == "cancelled", 1), else_=0)),
                func.sum(case((Booking.status == "no_show", 1), else_=0)),
                func.sum(case((Booking.status == "completed", Booking.total_price), else_=0)),
            )
            .filter(Booking.barber_id == barber_id)
            .one()
        )
        review_row = (
            db.query(func.count(Review.id), func.avg(Review.rating))
            .filter(Review.barber_id == barber_id, Review.is_published.is_(True))
            .one()
        )
        return {
            "barber_id": barber_id,
            "total_bookings": booking_row[0] or 0,
            "completed_bookings": int(booking_row[1] or 0),
            "cancelled_bookings": int(booking_row[2] or 0),
            "no_show_bookings": int(booking_row[3] or 0),
            "total_revenue": round(float(booking_row[4] or 0), 2),
            "total_reviews": review_row[0] or 0,
            "average_rating": round(float(review_row[1] or 0), 2),
        }
