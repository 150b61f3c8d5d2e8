"""Review repository - Database operations for reviews"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Review


class ReviewRepository:
    """Repository for review database operations"""

    @staticmethod
    def get_review_by_id(db: Session, review_id: int) -> Optional[Review]:
        return db.query(Review).filter(Review.id == review_id).first()

    @staticmethod
    def get_review_by_booking_id(db: Session, booking_id: int) -> Optional[Review]:
        return db.query(Review).filter(Review.booking_id == booking_id).first()

    @staticmethod
    def exists_for_booking(db: Session, booking_id: int) -> bool:
        return db.query(Review.id).filter(Review.booking_id == booking_id).first() is not None

    @staticmethod
    def list_reviews(
        db: Session,
        barber_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        moderation_status: Optional[str] = None,
        published_only: bool = False,
        min_rating: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Review], int]:
        query = db.query(Review)
        if barber_id is not None:
            query = query.filter(Review.barber_id == barber_id)
        if customer_id is not None:
            query = query.filter(Review.customer_id == customer_id)
        if moderation_status:
            query = query.filter(Review.moderation_status == moderation_status)
        if published_only:
            query = query.filter(Review.is_published.is_(True))
        if min_rating:
            query = query.filter(Review.rating >= min_rating)

        total = query.count()
        items = query.order_by(Review.created_at.desc(), Review.id.desc()).offset(offset).limit(limit).all()
        return items, total

    @staticmethod
    def create_review(db: Session, **review_data) -> Review:
        review = Review(**review_data)
        db.add(review)
        db.flush()
        return review

    @staticmethod
    def update_review(db: Session, review: Review, **updates) -> Review:
        for key, value in updates.items():
            setattr(review, key, value)
        db.commit()
        db.refresh(review)
        return review

    @staticmethod
    def get_published_stats(db: Session, barber_id: int) -> dict:
        """Count, average and per-star distribution over a barber's published reviews"""
        rows = (
            db.query(Review.rating, func.count(Review.id))
            .filter(Review.barber_id == barber_id, Review.is_published.is_(True))
            .group_by(Review.rating)
            .all()
        )
        distribution = {star: 0 for star in range(5, 0, -1)}
        for rating, count in rows:
            distribution[rating] = count
        total = sum(distribution.values())
        average = sum(star * count for star, count in distribution.items()) / total if total else 0.0

        recommend = (
            db.query(func.count(Review.id))
            .filter(
                Review.barber_id == barber_id,
                Review.is_published.is_(True),
                Review.would_recommend.is_(True),
            )
            .scalar()
        ) or 0

        return {
            "barber_id": barber_id,
            "total_reviews": total,
            "average_rating": round(average, 2),
            "rating_distribution": distribution,
            "would_recommend_percent": round(recommend * 100 / total, 1) if total else 0.0,
        }
