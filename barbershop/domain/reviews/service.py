"""Review service - Customer reviews, barber responses and moderation"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import LONG_TTL, Cache, review_stats_key
from ...errors import ConflictError, ForbiddenError, InvalidArgumentError, NotFoundError
from ...models import Barber, Review, User
from ...shared.constants import ADMIN
from ...shared.timeutils import utcnow
from ...utils.sanitization import sanitize_text
from ..barbers.repository import BarberRepository
from ..bookings.repository import BookingRepository
from ..bookings.state_machine import COMPLETED
from .repository import ReviewRepository
from .schemas import (
    BarberResponseCreate,
    ReviewCreate,
    ReviewModeration,
    ReviewStats,
    ReviewUpdate,
    ReviewVote,
)

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("title", "comment")


class ReviewService:
    """Service layer for review business logic"""

    def __init__(self, db: Session, cache: Cache):
        self.db = db
        self.cache = cache
        self.repo = ReviewRepository()

    def get_review(self, review_id: int) -> Review:
        review = self.repo.get_review_by_id(self.db, review_id)
        if not review:
            raise NotFoundError("Review not found")
        return review

    def get_review_by_booking(self, booking_id: int) -> Review:
        review = self.repo.get_review_by_booking_id(self.db, booking_id)
        if not review:
            raise NotFoundError("Review not found")
        return review

    def list_my_reviews(self, user: User, limit: int, offset: int):
        return self.repo.list_reviews(self.db, customer_id=user.id, limit=limit, offset=offset)

    def list_barber_reviews(self, barber_id: int, limit: int, offset: int, min_rating: Optional[int] = None):
        """Published reviews only"""
        if not BarberRepository.get_barber_by_id(self.db, barber_id):
            raise NotFoundError("Barber not found")
        return self.repo.list_reviews(
            self.db, barber_id=barber_id, published_only=True, min_rating=min_rating, limit=limit, offset=offset
        )

    def list_pending(self, limit: int, offset: int):
        return self.repo.list_reviews(self.db, moderation_status="pending", limit=limit, offset=offset)

    def get_barber_stats(self, barber_id: int) -> dict:
        key = review_stats_key(barber_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        if not BarberRepository.get_barber_by_id(self.db, barber_id):
            raise NotFoundError("Barber not found")
        stats = ReviewStats(**self.repo.get_published_stats(self.db, barber_id)).model_dump()
        self.cache.set(key, stats, LONG_TTL)
        return stats

    def can_review(self, booking_id: int, user: User) -> dict:
        booking = BookingRepository.get_booking_by_id(self.db, booking_id)
        if not booking:
            return {"can_review": False, "reason": "Booking not found"}
        if booking.customer_id is None or booking.customer_id != user.id:
            return {"can_review": False, "reason": "You can only review your own bookings"}
        if booking.status != COMPLETED:
            return {"can_review": False, "reason": "You can only review completed bookings"}
        if self.repo.exists_for_booking(self.db, booking_id):
            return {"can_review": False, "reason": "You have already reviewed this booking"}
        return {"can_review": True, "reason": None}

    def create_review(self, data: ReviewCreate, user: User) -> Review:
        booking = BookingRepository.get_booking_by_id(self.db, data.booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        if booking.customer_id is None or booking.customer_id != user.id:
            raise ForbiddenError("You can only review your own bookings")
        if booking.status != COMPLETED:
            raise InvalidArgumentError("You can only review completed bookings")
        if self.repo.exists_for_booking(self.db, booking.id):
            raise ConflictError("You have already reviewed this booking")

        fields = self._clean(data.model_dump(exclude={"booking_id"}))
        review = self.repo.create_review(
            self.db,
            booking_id=booking.id,
            barber_id=booking.barber_id,
            customer_id=user.id,
            moderation_status="pending",
            is_verified=True,
            is_published=False,
            **fields,
        )
        self.db.commit()
        self.db.refresh(review)
        logger.info(f"✅ Review {review.id} created for booking {booking.id} (rating {review.rating})")
        return review

    def update_review(self, review_id: int, data: ReviewUpdate, user: User) -> Review:
        review = self.get_review(review_id)
        if review.customer_id != user.id:
            raise ForbiddenError("You can only edit your own reviews")
        if review.moderation_status != "pending":
            raise InvalidArgumentError("Reviews can only be edited while awaiting moderation")

        updates = self._clean(data.model_dump(exclude_unset=True))
        if updates.get("rating", 0) is None:
            raise InvalidArgumentError("rating cannot be null")
        if not updates:
            return review
        return self.repo.update_review(self.db, review, **updates)

    def delete_review(self, review_id: int, user: User) -> None:
        review = self.get_review(review_id)
        if user.user_type != ADMIN and review.customer_id != user.id:
            raise ForbiddenError("You can only delete your own reviews")

        barber_id = review.barber_id
        was_published = review.is_published
        self.db.delete(review)
        self.db.commit()
        if was_published:
            self._recalculate_barber_rating(barber_id)
        self.cache.invalidate_barber(barber_id)
        logger.info(f"🗑️ Review {review_id} deleted by user {user.id}")

    def add_barber_response(self, review_id: int, data: BarberResponseCreate, user: User) -> Review:
        review = self.get_review(review_id)
        barber = BarberRepository.get_barber_by_user_id(self.db, user.id)
        if not barber or barber.id != review.barber_id:
            raise ForbiddenError("You can only respond to reviews of your own shop")
        if not review.is_published:
            raise InvalidArgumentError("You can only respond to published reviews")
        if review.barber_response:
            raise ConflictError("You have already responded to this review")

        return self.repo.update_review(
            self.db,
            review,
            barber_response=self._sanitize(data.response),
            barber_response_at=utcnow(),
        )

    def vote(self, review_id: int, data: ReviewVote) -> Review:
        review = self.get_review(review_id)
        updates = {"total_votes": (review.total_votes or 0) + 1}
        if data.helpful:
            updates["helpful_votes"] = (review.helpful_votes or 0) + 1
        return self.repo.update_review(self.db, review, **updates)

    def moderate(self, review_id: int, data: ReviewModeration, moderator: User) -> Review:
        review = self.get_review(review_id)
        old_status = review.moderation_status

        updates = {
            "moderation_status": data.status,
            "moderation_note": self._sanitize(data.note),
        }
        if data.status == "approved":
            updates["is_published"] = True
        elif data.status in ("rejected", "flagged"):
            updates["is_published"] = False

        review = self.repo.update_review(self.db, review, **updates)
        self._recalculate_barber_rating(review.barber_id)
        self.cache.invalidate_barber(review.barber_id)
        logger.info(f"🔄 Review {review.id} moderated {old_status} -> {data.status} by {moderator.id}")
        return review

    def _recalculate_barber_rating(self, barber_id: int) -> None:
        """Recompute a barber's rating and total_reviews from published reviews"""
        barber = self.db.query(Barber).filter(Barber.id == barber_id).first()
        if not barber:
            return
        stats = self.repo.get_published_stats(self.db, barber_id)
        barber.rating = stats["average_rating"]
        barber.total_reviews = stats["total_reviews"]
        self.db.commit()

    @staticmethod
    def _sanitize(value: Optional[str]) -> Optional[str]:
        try:
            return sanitize_text(value, max_length=2000)
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e

    def _clean(self, fields: dict) -> dict:
        for key in TEXT_FIELDS:
            if key in fields:
                fields[key] = self._sanitize(fields[key])
        return fields
