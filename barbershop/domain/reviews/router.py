"""Reviews router - customer reviews, barber responses and moderation"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...cache import Cache, get_cache
from ...database import get_db
from ...models import User
from ...shared.constants import ADMIN, CUSTOMER
from ...shared.responses import MessageData, Pagination, SuccessResponse, ok, paginated
from .schemas import (
    BarberResponseCreate,
    CanReviewResponse,
    ReviewCreate,
    ReviewModeration,
    ReviewResponse,
    ReviewUpdate,
    ReviewVote,
)
from .service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def get_review_service(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)) -> ReviewService:
    return ReviewService(db, cache)


def serialize(reviews) -> list:
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.post("", response_model=SuccessResponse[ReviewResponse], status_code=status.HTTP_201_CREATED)
def create_review(
    data: ReviewCreate,
    current_user: User = Depends(require_roles(CUSTOMER)),
    service: ReviewService = Depends(get_review_service),
):
    """Review a completed booking; the review awaits moderation"""
    return ok(service.create_review(data, current_user))


@router.get("/me", response_model=SuccessResponse[list[ReviewResponse]])
def my_reviews(
    pagination: Pagination = Depends(),
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    items, total = service.list_my_reviews(current_user, pagination.limit, pagination.offset)
    return paginated(serialize(items), total, pagination)


@router.get("/pending", response_model=SuccessResponse[list[ReviewResponse]])
def pending_reviews(
    pagination: Pagination = Depends(),
    current_user: User = Depends(require_roles(ADMIN)),
    service: ReviewService = Depends(get_review_service),
):
    """Moderation queue"""
    items, total = service.list_pending(pagination.limit, pagination.offset)
    return paginated(serialize(items), total, pagination)


@router.get("/can-review/{booking_id}", response_model=SuccessResponse[CanReviewResponse])
def can_review(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return ok(service.can_review(booking_id, current_user))


@router.get("/booking/{booking_id}", response_model=SuccessResponse[ReviewResponse])
def get_review_by_booking(booking_id: int, service: ReviewService = Depends(get_review_service)):
    return ok(service.get_review_by_booking(booking_id))


@router.get("/{review_id}", response_model=SuccessResponse[ReviewResponse])
def get_review(review_id: int, service: ReviewService = Depends(get_review_service)):
    return ok(service.get_review(review_id))


@router.put("/{review_id}", response_model=SuccessResponse[ReviewResponse])
def update_review(
    review_id: int,
    data: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return ok(service.update_review(review_id, data, current_user))


@router.delete("/{review_id}", response_model=SuccessResponse[MessageData])
def delete_review(
    review_id: int,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    service.delete_review(review_id, current_user)
    return ok({"message": "Review deleted successfully"})


@router.post("/{review_id}/response", response_model=SuccessResponse[ReviewResponse])
def respond_to_review(
    review_id: int,
    data: BarberResponseCreate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return ok(service.add_barber_response(review_id, data, current_user))


@router.post("/{review_id}/vote", response_model=SuccessResponse[ReviewResponse])
def vote_review(review_id: int, data: ReviewVote, service: ReviewService = Depends(get_review_service)):
    return ok(service.vote(review_id, data))


@router.patch("/{review_id}/moderate", response_model=SuccessResponse[ReviewResponse])
def moderate_review(
    review_id: int,
    data: ReviewModeration,
    current_user: User = Depends(require_roles(ADMIN)),
    service: ReviewService = Depends(get_review_service),
):
    return ok(service.moderate(review_id, data, current_user))
