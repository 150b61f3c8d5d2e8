"""Review domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, computed_field

MIN_RATING = 1
MAX_RATING = 5
MIN_COMMENT_LENGTH = 10
MAX_COMMENT_LENGTH = 1000

ModerationStatus = Literal["pending", "approved", "rejected", "flagged"]


class ReviewBase(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    comment: Optional[str] = Field(None, min_length=MIN_COMMENT_LENGTH, max_length=MAX_COMMENT_LENGTH)
    service_quality_rating: Optional[int] = Field(None, ge=MIN_RATING, le=MAX_RATING)
    punctuality_rating: Optional[int] = Field(None, ge=MIN_RATING, le=MAX_RATING)
    cleanliness_rating: Optional[int] = Field(None, ge=MIN_RATING, le=MAX_RATING)
    value_for_money_rating: Optional[int] = Field(None, ge=MIN_RATING, le=MAX_RATING)
    would_recommend: Optional[bool] = None


class ReviewCreate(ReviewBase):
    booking_id: int = Field(..., gt=0)
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING)


class ReviewUpdate(ReviewBase):
    rating: Optional[int] = Field(None, ge=MIN_RATING, le=MAX_RATING)


class BarberResponseCreate(BaseModel):
    response: str = Field(..., min_length=10, max_length=1000)


class ReviewVote(BaseModel):
    helpful: bool


class ReviewModeration(BaseModel):
    status: ModerationStatus
    note: Optional[str] = Field(None, max_length=1000)


class ReviewResponse(BaseModel):
    id: int
    uuid: str
    booking_id: int
    barber_id: int
    customer_id: int
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    service_quality_rating: Optional[int] = None
    punctuality_rating: Optional[int] = None
    cleanliness_rating: Optional[int] = None
    value_for_money_rating: Optional[int] = None
    would_recommend: Optional[bool] = None
    moderation_status: str
    is_verified: bool
    is_published: bool
    helpful_votes: int = 0
    total_votes: int = 0
    barber_response: Optional[str] = None
    barber_response_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @computed_field
    @property
    def average_rating(self) -> float:
        """Mean of the overall rating and any detailed ratings given"""
        ratings = [
            r
            for r in (
                self.rating,
                self.service_quality_rating,
                self.punctuality_rating,
                self.cleanliness_rating,
                self.value_for_money_rating,
            )
            if r is not None
        ]
        return round(sum(ratings) / len(ratings), 2)

    @computed_field
    @property
    def helpfulness_ratio(self) -> float:
        if not self.total_votes:
            return 0.0
        return round(self.helpful_votes / self.total_votes, 2)

    @computed_field
    @property
    def is_positive(self) -> bool:
        return self.rating >= 4


class CanReviewResponse(BaseModel):
    can_review: bool
    reason: Optional[str] = None


class ReviewStats(BaseModel):
    barber_id: int
    total_reviews: int = 0
    average_rating: float = 0.0
    rating_distribution: dict[int, int] = {}
    would_recommend_percent: float = 0.0
