"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from ...shared.timeutils import utcnow
from ...shared.validators import validate_email, validate_phone
from .state_machine import ACTIVE_STATUSES, CANCELLED, RESCHEDULABLE_STATUSES, TRANSITIONS


class GuestContact(BaseModel):
    customer_name: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None

    @field_validator("customer_email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return validate_email(v)

    @field_validator("customer_phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone(v)


class BookingCreate(GuestContact):
    barber_id: int = Field(..., gt=0)
    service_id: int = Field(..., gt=0)
    start_time: datetime
    duration_minutes: int
    # Staff may book on behalf of a registered customer
    customer_id: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = Field(None, max_length=1000)
    special_requests: Optional[str] = Field(None, max_length=1000)
    discount_amount: float = Field(0.0, ge=0)


class BookingUpdate(GuestContact):
    notes: Optional[str] = Field(None, max_length=1000)
    special_requests: Optional[str] = Field(None, max_length=1000)


class StatusUpdate(BaseModel):
    status: str
    reason: Optional[str] = Field(None, max_length=500)


class RescheduleRequest(BaseModel):
    new_start_time: datetime
    duration_minutes: Optional[int] = None
    reason: Optional[str] = Field(None, max_length=500)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
    is_by_customer: bool = False


class ConflictInfo(BaseModel):
    id: int
    start_time: datetime
    end_time: datetime
    status: str


class AvailabilityResponse(BaseModel):
    available: bool
    barber_id: int
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    conflicts: list[ConflictInfo] = []


class BookingResponse(BaseModel):
    id: int
    uuid: str
    booking_number: str
    customer_id: Optional[int] = None
    barber_id: int
    service_id: int
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    scheduled_start_time: datetime
    scheduled_end_time: datetime
    duration_minutes: int
    status: str
    service_price: float
    discount_amount: float = 0.0
    tax_amount: float = 0.0
    total_price: float
    currency: str
    notes: Optional[str] = None
    special_requests: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @computed_field
    @property
    def can_cancel(self) -> bool:
        return (self.status, CANCELLED) in TRANSITIONS

    @computed_field
    @property
    def can_reschedule(self) -> bool:
        return self.status in RESCHEDULABLE_STATUSES

    @computed_field
    @property
    def is_upcoming(self) -> bool:
        return self.status in ACTIVE_STATUSES and self.scheduled_start_time > utcnow()


class BookingHistoryResponse(BaseModel):
    id: int
    booking_id: int
    action: str
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    changed_by: Optional[int] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransitionsResponse(BaseModel):
    booking_id: int
    current_status: str
    allowed: list[str]


class BookingStats(BaseModel):
    barber_id: int
    total_bookings: int = 0
    by_status: dict[str, int] = {}
    total_revenue: float = 0.0
    average_price: float = 0.0
