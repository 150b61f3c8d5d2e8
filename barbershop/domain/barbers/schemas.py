"""Barber domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import (
    validate_email,
    validate_latitude,
    validate_longitude,
    validate_phone,
    validate_url,
)

BarberStatus = Literal["pending", "active", "inactive", "suspended", "rejected"]


class BarberBase(BaseModel):
    business_name: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    phone: Optional[str] = None
    business_email: Optional[str] = None
    website_url: Optional[str] = None
    description: Optional[str] = Field(None, max_length=2000)
    years_experience: Optional[int] = Field(None, ge=0, le=80)
    specialties: Optional[list[str]] = None

    @field_validator("latitude")
    @classmethod
    def check_latitude(cls, v: Optional[float]) -> Optional[float]:
        return validate_latitude(v)

    @field_validator("longitude")
    @classmethod
    def check_longitude(cls, v: Optional[float]) -> Optional[float]:
        return validate_longitude(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone(v)

    @field_validator("business_email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return validate_email(v)

    @field_validator("website_url")
    @classmethod
    def check_url(cls, v: Optional[str]) -> Optional[str]:
        return validate_url(v)


class BarberCreate(BarberBase):
    shop_name: str = Field(..., min_length=1, max_length=255)
    # Admins may create a profile on behalf of another user
    user_id: Optional[int] = None


class BarberUpdate(BarberBase):
    shop_name: Optional[str] = Field(None, min_length=1, max_length=255)


class BarberStatusUpdate(BaseModel):
    status: BarberStatus
    is_verified: Optional[bool] = None


class BarberResponse(BaseModel):
    id: int
    uuid: str
    user_id: int
    shop_name: str
    business_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    phone: Optional[str] = None
    business_email: Optional[str] = None
    website_url: Optional[str] = None
    description: Optional[str] = None
    years_experience: Optional[int] = None
    specialties: list[str] = []
    rating: float = 0.0
    total_reviews: int = 0
    total_bookings: int = 0
    status: str
    is_verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("specialties", mode="before")
    @classmethod
    def default_specialties(cls, v):
        return v or []


class NearbyBarberResponse(BarberResponse):
    distance_km: float


class BarberStatistics(BaseModel):
    barber_id: int
    total_bookings: int = 0
    completed_bookings: int = 0
    cancelled_bookings: int = 0
    no_show_bookings: int = 0
    total_revenue: float = 0.0
    total_reviews: int = 0
    average_rating: float = 0.0
