"""Catalog domain schemas - services, categories and barber offerings"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import validate_slug


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = Field(None, max_length=1000)
    sort_order: int = 0
    is_active: bool = True

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v: Optional[str]) -> Optional[str]:
        return validate_slug(v)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = Field(None, max_length=1000)
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v: Optional[str]) -> Optional[str]:
        return validate_slug(v)


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True

    class Config:
        from_attributes = True


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    category_id: Optional[int] = None
    short_description: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    default_duration_min: int = Field(30, ge=15, le=480)
    suggested_price_min: float = Field(0.0, ge=0)
    suggested_price_max: Optional[float] = Field(None, ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    is_active: bool = True

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v: Optional[str]) -> Optional[str]:
        return validate_slug(v)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def check_price_range(self):
        if self.suggested_price_max is not None and self.suggested_price_max < self.suggested_price_min:
            raise ValueError("suggested_price_max must be >= suggested_price_min")
        return self


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    category_id: Optional[int] = None
    short_description: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    default_duration_min: Optional[int] = Field(None, ge=15, le=480)
    suggested_price_min: Optional[float] = Field(None, ge=0)
    suggested_price_max: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None
    is_approved: Optional[bool] = None

    @field_validator("slug")
    @classmethod
    def check_slug(cls, v: Optional[str]) -> Optional[str]:
        return validate_slug(v)


class ServiceResponse(BaseModel):
    id: int
    uuid: str
    name: str
    slug: str
    category_id: Optional[int] = None
    short_description: Optional[str] = None
    description: Optional[str] = None
    default_duration_min: int
    suggested_price_min: float
    suggested_price_max: Optional[float] = None
    currency: str
    is_active: bool
    is_approved: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OfferingCreate(BaseModel):
    barber_id: int
    service_id: int
    price: float = Field(..., ge=0)
    custom_name: Optional[str] = Field(None, max_length=255)
    estimated_duration_min: Optional[int] = Field(None, ge=15, le=480)
    buffer_time_minutes: int = Field(0, ge=0, le=120)


class OfferingUpdate(BaseModel):
    price: Optional[float] = Field(None, ge=0)
    custom_name: Optional[str] = Field(None, max_length=255)
    estimated_duration_min: Optional[int] = Field(None, ge=15, le=480)
    buffer_time_minutes: Optional[int] = Field(None, ge=0, le=120)
    is_active: Optional[bool] = None


class OfferingResponse(BaseModel):
    id: int
    barber_id: int
    service_id: int
    custom_name: Optional[str] = None
    price: float
    estimated_duration_min: Optional[int] = None
    buffer_time_minutes: int = 0
    is_active: bool = True
    service: Optional[ServiceResponse] = None

    class Config:
        from_attributes = True
