"""Notification domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from ...shared import timeutils
from .templates import BOOKING_TEMPLATES, CHANNELS, NOTIFICATION_TYPES

Priority = Literal["low", "normal", "high", "urgent"]


class NotificationCreate(BaseModel):
    user_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1, max_length=2000)
    type: str
    channels: list[str] = ["app"]
    priority: Priority = "normal"
    related_entity_type: Optional[str] = Field(None, max_length=50)
    related_entity_id: Optional[int] = None
    data: Optional[dict[str, Any]] = None
    scheduled_for: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @field_validator("type")
    @classmethod
    def check_type(cls, v: str) -> str:
        if v not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type '{v}'")
        return v

    @field_validator("channels")
    @classmethod
    def check_channels(cls, v: list[str]) -> list[str]:
        unknown = [c for c in v if c not in CHANNELS]
        if unknown:
            raise ValueError(f"Unknown channels: {', '.join(unknown)}")
        return v or ["app"]


class BookingNotificationRequest(BaseModel):
    booking_id: int = Field(..., gt=0)
    type: str

    @field_validator("type")
    @classmethod
    def check_type(cls, v: str) -> str:
        if v not in BOOKING_TEMPLATES:
            raise ValueError(f"Type must be one of: {', '.join(BOOKING_TEMPLATES)}")
        return v


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: str
    channels: list[str] = []
    status: str
    priority: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    data: Optional[dict[str, Any]] = None
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("channels", mode="before")
    @classmethod
    def default_channels(cls, v):
        return v or []

    @computed_field
    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    @computed_field
    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at <= timeutils.utcnow()

    @computed_field
    @property
    def time_ago(self) -> Optional[str]:
        return timeutils.time_ago(self.created_at)


class UnreadCount(BaseModel):
    unread_count: int


class NotificationStats(BaseModel):
    total: int
    unread: int
    by_type: dict[str, int]
