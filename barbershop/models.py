import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(36), unique=True, index=True, nullable=False, default=generate_public_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    user_type = Column(String(20), default="customer", nullable=False)  # customer, barber, admin
    status = Column(String(20), default="active", nullable=False)  # active, inactive, suspended
    failed_login_attempts = Column(Integer, default=0, nullable=False)
    locked_until = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    barber = relationship("Barber", back_populates="user", uselist=False)
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")


class Barber(Base):
    __tablename__ = "barbers"

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(36), unique=True, index=True, nullable=False, default=generate_public_id)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    shop_name = Column(String(255), nullable=False)
    business_name = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True, index=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    phone = Column(String(50), nullable=True)
    business_email = Column(String(255), nullable=True)
    website_url = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    years_experience = Column(Integer, nullable=True)
    specialties = Column(JSON, default=list)
    rating = Column(Float, default=0.0, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)
    total_bookings = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, active, inactive, suspended, rejected
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="barber")
    offerings = relationship("BarberOffering", back_populates="barber", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="barber")


class ServiceCategory(Base):
    __tablename__ = "service_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(120), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    services = relationship("Service", back_populates="category")


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(36), unique=True, index=True, nullable=False, default=generate_public_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    category_id = Column(Integer, ForeignKey("service_categories.id"), nullable=True)
    short_description = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    default_duration_min = Column(Integer, default=30, nullable=False)
    suggested_price_min = Column(Float, default=0.0, nullable=False)
    suggested_price_max = Column(Float, nullable=True)
    currency = Column(String(3), default="USD", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_approved = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    category = relationship("ServiceCategory", back_populates="services")


class BarberOffering(Base):
    """A barber's priced offering of a catalog service"""

    __tablename__ = "barber_services"
    __table_args__ = (UniqueConstraint("barber_id", "service_id", name="uq_barber_service"),)

    id = Column(Integer, primary_key=True, index=True)
    barber_id = Column(Integer, ForeignKey("barbers.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    custom_name = Column(String(255), nullable=True)
    price = Column(Float, nullable=False)
    estimated_duration_min = Column(Integer, nullable=True)
    buffer_time_minutes = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    barber = relationship("Barber", back_populates="offerings")
    service = relationship("Service")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_barber_window", "barber_id", "scheduled_start_time", "scheduled_end_time"),
    )

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(36), unique=True, index=True, nullable=False, default=generate_public_id)
    booking_number = Column(String(32), unique=True, index=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # NULL for guests
    barber_id = Column(Integer, ForeignKey("barbers.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)

    # Guest contact details
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)

    scheduled_start_time = Column(DateTime, nullable=False)
    scheduled_end_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    status = Column(String(20), default="pending", nullable=False, index=True)  # see bookings.state_machine

    service_price = Column(Float, nullable=False)
    discount_amount = Column(Float, default=0.0, nullable=False)
    tax_amount = Column(Float, default=0.0, nullable=False)
    total_price = Column(Float, nullable=False)
    currency = Column(String(3), default="USD", nullable=False)

    notes = Column(Text, nullable=True)
    special_requests = Column(Text, nullable=True)

    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(20), nullable=True)  # customer, barber, admin
    cancelled_at = Column(DateTime, nullable=True)
    confirmed_at = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    barber = relationship("Barber", back_populates="bookings")
    service = relationship("Service")
    customer = relationship("User")
    history = relationship(
        "BookingHistory", back_populates="booking", order_by="BookingHistory.id", cascade="all, delete-orphan"
    )
    review = relationship("Review", back_populates="booking", uselist=False)


class BookingHistory(Base):
    __tablename__ = "booking_history"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    action = Column(String(30), nullable=False)  # created, status_changed, rescheduled, updated, cancelled
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    changed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    booking = relationship("Booking", back_populates="history")


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(36), unique=True, index=True, nullable=False, default=generate_public_id)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    barber_id = Column(Integer, ForeignKey("barbers.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    rating = Column(Integer, nullable=False)
    title = Column(String(255), nullable=True)
    comment = Column(Text, nullable=True)
    service_quality_rating = Column(Integer, nullable=True)
    punctuality_rating = Column(Integer, nullable=True)
    cleanliness_rating = Column(Integer, nullable=True)
    value_for_money_rating = Column(Integer, nullable=True)
    would_recommend = Column(Boolean, nullable=True)

    moderation_status = Column(String(20), default="pending", nullable=False)  # pending, approved, rejected, flagged
    moderation_note = Column(Text, nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    is_published = Column(Boolean, default=False, nullable=False)
    helpful_votes = Column(Integer, default=0, nullable=False)
    total_votes = Column(Integer, default=0, nullable=False)

    barber_response = Column(Text, nullable=True)
    barber_response_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    booking = relationship("Booking", back_populates="review")
    barber = relationship("Barber")
    customer = relationship("User")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False)
    channels = Column(JSON, default=list)  # app, email, sms, push
    status = Column(String(20), default="pending", nullable=False)  # pending, sent, delivered, read, failed
    priority = Column(String(10), default="normal", nullable=False)  # low, normal, high, urgent
    related_entity_type = Column(String(50), nullable=True)
    related_entity_id = Column(Integer, nullable=True)
    data = Column(JSON, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    read_at = Column(DateTime, nullable=True)
    scheduled_for = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="notifications")
