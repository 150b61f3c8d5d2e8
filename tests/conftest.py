"""
Pytest configuration for the barbershop API tests.

Environment variables are set before any application import so that the
module-level settings in barbershop.config pick them up.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import fnmatch
import itertools
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from barbershop.cache import Cache, get_cache
from barbershop.database import Base, get_db
from barbershop.domain.bookings.state_machine import PENDING
from barbershop.main import app
from barbershop.models import Barber, Booking, Service, User
from barbershop.security_utils import create_jwt_token, hash_password_bcrypt
from barbershop.shared.constants import ADMIN, BARBER, BARBER_ACTIVE, CUSTOMER
from barbershop.shared.timeutils import utcnow

DEFAULT_PASSWORD = "Sharp3stCut"

_sequence = itertools.count(1)


def future(hours: float = 2, minutes: int = 0):
    """A naive UTC time in the future, truncated to the minute"""
    return utcnow().replace(second=0, microsecond=0) + timedelta(hours=hours, minutes=minutes)


def auth_headers(user: User) -> dict:
    token = create_jwt_token({"sub": str(user.id), "type": "access"}, timedelta(hours=1))
    return {"Authorization": f"Bearer {token}"}


class FakeRedis:
    """Dict-backed stand-in for the subset of the redis client the cache uses"""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    def set(self, key, value, ex=None):
        self.store[key] = str(value)
        if ex is not None:
            self.ttls[key] = ex
        return True

    def ttl(self, key):
        return self.ttls.get(key, -2)

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self.store:
                del self.store[key]
                self.ttls.pop(key, None)
                removed += 1
        return removed

    def exists(self, key):
        return int(key in self.store)

    def scan_iter(self, match="*", count=None):
        return [key for key in list(self.store) if fnmatch.fnmatchcase(key, match)]

    def info(self):
        return {"redis_version": "7.2.0", "used_memory_human": "1.00M", "connected_clients": 1}


# ============================================================================
# DATABASE / APP
# ============================================================================


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def cache():
    """Disabled cache; modules that exercise caching override this fixture"""
    return Cache(enabled=False)


@pytest.fixture
def client(session_factory, cache):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


# ============================================================================
# FACTORIES
# ============================================================================


@pytest.fixture
def user_factory(db):
    def create(user_type=CUSTOMER, email=None, password=DEFAULT_PASSWORD, status="active", name=None):
        n = next(_sequence)
        user = User(
            email=email or f"user{n}@example.com",
            password_hash=hash_password_bcrypt(password),
            name=name or f"Test User {n}",
            user_type=user_type,
            status=status,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return create


@pytest.fixture
def barber_factory(db, user_factory):
    def create(user=None, status=BARBER_ACTIVE, **fields):
        owner = user or user_factory(user_type=BARBER)
        barber = Barber(
            user_id=owner.id,
            shop_name=fields.pop("shop_name", f"Fade Factory {owner.id}"),
            status=status,
            **fields,
        )
        db.add(barber)
        db.commit()
        db.refresh(barber)
        return barber

    return create


@pytest.fixture
def service_factory(db):
    def create(name=None, price=40.0, **fields):
        n = next(_sequence)
        service = Service(
            name=name or f"Classic Cut {n}",
            slug=fields.pop("slug", f"classic-cut-{n}"),
            suggested_price_min=price,
            default_duration_min=fields.pop("default_duration_min", 45),
            **fields,
        )
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    return create


@pytest.fixture
def booking_factory(db):
    """Insert a booking row directly, bypassing the booking service"""

    def create(barber, service, customer=None, start=None, duration=45, status=PENDING, **fields):
        start = start or future()
        n = next(_sequence)
        booking = Booking(
            booking_number=f"BK20300101{n:06X}",
            barber_id=barber.id,
            service_id=service.id,
            customer_id=customer.id if customer else None,
            customer_name=fields.pop("customer_name", customer.name if customer else "Walk In"),
            scheduled_start_time=start,
            scheduled_end_time=start + timedelta(minutes=duration),
            duration_minutes=duration,
            status=status,
            service_price=service.suggested_price_min,
            total_price=fields.pop("total_price", service.suggested_price_min),
            **fields,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return create


@pytest.fixture
def customer(user_factory):
    return user_factory(user_type=CUSTOMER)


@pytest.fixture
def admin(user_factory):
    return user_factory(user_type=ADMIN)


@pytest.fixture
def barber(barber_factory):
    return barber_factory()


@pytest.fixture
def barber_user(db, barber):
    return db.get(User, barber.user_id)


@pytest.fixture
def service(service_factory):
    return service_factory()
