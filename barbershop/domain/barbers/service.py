"""Barber service - Business logic for barber profiles, search and statistics"""

import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from ...cache import LONG_TTL, SHORT_TTL, Cache, barber_stats_key, build_search_key
from ...errors import ConflictError, ForbiddenError, InvalidArgumentError, NotFoundError
from ...models import Barber, User
from ...shared.constants import ADMIN, BARBER, BARBER_ACTIVE, BARBER_INACTIVE, BARBER_PENDING
from ...shared.timeutils import utcnow
from ...shared.validators import validate_latitude, validate_longitude
from ..auth.repository import UserRepository
from .repository import BarberRepository
from .schemas import (
    BarberCreate,
    BarberResponse,
    BarberStatistics,
    BarberStatusUpdate,
    BarberUpdate,
    NearbyBarberResponse,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
MIN_SEARCH_LENGTH = 2


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres"""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def ensure_can_manage_barber(barber: Barber, actor: User) -> None:
    """Only the owning user or an admin may change a barber's data"""
    if actor.user_type == ADMIN or barber.user_id == actor.id:
        return
    raise ForbiddenError("You can only manage your own barber profile")


class BarberProfileService:
    """Service layer for barber business logic"""

    def __init__(self, db: Session, cache: Cache):
        self.db = db
        self.cache = cache
        self.repo = BarberRepository()

    def get_barber_model(self, barber_id: int) -> Barber:
        barber = self.repo.get_barber_by_id(self.db, barber_id)
        if not barber:
            raise NotFoundError("Barber not found")
        return barber

    def get_barber(self, barber_id: int) -> dict:
        """Read-through cached barber profile"""
        cached = self.cache.get_barber(barber_id)
        if cached is not None:
            return cached

        data = BarberResponse.model_validate(self.get_barber_model(barber_id)).model_dump(mode="json")
        self.cache.cache_barber(barber_id, data)
        return data

    def get_barber_by_uuid(self, barber_uuid: str) -> Barber:
        barber = self.repo.get_barber_by_uuid(self.db, barber_uuid)
        if not barber:
            raise NotFoundError("Barber not found")
        return barber

    def list_barbers(self, limit: int, offset: int, **filters) -> tuple[list[Barber], int]:
        return self.repo.list_barbers(self.db, limit=limit, offset=offset, **filters)

    def search_barbers(self, q: str, limit: int, offset: int) -> tuple[list[dict], int]:
        """Search active barbers by name, city or description; results are cached briefly"""
        q = (q or "").strip()
        if len(q) < MIN_SEARCH_LENGTH:
            raise InvalidArgumentError(f"Search query must be at least {MIN_SEARCH_LENGTH} characters")

        key = build_search_key("barbers", q=q.lower(), limit=limit, offset=offset)
        cached = self.cache.get(key)
        if cached is not None:
            return cached["items"], cached["total"]

        barbers, total = self.repo.list_barbers(
            self.db, status=BARBER_ACTIVE, search=q, limit=limit, offset=offset
        )
        items = [BarberResponse.model_validate(b).model_dump(mode="json") for b in barbers]
        self.cache.set(key, {"items": items, "total": total}, SHORT_TTL)
        return items, total

    def find_nearby(self, latitude: float, longitude: float, radius_km: float, limit: int) -> list[dict]:
        try:
            validate_latitude(latitude)
            validate_longitude(longitude)
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e
        if radius_km <= 0:
            raise InvalidArgumentError("Radius must be positive")

        results = []
        for barber in self.repo.get_active_barbers_with_location(self.db):
            distance = haversine_km(latitude, longitude, barber.latitude, barber.longitude)
            if distance <= radius_km:
                item = BarberResponse.model_validate(barber).model_dump()
                results.append(NearbyBarberResponse(**item, distance_km=round(distance, 2)))
        results.sort(key=lambda r: r.distance_km)
        return results[:limit]

    def get_statistics(self, barber_id: int) -> dict:
        key = barber_stats_key(barber_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        self.get_barber_model(barber_id)
        stats = BarberStatistics(**self.repo.get_statistics(self.db, barber_id)).model_dump()
        self.cache.set(key, stats, LONG_TTL)
        return stats

    def get_offerings(self, barber_id: int):
        self.get_barber_model(barber_id)
        return self.repo.get_offerings(self.db, barber_id)

    def create_barber(self, data: BarberCreate, actor: User) -> Barber:
        owner_id = actor.id
        if data.user_id is not None and data.user_id != actor.id:
            if actor.user_type != ADMIN:
                raise ForbiddenError("Only admins can create a barber profile for another user")
            owner = UserRepository.get_by_id(self.db, data.user_id)
            if not owner:
                raise NotFoundError("User not found")
            owner_id = owner.id
        elif actor.user_type not in (BARBER, ADMIN):
            raise ForbiddenError("Only barber accounts can create a barber profile")

        logger.info(f"📥 Creating barber profile for user_id: {owner_id}")
        if self.repo.get_barber_by_user_id(self.db, owner_id):
            raise ConflictError("This user already has a barber profile")

        fields = data.model_dump(exclude={"user_id"}, exclude_none=True)
        barber = self.repo.create_barber(
            self.db, user_id=owner_id, status=BARBER_PENDING, **fields
        )
        self.cache.delete_pattern("search:barbers:*")
        logger.info(f"✅ Created barber {barber.id}")
        return barber

    def update_barber(self, barber_id: int, data: BarberUpdate, actor: User) -> Barber:
        barber = self.get_barber_model(barber_id)
        ensure_can_manage_barber(barber, actor)

        updates = data.model_dump(exclude_unset=True)
        if "shop_name" in updates and updates["shop_name"] is None:
            raise InvalidArgumentError("shop_name cannot be null")
        if updates:
            barber = self.repo.update_barber(self.db, barber, **updates)
        self.cache.invalidate_barber(barber_id)
        return barber

    def delete_barber(self, barber_id: int, actor: User) -> None:
        barber = self.get_barber_model(barber_id)
        ensure_can_manage_barber(barber, actor)

        self.repo.update_barber(self.db, barber, deleted_at=utcnow(), status=BARBER_INACTIVE)
        self.cache.invalidate_barber(barber_id)
        logger.info(f"🗑️ Soft-deleted barber {barber_id} by user {actor.id}")

    def update_status(self, barber_id: int, data: BarberStatusUpdate) -> Barber:
        barber = self.get_barber_model(barber_id)
        updates = {"status": data.status}
        if data.is_verified is not None:
            updates["is_verified"] = data.is_verified

        old_status = barber.status
        barber = self.repo.update_barber(self.db, barber, **updates)
        self.cache.invalidate_barber(barber_id)
        logger.info(f"🔄 Barber {barber_id} status {old_status} -> {barber.status}")
        return barber

    def get_managed_barber(self, barber_id: int, actor: User) -> Barber:
        barber = self.get_barber_model(barber_id)
        ensure_can_manage_barber(barber, actor)
        return barber

    def find_for_user(self, user: User) -> Optional[Barber]:
        barber = self.repo.get_barber_by_user_id(self.db, user.id)
        if barber and barber.deleted_at is None:
            return barber
        return None
