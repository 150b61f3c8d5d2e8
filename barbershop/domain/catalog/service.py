"""Catalog service - Business logic for the service catalog and barber offerings"""

import logging

from sqlalchemy.orm import Session

from ...cache import DAY_TTL, MEDIUM_TTL, Cache, categories_key, service_key
from ...errors import ConflictError, InvalidArgumentError, NotFoundError
from ...models import BarberOffering, Service, ServiceCategory, User
from ...shared.validators import slugify
from ..barbers.repository import BarberRepository
from ..barbers.service import ensure_can_manage_barber
from .repository import CatalogRepository
from .schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    OfferingCreate,
    OfferingUpdate,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
)

logger = logging.getLogger(__name__)


class CatalogService:
    """Service layer for catalog business logic"""

    def __init__(self, db: Session, cache: Cache):
        self.db = db
        self.cache = cache
        self.repo = CatalogRepository()

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(self) -> list[dict]:
        cached = self.cache.get(categories_key())
        if cached is not None:
            return cached
        categories = [
            CategoryResponse.model_validate(c).model_dump() for c in self.repo.get_categories(self.db)
        ]
        self.cache.set(categories_key(), categories, DAY_TTL)
        return categories

    def get_category(self, category_id: int) -> ServiceCategory:
        category = self.repo.get_category_by_id(self.db, category_id)
        if not category:
            raise NotFoundError("Category not found")
        return category

    def create_category(self, data: CategoryCreate) -> ServiceCategory:
        slug = data.slug or slugify(data.name)
        if self.repo.get_category_by_slug(self.db, slug):
            raise ConflictError(f"Category with slug '{slug}' already exists")
        category = self.repo.create(
            self.db, ServiceCategory(**data.model_dump(exclude={"slug"}), slug=slug)
        )
        self.cache.delete(categories_key())
        return category

    def update_category(self, category_id: int, data: CategoryUpdate) -> ServiceCategory:
        category = self.get_category(category_id)
        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        if "slug" in updates and updates["slug"] != category.slug:
            if self.repo.get_category_by_slug(self.db, updates["slug"]):
                raise ConflictError(f"Category with slug '{updates['slug']}' already exists")
        category = self.repo.update(self.db, category, **updates)
        self.cache.delete(categories_key())
        return category

    def delete_category(self, category_id: int) -> None:
        category = self.get_category(category_id)
        if category.services:
            # Categories still referenced by services are only deactivated
            self.repo.update(self.db, category, is_active=False)
        else:
            self.repo.delete(self.db, category)
        self.cache.delete(categories_key())

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def list_services(self, limit: int, offset: int, **filters) -> tuple[list[Service], int]:
        return self.repo.list_services(self.db, limit=limit, offset=offset, **filters)

    def search_services(self, q: str, limit: int, offset: int) -> tuple[list[Service], int]:
        q = (q or "").strip()
        if len(q) < 2:
            raise InvalidArgumentError("Search query must be at least 2 characters")
        return self.repo.list_services(self.db, is_active=True, search=q, limit=limit, offset=offset)

    def get_service_model(self, service_id: int) -> Service:
        service = self.repo.get_service_by_id(self.db, service_id)
        if not service:
            raise NotFoundError("Service not found")
        return service

    def get_service(self, service_id: int) -> dict:
        key = service_key(service_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        data = ServiceResponse.model_validate(self.get_service_model(service_id)).model_dump(mode="json")
        self.cache.set(key, data, MEDIUM_TTL)
        return data

    def get_service_by_slug(self, slug: str) -> Service:
        service = self.repo.get_service_by_slug(self.db, slug)
        if not service:
            raise NotFoundError("Service not found")
        return service

    def create_service(self, data: ServiceCreate) -> Service:
        logger.info(f"📥 Creating catalog service '{data.name}'")
        if data.category_id is not None:
            self.get_category(data.category_id)

        slug = data.slug or slugify(data.name)
        if self.repo.get_service_by_slug(self.db, slug):
            raise ConflictError(f"Service with slug '{slug}' already exists")

        return self.repo.create(self.db, Service(**data.model_dump(exclude={"slug"}), slug=slug))

    def update_service(self, service_id: int, data: ServiceUpdate) -> Service:
        service = self.get_service_model(service_id)
        updates = data.model_dump(exclude_unset=True, exclude_none=True)

        if "category_id" in updates:
            self.get_category(updates["category_id"])
        if "slug" in updates and updates["slug"] != service.slug:
            if self.repo.get_service_by_slug(self.db, updates["slug"]):
                raise ConflictError(f"Service with slug '{updates['slug']}' already exists")

        price_min = updates.get("suggested_price_min", service.suggested_price_min)
        price_max = updates.get("suggested_price_max", service.suggested_price_max)
        if price_max is not None and price_max < price_min:
            raise InvalidArgumentError("suggested_price_max must be >= suggested_price_min")

        service = self.repo.update(self.db, service, **updates)
        self.cache.delete(service_key(service_id))
        return service

    def deactivate_service(self, service_id: int) -> None:
        """Services are referenced by bookings, so delete only deactivates"""
        service = self.get_service_model(service_id)
        self.repo.update(self.db, service, is_active=False)
        self.cache.delete(service_key(service_id))
        logger.info(f"🗑️ Deactivated service {service_id}")

    # ------------------------------------------------------------------
    # Barber offerings
    # ------------------------------------------------------------------

    def get_offering(self, offering_id: int) -> BarberOffering:
        offering = self.repo.get_offering_by_id(self.db, offering_id)
        if not offering:
            raise NotFoundError("Barber service not found")
        return offering

    def add_offering(self, data: OfferingCreate, actor: User) -> BarberOffering:
        barber = BarberRepository.get_barber_by_id(self.db, data.barber_id)
        if not barber:
            raise NotFoundError("Barber not found")
        ensure_can_manage_barber(barber, actor)

        service = self.get_service_model(data.service_id)
        if not service.is_active:
            raise InvalidArgumentError("Service is not active")
        if self.repo.get_offering(self.db, barber.id, service.id):
            raise ConflictError("Barber already offers this service")

        offering = self.repo.create(
            self.db,
            BarberOffering(
                **data.model_dump(exclude={"estimated_duration_min"}),
                estimated_duration_min=data.estimated_duration_min or service.default_duration_min,
            ),
        )
        self.cache.invalidate_barber(barber.id)
        logger.info(f"✅ Barber {barber.id} now offers service {service.id} at {offering.price}")
        return offering

    def update_offering(self, offering_id: int, data: OfferingUpdate, actor: User) -> BarberOffering:
        offering = self.get_offering(offering_id)
        ensure_can_manage_barber(offering.barber, actor)

        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        if updates:
            offering = self.repo.update(self.db, offering, **updates)
        self.cache.invalidate_barber(offering.barber_id)
        return offering

    def remove_offering(self, offering_id: int, actor: User) -> None:
        offering = self.get_offering(offering_id)
        ensure_can_manage_barber(offering.barber, actor)
        barber_id = offering.barber_id
        self.repo.delete(self.db, offering)
        self.cache.invalidate_barber(barber_id)
