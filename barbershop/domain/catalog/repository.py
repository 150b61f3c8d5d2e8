"""Catalog repository - Database operations for services, categories and offerings"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import BarberOffering, Service, ServiceCategory


class CatalogRepository:
    """Repository for catalog database operations"""

    # Categories

    @staticmethod
    def get_categories(db: Session, active_only: bool = True) -> list[ServiceCategory]:
        query = db.query(ServiceCategory)
        if active_only:
            query = query.filter(ServiceCategory.is_active.is_(True))
        return query.order_by(ServiceCategory.sort_order.asc(), ServiceCategory.name.asc()).all()

    @staticmethod
    def get_category_by_id(db: Session, category_id: int) -> Optional[ServiceCategory]:
        return db.query(ServiceCategory).filter(ServiceCategory.id == category_id).first()

    @staticmethod
    def get_category_by_slug(db: Session, slug: str) -> Optional[ServiceCategory]:
        return db.query(ServiceCategory).filter(ServiceCategory.slug == slug).first()

    # Services

    @staticmethod
    def get_service_by_id(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def get_service_by_slug(db: Session, slug: str) -> Optional[Service]:
        return db.query(Service).filter(Service.slug == slug).first()

    @staticmethod
    def list_services(
        db: Session,
        category_id: Optional[int] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Service], int]:
        query = db.query(Service)
        if category_id is not None:
            query = query.filter(Service.category_id == category_id)
        if is_active is not None:
            query = query.filter(Service.is_active == is_active)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(Service.name).like(pattern),
                    func.lower(Service.short_description).like(pattern),
                    func.lower(Service.description).like(pattern),
                )
            )
        total = query.count()
        items = query.order_by(Service.name.asc(), Service.id.asc()).offset(offset).limit(limit).all()
        return items, total

    # Barber offerings

    @staticmethod
    def get_offering_by_id(db: Session, offering_id: int) -> Optional[BarberOffering]:
        return (
            db.query(BarberOffering)
            .options(joinedload(BarberOffering.service))
            .filter(BarberOffering.id == offering_id)
            .first()
        )

    @staticmethod
    def get_offering(db: Session, barber_id: int, service_id: int) -> Optional[BarberOffering]:
        return (
            db.query(BarberOffering)
            .filter(BarberOffering.barber_id == barber_id, BarberOffering.service_id == service_id)
            .first()
        )

    # Shared writes

    @staticmethod
    def create(db: Session, instance):
        db.add(instance)
        db.commit()
        db.refresh(instance)
        return instance

    @staticmethod
    def update(db: Session, instance, **updates):
        for key, value in updates.items():
            setattr(instance, key, value)
        db.commit()
        db.refresh(instance)
        return instance

    @staticmethod
    def delete(db: Session, instance) -> None:
        db.delete(instance)
        db.commit()
