"""Catalog routers - services, categories and barber offerings"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...cache import Cache, get_cache
from ...database import get_db
from ...models import User
from ...shared.constants import ADMIN
from ...shared.responses import MessageData, Pagination, SuccessResponse, ok, paginated
from .schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    OfferingCreate,
    OfferingResponse,
    OfferingUpdate,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
)
from .service import CatalogService

router = APIRouter(prefix="/services", tags=["Services"])
categories_router = APIRouter(prefix="/categories", tags=["Categories"])
barber_services_router = APIRouter(prefix="/barber-services", tags=["Barber Services"])


def get_catalog_service(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db, cache)


def serialize(services) -> list:
    return [ServiceResponse.model_validate(s) for s in services]


# ============================================================================
# SERVICES
# ============================================================================


@router.get("", response_model=SuccessResponse[list[ServiceResponse]])
def list_services(
    category_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    pagination: Pagination = Depends(),
    service: CatalogService = Depends(get_catalog_service),
):
    items, total = service.list_services(
        pagination.limit, pagination.offset, category_id=category_id, is_active=is_active, search=search
    )
    return paginated(serialize(items), total, pagination)


@router.get("/search", response_model=SuccessResponse[list[ServiceResponse]])
def search_services(
    q: str = Query(...),
    pagination: Pagination = Depends(),
    service: CatalogService = Depends(get_catalog_service),
):
    items, total = service.search_services(q, pagination.limit, pagination.offset)
    return paginated(serialize(items), total, pagination)


@router.get("/slug/{slug}", response_model=SuccessResponse[ServiceResponse])
def get_service_by_slug(slug: str, service: CatalogService = Depends(get_catalog_service)):
    return ok(service.get_service_by_slug(slug))


@router.get("/{service_id}", response_model=SuccessResponse[ServiceResponse])
def get_service(service_id: int, service: CatalogService = Depends(get_catalog_service)):
    return ok(service.get_service(service_id))


@router.post("", response_model=SuccessResponse[ServiceResponse], status_code=status.HTTP_201_CREATED)
def create_service(
    data: ServiceCreate,
    current_user: User = Depends(require_roles(ADMIN)),
    service: CatalogService = Depends(get_catalog_service),
):
    return ok(service.create_service(data))


@router.put("/{service_id}", response_model=SuccessResponse[ServiceResponse])
def update_service(
    service_id: int,
    data: ServiceUpdate,
    current_user: User = Depends(require_roles(ADMIN)),
    service: CatalogService = Depends(get_catalog_service),
):
    return ok(service.update_service(service_id, data))


@router.delete("/{service_id}", response_model=SuccessResponse[MessageData])
def delete_service(
    service_id: int,
    current_user: User = Depends(require_roles(ADMIN)),
    service: CatalogService = Depends(get_catalog_service),
):
    service.deactivate_service(service_id)
    return ok({"message": "Service deactivated successfully"})


# ============================================================================
# CATEGORIES
# ============================================================================


@categories_router.get("", response_model=SuccessResponse[list[CategoryResponse]])
def list_categories(service: CatalogService = Depends(get_catalog_service)):
    return ok(service.list_categories())


@categories_router.get("/{category_id}", response_model=SuccessResponse[CategoryResponse])
def get_category(category_id: int, service: CatalogService = Depends(get_catalog_service)):
    return ok(service.get_category(category_id))


@categories_router.post("", response_model=SuccessResponse[CategoryResponse], status_code=status.HTTP_201_CREATED)
def create_category(
    data: CategoryCreate,
    current_user: User = Depends(require_roles(ADMIN)),
    service: CatalogService = Depends(get_catalog_service),
):
    return ok(service.create_category(data))


@categories_router.put("/{category_id}", response_model=SuccessResponse[CategoryResponse])
def update_category(
    category_id: int,
    data: CategoryUpdate,
    current_user: User = Depends(require_roles(ADMIN)),
    service: CatalogService = Depends(get_catalog_service),
):
    return ok(service.update_category(category_id, data))


@categories_router.delete("/{category_id}", response_model=SuccessResponse[MessageData])
def delete_category(
    category_id: int,
    current_user: User = Depends(require_roles(ADMIN)),
    service: CatalogService = Depends(get_catalog_service),
):
    service.delete_category(category_id)
    return ok({"message": "Category deleted successfully"})


# ============================================================================
# BARBER OFFERINGS
# ============================================================================


@barber_services_router.post("", response_model=SuccessResponse[OfferingResponse], status_code=status.HTTP_201_CREATED)
def add_barber_service(
    data: OfferingCreate,
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    """Add a catalog service to a barber's menu at the barber's own price"""
    return ok(service.add_offering(data, current_user))


@barber_services_router.put("/{offering_id}", response_model=SuccessResponse[OfferingResponse])
def update_barber_service(
    offering_id: int,
    data: OfferingUpdate,
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    return ok(service.update_offering(offering_id, data, current_user))


@barber_services_router.delete("/{offering_id}", response_model=SuccessResponse[MessageData])
def remove_barber_service(
    offering_id: int,
    current_user: User = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    service.remove_offering(offering_id, current_user)
    return ok({"message": "Barber service removed successfully"})
