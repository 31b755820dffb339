"""Service catalogue router"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Principal, get_optional_principal, require_capability
from ...database import get_db
from ...roles import Capability
from ...shared.responses import envelope, pagination
from .schemas import ServiceCreate, ServiceUpdate, service_to_response
from .service import CatalogService

router = APIRouter(prefix="/services", tags=["Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


@router.get("")
async def list_services(
    category: Optional[str] = Query(None),
    vertical: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    include_inactive: bool = Query(False, alias="includeInactive"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: CatalogService = Depends(get_catalog_service),
):
    services, total = service.list_services(
        principal,
        include_inactive,
        category=category,
        vertical=vertical,
        search=search,
        page=page,
        limit=limit,
    )
    return envelope(
        [service_to_response(s) for s in services],
        pagination=pagination(total, page, limit),
    )


@router.get("/categories")
async def list_categories(service: CatalogService = Depends(get_catalog_service)):
    return envelope(service.categories())


@router.get("/{service_id}")
async def get_service(service_id: str, service: CatalogService = Depends(get_catalog_service)):
    return envelope(service_to_response(service.get_service(service_id)))


@router.post("", status_code=201)
async def create_service(
    data: ServiceCreate,
    principal: Principal = Depends(require_capability(Capability.MANAGE_SERVICES)),
    service: CatalogService = Depends(get_catalog_service),
):
    created = service.create_service(data, principal)
    return envelope(service_to_response(created), "Service created successfully")


@router.put("/{service_id}")
async def update_service(
    service_id: str,
    data: ServiceUpdate,
    principal: Principal = Depends(require_capability(Capability.MANAGE_SERVICES)),
    service: CatalogService = Depends(get_catalog_service),
):
    updated = service.update_service(service_id, data, principal)
    return envelope(service_to_response(updated), "Service updated successfully")
