"""Provider router - FastAPI endpoints for service providers"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Principal, get_current_principal, get_current_provider, require_capability
from ...database import get_db
from ...models import Provider
from ...roles import Capability
from ...shared.responses import envelope, pagination
from ..bookings.schemas import booking_to_response
from .schemas import (
    AvailabilityInput,
    ProviderCreate,
    ProviderStatusUpdate,
    ProviderUpdate,
    VerifyDocumentsRequest,
    provider_public_summary,
    provider_to_response,
)
from .service import ProviderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers", tags=["Service Providers"])


def get_provider_service(db: Session = Depends(get_db)) -> ProviderService:
    """Dependency injection for ProviderService"""
    return ProviderService(db)


# ============================================================================
# PUBLIC & PROVIDER SELF-SERVICE
# ============================================================================


@router.get("/available/{service_id}")
async def get_available_providers(
    service_id: int,
    city: Optional[str] = Query(None),
    pincode: Optional[str] = Query(None),
    day: Optional[date] = Query(None, alias="date"),
    service: ProviderService = Depends(get_provider_service),
):
    """Providers that can take a booking for this service, best rated first"""
    providers = service.available_for(service_id, city=city, pincode=pincode, day=day)
    return envelope([provider_public_summary(p) for p in providers], count=len(providers))


@router.get("/my-bookings")
async def get_my_bookings(
    status: Optional[str] = Query(None, description="Comma-separated statuses"),
    day: Optional[date] = Query(None, alias="date"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    provider: Provider = Depends(get_current_provider),
    service: ProviderService = Depends(get_provider_service),
):
    bookings, total = service.my_bookings(provider, status, day, page, limit)
    return envelope(
        [booking_to_response(b, include_internal=False) for b in bookings],
        pagination=pagination(total, page, limit),
    )


# ============================================================================
# ADMIN
# ============================================================================


@router.get("/stats")
async def get_provider_stats(
    principal: Principal = Depends(require_capability(Capability.MANAGE_PROVIDERS)),
    service: ProviderService = Depends(get_provider_service),
):
    return envelope(service.stats(principal))


@router.get("")
async def list_providers(
    status: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    service_id: Optional[int] = Query(None, alias="service"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(require_capability(Capability.MANAGE_PROVIDERS)),
    service: ProviderService = Depends(get_provider_service),
):
    providers, total = service.list_providers(
        principal,
        status=status,
        city=city,
        service_id=service_id,
        search=search,
        page=page,
        limit=limit,
    )
    return envelope(
        [provider_to_response(p) for p in providers],
        pagination=pagination(total, page, limit),
    )


@router.post("", status_code=201)
async def create_provider(
    data: ProviderCreate,
    principal: Principal = Depends(require_capability(Capability.MANAGE_PROVIDERS)),
    service: ProviderService = Depends(get_provider_service),
):
    provider = service.create_provider(data, principal)
    return envelope(provider_to_response(provider), "Service provider created successfully")


@router.get("/{provider_id}")
async def get_provider(
    provider_id: str,
    principal: Principal = Depends(require_capability(Capability.MANAGE_PROVIDERS)),
    service: ProviderService = Depends(get_provider_service),
):
    return envelope(provider_to_response(service.get_provider(provider_id, principal)))


@router.put("/{provider_id}")
async def update_provider(
    provider_id: str,
    data: ProviderUpdate,
    principal: Principal = Depends(require_capability(Capability.MANAGE_PROVIDERS)),
    service: ProviderService = Depends(get_provider_service),
):
    provider = service.update_provider(provider_id, data, principal)
    return envelope(provider_to_response(provider), "Service provider updated successfully")


@router.delete("/{provider_id}")
async def delete_provider(
    provider_id: str,
    principal: Principal = Depends(require_capability(Capability.MANAGE_PROVIDERS)),
    service: ProviderService = Depends(get_provider_service),
):
    """Deactivates the provider; history stays intact"""
    provider = service.deactivate_provider(provider_id, principal)
    return envelope(
        {"providerId": provider.provider_code, "status": provider.status},
        "Service provider deactivated successfully",
    )


@router.put("/{provider_id}/status")
async def update_provider_status(
    provider_id: str,
    data: ProviderStatusUpdate,
    principal: Principal = Depends(require_capability(Capability.MANAGE_PROVIDERS)),
    service: ProviderService = Depends(get_provider_service),
):
    provider = service.update_status(provider_id, data, principal)
    return envelope(provider_to_response(provider), "Provider status updated successfully")


@router.put("/{provider_id}/availability")
async def update_provider_availability(
    provider_id: str,
    data: AvailabilityInput,
    principal: Principal = Depends(get_current_principal),
    service: ProviderService = Depends(get_provider_service),
):
    """Admins, or the provider updating their own schedule"""
    provider = service.update_availability(provider_id, data, principal)
    return envelope(
        provider_to_response(provider, include_private=False).availability,
        "Availability updated successfully",
    )


@router.put("/{provider_id}/verify-documents")
async def verify_provider_documents(
    provider_id: str,
    data: VerifyDocumentsRequest,
    principal: Principal = Depends(require_capability(Capability.MANAGE_PROVIDERS)),
    service: ProviderService = Depends(get_provider_service),
):
    provider = service.verify_document(provider_id, data, principal)
    return envelope(
        {
            "providerId": provider.provider_code,
            "documents": provider.documents,
            "documentsVerified": provider.documents_verified,
            "backgroundVerified": provider.background_verified,
        },
        "Document verification updated",
    )
