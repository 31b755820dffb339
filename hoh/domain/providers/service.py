"""Provider service - Business logic for service providers"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...auth import Principal
from ...errors import ConcurrentUpdateError, ForbiddenError, NotFoundError, ValidationError
from ...models import Provider, ProviderUnavailableDate, Service
from ...models import ProviderService as ProviderOffering
from ...roles import Capability, has_capability
from ...security_utils import hash_password
from ...sequences import next_code
from ..access.service_type_filter import filter_for
from ..bookings.service import BookingService
from .matching import find_eligible
from .repository import ProviderRepository
from .schemas import (
    REQUIRED_DOCUMENTS,
    AvailabilityInput,
    OfferedService,
    ProviderCreate,
    ProviderStatusUpdate,
    ProviderUpdate,
    VerifyDocumentsRequest,
)

logger = logging.getLogger(__name__)

PROVIDER_STATUSES = ("pending_verification", "active", "inactive", "suspended", "blacklisted")
PROVIDER_VERTICAL = "on_demand"
MY_BOOKINGS_LIMIT = 20


class ProviderService:
    """Service layer for provider onboarding, verification and matching"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProviderRepository()

    def _get(self, ref: str) -> Provider:
        provider = self.repo.get_by_ref(self.db, ref)
        if not provider:
            raise NotFoundError("Service provider not found")
        return provider

    def _save(self, provider: Provider) -> Provider:
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning(f"⚠️ Concurrent update detected on provider {provider.provider_code}")
            raise ConcurrentUpdateError() from None
        self.db.refresh(provider)
        return provider

    @staticmethod
    def _ensure_scope(principal: Principal) -> None:
        """Provider administration needs the capability and the on-demand vertical"""
        if not has_capability(principal, Capability.MANAGE_PROVIDERS):
            raise ForbiddenError(f"Permission denied. Required: {Capability.MANAGE_PROVIDERS.value}")
        filter_for(principal).ensure_allows(PROVIDER_VERTICAL)

    def _offerings(self, offered: list[OfferedService]) -> list[ProviderOffering]:
        service_ids = {o.service for o in offered}
        found = {
            s.id
            for s in self.db.query(Service.id).filter(Service.id.in_(service_ids)).all()
        } if service_ids else set()
        missing = service_ids - found
        if missing:
            raise ValidationError(f"Unknown service id(s): {sorted(missing)}")
        return [
            ProviderOffering(
                service_id=o.service,
                specialization=o.specialization,
                experience_years=o.experience,
            )
            for o in offered
        ]

    @staticmethod
    def _apply_availability(provider: Provider, availability: AvailabilityInput) -> None:
        if availability.status is not None:
            provider.availability_status = availability.status
        if availability.workingDays is not None:
            provider.working_days = list(dict.fromkeys(availability.workingDays))
        if availability.workingHours is not None:
            provider.working_hours_start = availability.workingHours.start
            provider.working_hours_end = availability.workingHours.end
        if availability.unavailableDates is not None:
            provider.unavailable_dates = [
                ProviderUnavailableDate(
                    date_from=leave.from_date, date_to=leave.to_date, reason=leave.reason
                )
                for leave in availability.unavailableDates
            ]

    # ========================================================================
    # ADMIN CRUD
    # ========================================================================

    def list_providers(self, principal: Principal, **filters):
        self._ensure_scope(principal)
        status = filters.get("status")
        if status and status not in PROVIDER_STATUSES:
            raise ValidationError(f"Invalid provider status: {status}")
        return self.repo.list_providers(self.db, **filters)

    def get_provider(self, ref: str, principal: Principal) -> Provider:
        self._ensure_scope(principal)
        return self._get(ref)

    def create_provider(self, data: ProviderCreate, principal: Principal) -> Provider:
        self._ensure_scope(principal)
        if self.repo.get_by_email(self.db, data.email):
            raise ValidationError("Service provider with this email already exists")

        provider = Provider(
            provider_code=next_code(self.db, "provider"),
            full_name=data.fullName.strip(),
            email=data.email,
            phone=data.phone,
            password_hash=hash_password(data.password),
            street=data.address.street,
            city=data.address.city,
            state=data.address.state,
            pincode=data.address.pincode,
            country=data.address.country,
            service_areas=[area.model_dump() for area in data.serviceAreas],
            experience_years=data.experience,
            skills=data.skills,
            working_days=[],
            documents=data.documents or {},
            status=data.status or "pending_verification",
        )
        provider.services = self._offerings(data.services)
        if data.availability:
            self._apply_availability(provider, data.availability)

        self.db.add(provider)
        self._save(provider)
        logger.info(f"👷 Provider {provider.provider_code} onboarded ({provider.city})")
        return provider

    def update_provider(self, ref: str, data: ProviderUpdate, principal: Principal) -> Provider:
        self._ensure_scope(principal)
        provider = self._get(ref)
        updates = data.model_dump(exclude_unset=True)

        if data.services is not None:
            in_use = self.repo.open_booking_service_ids(self.db, provider.id)
            dropped = in_use - {o.service for o in data.services}
            if dropped:
                raise ValidationError(
                    f"Service(s) {sorted(dropped)} are still used by open bookings of this provider"
                )

        if "fullName" in updates:
            provider.full_name = data.fullName.strip()
        if "phone" in updates:
            provider.phone = data.phone
        if data.address is not None:
            provider.street = data.address.street
            provider.city = data.address.city
            provider.state = data.address.state
            provider.pincode = data.address.pincode
            provider.country = data.address.country
        if data.serviceAreas is not None:
            provider.service_areas = [area.model_dump() for area in data.serviceAreas]
        if data.services is not None:
            provider.services = self._offerings(data.services)
        if data.skills is not None:
            provider.skills = data.skills
        if data.experience is not None:
            provider.experience_years = data.experience
        if "notes" in updates:
            provider.notes = data.notes

        self._save(provider)
        logger.info(f"✏️ Provider {provider.provider_code} updated")
        return provider

    def deactivate_provider(self, ref: str, principal: Principal) -> Provider:
        """Soft delete; bookings keep their provider reference"""
        self._ensure_scope(principal)
        provider = self._get(ref)
        provider.status = "inactive"
        provider.availability_status = "unavailable"
        self._save(provider)
        logger.info(f"🗑️ Provider {provider.provider_code} deactivated")
        return provider

    def update_status(self, ref: str, data: ProviderStatusUpdate, principal: Principal) -> Provider:
        self._ensure_scope(principal)
        if data.status not in PROVIDER_STATUSES:
            raise ValidationError(
                f"Invalid status. Must be one of: {', '.join(PROVIDER_STATUSES)}"
            )
        provider = self._get(ref)
        provider.status = data.status
        self._save(provider)
        logger.info(f"🔄 Provider {provider.provider_code} status -> {data.status}")
        return provider

    def update_availability(
        self, ref: str, data: AvailabilityInput, principal: Principal
    ) -> Provider:
        """Admins manage any provider in scope; providers manage themselves"""
        provider = self._get(ref)
        if not (isinstance(principal, Provider) and principal.id == provider.id):
            self._ensure_scope(principal)
        self._apply_availability(provider, data)
        self._save(provider)
        return provider

    def verify_document(
        self, ref: str, data: VerifyDocumentsRequest, principal: Principal
    ) -> Provider:
        """Mark one document verified; all three verified flips the provider's flags"""
        self._ensure_scope(principal)
        provider = self._get(ref)

        documents = dict(provider.documents or {})
        entry = dict(documents.get(data.documentType) or {})
        entry["verified"] = data.verified
        entry["verifiedAt"] = datetime.utcnow().isoformat() if data.verified else None
        documents[data.documentType] = entry
        # Reassign so the JSON column is flagged dirty
        provider.documents = documents

        all_verified = all((documents.get(doc) or {}).get("verified") for doc in REQUIRED_DOCUMENTS)
        provider.documents_verified = all_verified
        provider.background_verified = all_verified

        self._save(provider)
        logger.info(
            f"📄 Provider {provider.provider_code} {data.documentType} verified={data.verified}"
        )
        return provider

    def stats(self, principal: Principal) -> dict:
        self._ensure_scope(principal)
        return self.repo.stats(self.db)

    # ========================================================================
    # MATCHING & PROVIDER SELF-SERVICE
    # ========================================================================

    def available_for(
        self,
        service_id: int,
        city: Optional[str] = None,
        pincode: Optional[str] = None,
        day: Optional[date] = None,
    ) -> list[Provider]:
        return find_eligible(self.db, service_id, city=city, pincode=pincode, date=day)

    def my_bookings(
        self,
        provider: Provider,
        status: Optional[str] = None,
        day: Optional[date] = None,
        page: int = 1,
        limit: int = MY_BOOKINGS_LIMIT,
    ):
        """status may be a comma-separated list (confirmed,provider_on_way)"""
        statuses = [s.strip() for s in status.split(",") if s.strip()] if status else None
        return BookingService(self.db).provider_bookings(provider, statuses, day, page, limit)
