"""Service catalogue business logic"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import Principal
from ...errors import NotFoundError
from ...models import Service
from ...roles import Capability, has_capability
from ...sequences import next_code
from ..access.service_type_filter import filter_for
from .repository import ServiceRepository
from .schemas import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)

# camelCase request field -> Service column
SERVICE_MUTABLE_FIELDS = {
    "title": "title",
    "description": "description",
    "category": "category",
    "basePrice": "base_price",
    "estimatedDuration": "estimated_duration",
    "active": "active",
}


class CatalogService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ServiceRepository()

    def list_services(self, principal: Optional[Principal] = None, include_inactive: bool = False, **filters):
        """Inactive services are only listed for catalogue managers"""
        active_only = not (
            include_inactive
            and principal is not None
            and has_capability(principal, Capability.MANAGE_SERVICES)
        )
        return self.repo.list_services(self.db, active_only=active_only, **filters)

    def categories(self) -> list[dict]:
        return self.repo.categories(self.db)

    def get_service(self, ref: str) -> Service:
        service = self.repo.get_by_ref(self.db, ref)
        if not service:
            raise NotFoundError("Service not found")
        return service

    def create_service(self, data: ServiceCreate, principal: Principal) -> Service:
        filter_for(principal).ensure_allows(data.vertical)
        service = Service(
            service_code=next_code(self.db, "service"),
            title=data.title.strip(),
            description=data.description,
            category=data.category.strip(),
            vertical=data.vertical,
            base_price=data.basePrice,
            estimated_duration=data.estimatedDuration,
            active=data.active,
        )
        self.db.add(service)
        self.db.commit()
        self.db.refresh(service)
        logger.info(f"🧰 Service {service.service_code} created: {service.title}")
        return service

    def update_service(self, ref: str, data: ServiceUpdate, principal: Principal) -> Service:
        service = self.get_service(ref)
        filter_for(principal).ensure_allows(service.vertical)

        updates = data.model_dump(exclude_unset=True)
        for field, column in SERVICE_MUTABLE_FIELDS.items():
            if field in updates and updates[field] is not None:
                setattr(service, column, updates[field])

        self.db.commit()
        self.db.refresh(service)
        logger.info(f"✏️ Service {service.service_code} updated")
        return service
