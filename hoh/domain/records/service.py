"""Record service - leads, projects and payments behind the access filter"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import Principal, actor_ref
from ...errors import NotFoundError, ValidationError
from ...models import Lead, Payment, Project
from ...sequences import next_code
from ..access.service_type_filter import filter_for
from .repository import RecordRepository
from .schemas import (
    LeadCreate,
    LeadUpdate,
    PaymentCreate,
    PaymentUpdate,
    ProjectCreate,
    ProjectUpdate,
)

logger = logging.getLogger(__name__)

# camelCase request field -> column; anything else is rejected by the schema
LEAD_MUTABLE_FIELDS = {
    "status": "status",
    "notes": "notes",
    "city": "city",
    "package": "package",
    "estimatedCost": "estimated_cost",
}
PROJECT_MUTABLE_FIELDS = {
    "title": "title",
    "description": "description",
    "status": "status",
    "budgetEstimated": "budget_estimated",
    "budgetActual": "budget_actual",
    "startDate": "start_date",
    "expectedEndDate": "expected_end_date",
    "notes": "notes",
}
PAYMENT_MUTABLE_FIELDS = {
    "amount": "amount",
    "dueDate": "due_date",
    "status": "status",
    "paymentMethod": "payment_method",
    "transactionId": "transaction_id",
    "paidDate": "paid_date",
    "description": "description",
    "notes": "notes",
}

SEARCH_COLUMNS = {
    Lead: ("name", "email", "phone", "city"),
    Project: ("project_code", "title", "city"),
    Payment: ("payment_code", "description", "transaction_id"),
}


class RecordService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = RecordRepository()

    def _get_scoped(self, model, record_id: int, principal: Principal):
        record = self.repo.get(self.db, model, record_id)
        if not record:
            raise NotFoundError(f"{model.__name__} not found")
        filter_for(principal).ensure_allows(record.service_type)
        return record

    def _apply(self, record, updates: dict, allowed: dict, principal: Principal):
        for field, column in allowed.items():
            if field in updates:
                setattr(record, column, updates[field])
        record.last_modified_by = actor_ref(principal)
        self.db.commit()
        self.db.refresh(record)
        return record

    def list_records(
        self, model, principal: Principal, service_type: Optional[str] = None, **filters
    ):
        vertical_filter = filter_for(principal, service_type)
        return self.repo.list_records(
            self.db, model, vertical_filter, SEARCH_COLUMNS.get(model, ()), **filters
        )

    def get_record(self, model, record_id: int, principal: Principal):
        return self._get_scoped(model, record_id, principal)

    # ========================================================================
    # LEADS
    # ========================================================================

    def create_lead(self, data: LeadCreate, principal: Principal) -> Lead:
        filter_for(principal).ensure_allows(data.serviceType)
        lead = Lead(
            service_type=data.serviceType,
            name=data.name.strip(),
            email=data.email,
            phone=data.phone,
            city=data.city,
            carpet_area=data.carpetArea,
            bhk=data.bhk,
            package=data.package,
            estimated_cost=data.estimatedCost,
            lead_type=data.leadType,
            notes=data.notes,
            last_modified_by=actor_ref(principal),
        )
        self.db.add(lead)
        self.db.commit()
        self.db.refresh(lead)
        logger.info(f"📇 Lead {lead.id} created ({lead.service_type})")
        return lead

    def update_lead(self, record_id: int, data: LeadUpdate, principal: Principal) -> Lead:
        lead = self._get_scoped(Lead, record_id, principal)
        return self._apply(lead, data.model_dump(exclude_unset=True), LEAD_MUTABLE_FIELDS, principal)

    # ========================================================================
    # PROJECTS
    # ========================================================================

    def create_project(self, data: ProjectCreate, principal: Principal) -> Project:
        filter_for(principal).ensure_allows(data.serviceType)
        if data.startDate and data.expectedEndDate and data.expectedEndDate < data.startDate:
            raise ValidationError("Expected end date cannot be before the start date")

        project = Project(
            project_code=next_code(self.db, "project"),
            service_type=data.serviceType,
            title=data.title.strip(),
            description=data.description,
            customer_account_id=data.customerAccountId,
            project_type=data.projectType,
            carpet_area=data.carpetArea,
            budget_estimated=data.budgetEstimated,
            city=data.city,
            start_date=data.startDate,
            expected_end_date=data.expectedEndDate,
            notes=data.notes,
            last_modified_by=actor_ref(principal),
        )
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        logger.info(f"🏗️ Project {project.project_code} created ({project.service_type})")
        return project

    def update_project(self, record_id: int, data: ProjectUpdate, principal: Principal) -> Project:
        project = self._get_scoped(Project, record_id, principal)
        return self._apply(
            project, data.model_dump(exclude_unset=True), PROJECT_MUTABLE_FIELDS, principal
        )

    # ========================================================================
    # PAYMENTS
    # ========================================================================

    def create_payment(self, data: PaymentCreate, principal: Principal) -> Payment:
        """A payment inherits its vertical and customer from the project"""
        project = self._get_scoped(Project, data.projectId, principal)
        payment = Payment(
            payment_code=next_code(self.db, "payment"),
            service_type=project.service_type,
            project_id=project.id,
            customer_account_id=project.customer_account_id,
            amount=data.amount,
            due_date=data.dueDate,
            milestone=data.milestone,
            payment_method=data.paymentMethod,
            description=data.description,
            notes=data.notes,
            last_modified_by=actor_ref(principal),
        )
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"💰 Payment {payment.payment_code} created for {project.project_code}")
        return payment

    def update_payment(self, record_id: int, data: PaymentUpdate, principal: Principal) -> Payment:
        payment = self._get_scoped(Payment, record_id, principal)
        updates = data.model_dump(exclude_unset=True)
        if updates.get("status") == "paid" and not updates.get("paidDate") and not payment.paid_date:
            updates["paidDate"] = datetime.utcnow()
        return self._apply(payment, updates, PAYMENT_MUTABLE_FIELDS, principal)
