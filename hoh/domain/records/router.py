"""Record router - /records/{leads,projects,payments}"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Principal, require_capability
from ...database import get_db
from ...models import Lead, Payment, Project
from ...roles import Capability
from ...shared.responses import envelope, pagination
from .schemas import (
    LeadCreate,
    LeadUpdate,
    PaymentCreate,
    PaymentUpdate,
    ProjectCreate,
    ProjectUpdate,
    lead_to_dict,
    payment_to_dict,
    project_to_dict,
)
from .service import RecordService

router = APIRouter(prefix="/records", tags=["Records"])

require_records = require_capability(Capability.MANAGE_RECORDS)


def get_record_service(db: Session = Depends(get_db)) -> RecordService:
    """Dependency injection for RecordService"""
    return RecordService(db)


# ============================================================================
# LEADS
# ============================================================================


@router.get("/leads")
async def list_leads(
    service_type: Optional[str] = Query(None, alias="serviceType"),
    status: Optional[str] = Query(None),
    lead_type: Optional[str] = Query(None, alias="leadType"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(require_records),
    service: RecordService = Depends(get_record_service),
):
    leads, total = service.list_records(
        Lead,
        principal,
        service_type,
        status=status,
        search=search,
        page=page,
        limit=limit,
        lead_type=lead_type,
    )
    return envelope([lead_to_dict(lead) for lead in leads], pagination=pagination(total, page, limit))


@router.post("/leads", status_code=201)
async def create_lead(
    data: LeadCreate,
    principal: Principal = Depends(require_records),
    service: RecordService = Depends(get_record_service),
):
    return envelope(lead_to_dict(service.create_lead(data, principal)), "Lead created successfully")


@router.get("/leads/{lead_id}")
async def get_lead(
    lead_id: int,
    principal: Principal = Depends(require_records),
    service: RecordService = Depends(get_record_service),
):
    return envelope(lead_to_dict(service.get_record(Lead, lead_id, principal)))


@router.put("/leads/{lead_id}")
async def update_lead(
    lead_id: int,
    data: LeadUpdate,
    principal: Principal = Depends(require_records),
    service: RecordService = Depends(get_record_service),
):
    lead = service.update_lead(lead_id, data, principal)
    return envelope(lead_to_dict(lead), "Lead updated successfully")


# ============================================================================
# PROJECTS
# ============================================================================


@router.get("/projects")
async def list_projects(
    service_type: Optional[str] = Query(None, alias="serviceType"),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(require_records),
    service: RecordService = Depends(get_record_service),
):
    projects, total = service.list_records(
        Project, principal, service_type, status=status, search=search, page=page, limit=limit
    )
    return envelope(
        [project_to_dict(p) for p in projects], pagination=pagination(total, page, limit)
    )


@router.post("/projects", status_code=201)
async def create_project(
    data: ProjectCreate,
    principal: Principal = Depends(require_records),
    service: RecordService = Depends(get_record_service),
):
    project = service.create_project(data, principal)
    return envelope(project_to_dict(project), "Project created successfully")


@router.get("/projects/{project_id}")
async def get_project(
    project_id: int,
    principal: Principal = Depends(require_records),
    service: RecordService = Depends(get_record_service),
):
    return envelope(project_to_dict(service.get_record(Project, project_id, principal)))


@router.put("/projects/{project_id}")
async def update_project(
    project_id: int,
    data: ProjectUpdate,
    principal: Principal = Depends(require_records),
    service: RecordService = Depends(get_record_service),
):
    project = service.update_project(project_id, data, principal)
    return envelope(project_to_dict(project), "Project updated successfully")


# ============================================================================
# PAYMENTS
# ============================================================================


@router.get("/payments")
async def list_payments(
    service_type: Optional[str] = Query(None, alias="serviceType"),
    status: Optional[str] = Query(None),
    project_id: Optional[int] = Query(None, alias="projectId"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(require_records),
    service: RecordService = Depends(get_record_service),
):
    payments, total = service.list_records(
        Payment,
        principal,
        service_type,
        status=status,
        search=search,
        page=page,
        limit=limit,
        project_id=project_id,
    )
    return envelope(
        [payment_to_dict(p) for p in payments], pagination=pagination(total, page, limit)
    )


@router.post("/payments", status_code=201)
async def create_payment(
    data: PaymentCreate,
    principal: Principal = Depends(require_records),
    service: RecordService = Depends(get_record_service),
):
    payment = service.create_payment(data, principal)
    return envelope(payment_to_dict(payment), "Payment created successfully")


@router.get("/payments/{payment_id}")
async def get_payment(
    payment_id: int,
    principal: Principal = Depends(require_records),
    service: RecordService = Depends(get_record_service),
):
    return envelope(payment_to_dict(service.get_record(Payment, payment_id, principal)))


@router.put("/payments/{payment_id}")
async def update_payment(
    payment_id: int,
    data: PaymentUpdate,
    principal: Principal = Depends(require_records),
    service: RecordService = Depends(get_record_service),
):
    payment = service.update_payment(payment_id, data, principal)
    return envelope(payment_to_dict(payment), "Payment updated successfully")
