"""Vertical-scoped record schemas: leads, projects, payments"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.validators import validate_email, validate_indian_phone

ServiceType = Literal["interior", "construction", "renovation", "on_demand"]
LeadStatus = Literal[
    "new",
    "rnr",
    "qualified",
    "lost",
    "non_prospect",
    "not_reachable",
    "low_budget",
    "non_serviceable_area",
    "future_prospect",
]
ProjectStatus = Literal[
    "inquiry",
    "design_done",
    "budget_approved",
    "stage1_fee_paid",
    "material_procurement_done",
    "factory_production_started",
    "factory_production_completed",
    "dispatched",
    "delivered",
    "onsite_execution_started",
    "onsite_execution_completed",
    "handover_move_in",
    "on_hold",
    "cancelled",
]
PaymentStatus = Literal["pending", "partially_paid", "paid", "overdue"]
PaymentMethod = Literal["cash", "bank_transfer", "cheque", "upi", "card", "other"]
Milestone = Literal["advance", "stage_1", "stage_2", "stage_3", "final", "other"]


# ============================================================================
# LEADS
# ============================================================================


class LeadCreate(BaseModel):
    serviceType: ServiceType
    name: str = Field(min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    carpetArea: Optional[float] = Field(default=None, gt=0)
    bhk: Optional[str] = None
    package: Optional[str] = None
    estimatedCost: Optional[float] = Field(default=None, ge=0)
    leadType: Literal["general", "cost_estimate"] = "general"
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_indian_phone(v)


class LeadUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[LeadStatus] = None
    notes: Optional[str] = None
    city: Optional[str] = None
    package: Optional[str] = None
    estimatedCost: Optional[float] = Field(default=None, ge=0)


# ============================================================================
# PROJECTS
# ============================================================================


class ProjectCreate(BaseModel):
    serviceType: ServiceType
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    customerAccountId: Optional[int] = None
    projectType: Optional[str] = None
    carpetArea: Optional[float] = Field(default=None, gt=0)
    budgetEstimated: Optional[float] = Field(default=None, ge=0)
    city: Optional[str] = None
    startDate: Optional[datetime] = None
    expectedEndDate: Optional[datetime] = None
    notes: Optional[str] = None


class ProjectUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    budgetEstimated: Optional[float] = Field(default=None, ge=0)
    budgetActual: Optional[float] = Field(default=None, ge=0)
    startDate: Optional[datetime] = None
    expectedEndDate: Optional[datetime] = None
    notes: Optional[str] = None


# ============================================================================
# PAYMENTS
# ============================================================================


class PaymentCreate(BaseModel):
    projectId: int
    amount: float = Field(gt=0)
    dueDate: Optional[datetime] = None
    milestone: Milestone
    paymentMethod: Optional[PaymentMethod] = None
    description: Optional[str] = None
    notes: Optional[str] = None


class PaymentUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: Optional[float] = Field(default=None, gt=0)
    dueDate: Optional[datetime] = None
    status: Optional[PaymentStatus] = None
    paymentMethod: Optional[PaymentMethod] = None
    transactionId: Optional[str] = None
    paidDate: Optional[datetime] = None
    description: Optional[str] = None
    notes: Optional[str] = None


# ============================================================================
# RESPONSES
# ============================================================================


def lead_to_dict(lead) -> dict:
    return {
        "id": lead.id,
        "serviceType": lead.service_type,
        "name": lead.name,
        "email": lead.email,
        "phone": lead.phone,
        "city": lead.city,
        "carpetArea": lead.carpet_area,
        "bhk": lead.bhk,
        "package": lead.package,
        "estimatedCost": lead.estimated_cost,
        "leadType": lead.lead_type,
        "status": lead.status,
        "notes": lead.notes,
        "createdAt": lead.created_at,
    }


def project_to_dict(project) -> dict:
    return {
        "id": project.id,
        "projectId": project.project_code,
        "serviceType": project.service_type,
        "title": project.title,
        "description": project.description,
        "customerAccountId": project.customer_account_id,
        "projectType": project.project_type,
        "carpetArea": project.carpet_area,
        "budget": {"estimated": project.budget_estimated, "actual": project.budget_actual},
        "city": project.city,
        "timeline": {
            "startDate": project.start_date,
            "expectedEndDate": project.expected_end_date,
        },
        "status": project.status,
        "notes": project.notes,
        "createdAt": project.created_at,
    }


def payment_to_dict(payment) -> dict:
    return {
        "id": payment.id,
        "paymentId": payment.payment_code,
        "serviceType": payment.service_type,
        "projectId": payment.project_id,
        "customerAccountId": payment.customer_account_id,
        "amount": payment.amount,
        "dueDate": payment.due_date,
        "paidDate": payment.paid_date,
        "status": payment.status,
        "paymentMethod": payment.payment_method,
        "milestone": payment.milestone,
        "description": payment.description,
        "transactionId": payment.transaction_id,
        "notes": payment.notes,
        "createdAt": payment.created_at,
    }
