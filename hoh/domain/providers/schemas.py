"""Provider domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ...shared.validators import (
    validate_email,
    validate_indian_phone,
    validate_pincode,
    validate_time_slot,
)

ProviderStatus = Literal["pending_verification", "active", "inactive", "suspended", "blacklisted"]
AvailabilityStatus = Literal["available", "busy", "unavailable", "on_leave"]
Weekday = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
DocumentType = Literal["aadharCard", "panCard", "policeClearance"]

REQUIRED_DOCUMENTS = ("aadharCard", "panCard", "policeClearance")


class ProviderAddress(BaseModel):
    street: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str
    country: str = "India"

    @field_validator("pincode")
    @classmethod
    def check_pincode(cls, v):
        return validate_pincode(v)


class ServiceArea(BaseModel):
    city: str
    pincodes: list[str] = []

    @field_validator("pincodes")
    @classmethod
    def check_pincodes(cls, v):
        return [validate_pincode(p) for p in v]


class OfferedService(BaseModel):
    service: int
    specialization: Optional[str] = None
    experience: Optional[int] = Field(default=None, ge=0)


class WorkingHours(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def check_time(cls, v):
        return validate_time_slot(v)


class UnavailableRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_date: datetime = Field(alias="from")
    to_date: datetime = Field(alias="to")
    reason: Optional[str] = None

    @model_validator(mode="after")
    def check_range(self):
        if self.to_date < self.from_date:
            raise ValueError("Unavailable range must end after it starts")
        return self


class AvailabilityInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[AvailabilityStatus] = None
    workingDays: Optional[list[Weekday]] = None
    workingHours: Optional[WorkingHours] = None
    unavailableDates: Optional[list[UnavailableRange]] = None


class ProviderCreate(BaseModel):
    """Schema for onboarding a provider (admin)"""

    fullName: str = Field(min_length=1, max_length=255)
    email: str
    phone: str
    password: str = Field(min_length=8)
    address: ProviderAddress
    serviceAreas: list[ServiceArea] = []
    services: list[OfferedService] = []
    skills: list[str] = []
    experience: int = Field(default=0, ge=0)
    availability: Optional[AvailabilityInput] = None
    documents: Optional[dict] = None
    status: Optional[ProviderStatus] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_indian_phone(v)


class ProviderUpdate(BaseModel):
    """
    Profile edits. Status, availability and document verification have their
    own endpoints; counters, earnings and ratings are never client-writable.
    """

    model_config = ConfigDict(extra="forbid")

    fullName: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = None
    address: Optional[ProviderAddress] = None
    serviceAreas: Optional[list[ServiceArea]] = None
    services: Optional[list[OfferedService]] = None
    skills: Optional[list[str]] = None
    experience: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_indian_phone(v)


class ProviderStatusUpdate(BaseModel):
    status: str


class VerifyDocumentsRequest(BaseModel):
    documentType: DocumentType
    verified: bool = True


class ProviderResponse(BaseModel):
    id: int
    providerId: str
    fullName: str
    email: str
    phone: str
    address: dict
    serviceAreas: list
    services: list[dict]
    skills: list
    experience: int
    availability: dict
    performance: dict
    earnings: dict
    rating: dict
    verified: dict
    documents: Optional[dict] = None
    status: str
    notes: Optional[str] = None
    createdAt: Optional[datetime] = None


def provider_to_response(provider, include_private: bool = True) -> ProviderResponse:
    """API representation of a provider; earnings and documents only for admins"""
    return ProviderResponse(
        id=provider.id,
        providerId=provider.provider_code,
        fullName=provider.full_name,
        email=provider.email,
        phone=provider.phone,
        address={
            "street": provider.street,
            "city": provider.city,
            "state": provider.state,
            "pincode": provider.pincode,
            "country": provider.country,
        },
        serviceAreas=provider.service_areas or [],
        services=[
            {
                "service": offering.service_id,
                "title": offering.service.title if offering.service else None,
                "specialization": offering.specialization,
                "experience": offering.experience_years,
            }
            for offering in provider.services
        ],
        skills=provider.skills or [],
        experience=provider.experience_years or 0,
        availability={
            "status": provider.availability_status,
            "workingDays": provider.working_days or [],
            "workingHours": {
                "start": provider.working_hours_start,
                "end": provider.working_hours_end,
            },
            "unavailableDates": [
                {"from": leave.date_from, "to": leave.date_to, "reason": leave.reason}
                for leave in provider.unavailable_dates
            ],
        },
        performance={
            "totalBookings": provider.total_bookings,
            "completedBookings": provider.completed_bookings,
            "cancelledBookings": provider.cancelled_bookings,
            "completionRate": provider.completion_rate,
        },
        earnings={
            "totalEarned": provider.total_earned,
            "currentMonthEarnings": provider.current_month_earnings,
            "pendingPayment": provider.pending_payment,
        }
        if include_private
        else {},
        rating={"average": provider.rating_average, "count": provider.rating_count},
        verified={
            "email": provider.email_verified,
            "phone": provider.phone_verified,
            "documents": provider.documents_verified,
            "background": provider.background_verified,
        },
        documents=provider.documents if include_private else None,
        status=provider.status,
        notes=provider.notes if include_private else None,
        createdAt=provider.created_at,
    )


def provider_public_summary(provider) -> dict:
    """Shape returned by the public matching endpoint"""
    return {
        "id": provider.id,
        "providerId": provider.provider_code,
        "fullName": provider.full_name,
        "rating": {"average": provider.rating_average, "count": provider.rating_count},
        "experience": provider.experience_years,
        "services": [
            {"service": s.service_id, "specialization": s.specialization} for s in provider.services
        ],
        "availability": {
            "status": provider.availability_status,
            "workingDays": provider.working_days or [],
        },
    }
