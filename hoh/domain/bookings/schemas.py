"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ...shared.validators import (
    validate_email,
    validate_indian_phone,
    validate_pincode,
    validate_rating,
    validate_time_slot,
)

PaymentMethod = Literal["cash", "card", "upi", "netbanking", "wallet"]
PaymentStatus = Literal["pending", "partial", "completed", "refunded", "failed"]
Priority = Literal["Low", "Medium", "High", "Urgent"]
Source = Literal["Website", "Mobile App", "Phone", "Walk-in", "Referral", "Other"]


# ============================================================================
# REQUEST MODELS
# ============================================================================


class BookingCustomer(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str
    phone: str
    alternatePhone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone", "alternatePhone")
    @classmethod
    def check_phone(cls, v):
        return validate_indian_phone(v)


class ServiceAddress(BaseModel):
    addressLine1: str = Field(min_length=1)
    addressLine2: Optional[str] = None
    landmark: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("pincode")
    @classmethod
    def check_pincode(cls, v):
        return validate_pincode(v)


class TimeSlot(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def check_time(cls, v):
        return validate_time_slot(v)

    @model_validator(mode="after")
    def check_order(self):
        if self.end <= self.start:
            raise ValueError("Time slot end must be after start")
        return self


class PricingInput(BaseModel):
    serviceCharge: float = Field(ge=0)
    materials: float = Field(default=0, ge=0)
    tax: float = Field(default=0, ge=0)
    discount: float = Field(default=0, ge=0)
    couponCode: Optional[str] = None
    couponDiscount: float = Field(default=0, ge=0)
    total: Optional[float] = Field(default=None, ge=0)
    advancePaid: float = Field(default=0, ge=0)


class PaymentInput(BaseModel):
    method: PaymentMethod = "cash"


class BookingCreate(BaseModel):
    """Schema for creating a booking (public)"""

    serviceId: int
    customer: BookingCustomer
    serviceAddress: ServiceAddress
    scheduledDate: datetime
    timeSlot: TimeSlot
    serviceDetails: Optional[dict] = None
    pricing: PricingInput
    payment: Optional[PaymentInput] = None
    priority: Optional[Priority] = None
    source: Optional[Source] = None


class PricingUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    materials: Optional[float] = Field(default=None, ge=0)
    tax: Optional[float] = Field(default=None, ge=0)
    discount: Optional[float] = Field(default=None, ge=0)
    total: Optional[float] = Field(default=None, ge=0)
    advancePaid: Optional[float] = Field(default=None, ge=0)


class PaymentUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    method: Optional[PaymentMethod] = None
    status: Optional[PaymentStatus] = None
    transactionId: Optional[str] = None


class BookingUpdate(BaseModel):
    """
    Admin edits. Status, provider and OTP fields have their own endpoints;
    anything not listed here is rejected.
    """

    model_config = ConfigDict(extra="forbid")

    priority: Optional[Priority] = None
    notes: Optional[str] = None
    internalNotes: Optional[str] = None
    serviceDetails: Optional[dict] = None
    alternatePhone: Optional[str] = None
    pricing: Optional[PricingUpdate] = None
    payment: Optional[PaymentUpdate] = None

    @field_validator("alternatePhone")
    @classmethod
    def check_phone(cls, v):
        return validate_indian_phone(v)


class StatusUpdateRequest(BaseModel):
    status: str
    notes: Optional[str] = None


class AssignProviderRequest(BaseModel):
    providerId: int


class RescheduleRequest(BaseModel):
    newDate: datetime
    newTimeSlot: TimeSlot
    reason: Optional[str] = None
    rescheduledBy: Optional[Literal["customer", "provider", "admin"]] = None


class RatingRequest(BaseModel):
    type: Literal["customerToProvider", "providerToCustomer"]
    rating: int
    review: Optional[str] = None

    @field_validator("rating", mode="before")
    @classmethod
    def check_rating(cls, v):
        return validate_rating(v)


class TrackBookingRequest(BaseModel):
    bookingId: str = Field(min_length=1)
    phone: str = Field(min_length=1)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_indian_phone(v)


class OTPRequest(BaseModel):
    otp: str = Field(min_length=1)


# ============================================================================
# RESPONSE MODELS
# ============================================================================


class ServiceSummary(BaseModel):
    id: int
    serviceId: str
    title: str
    category: str


class ProviderSummary(BaseModel):
    id: int
    providerId: str
    fullName: str
    phone: str
    rating: float


class StatusHistoryEntry(BaseModel):
    status: str
    timestamp: datetime
    updatedBy: Optional[str] = None
    notes: Optional[str] = None


class RescheduleEntry(BaseModel):
    previousDate: Optional[datetime] = None
    previousTimeSlot: Optional[dict] = None
    newDate: datetime
    newTimeSlot: dict
    reason: Optional[str] = None
    rescheduledBy: Optional[str] = None
    rescheduledAt: Optional[datetime] = None


class BookingResponse(BaseModel):
    id: int
    bookingId: str
    publicId: str
    vertical: str
    status: str
    service: Optional[ServiceSummary] = None
    serviceProvider: Optional[ProviderSummary] = None
    customer: dict
    serviceAddress: dict
    scheduledDate: datetime
    timeSlot: dict
    serviceDetails: Optional[dict] = None
    pricing: dict
    payment: dict
    otpVerified: bool
    completionOTP: dict
    workDuration: dict
    cancellation: Optional[dict] = None
    rating: dict
    statusHistory: list[StatusHistoryEntry] = []
    rescheduleHistory: list[RescheduleEntry] = []
    priority: str
    source: str
    notes: Optional[str] = None
    internalNotes: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


def _rating_entry(rating, review, rated_at) -> Optional[dict]:
    if rating is None:
        return None
    return {"rating": rating, "review": review, "ratedAt": rated_at}


def booking_to_response(booking, include_internal: bool = True) -> BookingResponse:
    """Build the API representation of a booking; OTP codes are never included"""
    service = booking.service
    provider = booking.service_provider

    cancellation = None
    if booking.cancelled_by:
        cancellation = {
            "cancelledBy": booking.cancelled_by,
            "reason": booking.cancellation_reason,
            "cancelledAt": booking.cancelled_at,
            "refundEligible": booking.refund_eligible,
        }

    return BookingResponse(
        id=booking.id,
        bookingId=booking.booking_code,
        publicId=booking.public_id,
        vertical=booking.vertical,
        status=booking.status,
        service=ServiceSummary(
            id=service.id,
            serviceId=service.service_code,
            title=service.title,
            category=service.category,
        )
        if service
        else None,
        serviceProvider=ProviderSummary(
            id=provider.id,
            providerId=provider.provider_code,
            fullName=provider.full_name,
            phone=provider.phone,
            rating=provider.rating_average or 0,
        )
        if provider
        else None,
        customer={
            "name": booking.customer_name,
            "email": booking.customer_email,
            "phone": booking.customer_phone,
            "alternatePhone": booking.customer_alternate_phone,
            "userId": booking.customer_account_id,
        },
        serviceAddress={
            "addressLine1": booking.address_line1,
            "addressLine2": booking.address_line2,
            "landmark": booking.landmark,
            "city": booking.city,
            "state": booking.state,
            "pincode": booking.pincode,
            "latitude": booking.latitude,
            "longitude": booking.longitude,
        },
        scheduledDate=booking.scheduled_date,
        timeSlot={"start": booking.time_slot_start, "end": booking.time_slot_end},
        serviceDetails=booking.service_details,
        pricing={
            "serviceCharge": booking.service_charge,
            "materials": booking.materials,
            "tax": booking.tax,
            "discount": booking.discount,
            "couponCode": booking.coupon_code,
            "couponDiscount": booking.coupon_discount,
            "total": booking.total,
            "advancePaid": booking.advance_paid,
            "remainingAmount": booking.remaining_amount,
        },
        payment={
            "method": booking.payment_method,
            "status": booking.payment_status,
            "transactionId": booking.transaction_id,
            "paidAt": booking.paid_at,
        },
        otpVerified=booking.otp_verified,
        completionOTP={
            "generatedAt": booking.completion_otp_generated_at,
            "expiresAt": booking.completion_otp_expires_at,
            "verified": booking.completion_otp_verified,
            "verifiedAt": booking.completion_otp_verified_at,
        },
        workDuration={
            "estimatedArrival": booking.estimated_arrival,
            "actualArrival": booking.actual_arrival,
            "startTime": booking.work_start_time,
            "endTime": booking.work_end_time,
            "actualDuration": booking.actual_duration,
        },
        cancellation=cancellation,
        rating={
            "customerToProvider": _rating_entry(
                booking.customer_rating, booking.customer_review, booking.customer_rated_at
            ),
            "providerToCustomer": _rating_entry(
                booking.provider_rating, booking.provider_review, booking.provider_rated_at
            ),
        },
        statusHistory=[
            StatusHistoryEntry(
                status=event.status,
                timestamp=event.timestamp,
                updatedBy=event.updated_by,
                notes=event.notes,
            )
            for event in booking.status_history
        ],
        rescheduleHistory=[
            RescheduleEntry(
                previousDate=entry.previous_date,
                previousTimeSlot={
                    "start": entry.previous_slot_start,
                    "end": entry.previous_slot_end,
                },
                newDate=entry.new_date,
                newTimeSlot={"start": entry.new_slot_start, "end": entry.new_slot_end},
                reason=entry.reason,
                rescheduledBy=entry.rescheduled_by,
                rescheduledAt=entry.rescheduled_at,
            )
            for entry in booking.reschedule_history
        ],
        priority=booking.priority,
        source=booking.source,
        notes=booking.notes,
        internalNotes=booking.internal_notes if include_internal else None,
        createdAt=booking.created_at,
        updatedAt=booking.updated_at,
    )
