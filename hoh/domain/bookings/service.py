"""Booking service - Business logic for booking operations"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import Principal, actor_ref
from ...errors import ForbiddenError, NotFoundError, ValidationError
from ...models import Account, Booking, BookingStatusEvent, Provider, Service
from ...roles import Capability, Role, has_capability
from ...security_utils import generate_numeric_otp
from ...sequences import next_code
from ...services.notification_service import (
    NotificationEvent,
    booking_event,
    completion_otp_event,
)
from ..access.service_type_filter import filter_for
from . import state_machine
from .repository import BookingRepository
from .schemas import (
    BookingCreate,
    BookingUpdate,
    RatingRequest,
    RescheduleRequest,
)
from .state_machine import BookingStatus

logger = logging.getLogger(__name__)

# Statuses an assigned provider may set directly; completion goes through the OTP flow
PROVIDER_STATUS_TARGETS = frozenset(
    {
        BookingStatus.PROVIDER_ON_WAY,
        BookingStatus.IN_PROGRESS,
        BookingStatus.WORK_COMPLETED,
        BookingStatus.CANCELLED_BY_PROVIDER,
        BookingStatus.NO_SHOW_CUSTOMER,
    }
)
CUSTOMER_STATUS_TARGETS = frozenset({BookingStatus.CANCELLED_BY_CUSTOMER})

# camelCase request field -> Booking column
BOOKING_MUTABLE_FIELDS = {
    "priority": "priority",
    "notes": "notes",
    "internalNotes": "internal_notes",
    "serviceDetails": "service_details",
    "alternatePhone": "customer_alternate_phone",
}
PRICING_MUTABLE_FIELDS = {
    "materials": "materials",
    "tax": "tax",
    "discount": "discount",
    "total": "total",
    "advancePaid": "advance_paid",
}
PAYMENT_MUTABLE_FIELDS = {
    "method": "payment_method",
    "status": "payment_status",
    "transactionId": "transaction_id",
}

BOOKABLE_VERTICALS = {"on_demand": "booking:on_demand", "renovation": "booking:renovation"}


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        # Notifications produced by the last operation, handed to BackgroundTasks by the router
        self.events: list[NotificationEvent] = []

    def pop_events(self) -> list[NotificationEvent]:
        events, self.events = self.events, []
        return events

    # ========================================================================
    # LOOKUPS & ACCESS
    # ========================================================================

    def _get(self, ref: str) -> Booking:
        booking = self.repo.get_by_ref(self.db, ref)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    @staticmethod
    def _is_owner(booking: Booking, principal: Principal) -> bool:
        return (
            isinstance(principal, Account)
            and booking.customer_account_id is not None
            and booking.customer_account_id == principal.id
        )

    @staticmethod
    def _is_assigned_provider(booking: Booking, principal: Principal) -> bool:
        return isinstance(principal, Provider) and booking.service_provider_id == principal.id

    @staticmethod
    def _ensure_staff(booking: Booking, principal: Principal, capability: Capability) -> None:
        if not has_capability(principal, capability):
            raise ForbiddenError(f"Permission denied. Required: {capability.value}")
        filter_for(principal).ensure_allows(booking.vertical)

    def _has_staff_access(self, booking: Booking, principal: Principal, capability: Capability) -> bool:
        if not has_capability(principal, capability):
            return False
        self._ensure_staff(booking, principal, capability)
        return True

    def get_booking(self, ref: str, principal: Principal) -> Booking:
        """Admins (within their verticals), the owning customer or the assigned provider"""
        booking = self._get(ref)
        if self._is_owner(booking, principal) or self._is_assigned_provider(booking, principal):
            return booking
        self._ensure_staff(booking, principal, Capability.MANAGE_BOOKINGS)
        return booking

    def list_bookings(self, principal: Principal, service_type: Optional[str] = None, **filters):
        vertical_filter = filter_for(principal, service_type)
        return self.repo.list_bookings(self.db, vertical_filter, **filters)

    def my_bookings(self, account: Account, status: Optional[str], page: int, limit: int):
        return self.repo.list_for_customer(self.db, account.id, status, page, limit)

    def provider_bookings(
        self, provider: Provider, statuses: Optional[list[str]], day: Optional[date], page: int, limit: int
    ):
        return self.repo.list_for_provider(self.db, provider.id, statuses, day, page, limit)

    def stats(
        self,
        principal: Principal,
        service_type: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> dict:
        return self.repo.stats(self.db, filter_for(principal, service_type), from_date, to_date)

    def track(self, booking_code: str, phone: str) -> Booking:
        """Public lookup; both the booking code and the phone must match exactly"""
        booking = self.repo.get_by_code_and_phone(self.db, booking_code.strip(), phone.strip())
        if not booking:
            raise NotFoundError("Booking not found. Please check your Booking ID and phone number.")
        return booking

    # ========================================================================
    # CREATE & UPDATE
    # ========================================================================

    def create_booking(self, data: BookingCreate, principal: Optional[Principal] = None) -> Booking:
        """Create a pending booking with a sequential code and a confirmation OTP"""
        service = self.db.query(Service).filter(Service.id == data.serviceId).first()
        if not service or not service.active:
            raise NotFoundError("Service not found")

        sequence = BOOKABLE_VERTICALS.get(service.vertical)
        if sequence is None:
            raise ValidationError(f"Service vertical {service.vertical} does not accept bookings")

        pricing = data.pricing
        total = pricing.total if pricing.total is not None else pricing.serviceCharge
        if pricing.advancePaid > total:
            raise ValidationError("Advance paid cannot exceed the booking total")

        customer_account_id = None
        if isinstance(principal, Account) and principal.role == Role.CUSTOMER.value:
            customer_account_id = principal.id

        now = datetime.utcnow()
        actor = actor_ref(principal)
        booking = Booking(
            booking_code=next_code(self.db, sequence),
            vertical=service.vertical,
            service=service,
            customer_account_id=customer_account_id,
            customer_name=data.customer.name,
            customer_email=data.customer.email,
            customer_phone=data.customer.phone,
            customer_alternate_phone=data.customer.alternatePhone,
            address_line1=data.serviceAddress.addressLine1,
            address_line2=data.serviceAddress.addressLine2,
            landmark=data.serviceAddress.landmark,
            city=data.serviceAddress.city,
            state=data.serviceAddress.state,
            pincode=data.serviceAddress.pincode,
            latitude=data.serviceAddress.latitude,
            longitude=data.serviceAddress.longitude,
            scheduled_date=data.scheduledDate,
            time_slot_start=data.timeSlot.start,
            time_slot_end=data.timeSlot.end,
            service_details=data.serviceDetails or {},
            service_charge=pricing.serviceCharge,
            materials=pricing.materials,
            tax=pricing.tax,
            discount=pricing.discount,
            coupon_code=pricing.couponCode,
            coupon_discount=pricing.couponDiscount,
            total=total,
            advance_paid=pricing.advancePaid,
            payment_method=data.payment.method if data.payment else "cash",
            payment_status="partial" if 0 < pricing.advancePaid < total else "pending",
            status=BookingStatus.PENDING.value,
            otp_code=generate_numeric_otp(6),
            priority=data.priority or "Medium",
            source=data.source or "Website",
            created_by=actor,
            last_modified_by=actor,
        )
        booking.status_history.append(
            BookingStatusEvent(
                status=BookingStatus.PENDING.value,
                timestamp=now,
                updated_by=actor,
                notes="Booking created",
            )
        )
        service.total_bookings = (service.total_bookings or 0) + 1

        self.repo.create(self.db, booking)
        state_machine.commit(self.db, booking)

        logger.info(f"📥 Booking {booking.booking_code} created for service {service.service_code}")
        self.events.append(booking_event("booking_created", booking))
        return booking

    def update_booking(self, ref: str, data: BookingUpdate, principal: Principal) -> Booking:
        """Apply allow-listed field edits (admins only)"""
        booking = self._get(ref)
        self._ensure_staff(booking, principal, Capability.MANAGE_BOOKINGS)

        updates = data.model_dump(exclude_unset=True)
        pricing = updates.pop("pricing", None) or {}
        payment = updates.pop("payment", None) or {}

        total = pricing.get("total") if pricing.get("total") is not None else booking.total
        advance = (
            pricing.get("advancePaid")
            if pricing.get("advancePaid") is not None
            else booking.advance_paid
        )
        if (advance or 0) > (total or 0):
            raise ValidationError("Advance paid cannot exceed the booking total")

        for field, column in BOOKING_MUTABLE_FIELDS.items():
            if field in updates:
                setattr(booking, column, updates[field])
        for field, column in PRICING_MUTABLE_FIELDS.items():
            if pricing.get(field) is not None:
                setattr(booking, column, pricing[field])
        for field, column in PAYMENT_MUTABLE_FIELDS.items():
            if payment.get(field) is not None:
                setattr(booking, column, payment[field])

        booking.last_modified_by = actor_ref(principal)
        state_machine.commit(self.db, booking)
        logger.info(f"✏️ Booking {booking.booking_code} updated by {booking.last_modified_by}")
        return booking

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def update_status(
        self, ref: str, new_status: str, notes: Optional[str], principal: Principal
    ) -> Booking:
        booking = self._get(ref)
        target = state_machine.parse_status(new_status)

        if not self._has_staff_access(booking, principal, Capability.UPDATE_BOOKING_STATUS):
            if self._is_assigned_provider(booking, principal):
                allowed = PROVIDER_STATUS_TARGETS
            elif self._is_owner(booking, principal):
                allowed = CUSTOMER_STATUS_TARGETS
            else:
                raise ForbiddenError("You are not allowed to update this booking")

            if target not in allowed:
                raise ForbiddenError(f"You cannot set booking status to {target.value}")

        state_machine.transition(self.db, booking, target, actor_ref(principal), note=notes)

        kind = "booking_completed" if target == BookingStatus.COMPLETED else "status_updated"
        self.events.append(booking_event(kind, booking))
        return booking

    def assign_provider(self, ref: str, provider_id: int, principal: Principal) -> Booking:
        booking = self._get(ref)
        self._ensure_staff(booking, principal, Capability.ASSIGN_PROVIDERS)

        state_machine.assign_provider(self.db, booking, provider_id, actor_ref(principal))
        self.events.append(booking_event("provider_assigned", booking))
        return booking

    def reschedule(self, ref: str, data: RescheduleRequest, principal: Principal) -> Booking:
        booking = self._get(ref)

        if self._is_owner(booking, principal):
            rescheduled_by = "customer"
        elif self._is_assigned_provider(booking, principal):
            rescheduled_by = "provider"
        else:
            self._ensure_staff(booking, principal, Capability.MANAGE_BOOKINGS)
            rescheduled_by = "admin"

        state_machine.reschedule(
            self.db,
            booking,
            new_date=data.newDate,
            new_slot_start=data.newTimeSlot.start,
            new_slot_end=data.newTimeSlot.end,
            reason=data.reason,
            rescheduled_by=data.rescheduledBy or rescheduled_by,
            actor=actor_ref(principal),
        )
        self.events.append(booking_event("status_updated", booking))
        return booking

    def add_rating(self, ref: str, data: RatingRequest, principal: Principal) -> Booking:
        booking = self._get(ref)

        if data.type == "customerToProvider":
            permitted = self._is_owner(booking, principal)
        else:
            permitted = self._is_assigned_provider(booking, principal)
        if not permitted:
            self._ensure_staff(booking, principal, Capability.MANAGE_BOOKINGS)

        return state_machine.add_rating(self.db, booking, data.type, data.rating, data.review)

    # ========================================================================
    # OTPs
    # ========================================================================

    def verify_booking_otp(self, ref: str, code: str) -> Booking:
        booking = self._get(ref)
        state_machine.verify_booking_otp(self.db, booking, code.strip())
        logger.info(f"✅ Booking OTP verified for {booking.booking_code}")
        return booking

    def request_completion_otp(self, ref: str, principal: Principal) -> Booking:
        booking = self._get(ref)
        state_machine.request_completion_otp(self.db, booking, principal)
        self.events.append(completion_otp_event(booking))
        return booking

    def verify_completion_otp(self, ref: str, code: str, principal: Principal) -> Booking:
        booking = self._get(ref)
        state_machine.verify_completion_otp(self.db, booking, principal, code.strip())
        self.events.append(booking_event("booking_completed", booking))
        return booking
