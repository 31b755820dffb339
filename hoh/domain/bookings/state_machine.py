"""
Booking lifecycle state machine

All status changes go through transition(), which validates against
ALLOWED_TRANSITIONS, appends exactly one history entry and applies the
provider/service side effects. Each public operation commits once, so the
booking and the counters it touches are written in a single transaction.
Concurrent writers are caught by the version columns on Booking and Provider.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...config import COMPLETION_OTP_TTL_MINUTES
from ...errors import (
    AlreadyRatedError,
    AlreadyVerifiedError,
    ConcurrentUpdateError,
    ForbiddenError,
    InvalidOTPError,
    InvalidStatusError,
    InvalidTransitionError,
    NoOTPRequestedError,
    NotFoundError,
    OTPExpiredError,
    ProviderIneligibleError,
    ValidationError,
)
from ...models import (
    Booking,
    BookingReschedule,
    BookingStatusEvent,
    Provider,
    ProviderReview,
)
from ...security_utils import constant_time_equals, generate_numeric_otp
from ...shared.validators import validate_rating

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROVIDER_ON_WAY = "provider_on_way"
    IN_PROGRESS = "in_progress"
    WORK_COMPLETED = "work_completed"
    COMPLETED = "completed"
    CANCELLED_BY_CUSTOMER = "cancelled_by_customer"
    CANCELLED_BY_PROVIDER = "cancelled_by_provider"
    CANCELLED_BY_ADMIN = "cancelled_by_admin"
    NO_SHOW_CUSTOMER = "no_show_customer"
    NO_SHOW_PROVIDER = "no_show_provider"
    RESCHEDULED = "rescheduled"


S = BookingStatus

CANCELLED_STATUSES = frozenset(
    {S.CANCELLED_BY_CUSTOMER, S.CANCELLED_BY_PROVIDER, S.CANCELLED_BY_ADMIN}
)
NO_SHOW_STATUSES = frozenset({S.NO_SHOW_CUSTOMER, S.NO_SHOW_PROVIDER})
TERMINAL_STATUSES = frozenset({S.COMPLETED}) | CANCELLED_STATUSES | NO_SHOW_STATUSES

# Terminal states have no entry: a completed booking can never be completed twice
ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.RESCHEDULED}) | CANCELLED_STATUSES,
    S.CONFIRMED: frozenset({S.PROVIDER_ON_WAY, S.IN_PROGRESS, S.RESCHEDULED})
    | CANCELLED_STATUSES
    | NO_SHOW_STATUSES,
    S.PROVIDER_ON_WAY: frozenset({S.IN_PROGRESS, S.RESCHEDULED})
    | CANCELLED_STATUSES
    | NO_SHOW_STATUSES,
    S.IN_PROGRESS: frozenset({S.WORK_COMPLETED}) | CANCELLED_STATUSES,
    S.WORK_COMPLETED: frozenset({S.COMPLETED, S.CANCELLED_BY_ADMIN}),
    S.RESCHEDULED: frozenset({S.PENDING, S.CONFIRMED, S.PROVIDER_ON_WAY, S.RESCHEDULED})
    | CANCELLED_STATUSES,
}

# A provider can be (re)assigned until work starts
ASSIGNABLE_STATUSES = frozenset({S.PENDING, S.CONFIRMED, S.RESCHEDULED})

RATING_DIRECTIONS = ("customerToProvider", "providerToCustomer")


def parse_status(value) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        raise InvalidStatusError(f"Invalid status value: {value}") from None


def _ensure_allowed(booking: Booking, new_status: BookingStatus) -> None:
    current = parse_status(booking.status)
    if new_status not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(
            f"Cannot change booking status from {current.value} to {new_status.value}"
        )


def commit(db: Session, booking: Booking) -> Booking:
    """Commit the unit of work; a version mismatch becomes ConcurrentUpdateError"""
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning(f"⚠️ Concurrent update detected on booking {booking.booking_code}")
        raise ConcurrentUpdateError() from None
    db.refresh(booking)
    return booking


def _release_provider(provider: Optional[Provider]) -> None:
    if provider is not None:
        provider.availability_status = "available"


def _duration_minutes(start: datetime, end: datetime) -> int:
    # Half-up rounding of the elapsed minutes
    return int((end - start).total_seconds() / 60 + 0.5)


def _apply_transition(
    booking: Booking,
    new_status: BookingStatus,
    actor: Optional[str],
    note: Optional[str],
    now: datetime,
) -> None:
    """Mutate the booking and related rows for one validated transition"""
    provider = booking.service_provider

    if new_status == S.IN_PROGRESS:
        if booking.work_start_time is None:
            booking.work_start_time = now
        if booking.actual_arrival is None:
            booking.actual_arrival = now

    elif new_status == S.WORK_COMPLETED:
        if booking.work_end_time is None:
            booking.work_end_time = now
        if booking.work_start_time is not None:
            booking.actual_duration = _duration_minutes(
                booking.work_start_time, booking.work_end_time
            )

    elif new_status == S.COMPLETED:
        if provider is not None:
            provider.completed_bookings = (provider.completed_bookings or 0) + 1
            _release_provider(provider)
        if booking.service is not None:
            booking.service.completed_bookings = (booking.service.completed_bookings or 0) + 1
        remaining = (booking.total or 0) - (booking.advance_paid or 0)
        if remaining == 0:
            booking.payment_status = "completed"
            booking.paid_at = booking.paid_at or now

    elif new_status in CANCELLED_STATUSES:
        # cancelled_by_customer -> customer
        booking.cancelled_by = new_status.value.split("_")[2]
        booking.cancelled_at = now
        booking.refund_eligible = True
        if note and not booking.cancellation_reason:
            booking.cancellation_reason = note
        if provider is not None:
            provider.cancelled_bookings = (provider.cancelled_bookings or 0) + 1
            _release_provider(provider)

    elif new_status in NO_SHOW_STATUSES:
        _release_provider(provider)

    booking.status = new_status.value
    booking.last_modified_by = actor
    booking.status_history.append(
        BookingStatusEvent(status=new_status.value, timestamp=now, updated_by=actor, notes=note)
    )


# ============================================================================
# STATUS TRANSITIONS
# ============================================================================


def transition(
    db: Session,
    booking: Booking,
    new_status,
    actor: Optional[str],
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Move a booking to new_status.

    Raises:
        InvalidStatusError: new_status is not a known status (nothing is changed)
        InvalidTransitionError: the table does not allow current -> new_status
        ConcurrentUpdateError: another request updated the booking or provider first
    """
    new_status = parse_status(new_status)
    _ensure_allowed(booking, new_status)

    previous = booking.status
    _apply_transition(booking, new_status, actor, note, now or datetime.utcnow())
    commit(db, booking)

    logger.info(f"🔄 Booking {booking.booking_code}: {previous} -> {new_status.value} by {actor}")
    return booking


def assign_provider(
    db: Session,
    booking: Booking,
    provider_id: int,
    actor: Optional[str],
    now: Optional[datetime] = None,
) -> Booking:
    """
    Attach an eligible provider and confirm the booking.

    The provider must exist, be active and offer the booking's service.
    """
    provider = db.query(Provider).filter(Provider.id == provider_id).first()
    if not provider:
        raise NotFoundError("Provider not found")

    if provider.status != "active":
        raise ProviderIneligibleError("Provider is not active")

    if not provider.offers_service(booking.service_id):
        raise ProviderIneligibleError("Provider does not offer this service")

    current = parse_status(booking.status)
    if current not in ASSIGNABLE_STATUSES:
        raise InvalidTransitionError(
            f"Cannot assign a provider to a booking in status {current.value}"
        )

    previous_provider = booking.service_provider
    if previous_provider is not None and previous_provider.id == provider.id:
        raise InvalidTransitionError(
            f"Provider {provider.provider_code} is already assigned to this booking"
        )

    now = now or datetime.utcnow()
    if previous_provider is not None:
        _release_provider(previous_provider)

    booking.service_provider = provider
    provider.total_bookings = (provider.total_bookings or 0) + 1
    provider.availability_status = "busy"

    if current == S.CONFIRMED:
        # Reassignment keeps the status but is still recorded in the history
        booking.last_modified_by = actor
        booking.status_history.append(
            BookingStatusEvent(
                status=S.CONFIRMED.value,
                timestamp=now,
                updated_by=actor,
                notes=f"Provider reassigned to {provider.provider_code}",
            )
        )
    else:
        _apply_transition(
            booking, S.CONFIRMED, actor, f"Provider {provider.provider_code} assigned", now
        )

    commit(db, booking)
    logger.info(f"👷 Provider {provider.provider_code} assigned to booking {booking.booking_code}")
    return booking


# ============================================================================
# OTPs
# ============================================================================


def _ensure_assigned_provider(booking: Booking, requester, action: str) -> None:
    if not isinstance(requester, Provider) or booking.service_provider_id != requester.id:
        raise ForbiddenError(f"Only the assigned service provider can {action}")


def request_completion_otp(
    db: Session, booking: Booking, requester, now: Optional[datetime] = None
) -> Booking:
    """Issue a fresh 6-digit completion OTP; the booking status is unchanged"""
    _ensure_assigned_provider(booking, requester, "request completion OTP")

    if booking.completion_otp_verified:
        raise AlreadyVerifiedError("Completion OTP has already been verified for this booking")

    if booking.status != S.WORK_COMPLETED.value:
        raise InvalidTransitionError("OTP can only be requested for work_completed bookings")

    now = now or datetime.utcnow()
    booking.completion_otp_code = generate_numeric_otp(6)
    booking.completion_otp_generated_at = now
    booking.completion_otp_expires_at = now + timedelta(minutes=COMPLETION_OTP_TTL_MINUTES)
    booking.completion_otp_verified = False
    booking.completion_otp_verified_at = None

    commit(db, booking)
    logger.info(f"🔐 Completion OTP issued for booking {booking.booking_code}")
    return booking


def verify_completion_otp(
    db: Session,
    booking: Booking,
    requester,
    code: str,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Check the completion OTP and complete the booking.

    Checks run in order: requested, expired, already verified, matches. Success
    applies the completed transition and credits the provider with the total.
    """
    _ensure_assigned_provider(booking, requester, "verify completion OTP")
    now = now or datetime.utcnow()

    if not booking.completion_otp_code:
        raise NoOTPRequestedError()

    if booking.completion_otp_expires_at is None or now > booking.completion_otp_expires_at:
        raise OTPExpiredError()

    if booking.completion_otp_verified:
        raise AlreadyVerifiedError()

    if not constant_time_equals(booking.completion_otp_code, code):
        raise InvalidOTPError()

    _ensure_allowed(booking, S.COMPLETED)

    booking.completion_otp_verified = True
    booking.completion_otp_verified_at = now
    _apply_transition(
        booking,
        S.COMPLETED,
        f"provider:{requester.id}",
        "Booking completed with OTP verification",
        now,
    )

    provider = booking.service_provider
    amount = booking.total or 0
    provider.total_earned = (provider.total_earned or 0) + amount
    provider.current_month_earnings = (provider.current_month_earnings or 0) + amount
    provider.pending_payment = (provider.pending_payment or 0) + amount

    commit(db, booking)
    logger.info(f"✅ Booking {booking.booking_code} completed with OTP verification")
    return booking


def verify_booking_otp(
    db: Session, booking: Booking, code: str, now: Optional[datetime] = None
) -> Booking:
    """Confirm the OTP sent to the customer when the booking was created"""
    if booking.otp_verified:
        raise AlreadyVerifiedError("OTP already verified")

    if not constant_time_equals(booking.otp_code, code):
        raise InvalidOTPError()

    booking.otp_verified = True
    booking.otp_verified_at = now or datetime.utcnow()
    return commit(db, booking)


# ============================================================================
# RATINGS & RESCHEDULING
# ============================================================================


def add_rating(
    db: Session,
    booking: Booking,
    direction: str,
    rating: int,
    review: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Rate a completed booking in one direction.

    Each direction can be rated once; customer ratings feed the provider's
    running average and review list.
    """
    if direction not in RATING_DIRECTIONS:
        raise ValidationError("Invalid rating type")

    try:
        rating = validate_rating(rating)
    except ValueError as e:
        raise ValidationError(str(e)) from None
    if rating is None:
        raise ValidationError("Rating is required")

    if booking.status != S.COMPLETED.value:
        raise InvalidTransitionError("Can only rate completed bookings")

    now = now or datetime.utcnow()

    if direction == "customerToProvider":
        if booking.customer_rating is not None:
            raise AlreadyRatedError("Customer has already rated this booking")
        booking.customer_rating = rating
        booking.customer_review = review
        booking.customer_rated_at = now

        provider = booking.service_provider
        if provider is not None:
            count = provider.rating_count or 0
            provider.rating_average = ((provider.rating_average or 0) * count + rating) / (count + 1)
            provider.rating_count = count + 1
            provider.reviews.append(
                ProviderReview(
                    booking_id=booking.id,
                    customer_name=booking.customer_name,
                    customer_email=booking.customer_email,
                    rating=rating,
                    review=review,
                )
            )
    else:
        if booking.provider_rating is not None:
            raise AlreadyRatedError("Provider has already rated this booking")
        booking.provider_rating = rating
        booking.provider_review = review
        booking.provider_rated_at = now

    commit(db, booking)
    logger.info(f"⭐ Booking {booking.booking_code} rated {rating} ({direction})")
    return booking


def reschedule(
    db: Session,
    booking: Booking,
    new_date: datetime,
    new_slot_start: str,
    new_slot_end: str,
    reason: Optional[str],
    rescheduled_by: Optional[str],
    actor: Optional[str],
    now: Optional[datetime] = None,
) -> Booking:
    """Move the booking to a new date/slot, keeping the previous one in history"""
    _ensure_allowed(booking, S.RESCHEDULED)
    now = now or datetime.utcnow()

    booking.reschedule_history.append(
        BookingReschedule(
            previous_date=booking.scheduled_date,
            previous_slot_start=booking.time_slot_start,
            previous_slot_end=booking.time_slot_end,
            new_date=new_date,
            new_slot_start=new_slot_start,
            new_slot_end=new_slot_end,
            reason=reason,
            rescheduled_by=rescheduled_by,
            rescheduled_at=now,
        )
    )
    booking.scheduled_date = new_date
    booking.time_slot_start = new_slot_start
    booking.time_slot_end = new_slot_end

    _apply_transition(booking, S.RESCHEDULED, actor, reason, now)
    commit(db, booking)

    logger.info(f"📅 Booking {booking.booking_code} rescheduled to {new_date.date()} {new_slot_start}")
    return booking
