"""Booking router - FastAPI endpoints for booking operations"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import (
    Principal,
    get_current_principal,
    get_current_provider,
    get_optional_principal,
    require_capability,
)
from ...database import get_db
from ...models import Provider
from ...rate_limiter import (
    rate_limit_booking_create,
    rate_limit_booking_otp,
    rate_limit_booking_track,
)
from ...roles import Capability, has_capability
from ...services.notification_service import BookingNotifier, get_notifier
from ...shared.responses import envelope, pagination
from .schemas import (
    AssignProviderRequest,
    BookingCreate,
    BookingUpdate,
    OTPRequest,
    RatingRequest,
    RescheduleRequest,
    StatusUpdateRequest,
    TrackBookingRequest,
    booking_to_response,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def _response(booking, principal: Principal):
    """Internal notes are only shown to booking staff"""
    return booking_to_response(
        booking, include_internal=has_capability(principal, Capability.MANAGE_BOOKINGS)
    )


def _notify(service: BookingService, background_tasks: BackgroundTasks, notifier: BookingNotifier):
    """Hand the operation's events to BackgroundTasks so they run after the response"""
    events = service.pop_events()
    if events:
        background_tasks.add_task(notifier.dispatch_all, events)


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================


@router.post("/create", status_code=201)
async def create_booking(
    data: BookingCreate,
    background_tasks: BackgroundTasks,
    principal: Optional[Principal] = Depends(get_optional_principal),
    service: BookingService = Depends(get_booking_service),
    notifier: BookingNotifier = Depends(get_notifier),
    _: None = Depends(rate_limit_booking_create),
):
    """Create a booking; works for guests and logged-in customers"""
    booking = service.create_booking(data, principal)
    _notify(service, background_tasks, notifier)
    return envelope(
        booking_to_response(booking, include_internal=False),
        "Booking created successfully. Confirmation email sent!",
    )


@router.post("/track")
async def track_booking(
    data: TrackBookingRequest,
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(rate_limit_booking_track),
):
    """Track a booking without logging in, by booking ID and phone number"""
    booking = service.track(data.bookingId, data.phone)
    return envelope(booking_to_response(booking, include_internal=False))


@router.post("/{booking_id}/verify-otp")
async def verify_booking_otp(
    booking_id: str,
    data: OTPRequest,
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(rate_limit_booking_otp),
):
    booking = service.verify_booking_otp(booking_id, data.otp)
    return envelope(
        {"bookingId": booking.booking_code, "otpVerified": booking.otp_verified},
        "OTP verified successfully",
    )


# ============================================================================
# CUSTOMER & ADMIN LISTINGS
# ============================================================================


@router.get("/my-bookings")
async def get_my_bookings(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    account: Principal = Depends(require_capability(Capability.BOOK_SERVICES)),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings placed by the logged-in customer"""
    bookings, total = service.my_bookings(account, status, page, limit)
    return envelope(
        [booking_to_response(b, include_internal=False) for b in bookings],
        pagination=pagination(total, page, limit),
    )


@router.get("")
async def list_bookings(
    service_type: Optional[str] = Query(None, alias="serviceType"),
    status: Optional[str] = Query(None),
    provider_id: Optional[int] = Query(None, alias="serviceProvider"),
    priority: Optional[str] = Query(None),
    from_date: Optional[datetime] = Query(None, alias="fromDate"),
    to_date: Optional[datetime] = Query(None, alias="toDate"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(require_capability(Capability.MANAGE_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    """Admin listing narrowed to the caller's verticals"""
    bookings, total = service.list_bookings(
        principal,
        service_type,
        status=status,
        provider_id=provider_id,
        priority=priority,
        from_date=from_date,
        to_date=to_date,
        search=search,
        page=page,
        limit=limit,
    )
    return envelope(
        [booking_to_response(b) for b in bookings],
        pagination=pagination(total, page, limit),
    )


@router.get("/stats/overview")
async def get_booking_stats(
    service_type: Optional[str] = Query(None, alias="serviceType"),
    from_date: Optional[datetime] = Query(None, alias="fromDate"),
    to_date: Optional[datetime] = Query(None, alias="toDate"),
    principal: Principal = Depends(require_capability(Capability.MANAGE_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    return envelope(service.stats(principal, service_type, from_date, to_date))


# ============================================================================
# SINGLE BOOKING
# ============================================================================


@router.get("/{booking_id}")
async def get_booking(
    booking_id: str,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.get_booking(booking_id, principal)
    return envelope(_response(booking, principal))


@router.put("/{booking_id}")
async def update_booking(
    booking_id: str,
    data: BookingUpdate,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    """Edit allow-listed booking fields (admin)"""
    booking = service.update_booking(booking_id, data, principal)
    return envelope(booking_to_response(booking), "Booking updated successfully")


@router.put("/{booking_id}/status")
async def update_booking_status(
    booking_id: str,
    data: StatusUpdateRequest,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
    notifier: BookingNotifier = Depends(get_notifier),
):
    booking = service.update_status(booking_id, data.status, data.notes, principal)
    _notify(service, background_tasks, notifier)
    return envelope(_response(booking, principal), "Booking status updated successfully")


@router.put("/{booking_id}/assign-provider")
async def assign_provider(
    booking_id: str,
    data: AssignProviderRequest,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
    notifier: BookingNotifier = Depends(get_notifier),
):
    booking = service.assign_provider(booking_id, data.providerId, principal)
    _notify(service, background_tasks, notifier)
    return envelope(
        booking_to_response(booking),
        "Provider assigned successfully. Customer notified via email.",
    )


@router.post("/{booking_id}/reschedule")
async def reschedule_booking(
    booking_id: str,
    data: RescheduleRequest,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
    notifier: BookingNotifier = Depends(get_notifier),
):
    booking = service.reschedule(booking_id, data, principal)
    _notify(service, background_tasks, notifier)
    return envelope(_response(booking, principal), "Booking rescheduled successfully")


@router.post("/{booking_id}/rating")
async def add_rating(
    booking_id: str,
    data: RatingRequest,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.add_rating(booking_id, data, principal)
    return envelope(booking_to_response(booking, include_internal=False), "Rating added successfully")


# ============================================================================
# COMPLETION OTP (assigned provider)
# ============================================================================


@router.post("/{booking_id}/request-completion-otp")
async def request_completion_otp(
    booking_id: str,
    background_tasks: BackgroundTasks,
    provider: Provider = Depends(get_current_provider),
    service: BookingService = Depends(get_booking_service),
    notifier: BookingNotifier = Depends(get_notifier),
):
    booking = service.request_completion_otp(booking_id, provider)
    _notify(service, background_tasks, notifier)
    return envelope(
        {"expiresAt": booking.completion_otp_expires_at},
        "OTP sent to customer email successfully",
    )


@router.post("/{booking_id}/verify-completion-otp")
async def verify_completion_otp(
    booking_id: str,
    data: OTPRequest,
    background_tasks: BackgroundTasks,
    provider: Provider = Depends(get_current_provider),
    service: BookingService = Depends(get_booking_service),
    notifier: BookingNotifier = Depends(get_notifier),
):
    booking = service.verify_completion_otp(booking_id, data.otp, provider)
    _notify(service, background_tasks, notifier)
    return envelope(
        {"bookingId": booking.booking_code, "status": booking.status},
        "Service completed successfully",
    )
