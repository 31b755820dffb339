"""
Booking Notification Service
Turns booking lifecycle events into customer emails without ever failing the
request that produced them.

Events are snapshots taken at transition time, so a job that runs later still
describes the booking as it was when the status changed.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from ..config import COMPLETION_OTP_TTL_MINUTES, NOTIFICATIONS_BACKEND
from ..email_service import send_booking_email

logger = logging.getLogger(__name__)

# Failed deliveries end up here for alerting / manual replay
dead_letter_logger = logging.getLogger("hoh.notifications.dead_letter")

NOTIFICATION_KINDS = (
    "booking_created",
    "provider_assigned",
    "status_updated",
    "completion_otp",
    "booking_completed",
)


@dataclass
class NotificationEvent:
    kind: str
    booking_code: str
    recipient: Optional[str]
    context: dict = field(default_factory=dict)
    # Distinguishes repeated events of the same kind (status value, OTP issue time)
    dedupe_key: str = ""

    @property
    def job_id(self) -> str:
        """Deterministic arq job id; enqueuing the same event twice is a no-op"""
        return f"notify:{self.kind}:{self.booking_code}:{self.dedupe_key}"

    def to_payload(self) -> dict:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: dict) -> "NotificationEvent":
        return cls(**payload)


def _format_date(value: Optional[datetime]) -> Optional[str]:
    return value.strftime("%d %B %Y") if value else None


def booking_event(kind: str, booking, **extra) -> NotificationEvent:
    """Snapshot what the email templates need from a booking"""
    if kind not in NOTIFICATION_KINDS:
        raise ValueError(f"Unknown notification kind: {kind}")

    provider = booking.service_provider
    service = booking.service
    context = {
        "booking_code": booking.booking_code,
        "customer_name": booking.customer_name,
        "customer_phone": booking.customer_phone,
        "service_title": service.title if service else None,
        "scheduled_date": _format_date(booking.scheduled_date),
        "time_slot_start": booking.time_slot_start,
        "time_slot": f"{booking.time_slot_start} - {booking.time_slot_end}",
        "address": ", ".join(
            part for part in (booking.address_line1, booking.city, booking.pincode) if part
        ),
        "status": booking.status,
        "total": float(booking.total or 0),
        "provider_name": provider.full_name if provider else None,
        "provider_phone": provider.phone if provider else None,
        "provider_rating": float(provider.rating_average) if provider and provider.rating_average else None,
    }
    context.update(extra)

    if kind == "status_updated":
        dedupe_key = f"{booking.status}:{len(booking.status_history)}"
    elif kind == "completion_otp":
        generated_at = booking.completion_otp_generated_at
        dedupe_key = generated_at.isoformat() if generated_at else ""
    elif kind == "provider_assigned":
        dedupe_key = str(booking.service_provider_id)
    else:
        dedupe_key = ""

    return NotificationEvent(
        kind=kind,
        booking_code=booking.booking_code,
        recipient=booking.customer_email,
        context=context,
        dedupe_key=dedupe_key,
    )


def completion_otp_event(booking) -> NotificationEvent:
    return booking_event(
        "completion_otp",
        booking,
        otp=booking.completion_otp_code,
        ttl_minutes=COMPLETION_OTP_TTL_MINUTES,
    )


class BookingNotifier:
    """
    Dispatches notification events through the configured backend

    arq:    enqueue send_notification_task on Redis (at most once per job id)
    inline: render and send in this process
    log:    only log the event (tests, local development)
    """

    def __init__(self, backend: str = NOTIFICATIONS_BACKEND):
        self.backend = backend

    async def dispatch(self, event: NotificationEvent) -> bool:
        """Deliver or enqueue one event. Never raises; returns False on failure."""
        if not event.recipient:
            logger.debug(f"⚠️ No recipient for {event.kind} on {event.booking_code}, skipping")
            return False

        try:
            if self.backend == "arq":
                await self._enqueue(event)
            elif self.backend == "inline":
                await asyncio.to_thread(
                    send_booking_email, event.kind, event.recipient, event.context
                )
                logger.info(f"✅ {event.kind} email sent for booking {event.booking_code}")
            else:
                logger.info(
                    f"📨 [{self.backend}] {event.kind} for booking {event.booking_code} -> {event.recipient}"
                )
            return True
        except Exception as e:
            dead_letter_logger.error(
                f"❌ Notification {event.job_id} to {event.recipient} failed: {e}",
                extra={"notification": event.to_payload()},
            )
            return False

    async def dispatch_all(self, events: Iterable[NotificationEvent]) -> None:
        for event in events:
            await self.dispatch(event)

    async def _enqueue(self, event: NotificationEvent) -> None:
        from arq import create_pool

        from ..worker import get_redis_settings

        pool = await create_pool(get_redis_settings())
        try:
            job = await pool.enqueue_job(
                "send_notification_task", event.to_payload(), _job_id=event.job_id
            )
        finally:
            await pool.close()

        if job is None:
            logger.info(f"ℹ️ Notification {event.job_id} already queued, skipping duplicate")
        else:
            logger.info(f"📬 Queued {event.kind} notification for booking {event.booking_code}")


def get_notifier() -> BookingNotifier:
    """FastAPI dependency; tests override it with a recording notifier"""
    return BookingNotifier()
