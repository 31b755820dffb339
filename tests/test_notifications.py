import asyncio
import logging
import unittest
from datetime import datetime
from unittest import mock

from hoh.domain.bookings import state_machine
from hoh.services import notification_service
from hoh.services.notification_service import (
    BookingNotifier,
    NotificationEvent,
    booking_event,
    completion_otp_event,
)

from .support import make_booking, make_provider, make_service, reset_database


class NotificationEventTests(unittest.TestCase):
    def setUp(self):
        self.db = reset_database()
        self.service = make_service(self.db)
        self.provider = make_provider(self.db, services=[self.service])
        self.booking = make_booking(self.db, self.service)

    def tearDown(self):
        self.db.close()

    def test_snapshot_carries_booking_details(self):
        state_machine.assign_provider(self.db, self.booking, self.provider.id, "account:1")
        event = booking_event("provider_assigned", self.booking)

        self.assertEqual(event.recipient, "asha@example.com")
        self.assertEqual(event.context["provider_name"], self.provider.full_name)
        self.assertEqual(event.context["time_slot"], "10:00 - 12:00")
        self.assertEqual(event.job_id, f"notify:provider_assigned:{self.booking.booking_code}:{self.provider.id}")

    def test_status_events_get_distinct_job_ids(self):
        first = booking_event("status_updated", self.booking)
        state_machine.transition(self.db, self.booking, "confirmed", "account:1")
        second = booking_event("status_updated", self.booking)

        self.assertNotEqual(first.job_id, second.job_id)
        self.assertEqual(second.job_id, booking_event("status_updated", self.booking).job_id)

    def test_completion_otp_event_carries_code(self):
        self.booking.completion_otp_code = "482913"
        self.booking.completion_otp_generated_at = datetime(2026, 3, 2, 12, 0)
        event = completion_otp_event(self.booking)

        self.assertEqual(event.context["otp"], "482913")
        self.assertTrue(event.job_id.endswith("2026-03-02T12:00:00"))

    def test_payload_round_trip(self):
        event = booking_event("booking_created", self.booking)
        self.assertEqual(NotificationEvent.from_payload(event.to_payload()), event)

    def test_unknown_kind_is_rejected(self):
        with self.assertRaises(ValueError):
            booking_event("birthday", self.booking)


class BookingNotifierTests(unittest.TestCase):
    def _event(self, recipient="asha@example.com"):
        return NotificationEvent(
            kind="booking_created", booking_code="OD-BK-000001", recipient=recipient, context={}
        )

    def test_delivery_failure_goes_to_dead_letter_and_is_swallowed(self):
        notifier = BookingNotifier(backend="inline")
        with mock.patch.object(
            notification_service, "send_booking_email", side_effect=RuntimeError("smtp down")
        ):
            with self.assertLogs("hoh.notifications.dead_letter", level=logging.ERROR) as logs:
                delivered = asyncio.run(notifier.dispatch(self._event()))

        self.assertFalse(delivered)
        self.assertIn("smtp down", logs.output[0])

    def test_inline_backend_sends(self):
        notifier = BookingNotifier(backend="inline")
        with mock.patch.object(notification_service, "send_booking_email") as send:
            self.assertTrue(asyncio.run(notifier.dispatch(self._event())))
        send.assert_called_once_with("booking_created", "asha@example.com", {})

    def test_missing_recipient_is_skipped(self):
        notifier = BookingNotifier(backend="inline")
        with mock.patch.object(notification_service, "send_booking_email") as send:
            self.assertFalse(asyncio.run(notifier.dispatch(self._event(recipient=None))))
        send.assert_not_called()

    def test_arq_backend_enqueues_with_deterministic_job_id(self):
        notifier = BookingNotifier(backend="arq")
        pool = mock.AsyncMock()
        event = self._event()
        with mock.patch("arq.create_pool", new=mock.AsyncMock(return_value=pool)):
            self.assertTrue(asyncio.run(notifier.dispatch(event)))

        pool.enqueue_job.assert_awaited_once_with(
            "send_notification_task", event.to_payload(), _job_id=event.job_id
        )
        pool.close.assert_awaited_once()


if __name__ == "__main__":
    unittest.main()
