import asyncio
import unittest
from datetime import datetime
from unittest import mock

from hoh import worker
from hoh.email_service import send_booking_email
from hoh.email_templates import booking_confirmation_template, completion_otp_template
from hoh.models import Provider
from hoh.rate_limiter import check_rate_limit
from hoh.services.notification_service import booking_event, completion_otp_event

from .support import make_booking, make_provider, make_service, reset_database


class MonthlyEarningsResetTests(unittest.TestCase):
    def setUp(self):
        self.db = reset_database()
        self.provider = make_provider(self.db)
        self.provider.current_month_earnings = 2500
        self.provider.total_earned = 9000
        self.db.commit()

    def tearDown(self):
        self.db.close()

    def test_reset_runs_on_the_first(self):
        result = asyncio.run(worker.reset_monthly_earnings_task({}, today=datetime(2026, 4, 1)))

        self.assertEqual(result, {"reset": 1, "skipped": False})
        self.db.expire_all()
        provider = self.db.get(Provider, self.provider.id)
        self.assertEqual(provider.current_month_earnings, 0)
        self.assertEqual(provider.total_earned, 9000)

    def test_reset_skips_other_days(self):
        result = asyncio.run(worker.reset_monthly_earnings_task({}, today=datetime(2026, 4, 2)))

        self.assertTrue(result["skipped"])
        self.db.expire_all()
        self.assertEqual(self.db.get(Provider, self.provider.id).current_month_earnings, 2500)


class NotificationTaskTests(unittest.TestCase):
    def setUp(self):
        self.db = reset_database()
        booking = make_booking(self.db, make_service(self.db))
        self.payload = booking_event("booking_created", booking).to_payload()

    def tearDown(self):
        self.db.close()

    def test_delivers_through_email_service(self):
        with mock.patch.object(worker, "send_booking_email", return_value={"id": "abc"}) as send:
            result = asyncio.run(worker.send_notification_task({"job_id": "j1"}, self.payload))

        send.assert_called_once_with("booking_created", "asha@example.com", self.payload["context"])
        self.assertEqual(result["booking_code"], "OD-BK-000001")

    def test_failure_is_dead_lettered_and_raised(self):
        with mock.patch.object(worker, "send_booking_email", side_effect=RuntimeError("smtp down")):
            with self.assertLogs("hoh.notifications.dead_letter", level="ERROR") as logs:
                with self.assertRaises(RuntimeError):
                    asyncio.run(worker.send_notification_task({"job_id": "j2"}, self.payload))

        self.assertIn("j2", logs.output[0])


class EmailTemplateTests(unittest.TestCase):
    def setUp(self):
        self.db = reset_database()
        self.booking = make_booking(self.db, make_service(self.db))

    def tearDown(self):
        self.db.close()

    def test_confirmation_mentions_booking_and_tracking_link(self):
        mjml = booking_confirmation_template(booking_event("booking_created", self.booking).context)

        self.assertIn("OD-BK-000001", mjml)
        self.assertIn("Deep Cleaning", mjml)
        self.assertIn("track-booking?bookingId=OD-BK-000001", mjml)

    def test_completion_otp_template_shows_code(self):
        self.booking.completion_otp_code = "482913"
        self.booking.completion_otp_generated_at = datetime(2026, 3, 2, 12, 0)
        self.db.commit()

        mjml = completion_otp_template(completion_otp_event(self.booking).context)
        self.assertIn("482913", mjml)

    def test_console_backend_does_not_render(self):
        context = booking_event("booking_created", self.booking).context
        with mock.patch("hoh.email_service.compile_mjml_to_html") as compile_html:
            result = send_booking_email("booking_created", "asha@example.com", context)

        self.assertEqual(result["id"], "console")
        compile_html.assert_not_called()

    def test_unknown_kind(self):
        with self.assertRaises(ValueError):
            send_booking_email("newsletter", "asha@example.com", {})


class RateLimitTests(unittest.TestCase):
    def client(self, count, ttl):
        client = mock.MagicMock()
        client.pipeline.return_value.execute.return_value = [count, ttl]
        return client

    def test_first_hit_opens_window(self):
        client = self.client(1, -1)
        allowed, count, ttl = check_rate_limit("login:1.2.3.4", 10, 900, client)

        self.assertTrue(allowed)
        self.assertEqual(ttl, 900)
        client.expire.assert_called_once_with("login:1.2.3.4", 900)

    def test_over_limit(self):
        client = self.client(11, 300)
        allowed, count, ttl = check_rate_limit("login:1.2.3.4", 10, 900, client)

        self.assertFalse(allowed)
        self.assertEqual((count, ttl), (11, 300))
        client.expire.assert_not_called()


if __name__ == "__main__":
    unittest.main()
