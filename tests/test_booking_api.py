import unittest
from datetime import datetime, timedelta
from unittest import mock

from fastapi.testclient import TestClient

from hoh.domain.bookings import state_machine
from hoh.errors import ConcurrentUpdateError
from hoh.main import app
from hoh.models import Booking, Provider
from hoh.services.notification_service import get_notifier

from .support import (
    RecordingNotifier,
    bearer,
    make_account,
    make_booking,
    make_provider,
    make_service,
    reset_database,
)


def booking_payload(service_id, **overrides):
    payload = {
        "serviceId": service_id,
        "customer": {"name": "Asha Rao", "email": "Asha@Example.com", "phone": "+91 91234 56780"},
        "serviceAddress": {
            "addressLine1": "12 MG Road",
            "city": "Bengaluru",
            "state": "Karnataka",
            "pincode": "560001",
        },
        "scheduledDate": "2026-03-02T10:00:00",
        "timeSlot": {"start": "10:00", "end": "12:00"},
        "pricing": {"serviceCharge": 700, "tax": 70, "total": 770, "advancePaid": 0},
    }
    payload.update(overrides)
    return payload


class BookingApiTestCase(unittest.TestCase):
    def setUp(self):
        self.db = reset_database()
        self.notifier = RecordingNotifier()
        app.dependency_overrides[get_notifier] = lambda: self.notifier
        self.client = TestClient(app)

        self.service = make_service(self.db)
        self.admin = make_account(self.db, "super_admin")
        self.provider = make_provider(self.db, services=[self.service])

    def tearDown(self):
        app.dependency_overrides.clear()
        self.db.close()

    def reload(self, model, pk):
        self.db.expire_all()
        return self.db.get(model, pk)


class PublicBookingTests(BookingApiTestCase):
    def test_create_booking_as_guest(self):
        response = self.client.post("/bookings/create", json=booking_payload(self.service.id))

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["success"])
        data = body["data"]
        self.assertEqual(data["bookingId"], "OD-BK-000001")
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["pricing"]["remainingAmount"], 770)
        self.assertEqual(data["customer"]["phone"], "9123456780")
        self.assertEqual(data["customer"]["email"], "asha@example.com")
        self.assertNotIn("otp", data)
        self.assertNotIn("code", data["completionOTP"])
        self.assertEqual(self.notifier.kinds(), ["booking_created"])

    def test_booking_codes_are_sequential(self):
        first = self.client.post("/bookings/create", json=booking_payload(self.service.id))
        second = self.client.post("/bookings/create", json=booking_payload(self.service.id))

        self.assertEqual(first.json()["data"]["bookingId"], "OD-BK-000001")
        self.assertEqual(second.json()["data"]["bookingId"], "OD-BK-000002")

    def test_advance_above_total_is_rejected(self):
        payload = booking_payload(
            self.service.id, pricing={"serviceCharge": 700, "total": 770, "advancePaid": 900}
        )
        response = self.client.post("/bookings/create", json=payload)

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_missing_fields_are_a_400_envelope(self):
        response = self.client.post("/bookings/create", json={"serviceId": self.service.id})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])
        self.assertTrue(response.json()["errors"])

    def test_unknown_service_is_404(self):
        response = self.client.post("/bookings/create", json=booking_payload(9999))
        self.assertEqual(response.status_code, 404)

    def test_track_requires_matching_phone(self):
        booking = make_booking(self.db, self.service)

        found = self.client.post(
            "/bookings/track", json={"bookingId": booking.booking_code, "phone": "09123456780"}
        )
        self.assertEqual(found.status_code, 200)
        self.assertEqual(found.json()["data"]["bookingId"], booking.booking_code)
        self.assertIsNone(found.json()["data"].get("internalNotes"))

        missing = self.client.post(
            "/bookings/track", json={"bookingId": booking.booking_code, "phone": "9000000000"}
        )
        self.assertEqual(missing.status_code, 404)

    def test_verify_booking_otp(self):
        booking = make_booking(self.db, self.service)

        wrong = self.client.post(f"/bookings/{booking.booking_code}/verify-otp", json={"otp": "000000"})
        self.assertEqual(wrong.status_code, 400)

        ok = self.client.post(f"/bookings/{booking.booking_code}/verify-otp", json={"otp": "123456"})
        self.assertEqual(ok.status_code, 200)
        self.assertTrue(ok.json()["data"]["otpVerified"])


class AdminBookingTests(BookingApiTestCase):
    def test_listing_requires_authentication(self):
        self.assertEqual(self.client.get("/bookings").status_code, 401)

    def test_vertical_admin_cannot_request_other_vertical(self):
        construction = make_account(self.db, "construction_admin", service_type="construction")
        response = self.client.get(
            "/bookings", params={"serviceType": "on_demand"}, headers=bearer(construction)
        )

        self.assertEqual(response.status_code, 403)
        self.assertFalse(response.json()["success"])

    def test_listing_is_narrowed_to_the_callers_vertical(self):
        renovation_service = make_service(self.db, title="Wall repair", vertical="renovation")
        make_booking(self.db, self.service)
        make_booking(self.db, renovation_service)
        renovation_admin = make_account(self.db, "renovation_admin")

        response = self.client.get("/bookings", headers=bearer(renovation_admin))
        self.assertEqual(response.status_code, 200)
        codes = [b["bookingId"] for b in response.json()["data"]]
        self.assertEqual(codes, ["REN-BK-000001"])
        self.assertEqual(response.json()["pagination"]["total"], 1)

        everything = self.client.get("/bookings", headers=bearer(self.admin))
        self.assertEqual(everything.json()["pagination"]["total"], 2)

    def test_admin_cannot_open_booking_from_other_vertical(self):
        booking = make_booking(self.db, self.service)
        interior = make_account(self.db, "interior_admin")

        response = self.client.get(f"/bookings/{booking.booking_code}", headers=bearer(interior))
        self.assertEqual(response.status_code, 403)

    def test_update_rejects_unknown_fields(self):
        booking = make_booking(self.db, self.service)
        response = self.client.put(
            f"/bookings/{booking.id}", json={"status": "completed"}, headers=bearer(self.admin)
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.reload(Booking, booking.id).status, "pending")

    def test_update_allow_listed_fields(self):
        booking = make_booking(self.db, self.service)
        response = self.client.put(
            f"/bookings/{booking.id}",
            json={"priority": "High", "internalNotes": "VIP", "pricing": {"advancePaid": 270}},
            headers=bearer(self.admin),
        )

        self.assertEqual(response.status_code, 200)
        stored = self.reload(Booking, booking.id)
        self.assertEqual(stored.priority, "High")
        self.assertEqual(stored.internal_notes, "VIP")
        self.assertEqual(stored.remaining_amount, 500)

    def test_assign_provider_and_reject_ineligible(self):
        booking = make_booking(self.db, self.service)
        plumbing = make_service(self.db, title="Plumbing")
        plumber = make_provider(self.db, services=[plumbing])

        rejected = self.client.put(
            f"/bookings/{booking.id}/assign-provider",
            json={"providerId": plumber.id},
            headers=bearer(self.admin),
        )
        self.assertEqual(rejected.status_code, 400)

        accepted = self.client.put(
            f"/bookings/{booking.id}/assign-provider",
            json={"providerId": self.provider.id},
            headers=bearer(self.admin),
        )
        self.assertEqual(accepted.status_code, 200)
        self.assertEqual(accepted.json()["data"]["status"], "confirmed")
        self.assertEqual(self.notifier.kinds(), ["provider_assigned"])

    def test_stats_overview(self):
        make_booking(self.db, self.service)
        make_booking(self.db, self.service, status="completed")

        response = self.client.get("/bookings/stats/overview", headers=bearer(self.admin))
        data = response.json()["data"]
        self.assertEqual(data["total"], 2)
        self.assertEqual(data["pending"], 1)
        self.assertEqual(data["completed"], 1)
        self.assertEqual(data["revenue"]["totalRevenue"], 770)

    def test_concurrent_status_update_is_a_409_envelope(self):
        booking = make_booking(self.db, self.service)

        with mock.patch.object(state_machine, "commit", side_effect=ConcurrentUpdateError()):
            response = self.client.put(
                f"/bookings/{booking.id}/status",
                json={"status": "confirmed"},
                headers=bearer(self.admin),
            )

        self.assertEqual(response.status_code, 409)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["message"], ConcurrentUpdateError.default_message)
        self.assertEqual(self.notifier.events, [])


class ProviderWorkflowTests(BookingApiTestCase):
    def setUp(self):
        super().setUp()
        self.booking = make_booking(self.db, self.service, status="confirmed", provider=self.provider)
        self.headers = bearer(self.provider)

    def set_status(self, status, headers=None):
        return self.client.put(
            f"/bookings/{self.booking.id}/status",
            json={"status": status},
            headers=headers or self.headers,
        )

    def test_full_completion_flow(self):
        self.assertEqual(self.set_status("provider_on_way").status_code, 200)
        self.assertEqual(self.set_status("in_progress").status_code, 200)
        self.assertEqual(self.set_status("work_completed").status_code, 200)

        requested = self.client.post(
            f"/bookings/{self.booking.id}/request-completion-otp", headers=self.headers
        )
        self.assertEqual(requested.status_code, 200)
        self.assertIn("expiresAt", requested.json()["data"])
        code = self.reload(Booking, self.booking.id).completion_otp_code

        verified = self.client.post(
            f"/bookings/{self.booking.id}/verify-completion-otp",
            json={"otp": code},
            headers=self.headers,
        )
        self.assertEqual(verified.status_code, 200)
        self.assertEqual(verified.json()["data"]["status"], "completed")

        provider = self.reload(Provider, self.provider.id)
        self.assertEqual(provider.completed_bookings, 1)
        self.assertEqual(provider.total_earned, 770)
        self.assertEqual(
            self.notifier.kinds(),
            ["status_updated", "status_updated", "status_updated", "completion_otp", "booking_completed"],
        )

    def test_provider_cannot_complete_directly(self):
        self.set_status("in_progress")
        self.set_status("work_completed")

        response = self.set_status("completed")
        self.assertEqual(response.status_code, 403)

    def test_other_provider_cannot_touch_booking(self):
        stranger = make_provider(self.db, services=[self.service])
        response = self.set_status("in_progress", headers=bearer(stranger))
        self.assertEqual(response.status_code, 403)

    def test_invalid_status_value(self):
        response = self.set_status("teleported")
        self.assertEqual(response.status_code, 400)
        self.assertIn("Invalid status", response.json()["message"])

    def test_provider_sees_own_jobs(self):
        response = self.client.get(
            "/providers/my-bookings", params={"status": "confirmed,in_progress"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual([b["bookingId"] for b in response.json()["data"]], [self.booking.booking_code])


class CustomerBookingTests(BookingApiTestCase):
    def setUp(self):
        super().setUp()
        self.customer = make_account(self.db, "customer", email="asha@example.com")
        self.headers = bearer(self.customer)

    def test_logged_in_booking_is_linked_and_listed(self):
        created = self.client.post(
            "/bookings/create", json=booking_payload(self.service.id), headers=self.headers
        )
        self.assertEqual(created.status_code, 201)

        mine = self.client.get("/bookings/my-bookings", headers=self.headers)
        self.assertEqual(mine.status_code, 200)
        self.assertEqual(len(mine.json()["data"]), 1)

    def test_customer_can_cancel_but_not_confirm(self):
        booking = make_booking(self.db, self.service, customer=self.customer)

        confirm = self.client.put(
            f"/bookings/{booking.id}/status", json={"status": "confirmed"}, headers=self.headers
        )
        self.assertEqual(confirm.status_code, 403)

        cancel = self.client.put(
            f"/bookings/{booking.id}/status",
            json={"status": "cancelled_by_customer", "notes": "No longer needed"},
            headers=self.headers,
        )
        self.assertEqual(cancel.status_code, 200)
        stored = self.reload(Booking, booking.id)
        self.assertEqual(stored.cancelled_by, "customer")
        self.assertEqual(stored.cancellation_reason, "No longer needed")

    def test_customer_rates_completed_booking_once(self):
        booking = make_booking(
            self.db, self.service, status="completed", customer=self.customer, provider=self.provider
        )
        url = f"/bookings/{booking.id}/rating"

        out_of_range = self.client.post(url, json={"type": "customerToProvider", "rating": 7}, headers=self.headers)
        self.assertEqual(out_of_range.status_code, 400)
        self.assertIn("between 1 and 5", out_of_range.json()["message"])
        fractional = self.client.post(url, json={"type": "customerToProvider", "rating": 4.5}, headers=self.headers)
        self.assertEqual(fractional.status_code, 400)
        self.assertIn("whole number between 1 and 5", fractional.json()["message"])

        first = self.client.post(url, json={"type": "customerToProvider", "rating": 5}, headers=self.headers)
        self.assertEqual(first.status_code, 200)
        second = self.client.post(url, json={"type": "customerToProvider", "rating": 4}, headers=self.headers)
        self.assertEqual(second.status_code, 400)

        provider = self.reload(Provider, self.provider.id)
        self.assertEqual(provider.rating_count, 1)
        self.assertEqual(provider.rating_average, 5)

    def test_whole_float_rating_body_is_accepted(self):
        booking = make_booking(
            self.db, self.service, status="completed", customer=self.customer, provider=self.provider
        )
        response = self.client.post(
            f"/bookings/{booking.id}/rating",
            json={"type": "customerToProvider", "rating": 4.0},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.reload(Booking, booking.id).customer_rating, 4)

    def test_customer_reschedule(self):
        booking = make_booking(self.db, self.service, customer=self.customer)
        new_date = (datetime(2026, 3, 2) + timedelta(days=3)).isoformat()

        response = self.client.post(
            f"/bookings/{booking.id}/reschedule",
            json={"newDate": new_date, "newTimeSlot": {"start": "14:00", "end": "16:00"}, "reason": "Busy"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["status"], "rescheduled")
        self.assertEqual(self.reload(Booking, booking.id).reschedule_history[-1].rescheduled_by, "customer")

    def test_customer_cannot_read_someone_elses_booking(self):
        booking = make_booking(self.db, self.service)
        response = self.client.get(f"/bookings/{booking.id}", headers=self.headers)
        self.assertEqual(response.status_code, 403)


if __name__ == "__main__":
    unittest.main()
