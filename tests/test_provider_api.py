import unittest

from fastapi.testclient import TestClient

from hoh.main import app
from hoh.models import Provider

from .support import (
    PASSWORD,
    bearer,
    make_account,
    make_booking,
    make_provider,
    make_service,
    reset_database,
)


def provider_payload(service_id, **overrides):
    payload = {
        "fullName": "Ravi Kumar",
        "email": "Ravi@Example.com",
        "phone": "9876501234",
        "password": "long-enough-password",
        "address": {"city": "Bengaluru", "state": "Karnataka", "pincode": "560001"},
        "serviceAreas": [{"city": "Bengaluru", "pincodes": ["560001", "560002"]}],
        "services": [{"service": service_id, "specialization": "Deep clean", "experience": 4}],
        "skills": ["cleaning"],
        "experience": 4,
        "availability": {
            "workingDays": ["Monday", "Tuesday"],
            "workingHours": {"start": "09:00", "end": "18:00"},
        },
    }
    payload.update(overrides)
    return payload


class ProviderApiTestCase(unittest.TestCase):
    def setUp(self):
        self.db = reset_database()
        self.client = TestClient(app)
        self.admin = make_account(self.db, "super_admin")
        self.headers = bearer(self.admin)
        self.service = make_service(self.db)

    def tearDown(self):
        self.db.close()

    def reload(self, provider_id):
        self.db.expire_all()
        return self.db.get(Provider, provider_id)


class OnboardingTests(ProviderApiTestCase):
    def test_create_provider(self):
        response = self.client.post(
            "/providers", json=provider_payload(self.service.id), headers=self.headers
        )

        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertEqual(data["providerId"], "PRO-000001")
        self.assertEqual(data["status"], "pending_verification")
        self.assertEqual(data["email"], "ravi@example.com")
        self.assertEqual(data["services"][0]["title"], "Deep Cleaning")
        self.assertEqual(data["availability"]["workingDays"], ["Monday", "Tuesday"])
        self.assertNotIn("password", str(data).lower())

        login = self.client.post(
            "/auth/provider/login",
            json={"email": "ravi@example.com", "password": "long-enough-password"},
        )
        self.assertEqual(login.status_code, 200)

    def test_duplicate_email(self):
        self.client.post("/providers", json=provider_payload(self.service.id), headers=self.headers)
        response = self.client.post(
            "/providers", json=provider_payload(self.service.id), headers=self.headers
        )
        self.assertEqual(response.status_code, 400)

    def test_unknown_offered_service(self):
        response = self.client.post("/providers", json=provider_payload(999), headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertIn("999", response.json()["message"])

    def test_bad_pincode(self):
        payload = provider_payload(
            self.service.id,
            address={"city": "Bengaluru", "state": "Karnataka", "pincode": "12"},
        )
        response = self.client.post("/providers", json=payload, headers=self.headers)
        self.assertEqual(response.status_code, 400)

    def test_non_on_demand_admin_is_refused(self):
        interior = make_account(self.db, "interior_admin")
        response = self.client.post(
            "/providers", json=provider_payload(self.service.id), headers=bearer(interior)
        )
        self.assertEqual(response.status_code, 403)

    def test_counters_are_not_writable(self):
        provider = make_provider(self.db, services=[self.service])
        response = self.client.put(
            f"/providers/{provider.id}", json={"totalEarned": 1_000_000}, headers=self.headers
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.reload(provider.id).total_earned, 0)


class ProviderManagementTests(ProviderApiTestCase):
    def setUp(self):
        super().setUp()
        self.provider = make_provider(self.db, services=[self.service], status="pending_verification")

    def test_get_by_code(self):
        response = self.client.get(f"/providers/{self.provider.provider_code}", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["id"], self.provider.id)

    def test_update_profile(self):
        response = self.client.put(
            f"/providers/{self.provider.id}",
            json={"skills": ["deep cleaning", "sofa"], "notes": "Prefers mornings"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["skills"], ["deep cleaning", "sofa"])

    def test_services_of_open_bookings_cannot_be_dropped(self):
        plumbing = make_service(self.db, title="Plumbing")
        make_booking(self.db, self.service, status="confirmed", provider=self.provider)
        make_booking(self.db, plumbing, status="completed", provider=self.provider)
        url = f"/providers/{self.provider.id}"

        refused = self.client.put(
            url, json={"services": [{"service": plumbing.id}], "notes": "Plumbing only"}, headers=self.headers
        )
        self.assertEqual(refused.status_code, 400)
        self.assertIn(f"[{self.service.id}]", refused.json()["message"])
        provider = self.reload(self.provider.id)
        self.assertTrue(provider.offers_service(self.service.id))
        self.assertIsNone(provider.notes)

        # Closed bookings do not pin their service
        accepted = self.client.put(
            url, json={"services": [{"service": self.service.id}]}, headers=self.headers
        )
        self.assertEqual(accepted.status_code, 200)
        self.assertFalse(self.reload(self.provider.id).offers_service(plumbing.id))

    def test_status_update_validates_value(self):
        bad = self.client.put(
            f"/providers/{self.provider.id}/status", json={"status": "retired"}, headers=self.headers
        )
        self.assertEqual(bad.status_code, 400)

        good = self.client.put(
            f"/providers/{self.provider.id}/status", json={"status": "active"}, headers=self.headers
        )
        self.assertEqual(good.status_code, 200)
        self.assertEqual(self.reload(self.provider.id).status, "active")

    def test_verify_all_documents(self):
        url = f"/providers/{self.provider.id}/verify-documents"
        for document in ("aadharCard", "panCard"):
            response = self.client.put(url, json={"documentType": document}, headers=self.headers)
            self.assertFalse(response.json()["data"]["documentsVerified"])

        response = self.client.put(url, json={"documentType": "policeClearance"}, headers=self.headers)
        data = response.json()["data"]
        self.assertTrue(data["documentsVerified"])
        self.assertTrue(data["backgroundVerified"])
        self.assertTrue(data["documents"]["panCard"]["verified"])

    def test_unknown_document_type(self):
        response = self.client.put(
            f"/providers/{self.provider.id}/verify-documents",
            json={"documentType": "passport"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)

    def test_delete_deactivates(self):
        response = self.client.delete(f"/providers/{self.provider.id}", headers=self.headers)

        self.assertEqual(response.status_code, 200)
        stored = self.reload(self.provider.id)
        self.assertEqual(stored.status, "inactive")
        self.assertEqual(stored.availability_status, "unavailable")

        login = self.client.post(
            "/auth/provider/login", json={"email": stored.email, "password": PASSWORD}
        )
        self.assertEqual(login.status_code, 403)

    def test_list_and_stats(self):
        make_provider(self.db, services=[self.service], city="Mysuru", rating=4.8)

        listed = self.client.get("/providers", params={"city": "mysu"}, headers=self.headers)
        self.assertEqual(listed.json()["pagination"]["total"], 1)

        bad_filter = self.client.get("/providers", params={"status": "retired"}, headers=self.headers)
        self.assertEqual(bad_filter.status_code, 400)

        stats = self.client.get("/providers/stats", headers=self.headers).json()["data"]
        self.assertEqual(stats["total"], 2)
        self.assertEqual(stats["active"], 1)
        self.assertEqual(stats["pendingVerification"], 1)
        self.assertEqual(stats["topRated"][0]["rating"], 4.8)


class AvailabilityTests(ProviderApiTestCase):
    def setUp(self):
        super().setUp()
        self.provider = make_provider(self.db, services=[self.service])

    def test_provider_updates_own_availability(self):
        response = self.client.put(
            f"/providers/{self.provider.id}/availability",
            json={
                "status": "on_leave",
                "unavailableDates": [
                    {"from": "2026-03-02T00:00:00", "to": "2026-03-04T23:59:59", "reason": "Wedding"}
                ],
            },
            headers=bearer(self.provider),
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["status"], "on_leave")
        self.assertEqual(len(response.json()["data"]["unavailableDates"]), 1)

    def test_reversed_leave_range(self):
        response = self.client.put(
            f"/providers/{self.provider.id}/availability",
            json={"unavailableDates": [{"from": "2026-03-04T00:00:00", "to": "2026-03-02T00:00:00"}]},
            headers=bearer(self.provider),
        )
        self.assertEqual(response.status_code, 400)

    def test_other_provider_is_refused(self):
        other = make_provider(self.db, services=[self.service])
        response = self.client.put(
            f"/providers/{self.provider.id}/availability",
            json={"status": "busy"},
            headers=bearer(other),
        )
        self.assertEqual(response.status_code, 403)

    def test_public_matching(self):
        make_provider(self.db, services=[self.service], pincodes=("110001",), city="Delhi")

        response = self.client.get(
            f"/providers/available/{self.service.id}",
            params={"city": "bengaluru", "pincode": "560001", "date": "2026-03-02"},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["count"], 1)
        self.assertEqual(body["data"][0]["providerId"], self.provider.provider_code)
        self.assertNotIn("email", body["data"][0])

    def test_admin_route_needs_token(self):
        self.assertEqual(self.client.get("/providers").status_code, 401)
        self.assertEqual(
            self.client.get("/providers", headers=bearer(self.provider)).status_code, 403
        )


if __name__ == "__main__":
    unittest.main()
