import unittest

from fastapi.testclient import TestClient

from hoh.main import app
from hoh.models import Account

from .support import PASSWORD, bearer, make_account, make_provider, reset_database


class AccountsApiTestCase(unittest.TestCase):
    def setUp(self):
        self.db = reset_database()
        self.client = TestClient(app)
        self.admin = make_account(self.db, "super_admin")

    def tearDown(self):
        self.db.close()


class AuthTests(AccountsApiTestCase):
    def register(self, **overrides):
        payload = {
            "fullName": "Meera Iyer",
            "email": "Meera@Example.com",
            "phone": "9988776655",
            "password": "long-enough-password",
        }
        payload.update(overrides)
        return self.client.post("/auth/register", json=payload)

    def test_register_creates_customer_with_token(self):
        response = self.register()

        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertTrue(data["token"])
        self.assertEqual(data["user"]["role"], "customer")
        self.assertEqual(data["user"]["email"], "meera@example.com")
        self.assertEqual(data["user"]["customerId"], "CUST000001")
        self.assertIsNone(data["user"]["serviceType"])

    def test_register_duplicate_email(self):
        self.register()
        response = self.register()
        self.assertEqual(response.status_code, 400)

    def test_register_short_password(self):
        response = self.register(password="short")
        self.assertEqual(response.status_code, 400)

    def test_login_and_me(self):
        response = self.client.post(
            "/auth/login", json={"email": self.admin.email, "password": PASSWORD}
        )
        self.assertEqual(response.status_code, 200)
        token = response.json()["data"]["token"]

        me = self.client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["data"]["role"], "super_admin")
        self.assertEqual(
            sorted(me.json()["data"]["accessibleServiceTypes"]),
            ["construction", "interior", "on_demand", "renovation"],
        )

    def test_login_with_wrong_password(self):
        response = self.client.post(
            "/auth/login", json={"email": self.admin.email, "password": "not-the-password"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid email or password")

    def test_inactive_account_cannot_login(self):
        make_account(self.db, "manager", service_type="interior", status="inactive")
        response = self.client.post(
            "/auth/login",
            json={"email": "manager-interior@example.com", "password": PASSWORD},
        )
        self.assertEqual(response.status_code, 403)

    def test_provider_login(self):
        provider = make_provider(self.db, email="ravi@example.com")
        response = self.client.post(
            "/auth/provider/login", json={"email": "ravi@example.com", "password": PASSWORD}
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["provider"]["providerId"], provider.provider_code)

        me = self.client.get("/auth/me", headers=bearer(provider))
        self.assertEqual(me.json()["data"]["role"], "service_provider")

    def test_suspended_provider_cannot_login(self):
        make_provider(self.db, email="gone@example.com", status="suspended")
        response = self.client.post(
            "/auth/provider/login", json={"email": "gone@example.com", "password": PASSWORD}
        )
        self.assertEqual(response.status_code, 403)

    def test_garbage_token(self):
        response = self.client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()["success"])


class ProvisioningTests(AccountsApiTestCase):
    def provision(self, headers=None, **overrides):
        payload = {
            "fullName": "Staff Member",
            "email": "staff@example.com",
            "password": "long-enough-password",
            "role": "manager",
            "serviceType": "interior",
        }
        payload.update(overrides)
        return self.client.post("/accounts", json=payload, headers=headers or bearer(self.admin))

    def test_staff_account_carries_its_vertical(self):
        response = self.provision()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["data"]["serviceType"], "interior")
        self.assertEqual(response.json()["data"]["verticals"], [])

    def test_staff_account_without_vertical_is_rejected(self):
        response = self.provision(serviceType=None)
        self.assertEqual(response.status_code, 400)
        self.assertIn("requires a serviceType", response.json()["message"])

    def test_customer_cannot_be_tied_to_vertical(self):
        response = self.provision(role="customer")
        self.assertEqual(response.status_code, 400)

    def test_vertical_admin_is_pinned(self):
        response = self.provision(role="renovation_admin", serviceType=None)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["data"]["serviceType"], "renovation")

        conflict = self.provision(
            role="renovation_admin", serviceType="interior", email="other@example.com"
        )
        self.assertEqual(conflict.status_code, 400)

    def test_service_provider_role_is_refused(self):
        response = self.provision(role="service_provider", serviceType=None)
        self.assertEqual(response.status_code, 400)

    def test_only_super_admin_manages_accounts(self):
        manager = make_account(self.db, "on_demand_admin")
        response = self.provision(headers=bearer(manager))
        self.assertEqual(response.status_code, 403)

    def test_role_update_rejects_extra_fields(self):
        staff = make_account(self.db, "designer", service_type="interior")
        response = self.client.put(
            f"/accounts/{staff.id}/role",
            json={"role": "manager", "serviceType": "interior", "status": "inactive"},
            headers=bearer(self.admin),
        )
        self.assertEqual(response.status_code, 400)

    def test_role_update(self):
        staff = make_account(self.db, "designer", service_type="interior")
        response = self.client.put(
            f"/accounts/{staff.id}/role",
            json={"role": "construction_admin"},
            headers=bearer(self.admin),
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["role"], "construction_admin")
        self.assertEqual(response.json()["data"]["serviceType"], "construction")

    def test_deactivate_is_soft(self):
        staff = make_account(self.db, "crm", service_type="construction")
        response = self.client.delete(f"/accounts/{staff.id}", headers=bearer(self.admin))

        self.assertEqual(response.status_code, 200)
        self.db.expire_all()
        self.assertEqual(self.db.get(Account, staff.id).status, "inactive")

        again = self.client.get("/auth/me", headers=bearer(staff))
        self.assertEqual(again.status_code, 403)

    def test_cannot_deactivate_self(self):
        response = self.client.delete(f"/accounts/{self.admin.id}", headers=bearer(self.admin))
        self.assertEqual(response.status_code, 400)

    def test_list_accounts_by_role(self):
        make_account(self.db, "manager", service_type="interior")
        make_account(self.db, "customer")

        response = self.client.get("/accounts", params={"role": "manager"}, headers=bearer(self.admin))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([a["role"] for a in response.json()["data"]], ["manager"])


if __name__ == "__main__":
    unittest.main()
