import unittest

from fastapi.testclient import TestClient

from hoh.main import app

from .support import bearer, make_account, make_service, reset_database


class CatalogApiTests(unittest.TestCase):
    def setUp(self):
        self.db = reset_database()
        self.client = TestClient(app)
        self.admin = make_account(self.db, "super_admin")

    def tearDown(self):
        self.db.close()

    def test_create_service(self):
        response = self.client.post(
            "/services",
            json={"title": "Sofa Cleaning", "category": "Cleaning", "basePrice": 499},
            headers=bearer(self.admin),
        )

        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertEqual(data["serviceId"], "OD-SVC-00001")
        self.assertEqual(data["vertical"], "on_demand")
        self.assertEqual(data["currency"], "INR")

    def test_catalogue_is_limited_to_bookable_verticals(self):
        response = self.client.post(
            "/services",
            json={"title": "Villa", "category": "Build", "basePrice": 1, "vertical": "construction"},
            headers=bearer(self.admin),
        )
        self.assertEqual(response.status_code, 400)

    def test_vertical_admin_cannot_create_outside_vertical(self):
        interior = make_account(self.db, "interior_admin")
        response = self.client.post(
            "/services",
            json={"title": "Sofa Cleaning", "category": "Cleaning", "basePrice": 499},
            headers=bearer(interior),
        )
        self.assertEqual(response.status_code, 403)

    def test_customer_cannot_create(self):
        customer = make_account(self.db, "customer")
        response = self.client.post(
            "/services",
            json={"title": "Sofa Cleaning", "category": "Cleaning", "basePrice": 499},
            headers=bearer(customer),
        )
        self.assertEqual(response.status_code, 403)

    def test_public_listing_hides_inactive_services(self):
        make_service(self.db, title="Deep Cleaning")
        retired = make_service(self.db, title="Carpet Shampoo")
        retired.active = False
        self.db.commit()

        public = self.client.get("/services", params={"includeInactive": "true"})
        self.assertEqual([s["title"] for s in public.json()["data"]], ["Deep Cleaning"])

        managed = self.client.get(
            "/services", params={"includeInactive": "true"}, headers=bearer(self.admin)
        )
        self.assertEqual(managed.json()["pagination"]["total"], 2)

    def test_filters_and_categories(self):
        make_service(self.db, title="Deep Cleaning", category="Cleaning")
        make_service(self.db, title="Tap Repair", category="Plumbing")
        make_service(self.db, title="Kitchen Refit", category="Plumbing", vertical="renovation")

        plumbing = self.client.get("/services", params={"category": "Plumbing", "vertical": "on_demand"})
        self.assertEqual([s["title"] for s in plumbing.json()["data"]], ["Tap Repair"])

        categories = self.client.get("/services/categories").json()["data"]
        self.assertEqual(
            categories, [{"category": "Cleaning", "count": 1}, {"category": "Plumbing", "count": 2}]
        )

    def test_get_by_code_and_update(self):
        service = make_service(self.db)

        fetched = self.client.get(f"/services/{service.service_code}")
        self.assertEqual(fetched.json()["data"]["id"], service.id)

        updated = self.client.put(
            f"/services/{service.id}", json={"basePrice": 899}, headers=bearer(self.admin)
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["data"]["basePrice"], 899)

        counters = self.client.put(
            f"/services/{service.id}", json={"totalBookings": 50}, headers=bearer(self.admin)
        )
        self.assertEqual(counters.status_code, 400)

    def test_unknown_service(self):
        self.assertEqual(self.client.get("/services/OD-SVC-99999").status_code, 404)


if __name__ == "__main__":
    unittest.main()
