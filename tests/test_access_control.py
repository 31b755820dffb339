import unittest
from types import SimpleNamespace

from hoh.domain.access.service_type_filter import VerticalFilter, filter_for
from hoh.domain.accounts.service import resolve_vertical_tags
from hoh.errors import AccessDeniedError, ValidationError
from hoh.roles import (
    Capability,
    Role,
    accessible_verticals,
    has_capability,
    requires_vertical,
)


def principal(role, service_type=None, verticals=None):
    return SimpleNamespace(id=1, role=role, service_type=service_type, verticals=verticals or [])


class CapabilityTests(unittest.TestCase):
    def test_capabilities_follow_roles(self):
        self.assertTrue(has_capability(principal("super_admin"), Capability.MANAGE_ACCOUNTS))
        self.assertTrue(has_capability(principal("on_demand_admin"), Capability.ASSIGN_PROVIDERS))
        self.assertFalse(has_capability(principal("on_demand_admin"), Capability.MANAGE_ACCOUNTS))
        self.assertTrue(has_capability(principal("customer"), Capability.BOOK_SERVICES))
        self.assertFalse(has_capability(principal("customer"), Capability.MANAGE_BOOKINGS))
        self.assertTrue(has_capability(principal("service_provider"), Capability.FULFIL_BOOKINGS))

    def test_unknown_role_has_no_capabilities(self):
        self.assertFalse(has_capability(principal("janitor"), Capability.BOOK_SERVICES))

    def test_vertical_requirement(self):
        self.assertFalse(requires_vertical(Role.CUSTOMER))
        self.assertFalse(requires_vertical(Role.SUPER_ADMIN))
        self.assertTrue(requires_vertical(Role.MANAGER))
        self.assertTrue(requires_vertical(Role.INTERIOR_ADMIN))


class AccessibleVerticalTests(unittest.TestCase):
    def test_vertical_admin_is_pinned_by_role(self):
        self.assertEqual(
            accessible_verticals(principal("construction_admin", service_type="interior")),
            ("construction",),
        )

    def test_verticals_list_wins_over_service_type(self):
        account = principal("manager", service_type="interior", verticals=["renovation", "interior"])
        self.assertEqual(accessible_verticals(account), ("renovation", "interior"))

    def test_plain_admin_falls_back_to_service_type(self):
        self.assertEqual(accessible_verticals(principal("admin", service_type="renovation")), ("renovation",))

    def test_customer_has_none(self):
        self.assertEqual(accessible_verticals(principal("customer")), ())


class ServiceTypeFilterTests(unittest.TestCase):
    def test_super_admin_unrestricted_or_pinned(self):
        self.assertTrue(filter_for(principal("super_admin")).unrestricted)
        self.assertTrue(filter_for(principal("super_admin"), "all").unrestricted)
        self.assertEqual(filter_for(principal("super_admin"), "interior").verticals, ("interior",))

    def test_mismatched_vertical_admin_is_denied(self):
        with self.assertRaises(AccessDeniedError):
            filter_for(principal("construction_admin"), "interior")

    def test_matching_request_is_pinned(self):
        result = filter_for(principal("construction_admin"), "construction")
        self.assertEqual(result, VerticalFilter(("construction",)))

    def test_no_request_uses_own_verticals(self):
        account = principal("manager", verticals=["interior", "renovation"])
        self.assertEqual(filter_for(account).verticals, ("interior", "renovation"))

    def test_account_without_vertical_is_denied(self):
        with self.assertRaises(AccessDeniedError):
            filter_for(principal("customer"))

    def test_unknown_vertical_is_a_validation_error(self):
        with self.assertRaises(ValidationError):
            filter_for(principal("super_admin"), "gardening")

    def test_ensure_allows(self):
        pinned = VerticalFilter(("on_demand",))
        pinned.ensure_allows("on_demand")
        with self.assertRaises(AccessDeniedError):
            pinned.ensure_allows("interior")


class VerticalTagTests(unittest.TestCase):
    def test_staff_role_requires_service_type(self):
        with self.assertRaises(ValidationError):
            resolve_vertical_tags(Role.MANAGER, None, None)
        self.assertEqual(resolve_vertical_tags(Role.MANAGER, "interior", None), ("interior", []))

    def test_vertical_admin_takes_vertical_from_role(self):
        self.assertEqual(
            resolve_vertical_tags(Role.RENOVATION_ADMIN, None, None), ("renovation", ["renovation"])
        )
        with self.assertRaises(ValidationError):
            resolve_vertical_tags(Role.RENOVATION_ADMIN, "interior", None)

    def test_customer_and_super_admin_carry_no_vertical(self):
        self.assertEqual(resolve_vertical_tags(Role.CUSTOMER, None, None), (None, []))
        with self.assertRaises(ValidationError):
            resolve_vertical_tags(Role.SUPER_ADMIN, "interior", None)

    def test_extra_verticals_include_home_vertical(self):
        self.assertEqual(
            resolve_vertical_tags(Role.DESIGNER, "interior", ["construction"]),
            ("interior", ["interior", "construction"]),
        )


if __name__ == "__main__":
    unittest.main()
