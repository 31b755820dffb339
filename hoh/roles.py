"""
Role and capability model
Every permission check goes through has_capability() instead of comparing role names
"""

from enum import Enum
from typing import Optional


class Vertical(str, Enum):
    INTERIOR = "interior"
    CONSTRUCTION = "construction"
    RENOVATION = "renovation"
    ON_DEMAND = "on_demand"


class Role(str, Enum):
    CUSTOMER = "customer"
    SUPER_ADMIN = "super_admin"
    INTERIOR_ADMIN = "interior_admin"
    CONSTRUCTION_ADMIN = "construction_admin"
    RENOVATION_ADMIN = "renovation_admin"
    ON_DEMAND_ADMIN = "on_demand_admin"
    ADMIN = "admin"
    MANAGER = "manager"
    DESIGNER = "designer"
    CRM = "crm"
    SERVICE_PROVIDER = "service_provider"


class Capability(str, Enum):
    VIEW_ALL_VERTICALS = "view_all_verticals"
    MANAGE_BOOKINGS = "manage_bookings"
    ASSIGN_PROVIDERS = "assign_providers"
    UPDATE_BOOKING_STATUS = "update_booking_status"
    MANAGE_PROVIDERS = "manage_providers"
    MANAGE_SERVICES = "manage_services"
    MANAGE_ACCOUNTS = "manage_accounts"
    MANAGE_RECORDS = "manage_records"
    FULFIL_BOOKINGS = "fulfil_bookings"
    BOOK_SERVICES = "book_services"


ALL_VERTICALS = tuple(v.value for v in Vertical)

# Vertical admins are pinned to the vertical in their role name
ROLE_VERTICAL = {
    Role.INTERIOR_ADMIN: Vertical.INTERIOR,
    Role.CONSTRUCTION_ADMIN: Vertical.CONSTRUCTION,
    Role.RENOVATION_ADMIN: Vertical.RENOVATION,
    Role.ON_DEMAND_ADMIN: Vertical.ON_DEMAND,
}

_ADMIN_CAPABILITIES = frozenset(
    {
        Capability.MANAGE_BOOKINGS,
        Capability.ASSIGN_PROVIDERS,
        Capability.UPDATE_BOOKING_STATUS,
        Capability.MANAGE_PROVIDERS,
        Capability.MANAGE_SERVICES,
        Capability.MANAGE_RECORDS,
    }
)

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.SUPER_ADMIN: frozenset(Capability) - {Capability.FULFIL_BOOKINGS},
    Role.ADMIN: _ADMIN_CAPABILITIES,
    Role.INTERIOR_ADMIN: _ADMIN_CAPABILITIES,
    Role.CONSTRUCTION_ADMIN: _ADMIN_CAPABILITIES,
    Role.RENOVATION_ADMIN: _ADMIN_CAPABILITIES,
    Role.ON_DEMAND_ADMIN: _ADMIN_CAPABILITIES,
    Role.MANAGER: frozenset(
        {Capability.MANAGE_BOOKINGS, Capability.UPDATE_BOOKING_STATUS, Capability.MANAGE_RECORDS}
    ),
    Role.DESIGNER: frozenset({Capability.MANAGE_RECORDS}),
    Role.CRM: frozenset({Capability.MANAGE_RECORDS}),
    Role.SERVICE_PROVIDER: frozenset({Capability.FULFIL_BOOKINGS}),
    Role.CUSTOMER: frozenset({Capability.BOOK_SERVICES}),
}


def parse_role(value) -> Optional[Role]:
    try:
        return Role(value)
    except ValueError:
        return None


def parse_vertical(value) -> Optional[Vertical]:
    try:
        return Vertical(value)
    except ValueError:
        return None


def has_capability(principal, capability: Capability) -> bool:
    """Return True when the principal's role grants the capability"""
    role = parse_role(getattr(principal, "role", None))
    if role is None:
        return False
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def requires_vertical(role: Role) -> bool:
    """Staff roles other than super admin must be pinned to a vertical"""
    return role not in (Role.CUSTOMER, Role.SUPER_ADMIN, Role.SERVICE_PROVIDER)


def accessible_verticals(principal) -> tuple[str, ...]:
    """
    Verticals the principal may see.

    Super admins see everything; vertical admins are pinned by role name;
    otherwise the explicit verticals list wins over the single service_type tag.
    """
    role = parse_role(getattr(principal, "role", None))
    if role is None:
        return ()

    if role == Role.SUPER_ADMIN:
        return ALL_VERTICALS

    if role in ROLE_VERTICAL:
        return (ROLE_VERTICAL[role].value,)

    verticals = [v for v in (getattr(principal, "verticals", None) or []) if v in ALL_VERTICALS]
    if verticals:
        return tuple(dict.fromkeys(verticals))

    service_type = getattr(principal, "service_type", None)
    if service_type in ALL_VERTICALS:
        return (service_type,)

    return ()
