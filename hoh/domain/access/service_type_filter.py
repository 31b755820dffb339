"""
Service-type (vertical) access filter

Every list/get of vertical-scoped data goes through filter_for() so a vertical
admin can never read another vertical's records. Asking for a vertical outside
the caller's set is an explicit AccessDeniedError, never an empty result or a
silent substitution of the caller's own vertical.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ...errors import AccessDeniedError, ValidationError
from ...roles import ALL_VERTICALS, Role, accessible_verticals, parse_role

logger = logging.getLogger(__name__)

ALL = "all"


@dataclass(frozen=True)
class VerticalFilter:
    """
    Verticals a query is narrowed to.

    verticals=None means unrestricted (super admin asking for everything).
    """

    verticals: Optional[tuple[str, ...]] = None

    @property
    def unrestricted(self) -> bool:
        return self.verticals is None

    def allows(self, vertical: Optional[str]) -> bool:
        return self.verticals is None or vertical in self.verticals

    def apply(self, query, column):
        """Narrow a SQLAlchemy query on the given vertical column"""
        if self.verticals is None:
            return query
        if len(self.verticals) == 1:
            return query.filter(column == self.verticals[0])
        return query.filter(column.in_(self.verticals))

    def ensure_allows(self, vertical: Optional[str]) -> None:
        if not self.allows(vertical):
            raise AccessDeniedError(f"Access denied to {vertical} records")


def _normalize_requested(requested: Optional[str]) -> Optional[str]:
    if requested is None:
        return None
    requested = requested.strip().lower()
    if not requested or requested == ALL:
        return None
    if requested not in ALL_VERTICALS:
        raise ValidationError(f"Unknown service type: {requested}")
    return requested


def filter_for(principal, requested: Optional[str] = None) -> VerticalFilter:
    """
    Build the vertical filter for a principal and an optional requested vertical.

    Raises:
        ValidationError: requested is not a known vertical
        AccessDeniedError: requested is outside the principal's verticals, or the
            principal has no vertical access at all
    """
    requested = _normalize_requested(requested)
    role = parse_role(getattr(principal, "role", None))

    if role == Role.SUPER_ADMIN:
        if requested is None:
            return VerticalFilter()
        return VerticalFilter((requested,))

    allowed = accessible_verticals(principal)
    if not allowed:
        logger.warning(
            f"🚫 {getattr(principal, 'role', None)} {getattr(principal, 'id', None)} has no vertical access"
        )
        raise AccessDeniedError("Your account is not assigned to any service type")

    if requested is None:
        return VerticalFilter(allowed)

    if requested not in allowed:
        logger.warning(
            f"🚫 {role.value if role else None} {getattr(principal, 'id', None)} "
            f"requested {requested}, allowed {list(allowed)}"
        )
        raise AccessDeniedError(f"You do not have access to {requested} data")

    return VerticalFilter((requested,))
