"""Account service - registration, login and staff provisioning"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import PROVIDER_LOGIN_STATUSES, Principal
from ...errors import AuthenticationError, ForbiddenError, NotFoundError, ValidationError
from ...models import Account, Provider
from ...roles import ROLE_VERTICAL, Role, parse_role, parse_vertical, requires_vertical
from ...security_utils import create_access_token, hash_password, verify_password
from ...sequences import next_code
from ..access.service_type_filter import filter_for
from .repository import AccountRepository
from .schemas import AccountCreate, LoginRequest, RegisterRequest, RoleUpdate

logger = logging.getLogger(__name__)


def resolve_vertical_tags(
    role: Role, service_type: Optional[str], verticals: Optional[list[str]]
) -> tuple[Optional[str], list[str]]:
    """
    Validate the vertical tags for a role and return (service_type, verticals).

    Staff roles carry exactly one home vertical: pinned by the role name for
    vertical admins, otherwise given as service_type. Customers and super
    admins carry none.
    """
    for value in [service_type, *(verticals or [])]:
        if value is not None and parse_vertical(value) is None:
            raise ValidationError(f"Unknown service type: {value}")

    if not requires_vertical(role):
        if service_type or verticals:
            raise ValidationError(f"Role {role.value} cannot be tied to a service type")
        return None, []

    pinned = ROLE_VERTICAL.get(role)
    if pinned is not None:
        if service_type and service_type != pinned.value:
            raise ValidationError(
                f"Role {role.value} is pinned to {pinned.value}, not {service_type}"
            )
        if verticals and set(verticals) != {pinned.value}:
            raise ValidationError(f"Role {role.value} can only access {pinned.value}")
        return pinned.value, [pinned.value]

    if not service_type:
        raise ValidationError(f"Role {role.value} requires a serviceType")

    extra = list(dict.fromkeys(verticals or []))
    if extra and service_type not in extra:
        extra.insert(0, service_type)
    return service_type, extra


class AccountService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = AccountRepository()

    # ========================================================================
    # AUTHENTICATION
    # ========================================================================

    def register_customer(self, data: RegisterRequest) -> tuple[Account, str]:
        if self.repo.get_by_email(self.db, data.email):
            raise ValidationError("An account with this email already exists")

        account = Account(
            full_name=data.fullName.strip(),
            email=data.email,
            phone=data.phone,
            password_hash=hash_password(data.password),
            role=Role.CUSTOMER.value,
            verticals=[],
            status="active",
            customer_id=next_code(self.db, "customer"),
            last_login=datetime.utcnow(),
        )
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)
        logger.info(f"🙋 Customer {account.customer_id} registered")
        return account, create_access_token(account.id, "account")

    def login(self, data: LoginRequest) -> tuple[Account, str]:
        account = self.repo.get_by_email(self.db, data.email)
        if not account or not verify_password(data.password, account.password_hash):
            logger.warning(f"🔒 Failed login for {data.email}")
            raise AuthenticationError("Invalid email or password")
        if account.status != "active":
            raise ForbiddenError("Your account has been deactivated")

        account.last_login = datetime.utcnow()
        self.db.commit()
        return account, create_access_token(account.id, "account")

    def provider_login(self, data: LoginRequest) -> tuple[Provider, str]:
        provider = self.repo.get_provider_by_email(self.db, data.email)
        if not provider or not verify_password(data.password, provider.password_hash):
            logger.warning(f"🔒 Failed provider login for {data.email}")
            raise AuthenticationError("Invalid email or password")
        if provider.status not in PROVIDER_LOGIN_STATUSES:
            raise ForbiddenError(f"Your account is {provider.status}. Please contact support.")

        provider.last_active = datetime.utcnow()
        self.db.commit()
        return provider, create_access_token(provider.id, "provider")

    # ========================================================================
    # PROVISIONING (admin)
    # ========================================================================

    @staticmethod
    def _parse_role(value: str) -> Role:
        role = parse_role(value)
        if role is None:
            raise ValidationError(f"Invalid role: {value}")
        if role == Role.SERVICE_PROVIDER:
            raise ValidationError("Service providers are onboarded through /providers")
        return role

    @staticmethod
    def _ensure_can_grant(principal: Principal, role: Role, service_type: Optional[str]) -> None:
        """Only super admins mint super admins; others stay inside their verticals"""
        if role == Role.SUPER_ADMIN and principal.role != Role.SUPER_ADMIN.value:
            raise ForbiddenError("Only a super admin can grant the super_admin role")
        if service_type:
            filter_for(principal).ensure_allows(service_type)

    def _get(self, account_id: int) -> Account:
        account = self.repo.get_by_id(self.db, account_id)
        if not account:
            raise NotFoundError("Account not found")
        return account

    def list_accounts(self, role: Optional[str], page: int, limit: int):
        return self.repo.list_accounts(self.db, role, page, limit)

    def provision(self, data: AccountCreate, principal: Principal) -> Account:
        role = self._parse_role(data.role)
        service_type, verticals = resolve_vertical_tags(role, data.serviceType, data.verticals)
        self._ensure_can_grant(principal, role, service_type)

        if self.repo.get_by_email(self.db, data.email):
            raise ValidationError("An account with this email already exists")

        account = Account(
            full_name=data.fullName.strip(),
            email=data.email,
            phone=data.phone,
            password_hash=hash_password(data.password),
            role=role.value,
            service_type=service_type,
            verticals=verticals,
            status="active",
            customer_id=next_code(self.db, "customer") if role == Role.CUSTOMER else None,
        )
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)
        logger.info(f"👤 Account {account.email} provisioned as {role.value} ({service_type or 'all'})")
        return account

    def update_role(self, account_id: int, data: RoleUpdate, principal: Principal) -> Account:
        account = self._get(account_id)
        role = self._parse_role(data.role)
        service_type, verticals = resolve_vertical_tags(role, data.serviceType, data.verticals)
        self._ensure_can_grant(principal, role, service_type)
        if account.service_type:
            filter_for(principal).ensure_allows(account.service_type)

        account.role = role.value
        account.service_type = service_type
        account.verticals = verticals
        if role == Role.CUSTOMER and not account.customer_id:
            account.customer_id = next_code(self.db, "customer")

        self.db.commit()
        self.db.refresh(account)
        logger.info(f"🔑 Account {account.email} role -> {role.value}")
        return account

    def deactivate(self, account_id: int, principal: Principal) -> Account:
        """Accounts are never hard-deleted"""
        account = self._get(account_id)
        if account.id == principal.id and isinstance(principal, Account):
            raise ValidationError("You cannot deactivate your own account")
        if account.service_type:
            filter_for(principal).ensure_allows(account.service_type)
        elif account.role == Role.SUPER_ADMIN.value and principal.role != Role.SUPER_ADMIN.value:
            raise ForbiddenError("Only a super admin can deactivate a super admin")

        account.status = "inactive"
        self.db.commit()
        self.db.refresh(account)
        logger.info(f"🗑️ Account {account.email} deactivated")
        return account
