"""Account routers - /auth for everyone, /accounts for account managers"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Principal, get_current_principal, require_capability
from ...database import get_db
from ...models import Provider
from ...rate_limiter import rate_limit_login
from ...roles import Capability, accessible_verticals
from ...shared.responses import envelope, pagination
from .schemas import (
    AccountCreate,
    LoginRequest,
    RegisterRequest,
    RoleUpdate,
    account_to_response,
    provider_identity,
)
from .service import AccountService

auth_router = APIRouter(prefix="/auth", tags=["Authentication"])
router = APIRouter(prefix="/accounts", tags=["Accounts"])


def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    """Dependency injection for AccountService"""
    return AccountService(db)


# ============================================================================
# AUTH
# ============================================================================


@auth_router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    service: AccountService = Depends(get_account_service),
    _: None = Depends(rate_limit_login),
):
    account, token = service.register_customer(data)
    return envelope(
        {"token": token, "user": account_to_response(account)}, "Registration successful"
    )


@auth_router.post("/login")
async def login(
    data: LoginRequest,
    service: AccountService = Depends(get_account_service),
    _: None = Depends(rate_limit_login),
):
    account, token = service.login(data)
    return envelope({"token": token, "user": account_to_response(account)}, "Login successful")


@auth_router.post("/provider/login")
async def provider_login(
    data: LoginRequest,
    service: AccountService = Depends(get_account_service),
    _: None = Depends(rate_limit_login),
):
    provider, token = service.provider_login(data)
    return envelope({"token": token, "provider": provider_identity(provider)}, "Login successful")


@auth_router.get("/me")
async def get_me(principal: Principal = Depends(get_current_principal)):
    if isinstance(principal, Provider):
        return envelope(provider_identity(principal))
    return envelope(
        {
            **account_to_response(principal).model_dump(),
            "accessibleServiceTypes": list(accessible_verticals(principal)),
        }
    )


# ============================================================================
# ACCOUNT MANAGEMENT
# ============================================================================


@router.get("")
async def list_accounts(
    role: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(require_capability(Capability.MANAGE_ACCOUNTS)),
    service: AccountService = Depends(get_account_service),
):
    accounts, total = service.list_accounts(role, page, limit)
    return envelope(
        [account_to_response(a) for a in accounts],
        pagination=pagination(total, page, limit),
    )


@router.post("", status_code=201)
async def create_account(
    data: AccountCreate,
    principal: Principal = Depends(require_capability(Capability.MANAGE_ACCOUNTS)),
    service: AccountService = Depends(get_account_service),
):
    account = service.provision(data, principal)
    return envelope(account_to_response(account), "Account created successfully")


@router.put("/{account_id}/role")
async def update_account_role(
    account_id: int,
    data: RoleUpdate,
    principal: Principal = Depends(require_capability(Capability.MANAGE_ACCOUNTS)),
    service: AccountService = Depends(get_account_service),
):
    account = service.update_role(account_id, data, principal)
    return envelope(account_to_response(account), "Role updated successfully")


@router.delete("/{account_id}")
async def delete_account(
    account_id: int,
    principal: Principal = Depends(require_capability(Capability.MANAGE_ACCOUNTS)),
    service: AccountService = Depends(get_account_service),
):
    account = service.deactivate(account_id, principal)
    return envelope({"id": account.id, "status": account.status}, "Account deactivated")
