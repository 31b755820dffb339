import logging
from typing import Optional, Union

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import Account, Provider
from .roles import Capability, has_capability
from .security_utils import decode_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

Principal = Union[Account, Provider]

# Providers may still log in while their documents are being verified
PROVIDER_LOGIN_STATUSES = ("active", "pending_verification")


def _load_principal(db: Session, payload: dict) -> Optional[Principal]:
    subject = payload.get("sub")
    kind = payload.get("kind")
    if not subject or not str(subject).isdigit():
        return None

    if kind == "provider":
        return db.query(Provider).filter(Provider.id == int(subject)).first()
    return db.query(Account).filter(Account.id == int(subject)).first()


def _check_principal_status(principal: Principal) -> None:
    if isinstance(principal, Provider):
        if principal.status not in PROVIDER_LOGIN_STATUSES:
            raise HTTPException(
                status_code=403,
                detail=f"Your account is {principal.status}. Please contact support.",
            )
    elif principal.status != "active":
        raise HTTPException(status_code=403, detail="Your account has been deactivated")


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Principal:
    """Resolve the bearer token to an Account or a Provider"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authorized to access this route. Please login.",
        )

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    principal = _load_principal(db, payload)
    if not principal:
        logger.warning(f"⚠️ Token subject not found: {payload.get('kind')}:{payload.get('sub')}")
        raise HTTPException(status_code=401, detail="User not found")

    _check_principal_status(principal)
    return principal


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[Principal]:
    """Public routes attach the caller when a valid token is present"""
    if not credentials:
        return None

    payload = decode_access_token(credentials.credentials)
    if not payload:
        return None

    principal = _load_principal(db, payload)
    if principal is None:
        return None
    try:
        _check_principal_status(principal)
    except HTTPException:
        return None
    return principal


async def get_current_provider(
    principal: Principal = Depends(get_current_principal),
) -> Provider:
    if not isinstance(principal, Provider):
        raise HTTPException(
            status_code=403, detail="Access denied. Service provider account required."
        )
    return principal


def require_capability(capability: Capability):
    """
    Create a dependency that only lets through principals holding a capability

    Example usage:
        @router.post("/services")
        async def create_service(admin: Account = Depends(require_capability(Capability.MANAGE_SERVICES))):
            ...
    """

    async def checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not has_capability(principal, capability):
            logger.warning(
                f"🚫 {principal.role} {principal.id} lacks capability {capability.value}"
            )
            raise HTTPException(
                status_code=403,
                detail=f"Permission denied. Required: {capability.value}",
            )
        return principal

    return checker


def actor_ref(principal: Optional[Principal]) -> Optional[str]:
    """Stable reference stored in audit fields (updated_by, last_modified_by)"""
    if principal is None:
        return None
    kind = "provider" if isinstance(principal, Provider) else "account"
    return f"{kind}:{principal.id}"
