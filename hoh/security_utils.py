"""
Security utilities: password hashing, access tokens and one-time codes
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

from jose import JWTError
from jose import jwt as jose_jwt
from passlib.context import CryptContext

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, SECRET_KEY

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        logger.error(f"Password verification error: {e}")
        return False


# ============================================================================
# ACCESS TOKENS
# ============================================================================


def create_access_token(
    subject: str, kind: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed JWT for an account or a provider.

    kind is "account" or "provider" so the token resolves against the right table.
    """
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {"sub": str(subject), "kind": kind, "exp": expire, "iat": datetime.utcnow()}
    return jose_jwt.encode(payload, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict[str, Any]]:
    """Decode and verify a JWT; returns None when invalid or expired"""
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.debug(f"JWT verification failed: {e}")
        return None


# ============================================================================
# ONE-TIME CODES
# ============================================================================


def generate_numeric_otp(digits: int = 6) -> str:
    """Generate a numeric one-time code without a leading zero"""
    lower = 10 ** (digits - 1)
    return str(lower + secrets.randbelow(9 * lower))


def constant_time_equals(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return secrets.compare_digest(str(a), str(b))
