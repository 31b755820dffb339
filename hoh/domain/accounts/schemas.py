"""Account schemas - registration, login and staff provisioning"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.validators import validate_email, validate_indian_phone


class RegisterRequest(BaseModel):
    """Public customer signup"""

    fullName: str = Field(min_length=1, max_length=255)
    email: str
    phone: Optional[str] = None
    password: str = Field(min_length=8)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_indian_phone(v)


class LoginRequest(BaseModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class AccountCreate(BaseModel):
    """Admin provisioning of staff (and customer) accounts"""

    fullName: str = Field(min_length=1, max_length=255)
    email: str
    phone: Optional[str] = None
    password: str = Field(min_length=8)
    role: str
    serviceType: Optional[str] = None
    verticals: Optional[list[str]] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_indian_phone(v)


class RoleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: str
    serviceType: Optional[str] = None
    verticals: Optional[list[str]] = None


class AccountResponse(BaseModel):
    id: int
    publicId: str
    fullName: str
    email: str
    phone: Optional[str] = None
    role: str
    serviceType: Optional[str] = None
    verticals: list[str] = []
    status: str
    customerId: Optional[str] = None
    lastLogin: Optional[datetime] = None
    createdAt: Optional[datetime] = None


def account_to_response(account) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        publicId=account.public_id,
        fullName=account.full_name,
        email=account.email,
        phone=account.phone,
        role=account.role,
        serviceType=account.service_type,
        verticals=account.verticals or [],
        status=account.status,
        customerId=account.customer_id,
        lastLogin=account.last_login,
        createdAt=account.created_at,
    )


def provider_identity(provider) -> dict:
    """What a provider sees about itself after login"""
    return {
        "id": provider.id,
        "providerId": provider.provider_code,
        "fullName": provider.full_name,
        "email": provider.email,
        "phone": provider.phone,
        "role": provider.role,
        "status": provider.status,
        "availability": provider.availability_status,
    }
