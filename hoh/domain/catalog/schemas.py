"""Service catalogue schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CatalogVertical = Literal["on_demand", "renovation"]


class ServiceCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = Field(min_length=1, max_length=100)
    vertical: CatalogVertical = "on_demand"
    basePrice: float = Field(ge=0)
    estimatedDuration: Optional[int] = Field(default=None, gt=0)
    active: bool = True


class ServiceUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    basePrice: Optional[float] = Field(default=None, ge=0)
    estimatedDuration: Optional[int] = Field(default=None, gt=0)
    active: Optional[bool] = None


class ServiceResponse(BaseModel):
    id: int
    serviceId: str
    title: str
    description: Optional[str] = None
    category: str
    vertical: str
    basePrice: float
    currency: str
    estimatedDuration: Optional[int] = None
    active: bool
    totalBookings: int
    completedBookings: int
    createdAt: Optional[datetime] = None


def service_to_response(service) -> ServiceResponse:
    return ServiceResponse(
        id=service.id,
        serviceId=service.service_code,
        title=service.title,
        description=service.description,
        category=service.category,
        vertical=service.vertical,
        basePrice=service.base_price,
        currency=service.currency or "INR",
        estimatedDuration=service.estimated_duration,
        active=service.active,
        totalBookings=service.total_bookings or 0,
        completedBookings=service.completed_bookings or 0,
        createdAt=service.created_at,
    )
