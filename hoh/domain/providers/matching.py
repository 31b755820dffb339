"""
Provider matching for a service request

Two passes: the database narrows by service, status, availability and city;
pincode coverage and the requested date (working day, leave ranges) are then
checked in memory because they live in JSON columns and child rows.
"""

import logging
from datetime import date as date_type
from datetime import datetime
from typing import Optional, Union

from sqlalchemy.orm import Session, selectinload

from ...models import Provider, ProviderService

logger = logging.getLogger(__name__)


def _as_date(value: Union[date_type, datetime]) -> date_type:
    return value.date() if isinstance(value, datetime) else value


def covers_pincode(provider: Provider, pincode: str) -> bool:
    for area in provider.service_areas or []:
        if pincode in (area.get("pincodes") or []):
            return True
    return False


def is_available_on(provider: Provider, day: Union[date_type, datetime]) -> bool:
    """Provider works on that weekday and has no leave range covering it (inclusive)"""
    day = _as_date(day)
    if day.strftime("%A") not in (provider.working_days or []):
        return False

    for leave in provider.unavailable_dates:
        if _as_date(leave.date_from) <= day <= _as_date(leave.date_to):
            return False
    return True


def find_eligible(
    db: Session,
    service_id: int,
    city: Optional[str] = None,
    pincode: Optional[str] = None,
    date: Optional[Union[date_type, datetime]] = None,
) -> list[Provider]:
    """
    Active, available providers offering service_id.

    Ordered by rating (desc), then experience (desc), then id for a stable order.
    """
    query = (
        db.query(Provider)
        .join(ProviderService, ProviderService.provider_id == Provider.id)
        .filter(
            ProviderService.service_id == service_id,
            Provider.status == "active",
            Provider.availability_status == "available",
        )
        .options(selectinload(Provider.unavailable_dates), selectinload(Provider.services))
    )

    if city:
        query = query.filter(Provider.city.ilike(f"%{city.strip()}%"))

    providers = (
        query.distinct()
        .order_by(
            Provider.rating_average.desc(),
            Provider.experience_years.desc(),
            Provider.id.asc(),
        )
        .all()
    )

    if pincode:
        providers = [p for p in providers if covers_pincode(p, pincode)]

    if date is not None:
        providers = [p for p in providers if is_available_on(p, date)]

    logger.debug(
        f"🔍 Matching service {service_id} city={city} pincode={pincode} date={date}: "
        f"{len(providers)} provider(s)"
    )
    return providers
