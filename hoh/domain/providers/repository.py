"""Provider repository - Database operations for service providers"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from ...models import Booking, Provider, ProviderService
from ..bookings.state_machine import TERMINAL_STATUSES


class ProviderRepository:
    """Repository for provider database operations"""

    @staticmethod
    def get_by_ref(db: Session, ref: str) -> Optional[Provider]:
        """Numeric id or provider code (PRO-000001)"""
        query = db.query(Provider).options(
            selectinload(Provider.services).joinedload(ProviderService.service),
            selectinload(Provider.unavailable_dates),
        )
        if ref.isdigit():
            return query.filter(Provider.id == int(ref)).first()
        return query.filter(Provider.provider_code == ref).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[Provider]:
        return db.query(Provider).filter(Provider.email == email.lower()).first()

    @staticmethod
    def open_booking_service_ids(db: Session, provider_id: int) -> set[int]:
        """Services used by the provider's bookings that are not yet closed"""
        rows = (
            db.query(Booking.service_id)
            .filter(
                Booking.service_provider_id == provider_id,
                Booking.service_id.isnot(None),
                Booking.status.notin_([s.value for s in TERMINAL_STATUSES]),
            )
            .distinct()
            .all()
        )
        return {row.service_id for row in rows}

    @staticmethod
    def list_providers(
        db: Session,
        status: Optional[str] = None,
        city: Optional[str] = None,
        service_id: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Provider], int]:
        query = db.query(Provider)

        if status:
            query = query.filter(Provider.status == status)
        if city:
            query = query.filter(Provider.city.ilike(f"%{city.strip()}%"))
        if service_id:
            query = query.filter(
                Provider.services.any(ProviderService.service_id == service_id)
            )
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Provider.full_name.ilike(pattern),
                    Provider.email.ilike(pattern),
                    Provider.phone.ilike(pattern),
                    Provider.provider_code.ilike(pattern),
                )
            )

        total = query.count()
        items = (
            query.options(
                selectinload(Provider.services).joinedload(ProviderService.service),
                selectinload(Provider.unavailable_dates),
            )
            .order_by(Provider.created_at.desc(), Provider.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def stats(db: Session) -> dict:
        by_status = dict(
            db.query(Provider.status, func.count(Provider.id)).group_by(Provider.status).all()
        )
        by_city = (
            db.query(Provider.city, func.count(Provider.id))
            .group_by(Provider.city)
            .order_by(func.count(Provider.id).desc())
            .all()
        )
        top_rated = (
            db.query(Provider)
            .filter(Provider.status == "active")
            .order_by(Provider.rating_average.desc(), Provider.id.asc())
            .limit(5)
            .all()
        )
        top_performing = (
            db.query(Provider)
            .filter(Provider.status == "active")
            .order_by(Provider.completed_bookings.desc(), Provider.id.asc())
            .limit(5)
            .all()
        )

        def summary(p: Provider) -> dict:
            return {
                "id": p.id,
                "providerId": p.provider_code,
                "fullName": p.full_name,
                "rating": p.rating_average,
                "completedBookings": p.completed_bookings,
                "completionRate": p.completion_rate,
            }

        return {
            "total": sum(by_status.values()),
            "active": by_status.get("active", 0),
            "pendingVerification": by_status.get("pending_verification", 0),
            "suspended": by_status.get("suspended", 0),
            "byCity": [{"city": city, "count": count} for city, count in by_city],
            "topRated": [summary(p) for p in top_rated],
            "topPerforming": [summary(p) for p in top_performing],
        }
