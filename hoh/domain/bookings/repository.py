"""Booking repository - Database operations for bookings"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from ...models import Booking, Service
from ..access.service_type_filter import VerticalFilter
from .state_machine import CANCELLED_STATUSES


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def _base_query(db: Session) -> Query:
        return db.query(Booking).options(
            joinedload(Booking.service),
            joinedload(Booking.service_provider),
            selectinload(Booking.status_history),
            selectinload(Booking.reschedule_history),
        )

    @staticmethod
    def get_by_ref(db: Session, ref: str) -> Optional[Booking]:
        """Look a booking up by numeric id, booking code (OD-BK-000001) or public id"""
        query = BookingRepository._base_query(db)
        if ref.isdigit():
            return query.filter(Booking.id == int(ref)).first()
        return query.filter(or_(Booking.booking_code == ref, Booking.public_id == ref)).first()

    @staticmethod
    def get_by_code_and_phone(db: Session, booking_code: str, phone: str) -> Optional[Booking]:
        return (
            BookingRepository._base_query(db)
            .filter(Booking.booking_code == booking_code, Booking.customer_phone == phone)
            .first()
        )

    @staticmethod
    def create(db: Session, booking: Booking) -> Booking:
        """Add a booking; the caller commits"""
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def list_bookings(
        db: Session,
        vertical_filter: VerticalFilter,
        status: Optional[str] = None,
        provider_id: Optional[int] = None,
        priority: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Booking], int]:
        """Filtered, paginated admin listing, newest first"""
        query = vertical_filter.apply(db.query(Booking), Booking.vertical)

        if status:
            query = query.filter(Booking.status == status)
        if provider_id:
            query = query.filter(Booking.service_provider_id == provider_id)
        if priority:
            query = query.filter(Booking.priority == priority)
        if from_date:
            query = query.filter(Booking.scheduled_date >= from_date)
        if to_date:
            query = query.filter(Booking.scheduled_date <= to_date)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Booking.booking_code.ilike(pattern),
                    Booking.customer_name.ilike(pattern),
                    Booking.customer_email.ilike(pattern),
                    Booking.customer_phone.ilike(pattern),
                )
            )

        total = query.count()
        items = (
            query.options(joinedload(Booking.service), joinedload(Booking.service_provider))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def list_for_customer(
        db: Session, account_id: int, status: Optional[str], page: int, limit: int
    ) -> tuple[list[Booking], int]:
        query = db.query(Booking).filter(Booking.customer_account_id == account_id)
        if status:
            query = query.filter(Booking.status == status)

        total = query.count()
        items = (
            query.options(joinedload(Booking.service), joinedload(Booking.service_provider))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def list_for_provider(
        db: Session,
        provider_id: int,
        statuses: Optional[list[str]],
        day: Optional[date],
        page: int,
        limit: int,
    ) -> tuple[list[Booking], int]:
        """A provider's jobs, soonest first; day narrows to one calendar date"""
        query = db.query(Booking).filter(Booking.service_provider_id == provider_id)
        if statuses:
            query = query.filter(Booking.status.in_(statuses))
        if day:
            start = datetime.combine(day, time.min)
            query = query.filter(
                Booking.scheduled_date >= start, Booking.scheduled_date < start + timedelta(days=1)
            )

        total = query.count()
        items = (
            query.options(joinedload(Booking.service))
            .order_by(Booking.scheduled_date.asc(), Booking.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def stats(
        db: Session,
        vertical_filter: VerticalFilter,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        today: Optional[datetime] = None,
    ) -> dict:
        """Counts by status, top services, today's bookings and completed revenue"""

        def scoped(query):
            query = vertical_filter.apply(query, Booking.vertical)
            if from_date:
                query = query.filter(Booking.created_at >= from_date)
            if to_date:
                query = query.filter(Booking.created_at <= to_date)
            return query

        by_status = dict(
            scoped(db.query(Booking.status, func.count(Booking.id))).group_by(Booking.status).all()
        )

        by_service = (
            scoped(
                db.query(Service.title, func.count(Booking.id).label("count"))
                .select_from(Booking)
                .join(Service, Service.id == Booking.service_id)
            )
            .group_by(Service.id, Service.title)
            .order_by(func.count(Booking.id).desc())
            .limit(10)
            .all()
        )

        revenue = (
            scoped(
                db.query(
                    func.coalesce(func.sum(Booking.total), 0),
                    func.coalesce(func.sum(Booking.advance_paid), 0),
                    func.coalesce(func.sum(Booking.remaining_amount), 0),
                )
            )
            .filter(Booking.status == "completed")
            .one()
        )

        day_start = (today or datetime.utcnow()).replace(hour=0, minute=0, second=0, microsecond=0)
        today_count = (
            vertical_filter.apply(db.query(func.count(Booking.id)), Booking.vertical)
            .filter(
                Booking.scheduled_date >= day_start,
                Booking.scheduled_date < day_start + timedelta(days=1),
            )
            .scalar()
        )

        return {
            "total": sum(by_status.values()),
            "pending": by_status.get("pending", 0),
            "confirmed": by_status.get("confirmed", 0),
            "inProgress": by_status.get("in_progress", 0),
            "completed": by_status.get("completed", 0),
            "cancelled": sum(by_status.get(s.value, 0) for s in CANCELLED_STATUSES),
            "today": today_count or 0,
            "byStatus": [{"status": s, "count": c} for s, c in sorted(by_status.items())],
            "byService": [{"serviceName": title, "count": count} for title, count in by_service],
            "revenue": {
                "totalRevenue": float(revenue[0]),
                "totalPaid": float(revenue[1]),
                "totalPending": float(revenue[2]),
            },
        }
