"""Service catalogue repository"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Service


class ServiceRepository:
    """Repository for catalogue database operations"""

    @staticmethod
    def get_by_ref(db: Session, ref: str) -> Optional[Service]:
        if ref.isdigit():
            return db.query(Service).filter(Service.id == int(ref)).first()
        return db.query(Service).filter(Service.service_code == ref).first()

    @staticmethod
    def list_services(
        db: Session,
        active_only: bool = True,
        category: Optional[str] = None,
        vertical: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Service], int]:
        query = db.query(Service)
        if active_only:
            query = query.filter(Service.active.is_(True))
        if category:
            query = query.filter(Service.category == category)
        if vertical:
            query = query.filter(Service.vertical == vertical)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(Service.title.ilike(pattern), Service.description.ilike(pattern))
            )

        total = query.count()
        items = (
            query.order_by(Service.total_bookings.desc(), Service.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def categories(db: Session) -> list[dict]:
        rows = (
            db.query(Service.category, func.count(Service.id))
            .filter(Service.active.is_(True))
            .group_by(Service.category)
            .order_by(Service.category)
            .all()
        )
        return [{"category": category, "count": count} for category, count in rows]
