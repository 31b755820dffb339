"""Record repository - shared list/get for vertical-scoped tables"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..access.service_type_filter import VerticalFilter


class RecordRepository:
    """
    Leads, projects and payments share one shape: a service_type tenancy
    column, a status, and free-text columns worth searching.
    """

    @staticmethod
    def get(db: Session, model, record_id: int):
        return db.query(model).filter(model.id == record_id).first()

    @staticmethod
    def list_records(
        db: Session,
        model,
        vertical_filter: VerticalFilter,
        search_columns: tuple = (),
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        **equals,
    ):
        query = vertical_filter.apply(db.query(model), model.service_type)
        if status:
            query = query.filter(model.status == status)
        for column, value in equals.items():
            if value is not None:
                query = query.filter(getattr(model, column) == value)
        if search and search_columns:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(*(getattr(model, column).ilike(pattern) for column in search_columns))
            )

        total = query.count()
        items = (
            query.order_by(model.created_at.desc(), model.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total
