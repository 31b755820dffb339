"""Account repository"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Account, Provider


class AccountRepository:
    @staticmethod
    def get_by_id(db: Session, account_id: int) -> Optional[Account]:
        return db.query(Account).filter(Account.id == account_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[Account]:
        return db.query(Account).filter(Account.email == email.lower()).first()

    @staticmethod
    def get_provider_by_email(db: Session, email: str) -> Optional[Provider]:
        return db.query(Provider).filter(Provider.email == email.lower()).first()

    @staticmethod
    def list_accounts(
        db: Session, role: Optional[str] = None, page: int = 1, limit: int = 20
    ) -> tuple[list[Account], int]:
        query = db.query(Account)
        if role:
            query = query.filter(Account.role == role)
        total = query.count()
        items = (
            query.order_by(Account.created_at.desc(), Account.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total
