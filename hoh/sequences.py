"""
Human-readable sequential codes backed by a counter row.

The increment is a single UPDATE inside the caller's transaction, so two
concurrent creates can never read the same value (unlike counting rows).
"""

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from .models import Counter

logger = logging.getLogger(__name__)

# name -> (prefix, zero padding)
SEQUENCE_FORMATS = {
    "booking:on_demand": ("OD-BK-", 6),
    "booking:renovation": ("REN-BK-", 6),
    "provider": ("PRO-", 6),
    "service": ("OD-SVC-", 5),
    "customer": ("CUST", 6),
    "project": ("PRJ", 6),
    "payment": ("PAY", 6),
}


def next_sequence(db: Session, name: str) -> int:
    """Atomically increment and return the named counter"""
    result = db.execute(
        update(Counter).where(Counter.name == name).values(value=Counter.value + 1)
    )
    if result.rowcount == 0:
        # First use of this counter; the primary key rejects a concurrent duplicate
        db.add(Counter(name=name, value=1))
        db.flush()
        return 1

    return db.query(Counter.value).filter(Counter.name == name).scalar()


def next_code(db: Session, name: str) -> str:
    """Return the next formatted code for a named sequence, e.g. OD-BK-000042"""
    prefix, width = SEQUENCE_FORMATS[name]
    value = next_sequence(db, name)
    code = f"{prefix}{value:0{width}d}"
    logger.debug(f"🔢 Allocated {code}")
    return code
