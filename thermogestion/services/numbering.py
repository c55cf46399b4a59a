from datetime import datetime, timezone
from typing import Optional, Type

from sqlalchemy import func
from sqlalchemy.orm import Session

from thermogestion.models.invoice import Invoice
from thermogestion.models.project import Project
from thermogestion.models.quote import QuoteORM

PREFIXES = {
    QuoteORM: "DEV",
    Invoice: "FACT",
    Project: "PRJ",
}


def format_numero(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year}-{sequence:04d}"


def next_numero(db: Session, model: Type, tenant_id: str, now: Optional[datetime] = None) -> str:
    """
    Next sequential number for the atelier and the current year,
    e.g. FACT-2026-0007. Sequence restarts every January.
    """
    prefix = PREFIXES[model]
    year = (now or datetime.now(timezone.utc)).year
    pattern = f"{prefix}-{year}-%"

    # longest first: past 9999 the sequence widens and string order breaks
    last: Optional[str] = (
        db.query(model.numero)
        .filter(model.tenant_id == tenant_id, model.numero.like(pattern))
        .order_by(func.length(model.numero).desc(), model.numero.desc())
        .limit(1)
        .scalar()
    )
    sequence = 1
    if last:
        try:
            sequence = int(last.rsplit("-", 1)[1]) + 1
        except (IndexError, ValueError):
            sequence = 1
    return format_numero(prefix, year, sequence)
