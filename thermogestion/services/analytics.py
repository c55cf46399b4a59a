from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from thermogestion.models.client import Client
from thermogestion.models.invoice import INVOICE_DRAFT, PAYMENT_PAID, PAYMENT_PARTIAL, PAYMENT_UNPAID, Invoice
from thermogestion.models.powder import Powder
from thermogestion.models.project import Project
from thermogestion.models.quote import QuoteORM
from thermogestion.services.stock import low_stock_powders

ACTIVE_PROJECT_STATUSES = ("reception", "en_preparation", "en_cours", "en_cuisson", "qc")


def _month_key(d) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def _last_months(today: date, count: int) -> List[str]:
    keys = []
    year, month = today.year, today.month
    for _ in range(count):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def revenue_by_month(db: Session, tenant_id: str, months: int = 12, today: Optional[date] = None) -> List[Dict[str, Any]]:
    """HT revenue of paid invoices, bucketed by payment month (oldest first)."""
    keys = _last_months(today or date.today(), months)
    totals: Dict[str, float] = {k: 0.0 for k in keys}

    paid = (
        db.query(Invoice)
        .filter(Invoice.tenant_id == tenant_id, Invoice.payment_status == PAYMENT_PAID)
        .all()
    )
    for inv in paid:
        when = inv.paid_at or inv.created_at
        if when is None:
            continue
        key = _month_key(when)
        if key in totals:
            totals[key] += inv.total_ht or 0.0

    return [{"month": k, "revenue_ht": round(totals[k], 2)} for k in keys]


def conversion_rate(db: Session, tenant_id: str) -> float:
    """Accepted (or converted) quotes over quotes that left the draft state, in percent."""
    counts = dict(
        db.query(QuoteORM.status, func.count(QuoteORM.id))
        .filter(QuoteORM.tenant_id == tenant_id)
        .group_by(QuoteORM.status)
        .all()
    )
    decided = sum(n for status, n in counts.items() if status != "draft")
    if not decided:
        return 0.0
    won = counts.get("accepted", 0) + counts.get("converted", 0)
    return round(won / decided * 100, 1)


def projects_by_status(db: Session, tenant_id: str) -> Dict[str, int]:
    rows = (
        db.query(Project.status, func.count(Project.id))
        .filter(Project.tenant_id == tenant_id)
        .group_by(Project.status)
        .all()
    )
    return {status: n for status, n in rows}


def top_clients(db: Session, tenant_id: str, limit: int = 5) -> List[Dict[str, Any]]:
    revenue: Dict[int, float] = defaultdict(float)
    for inv in (
        db.query(Invoice)
        .filter(
            Invoice.tenant_id == tenant_id,
            Invoice.payment_status == PAYMENT_PAID,
            Invoice.client_id.isnot(None),
        )
        .all()
    ):
        revenue[inv.client_id] += inv.total_ht or 0.0

    best = sorted(revenue.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    if not best:
        return []
    names = {
        c.id: c.full_name
        for c in db.query(Client).filter(Client.tenant_id == tenant_id, Client.id.in_([cid for cid, _ in best]))
    }
    return [
        {"client_id": cid, "name": names.get(cid, ""), "revenue_ht": round(total, 2)}
        for cid, total in best
    ]


def top_powders(db: Session, tenant_id: str, limit: int = 5) -> List[Dict[str, Any]]:
    """Powders ranked by the coated surface of the projects using them."""
    usage: Counter = Counter()
    jobs: Counter = Counter()
    for project in (
        db.query(Project)
        .filter(Project.tenant_id == tenant_id, Project.powder_id.isnot(None), Project.status != "annule")
        .all()
    ):
        usage[project.powder_id] += project.surface_m2 or 0.0
        jobs[project.powder_id] += 1

    ranked = sorted(jobs, key=lambda pid: (usage[pid], jobs[pid]), reverse=True)[:limit]
    if not ranked:
        return []
    powders = {
        p.id: p for p in db.query(Powder).filter(Powder.tenant_id == tenant_id, Powder.id.in_(ranked))
    }
    return [
        {
            "powder_id": pid,
            "name": powders[pid].name if pid in powders else "",
            "ral": powders[pid].ral if pid in powders else None,
            "projects": jobs[pid],
            "surface_m2": round(usage[pid], 2),
        }
        for pid in ranked
    ]


def outstanding_amount(db: Session, tenant_id: str) -> float:
    total = (
        db.query(func.coalesce(func.sum(Invoice.total_ttc), 0.0))
        .filter(
            Invoice.tenant_id == tenant_id,
            Invoice.status != INVOICE_DRAFT,
            Invoice.payment_status.in_((PAYMENT_UNPAID, PAYMENT_PARTIAL)),
        )
        .scalar()
    )
    return round(float(total or 0.0), 2)


def dashboard(db: Session, tenant_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    by_status = projects_by_status(db, tenant_id)
    months = revenue_by_month(db, tenant_id, 12, today)
    pending_quotes = (
        db.query(func.count(QuoteORM.id))
        .filter(QuoteORM.tenant_id == tenant_id, QuoteORM.status == "sent")
        .scalar()
    )
    return {
        "revenue_this_month": months[-1]["revenue_ht"],
        "revenue_by_month": months,
        "conversion_rate_pct": conversion_rate(db, tenant_id),
        "projects_by_status": by_status,
        "projects_in_progress": sum(by_status.get(s, 0) for s in ACTIVE_PROJECT_STATUSES),
        "pending_quotes": pending_quotes or 0,
        "outstanding_amount": outstanding_amount(db, tenant_id),
        "top_clients": top_clients(db, tenant_id),
        "top_powders": top_powders(db, tenant_id),
        "low_stock": [
            {"powder_id": p.id, "name": p.name, "stock_kg": p.stock_kg, "stock_min_kg": p.stock_min_kg}
            for p in low_stock_powders(db, tenant_id, limit=10)
        ],
    }
