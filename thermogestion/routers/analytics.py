from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from thermogestion.auth.deps import get_current_user
from thermogestion.db import get_db
from thermogestion.models.alert import Alert
from thermogestion.models.user import User
from thermogestion.routers.common import get_owned_or_404
from thermogestion.services import analytics

router = APIRouter(tags=["analytics"])


@router.get("/api/dashboard")
def dashboard(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return analytics.dashboard(db, user.tenant_id)


@router.get("/api/analytics/revenue")
def revenue(
    months: int = Query(12, ge=1, le=36),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return analytics.revenue_by_month(db, user.tenant_id, months)


@router.get("/api/analytics/top-clients")
def top_clients(
    limit: int = Query(5, ge=1, le=50),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return analytics.top_clients(db, user.tenant_id, limit)


@router.get("/api/analytics/top-powders")
def top_powders(
    limit: int = Query(5, ge=1, le=50),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return analytics.top_powders(db, user.tenant_id, limit)


# ---- alerts --------------------------------------------------------


@router.get("/api/alerts")
def list_alerts(
    unread_only: bool = Query(False),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[dict]:
    q = db.query(Alert).filter(Alert.tenant_id == user.tenant_id)
    if unread_only:
        q = q.filter(Alert.is_read.is_(False))
    return [
        {
            "id": a.id,
            "type": a.type,
            "title": a.title,
            "message": a.message,
            "link": a.link,
            "data": a.data,
            "is_read": a.is_read,
            "created_at": a.created_at,
        }
        for a in q.order_by(Alert.id.desc()).limit(100).all()
    ]


@router.post("/api/alerts/{alert_id}/read")
def mark_alert_read(alert_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    alert = get_owned_or_404(db, Alert, alert_id, user.tenant_id, "Alert not found")
    alert.is_read = True
    db.commit()
    return {"ok": True}
