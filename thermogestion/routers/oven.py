from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from thermogestion.auth.deps import get_current_user
from thermogestion.db import get_db
from thermogestion.models.curing_batch import CuringBatch
from thermogestion.models.user import User
from thermogestion.routers.common import get_owned_or_404
from thermogestion.schemas.crm import CuringBatchIn, CuringBatchOut, CuringBatchStatusIn
from thermogestion.services.oven_planning import OvenCapacity, day_summary, plan_batch, set_batch_status
from thermogestion.services.tenant_service import TenantService

router = APIRouter(prefix="/api/oven", tags=["oven"])


def _capacity(db: Session, tenant_id: str) -> OvenCapacity:
    return OvenCapacity.from_settings(TenantService(db).get_settings(tenant_id))


@router.get("/days/{day}")
def get_day(day: date, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    summary = day_summary(db, user.tenant_id, day, _capacity(db, user.tenant_id))
    summary["batches"] = [CuringBatchOut.model_validate(b) for b in summary["batches"]]
    return summary


@router.post("/batches", response_model=CuringBatchOut, status_code=201)
def create_batch(payload: CuringBatchIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return plan_batch(db, user.tenant_id, payload, _capacity(db, user.tenant_id))


@router.get("/batches/{batch_id}", response_model=CuringBatchOut)
def get_batch(batch_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_owned_or_404(db, CuringBatch, batch_id, user.tenant_id, "Batch not found")


@router.patch("/batches/{batch_id}/status", response_model=CuringBatchOut)
def update_batch_status(
    batch_id: int,
    payload: CuringBatchStatusIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    batch = get_owned_or_404(db, CuringBatch, batch_id, user.tenant_id, "Batch not found")
    return set_batch_status(db, batch, payload.status)
