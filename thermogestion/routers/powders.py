from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from thermogestion.auth.deps import get_current_user
from thermogestion.db import get_db
from thermogestion.models.powder import Powder, StockMovement
from thermogestion.models.user import User
from thermogestion.routers.common import get_owned_or_404
from thermogestion.schemas.crm import PowderIn, PowderOut, StockMovementIn
from thermogestion.services.ral import normalize_code
from thermogestion.services.stock import apply_movement, low_stock_powders

router = APIRouter(prefix="/api/powders", tags=["powders"])


@router.get("", response_model=List[PowderOut])
def list_powders(
    q: Optional[str] = Query(None, description="Search on reference, name or RAL"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Powder).filter(Powder.tenant_id == user.tenant_id)
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(or_(Powder.reference.ilike(like), Powder.name.ilike(like), Powder.ral.ilike(like)))
    return query.order_by(Powder.name).all()


@router.get("/low-stock", response_model=List[PowderOut])
def list_low_stock(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return low_stock_powders(db, user.tenant_id)


@router.post("", response_model=PowderOut, status_code=201)
def create_powder(payload: PowderIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    data = payload.model_dump()
    if data.get("ral"):
        data["ral"] = normalize_code(data["ral"])
    powder = Powder(tenant_id=user.tenant_id, stock_kg=0.0, **data)
    db.add(powder)
    db.commit()
    db.refresh(powder)
    return powder


@router.get("/{powder_id}", response_model=PowderOut)
def get_powder(powder_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_owned_or_404(db, Powder, powder_id, user.tenant_id, "Powder not found")


@router.put("/{powder_id}", response_model=PowderOut)
def update_powder(
    powder_id: int,
    payload: PowderIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    powder = get_owned_or_404(db, Powder, powder_id, user.tenant_id, "Powder not found")
    data = payload.model_dump()
    if data.get("ral"):
        data["ral"] = normalize_code(data["ral"])
    for key, value in data.items():
        setattr(powder, key, value)
    db.commit()
    db.refresh(powder)
    return powder


@router.delete("/{powder_id}", status_code=204)
def delete_powder(powder_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    powder = get_owned_or_404(db, Powder, powder_id, user.tenant_id, "Powder not found")
    db.query(StockMovement).filter(StockMovement.powder_id == powder.id).delete()
    db.delete(powder)
    db.commit()


@router.post("/{powder_id}/stock", response_model=PowderOut)
def add_stock_movement(
    powder_id: int,
    payload: StockMovementIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    powder = get_owned_or_404(db, Powder, powder_id, user.tenant_id, "Powder not found")
    apply_movement(db, powder, payload)
    db.refresh(powder)
    return powder


@router.get("/{powder_id}/movements")
def list_movements(powder_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    powder = get_owned_or_404(db, Powder, powder_id, user.tenant_id, "Powder not found")
    rows = (
        db.query(StockMovement)
        .filter(StockMovement.powder_id == powder.id)
        .order_by(StockMovement.id.desc())
        .all()
    )
    return [
        {
            "id": m.id,
            "kind": m.kind,
            "quantity_kg": m.quantity_kg,
            "project_id": m.project_id,
            "note": m.note,
            "created_at": m.created_at,
        }
        for m in rows
    ]
