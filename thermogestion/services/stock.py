from typing import List, Optional

from sqlalchemy.orm import Session

from thermogestion.core.errors import InvalidOperation
from thermogestion.core.logging_config import logger
from thermogestion.models.powder import Powder, StockMovement
from thermogestion.schemas.crm import StockMovementIn
from thermogestion.services.notifications import notify_low_stock


def signed_quantity(kind: str, quantity_kg: float) -> float:
    """entree adds, sortie removes, ajustement is applied as given (signed)."""
    if kind == "entree":
        return abs(quantity_kg)
    if kind == "sortie":
        return -abs(quantity_kg)
    return quantity_kg


def is_low(powder: Powder) -> bool:
    return (powder.stock_min_kg or 0) > 0 and (powder.stock_kg or 0) < powder.stock_min_kg


def apply_movement(db: Session, powder: Powder, payload: StockMovementIn) -> StockMovement:
    delta = signed_quantity(payload.kind, payload.quantity_kg)
    new_stock = (powder.stock_kg or 0.0) + delta
    if new_stock < 0:
        raise InvalidOperation(
            f"Insufficient stock for {powder.reference}: {powder.stock_kg:.2f} kg available",
            {"powder_id": powder.id, "stock_kg": powder.stock_kg, "requested_kg": -delta},
        )

    was_low = is_low(powder)
    powder.stock_kg = new_stock
    movement = StockMovement(
        tenant_id=powder.tenant_id,
        powder_id=powder.id,
        kind=payload.kind,
        quantity_kg=delta,
        project_id=payload.project_id,
        note=payload.note,
    )
    db.add(movement)

    # alert once, when the threshold is crossed
    if is_low(powder) and not was_low:
        notify_low_stock(db, powder)

    db.commit()
    db.refresh(movement)
    logger.info(
        "stock_movement",
        tenant_id=powder.tenant_id,
        powder_id=powder.id,
        kind=payload.kind,
        delta_kg=delta,
        stock_kg=new_stock,
    )
    return movement


def low_stock_powders(db: Session, tenant_id: str, limit: Optional[int] = None) -> List[Powder]:
    q = (
        db.query(Powder)
        .filter(
            Powder.tenant_id == tenant_id,
            Powder.stock_min_kg > 0,
            Powder.stock_kg < Powder.stock_min_kg,
        )
        .order_by(Powder.stock_kg)
    )
    if limit:
        q = q.limit(limit)
    return q.all()
