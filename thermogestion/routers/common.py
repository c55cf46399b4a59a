from typing import Type, TypeVar

from fastapi import HTTPException
from sqlalchemy.orm import Session

T = TypeVar("T")


def get_owned_or_404(db: Session, model: Type[T], obj_id, tenant_id: str, label: str = "Not found") -> T:
    """Rows of another atelier are reported as missing."""
    obj = db.get(model, obj_id)
    if obj is None or getattr(obj, "tenant_id", None) != tenant_id:
        raise HTTPException(status_code=404, detail=label)
    return obj
