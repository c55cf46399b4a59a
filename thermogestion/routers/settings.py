from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from thermogestion.auth.deps import get_current_user
from thermogestion.db import get_db
from thermogestion.models.user import User
from thermogestion.schemas.crm import TenantSettingsIn
from thermogestion.services import audit
from thermogestion.services.tenant_service import TenantService

router = APIRouter(prefix="/api/settings", tags=["settings"])

PUBLIC_FIELDS = tuple(TenantSettingsIn.model_fields.keys())


@router.get("")
def get_settings(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    row = TenantService(db).get_settings(user.tenant_id)
    return audit.snapshot(row, PUBLIC_FIELDS)


@router.put("")
def update_settings(
    payload: TenantSettingsIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = TenantService(db)
    changes = payload.model_dump(exclude_unset=True)
    old = audit.snapshot(service.get_settings(user.tenant_id), changes.keys())
    audit.record(
        db,
        tenant_id=user.tenant_id,
        actor=user.id,
        action="update",
        target_type="settings",
        target_id=user.tenant_id,
        old=old,
        new=changes,
    )
    row = service.update_settings(user.tenant_id, **changes)
    return audit.snapshot(row, PUBLIC_FIELDS)
