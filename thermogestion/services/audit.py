from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from thermogestion.models.audit_log import AuditLog


def snapshot(obj: Any, fields: Iterable[str]) -> Dict[str, Any]:
    """JSON-safe copy of selected attributes, for old/new audit payloads."""
    out: Dict[str, Any] = {}
    for field in fields:
        value = getattr(obj, field, None)
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        out[field] = value
    return out


def record(
    db: Session,
    *,
    tenant_id: str,
    actor: Optional[str],
    action: str,
    target_type: str,
    target_id: Any = None,
    old: Optional[Dict[str, Any]] = None,
    new: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Adds an audit row to the session; committed with the mutation it describes."""
    entry = AuditLog(
        tenant_id=tenant_id,
        actor=actor,
        action=action,
        target_type=target_type,
        target_id=str(target_id) if target_id is not None else None,
        old_json=old,
        new_json=new,
    )
    db.add(entry)
    return entry
