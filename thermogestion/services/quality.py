from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from thermogestion.core.logging_config import logger
from thermogestion.models.project import Project, QualityCheck
from thermogestion.schemas.crm import QualityCheckIn

RESULT_PENDING = "en_attente"
RESULT_PASS = "conforme"
RESULT_FAIL = "non_conforme"

CHECK_FIELDS = ("thickness_ok", "adhesion_ok", "visual_ok", "shade_ok", "gloss_ok")
STEPS = ("preparation", "poudrage", "cuisson", "final")

# QUALICOAT dry film thickness range, micrometres
THICKNESS_RANGE_UM = (60.0, 120.0)


def derive_result(checks: Iterable[Optional[bool]]) -> str:
    """Unanswered checks are ignored; one failure fails the step."""
    answered = [c for c in checks if c is not None]
    if not answered:
        return RESULT_PENDING
    if all(answered):
        return RESULT_PASS
    return RESULT_FAIL


def thickness_in_range(thickness_um: Optional[float]) -> Optional[bool]:
    if thickness_um is None:
        return None
    low, high = THICKNESS_RANGE_UM
    return low <= thickness_um <= high


def record_check(
    db: Session,
    *,
    project: Project,
    payload: QualityCheckIn,
    inspector_id: Optional[str],
) -> QualityCheck:
    """Create or replace the checklist of one step for a project."""
    check = (
        db.query(QualityCheck)
        .filter(
            QualityCheck.tenant_id == project.tenant_id,
            QualityCheck.project_id == project.id,
            QualityCheck.step == payload.step,
        )
        .first()
    )
    if check is None:
        check = QualityCheck(tenant_id=project.tenant_id, project_id=project.id, step=payload.step)
        db.add(check)

    values = payload.model_dump()
    if values.get("thickness_ok") is None:
        values["thickness_ok"] = thickness_in_range(values.get("thickness_um"))

    for field, value in values.items():
        setattr(check, field, value)
    check.inspector_id = inspector_id
    check.result = derive_result(getattr(check, f) for f in CHECK_FIELDS)

    db.commit()
    db.refresh(check)
    logger.info(
        "quality_check_recorded",
        tenant_id=project.tenant_id,
        project_id=project.id,
        step=check.step,
        result=check.result,
    )
    return check


def project_checks(db: Session, project: Project) -> List[QualityCheck]:
    checks = (
        db.query(QualityCheck)
        .filter(QualityCheck.tenant_id == project.tenant_id, QualityCheck.project_id == project.id)
        .all()
    )
    return sorted(checks, key=lambda c: STEPS.index(c.step) if c.step in STEPS else len(STEPS))
