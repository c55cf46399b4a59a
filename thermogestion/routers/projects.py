from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from thermogestion.auth.deps import get_current_user
from thermogestion.db import get_db
from thermogestion.models.client import Client
from thermogestion.models.powder import Powder
from thermogestion.models.project import PROJECT_STATUSES, Project
from thermogestion.models.user import User
from thermogestion.routers.common import get_owned_or_404
from thermogestion.schemas.crm import ProjectIn, ProjectOut, ProjectStatusIn, QualityCheckIn, QualityCheckOut
from thermogestion.services import audit
from thermogestion.services.numbering import next_numero
from thermogestion.services.quality import project_checks, record_check

router = APIRouter(prefix="/api/projects", tags=["projects"])


def _check_refs(db: Session, tenant_id: str, payload: ProjectIn) -> None:
    if payload.status not in PROJECT_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown project status: {payload.status}")
    if payload.client_id is not None:
        get_owned_or_404(db, Client, payload.client_id, tenant_id, "Client not found")
    if payload.powder_id is not None:
        get_owned_or_404(db, Powder, payload.powder_id, tenant_id, "Powder not found")


@router.get("", response_model=List[ProjectOut])
def list_projects(
    status: Optional[str] = Query(None),
    client_id: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    q = db.query(Project).filter(Project.tenant_id == user.tenant_id)
    if status:
        q = q.filter(Project.status == status)
    if client_id:
        q = q.filter(Project.client_id == client_id)
    return q.order_by(Project.id.desc()).all()


@router.post("", response_model=ProjectOut, status_code=201)
def create_project(payload: ProjectIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    _check_refs(db, user.tenant_id, payload)
    project = Project(
        tenant_id=user.tenant_id,
        numero=next_numero(db, Project, user.tenant_id),
        **payload.model_dump(),
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@router.get("/{project_id}", response_model=ProjectOut)
def get_project(project_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_owned_or_404(db, Project, project_id, user.tenant_id, "Project not found")


@router.put("/{project_id}", response_model=ProjectOut)
def update_project(
    project_id: int,
    payload: ProjectIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = get_owned_or_404(db, Project, project_id, user.tenant_id, "Project not found")
    _check_refs(db, user.tenant_id, payload)
    for key, value in payload.model_dump().items():
        setattr(project, key, value)
    db.commit()
    db.refresh(project)
    return project


@router.patch("/{project_id}/status", response_model=ProjectOut)
def update_project_status(
    project_id: int,
    payload: ProjectStatusIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = get_owned_or_404(db, Project, project_id, user.tenant_id, "Project not found")
    if payload.status not in PROJECT_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown project status: {payload.status}")

    audit.record(
        db,
        tenant_id=user.tenant_id,
        actor=user.id,
        action="status",
        target_type="project",
        target_id=project.id,
        old={"status": project.status},
        new={"status": payload.status},
    )
    project.status = payload.status
    db.commit()
    db.refresh(project)
    return project


# ---- quality checklist --------------------------------------------


@router.get("/{project_id}/quality", response_model=List[QualityCheckOut])
def list_quality_checks(project_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = get_owned_or_404(db, Project, project_id, user.tenant_id, "Project not found")
    return project_checks(db, project)


@router.post("/{project_id}/quality", response_model=QualityCheckOut)
def save_quality_check(
    project_id: int,
    payload: QualityCheckIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = get_owned_or_404(db, Project, project_id, user.tenant_id, "Project not found")
    return record_check(db, project=project, payload=payload, inspector_id=user.id)
