"""
Curing oven planning.

A day has a fixed number of batch slots (fournees). Each batch carries a set
of projects whose total weight must fit the oven, at a temperature the oven
can reach and every assigned powder accepts.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from thermogestion.core.errors import CapacityError, NotFoundError
from thermogestion.core.logging_config import logger
from thermogestion.core.settings import settings
from thermogestion.models.curing_batch import (
    BATCH_CANCELLED,
    BATCH_DONE,
    BATCH_PLANNED,
    BATCH_RUNNING,
    CuringBatch,
)
from thermogestion.models.powder import Powder
from thermogestion.models.project import Project
from thermogestion.schemas.crm import CuringBatchIn

# batch status -> status pushed onto its projects
PROJECT_STATUS_ON_BATCH = {
    BATCH_RUNNING: "en_cuisson",
    BATCH_DONE: "qc",
}

ALLOWED_TRANSITIONS = {
    BATCH_PLANNED: {BATCH_RUNNING, BATCH_CANCELLED},
    BATCH_RUNNING: {BATCH_DONE, BATCH_CANCELLED},
    BATCH_DONE: set(),
    BATCH_CANCELLED: set(),
}


@dataclass(frozen=True)
class OvenCapacity:
    batches_per_day: int
    max_weight_kg: float
    max_temp_c: float

    @classmethod
    def from_settings(cls, row) -> "OvenCapacity":
        if row is None:
            return cls(
                settings.DEFAULT_OVEN_BATCHES_PER_DAY,
                settings.DEFAULT_OVEN_MAX_WEIGHT_KG,
                settings.DEFAULT_OVEN_MAX_TEMP_C,
            )
        return cls(
            row.oven_batches_per_day or settings.DEFAULT_OVEN_BATCHES_PER_DAY,
            row.oven_max_weight_kg or settings.DEFAULT_OVEN_MAX_WEIGHT_KG,
            row.oven_max_temp_c or settings.DEFAULT_OVEN_MAX_TEMP_C,
        )


# -------------------------
# Capacity arithmetic (pure)
# -------------------------
def remaining_slots(capacity: OvenCapacity, planned_count: int) -> int:
    return max(0, capacity.batches_per_day - planned_count)


def total_weight(projects: Sequence[Project]) -> float:
    return sum(p.weight_kg or 0.0 for p in projects)


def cure_window(powders: Sequence[Powder]) -> Tuple[Optional[float], Optional[float]]:
    """Intersection of the powders' cure ranges; None bounds are open."""
    low: Optional[float] = None
    high: Optional[float] = None
    for powder in powders:
        if powder.cure_temp_min_c is not None:
            low = powder.cure_temp_min_c if low is None else max(low, powder.cure_temp_min_c)
        if powder.cure_temp_max_c is not None:
            high = powder.cure_temp_max_c if high is None else min(high, powder.cure_temp_max_c)
    return low, high


def check_batch(
    capacity: OvenCapacity,
    *,
    planned_count: int,
    weight_kg: float,
    temperature_c: float,
    window: Tuple[Optional[float], Optional[float]] = (None, None),
) -> None:
    if remaining_slots(capacity, planned_count) <= 0:
        raise CapacityError(
            f"No oven slot left ({capacity.batches_per_day} batches per day)",
            {"batches_per_day": capacity.batches_per_day},
        )
    if weight_kg > capacity.max_weight_kg:
        raise CapacityError(
            f"Batch weight {weight_kg:.1f} kg exceeds oven capacity {capacity.max_weight_kg:.0f} kg",
            {"weight_kg": weight_kg, "max_weight_kg": capacity.max_weight_kg},
        )
    if temperature_c > capacity.max_temp_c:
        raise CapacityError(
            f"Temperature {temperature_c:.0f} °C exceeds oven maximum {capacity.max_temp_c:.0f} °C",
            {"temperature_c": temperature_c, "max_temp_c": capacity.max_temp_c},
        )

    low, high = window
    if low is not None and high is not None and low > high:
        raise CapacityError(
            "Assigned powders have incompatible cure ranges",
            {"cure_min_c": low, "cure_max_c": high},
        )
    if (low is not None and temperature_c < low) or (high is not None and temperature_c > high):
        raise CapacityError(
            f"Temperature {temperature_c:.0f} °C outside powder cure range",
            {"temperature_c": temperature_c, "cure_min_c": low, "cure_max_c": high},
        )


# -------------------------
# Persistence
# -------------------------
def batches_for_day(db: Session, tenant_id: str, day: date) -> List[CuringBatch]:
    return (
        db.query(CuringBatch)
        .filter(CuringBatch.tenant_id == tenant_id, CuringBatch.day == day)
        .order_by(CuringBatch.start_time)
        .all()
    )


def active_count(batches: Sequence[CuringBatch], exclude_id: Optional[int] = None) -> int:
    return sum(1 for b in batches if b.status != BATCH_CANCELLED and b.id != exclude_id)


def _load_projects(db: Session, tenant_id: str, project_ids: Sequence[int]) -> List[Project]:
    if not project_ids:
        return []
    projects = (
        db.query(Project)
        .filter(Project.tenant_id == tenant_id, Project.id.in_(list(project_ids)))
        .all()
    )
    missing = set(project_ids) - {p.id for p in projects}
    if missing:
        raise NotFoundError("Project not found", {"project_ids": sorted(missing)})
    return projects


def _load_powders(db: Session, tenant_id: str, projects: Sequence[Project]) -> List[Powder]:
    powder_ids = {p.powder_id for p in projects if p.powder_id}
    if not powder_ids:
        return []
    return (
        db.query(Powder)
        .filter(Powder.tenant_id == tenant_id, Powder.id.in_(powder_ids))
        .all()
    )


def plan_batch(
    db: Session, tenant_id: str, payload: CuringBatchIn, capacity: OvenCapacity
) -> CuringBatch:
    projects = _load_projects(db, tenant_id, payload.project_ids)
    weight = total_weight(projects)

    check_batch(
        capacity,
        planned_count=active_count(batches_for_day(db, tenant_id, payload.day)),
        weight_kg=weight,
        temperature_c=payload.temperature_c,
        window=cure_window(_load_powders(db, tenant_id, projects)),
    )

    batch = CuringBatch(
        tenant_id=tenant_id,
        day=payload.day,
        start_time=payload.start_time,
        end_time=payload.end_time,
        temperature_c=payload.temperature_c,
        project_ids=list(payload.project_ids),
        total_weight_kg=weight,
        status=BATCH_PLANNED,
        notes=payload.notes,
    )
    db.add(batch)
    db.commit()
    db.refresh(batch)
    logger.info("curing_batch_planned", tenant_id=tenant_id, batch_id=batch.id, day=str(batch.day), weight_kg=weight)
    return batch


def set_batch_status(db: Session, batch: CuringBatch, status: str) -> CuringBatch:
    if status == batch.status:
        return batch
    if status not in ALLOWED_TRANSITIONS.get(batch.status, set()):
        raise CapacityError(
            f"Cannot move batch from {batch.status} to {status}",
            {"from": batch.status, "to": status},
        )

    project_status = PROJECT_STATUS_ON_BATCH.get(status)
    if project_status and batch.project_ids:
        for project in _load_projects(db, batch.tenant_id, batch.project_ids):
            project.status = project_status

    batch.status = status
    db.commit()
    db.refresh(batch)
    logger.info("curing_batch_status", tenant_id=batch.tenant_id, batch_id=batch.id, status=status)
    return batch


def day_summary(db: Session, tenant_id: str, day: date, capacity: OvenCapacity) -> Dict[str, object]:
    batches = batches_for_day(db, tenant_id, day)
    used = active_count(batches)
    return {
        "day": day,
        "batches": batches,
        "planned": used,
        "remaining": remaining_slots(capacity, used),
        "total_weight_kg": sum(b.total_weight_kg for b in batches if b.status != BATCH_CANCELLED),
        "capacity": {
            "batches_per_day": capacity.batches_per_day,
            "max_weight_kg": capacity.max_weight_kg,
            "max_temp_c": capacity.max_temp_c,
        },
    }
