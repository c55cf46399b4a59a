# thermogestion/models/project.py
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from thermogestion.db import Base

PROJECT_STATUSES = (
    "devis",
    "reception",
    "en_preparation",
    "en_cours",
    "en_cuisson",
    "qc",
    "termine",
    "pret",
    "livre",
    "annule",
)


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    client_id: Mapped[Optional[int]] = mapped_column(Integer, index=True, nullable=True)
    quote_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    powder_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    numero: Mapped[str] = mapped_column(String(30), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="reception")

    surface_m2: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    weight_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    layers: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class QualityCheck(Base):
    """One controle qualite row per (project, step)."""

    __tablename__ = "quality_checks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), index=True, nullable=False)
    inspector_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    step: Mapped[str] = mapped_column(String(20), nullable=False)  # preparation | poudrage | cuisson | final

    thickness_ok: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    thickness_um: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    adhesion_ok: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    visual_ok: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    shade_ok: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    gloss_ok: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    result: Mapped[str] = mapped_column(String(20), nullable=False, default="en_attente")
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    checked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
