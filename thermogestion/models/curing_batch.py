# thermogestion/models/curing_batch.py
from datetime import date, datetime
from typing import Optional

from sqlalchemy import JSON, Date, DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from thermogestion.db import Base

BATCH_PLANNED = "planifie"
BATCH_RUNNING = "en_cours"
BATCH_DONE = "termine"
BATCH_CANCELLED = "annule"


class CuringBatch(Base):
    """A fournee: one oven run on a given day, carrying a set of projects."""

    __tablename__ = "curing_batches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(100), index=True, nullable=False)

    day: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    temperature_c: Mapped[float] = mapped_column(Float, nullable=False, default=200.0)

    project_ids: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    total_weight_kg: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BATCH_PLANNED)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
