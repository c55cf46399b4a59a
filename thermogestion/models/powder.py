# thermogestion/models/powder.py
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from thermogestion.db import Base


class Powder(Base):
    __tablename__ = "powders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(100), index=True, nullable=False)

    reference: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    ral: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    finish: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # mat, satine, brillant...

    price_per_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    yield_m2_per_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    consumption_kg_per_m2: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    cure_temp_min_c: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    cure_temp_max_c: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    cure_duration_min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    stock_kg: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    stock_min_kg: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class StockMovement(Base):
    """Signed stock delta on a powder (entree > 0, sortie < 0, ajustement either)."""

    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    powder_id: Mapped[int] = mapped_column(ForeignKey("powders.id"), index=True, nullable=False)

    kind: Mapped[str] = mapped_column(String(20), nullable=False)  # entree | sortie | ajustement
    quantity_kg: Mapped[float] = mapped_column(Float, nullable=False)
    project_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
