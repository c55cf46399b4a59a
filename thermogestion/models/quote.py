# thermogestion/models/quote.py
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import JSON, Date, DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from thermogestion.db import Base


class QuoteORM(Base):
    """
    A devis. Items and their layers are not relational: the whole draft is
    stored as a JSON list in `items`, next to the computed totals.
    """

    __tablename__ = "quotes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    client_id: Mapped[Optional[int]] = mapped_column(Integer, index=True, nullable=True)

    numero: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    items: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    discount: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    rates: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    total_cost_of_goods: Mapped[float] = mapped_column(Float, default=0.0)
    total_ht_gross: Mapped[float] = mapped_column(Float, default=0.0)
    discount_amount: Mapped[float] = mapped_column(Float, default=0.0)
    total_ht: Mapped[float] = mapped_column(Float, default=0.0)
    tva_rate: Mapped[float] = mapped_column(Float, default=20.0)
    total_ttc: Mapped[float] = mapped_column(Float, default=0.0)
    margin_pct: Mapped[float] = mapped_column(Float, default=0.0)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    valid_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )
