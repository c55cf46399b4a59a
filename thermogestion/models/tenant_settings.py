# thermogestion/models/tenant_settings.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from thermogestion.db import Base


class TenantSettings(Base):
    """Per-atelier configuration: legal identity, branding, shop rates and oven."""

    __tablename__ = "tenant_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(
        String(100), index=True, unique=True, nullable=False
    )

    # Legal / contact (printed on documents)
    company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    siret: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    tva_intra: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    rcs: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    iban: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    bic: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cgv_quote: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cgv_invoice: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Branding
    pdf_template: Mapped[str] = mapped_column(String(20), default="classic")
    primary_color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    accent_color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    locale: Mapped[str] = mapped_column(String(5), default="fr")

    # Shop rates (read when a quote is priced)
    labor_rate_per_hour: Mapped[float] = mapped_column(Float, default=35.0)
    labor_hours_per_m2: Mapped[float] = mapped_column(Float, default=0.15)
    consumables_cost_per_m2: Mapped[float] = mapped_column(Float, default=2.0)
    powder_margin_pct: Mapped[float] = mapped_column(Float, default=30.0)
    labor_margin_pct: Mapped[float] = mapped_column(Float, default=50.0)
    vat_rate_pct: Mapped[float] = mapped_column(Float, default=20.0)

    # Curing oven
    oven_length_cm: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    oven_width_cm: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    oven_height_cm: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    oven_max_weight_kg: Mapped[float] = mapped_column(Float, default=500.0)
    oven_batches_per_day: Mapped[int] = mapped_column(Integer, default=8)
    oven_max_temp_c: Mapped[float] = mapped_column(Float, default=250.0)

    def __repr__(self) -> str:
        return f"<TenantSettings tenant_id={self.tenant_id!r} company_name={self.company_name!r}>"
