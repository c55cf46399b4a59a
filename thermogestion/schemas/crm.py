# thermogestion/schemas/crm.py
"""Request/response models for the plain CRUD screens."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# -------------------------
# Clients
# -------------------------
class ClientIn(BaseModel):
    full_name: str = Field(..., min_length=1)
    type: str = Field("particulier", pattern="^(particulier|professionnel)$")
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    siret: Optional[str] = None
    notes: Optional[str] = None


class ClientOut(ClientIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: Optional[str] = None
    created_at: Optional[datetime] = None


# -------------------------
# Powders
# -------------------------
class PowderIn(BaseModel):
    reference: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    brand: Optional[str] = None
    ral: Optional[str] = None
    finish: Optional[str] = None
    price_per_kg: Optional[float] = Field(None, ge=0)
    yield_m2_per_kg: Optional[float] = Field(None, ge=0)
    consumption_kg_per_m2: Optional[float] = Field(None, ge=0)
    cure_temp_min_c: Optional[float] = None
    cure_temp_max_c: Optional[float] = None
    cure_duration_min: Optional[int] = Field(None, ge=0)
    stock_min_kg: float = Field(0.0, ge=0)


class PowderOut(PowderIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    stock_kg: float
    created_at: Optional[datetime] = None


class StockMovementIn(BaseModel):
    kind: str = Field(..., pattern="^(entree|sortie|ajustement)$")
    quantity_kg: float = Field(..., description="Positive amount; sign comes from kind except for ajustement")
    project_id: Optional[int] = None
    note: Optional[str] = None


# -------------------------
# Projects
# -------------------------
class ProjectIn(BaseModel):
    name: str = Field(..., min_length=1)
    client_id: Optional[int] = None
    quote_id: Optional[int] = None
    powder_id: Optional[int] = None
    status: str = "reception"
    surface_m2: Optional[float] = Field(None, ge=0)
    weight_kg: Optional[float] = Field(None, ge=0)
    layers: int = Field(1, ge=1)
    due_date: Optional[date] = None
    notes: Optional[str] = None


class ProjectOut(ProjectIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    numero: str
    created_at: Optional[datetime] = None


class ProjectStatusIn(BaseModel):
    status: str


# -------------------------
# Oven planning
# -------------------------
class CuringBatchIn(BaseModel):
    day: date
    start_time: str = Field("08:00", pattern=r"^\d{2}:\d{2}$")
    end_time: str = Field("09:30", pattern=r"^\d{2}:\d{2}$")
    temperature_c: float = Field(200.0, gt=0)
    project_ids: List[int] = Field(default_factory=list)
    notes: Optional[str] = None


class CuringBatchOut(CuringBatchIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    total_weight_kg: float


class CuringBatchStatusIn(BaseModel):
    status: str = Field(..., pattern="^(planifie|en_cours|termine|annule)$")


# -------------------------
# Quality
# -------------------------
class QualityCheckIn(BaseModel):
    step: str = Field(..., pattern="^(preparation|poudrage|cuisson|final)$")
    thickness_ok: Optional[bool] = None
    thickness_um: Optional[float] = Field(None, ge=0)
    adhesion_ok: Optional[bool] = None
    visual_ok: Optional[bool] = None
    shade_ok: Optional[bool] = None
    gloss_ok: Optional[bool] = None
    comments: Optional[str] = None


class QualityCheckOut(QualityCheckIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    result: str
    inspector_id: Optional[str] = None
    checked_at: Optional[datetime] = None


# -------------------------
# Settings
# -------------------------
class TenantSettingsIn(BaseModel):
    company_name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    siret: Optional[str] = None
    tva_intra: Optional[str] = None
    rcs: Optional[str] = None
    iban: Optional[str] = None
    bic: Optional[str] = None
    logo_url: Optional[str] = None
    cgv_quote: Optional[str] = None
    cgv_invoice: Optional[str] = None
    pdf_template: Optional[str] = Field(None, pattern="^(classic|modern|industrial|premium)$")
    primary_color: Optional[str] = Field(None, pattern="^#[0-9a-fA-F]{6}$")
    accent_color: Optional[str] = Field(None, pattern="^#[0-9a-fA-F]{6}$")
    locale: Optional[str] = Field(None, pattern="^(fr|en|es|de)$")

    labor_rate_per_hour: Optional[float] = Field(None, ge=0)
    labor_hours_per_m2: Optional[float] = Field(None, ge=0)
    consumables_cost_per_m2: Optional[float] = Field(None, ge=0)
    powder_margin_pct: Optional[float] = Field(None, ge=-100)
    labor_margin_pct: Optional[float] = Field(None, ge=-100)
    vat_rate_pct: Optional[float] = Field(None, ge=0)

    oven_length_cm: Optional[float] = Field(None, ge=0)
    oven_width_cm: Optional[float] = Field(None, ge=0)
    oven_height_cm: Optional[float] = Field(None, ge=0)
    oven_max_weight_kg: Optional[float] = Field(None, gt=0)
    oven_batches_per_day: Optional[int] = Field(None, ge=1)
    oven_max_temp_c: Optional[float] = Field(None, gt=0)
