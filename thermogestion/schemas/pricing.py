# thermogestion/schemas/pricing.py
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class LayerType(str, Enum):
    PRIMER = "primer"
    BASE = "base"
    VARNISH = "varnish"
    OTHER = "other"


class DiscountKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class PowderRef(BaseModel):
    """Snapshot of the powder fields pricing needs, frozen into the quote JSON."""

    id: Optional[int] = Field(None, description="Powder id in the tenant catalogue")
    name: Optional[str] = None
    ral: Optional[str] = None
    price_per_kg: Optional[float] = Field(None, ge=0, description="EUR per kg")
    yield_m2_per_kg: Optional[float] = Field(None, ge=0, description="Coverage in m2 per kg")
    consumption_kg_per_m2: Optional[float] = Field(None, ge=0, description="kg per m2")


class Layer(BaseModel):
    layer_type: LayerType = LayerType.BASE
    powder: Optional[PowderRef] = None


class QuoteItemInput(BaseModel):
    """Geometry + layer composition of one piece type, as entered in the quote form."""

    designation: str = Field(..., min_length=1, description="Item label")
    description: Optional[str] = None
    length_mm: float = Field(..., ge=0)
    width_mm: float = Field(..., ge=0)
    height_mm: Optional[float] = Field(None, ge=0, description="Absent for flat pieces")
    quantity: int = Field(1, ge=1)
    layers: List[Layer] = Field(default_factory=list)


class ShopRateSettings(BaseModel):
    labor_rate_per_hour: float = Field(35.0, ge=0)
    labor_hours_per_m2: float = Field(0.15, ge=0)
    consumables_cost_per_m2: float = Field(2.0, ge=0)
    powder_margin_pct: float = Field(30.0, ge=-100)
    labor_margin_pct: float = Field(50.0, ge=-100)
    vat_rate_pct: float = Field(20.0, ge=0)


class Discount(BaseModel):
    kind: DiscountKind = DiscountKind.PERCENTAGE
    value: float = Field(0.0, ge=0)


class ItemBreakdown(BaseModel):
    surface_m2: float
    layer_count: int
    powder_cost_of_goods: float
    powder_sale_price: float
    labor_hours: float
    labor_cost_of_goods: float
    labor_sale_price: float
    consumables_cost: float
    cost_of_goods_total: float
    sale_price_ht: float
    margin: float


class PricedItem(QuoteItemInput):
    """An item together with its derived fields; this is the persisted shape."""

    breakdown: ItemBreakdown


class QuoteTotals(BaseModel):
    total_cost_of_goods: float
    total_sale_price_ht_gross: float
    discount_amount: float
    total_sale_price_ht: float
    vat_rate_pct: float
    vat_amount: float
    total_ttc: float
    gross_margin: float
    margin_pct: float
    negative_margin: bool


class QuotePricing(BaseModel):
    items: List[PricedItem]
    totals: QuoteTotals


class CalculateRequest(BaseModel):
    items: List[QuoteItemInput] = Field(default_factory=list)
    discount: Optional[Discount] = None
    rates: Optional[ShopRateSettings] = Field(
        None, description="Overrides the atelier rates for this calculation only"
    )
