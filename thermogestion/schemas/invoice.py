# thermogestion/schemas/invoice.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class InvoiceLine(BaseModel):
    designation: str
    description: Optional[str] = None
    quantity: float = Field(1, gt=0)
    unit_price_ht: float = Field(..., ge=0)
    surface_m2: Optional[float] = None
    layer_count: Optional[int] = None

    @property
    def total_ht(self) -> float:
        return self.quantity * self.unit_price_ht


class InvoiceCreate(BaseModel):
    client_id: Optional[int] = None
    project_id: Optional[int] = None
    type: str = Field("complete", pattern="^(acompte|solde|complete)$")
    items: List[InvoiceLine] = Field(default_factory=list)
    tva_rate: Optional[float] = Field(None, ge=0)
    due_date: Optional[date] = None
    notes: Optional[str] = None
    stripe_payment_link_id: Optional[str] = None


class PaymentCreate(BaseModel):
    amount: Optional[float] = Field(None, gt=0, description="Defaults to the invoice TTC total")
    payment_method: str = Field("transfer", pattern="^(stripe|paypal|gocardless|cash|check|transfer|other)$")
    payment_ref: Optional[str] = None


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    numero: str
    type: str
    status: str
    payment_status: str
    client_id: Optional[int] = None
    project_id: Optional[int] = None
    quote_id: Optional[int] = None
    items: list
    total_ht: float
    tva_rate: float
    total_ttc: float
    due_date: Optional[date] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
