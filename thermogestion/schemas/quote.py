# thermogestion/schemas/quote.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from thermogestion.schemas.pricing import Discount, PricedItem, QuoteItemInput, QuoteTotals, ShopRateSettings

QUOTE_STATUSES = ("draft", "sent", "accepted", "refused", "expired", "converted")


class QuoteCreate(BaseModel):
    client_id: Optional[int] = None
    title: Optional[str] = None
    items: List[QuoteItemInput] = Field(default_factory=list)
    discount: Optional[Discount] = None
    notes: Optional[str] = None
    valid_until: Optional[date] = None


class QuoteUpdate(BaseModel):
    client_id: Optional[int] = None
    title: Optional[str] = None
    items: Optional[List[QuoteItemInput]] = None
    discount: Optional[Discount] = None
    notes: Optional[str] = None
    valid_until: Optional[date] = None


class QuoteStatusUpdate(BaseModel):
    status: str = Field(..., pattern="^(draft|sent|accepted|refused|expired|converted)$")


class QuoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    numero: str
    status: str
    client_id: Optional[int] = None
    title: Optional[str] = None
    items: List[PricedItem]
    discount: Optional[Discount] = None
    rates: Optional[ShopRateSettings] = None
    totals: QuoteTotals
    notes: Optional[str] = None
    valid_until: Optional[date] = None
    signed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
