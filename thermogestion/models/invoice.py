# thermogestion/models/invoice.py
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import JSON, Date, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from thermogestion.db import Base

# FactureStatus
INVOICE_DRAFT = "brouillon"
INVOICE_SENT = "envoyee"
INVOICE_PAID = "payee"
INVOICE_REFUNDED = "remboursee"

# PaymentStatus
PAYMENT_UNPAID = "unpaid"
PAYMENT_PARTIAL = "partial"
PAYMENT_PAID = "paid"
PAYMENT_REFUNDED = "refunded"
PAYMENT_DISPUTED = "disputed"


class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    client_id: Mapped[Optional[int]] = mapped_column(Integer, index=True, nullable=True)
    project_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    quote_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    numero: Mapped[str] = mapped_column(String(30), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="complete")  # acompte | solde | complete
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=INVOICE_DRAFT)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default=PAYMENT_UNPAID)

    items: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    total_ht: Mapped[float] = mapped_column(Float, default=0.0)
    tva_rate: Mapped[float] = mapped_column(Float, default=20.0)
    total_ttc: Mapped[float] = mapped_column(Float, default=0.0)

    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # External references used by webhook lookups
    stripe_payment_intent_id: Mapped[Optional[str]] = mapped_column(String(100), index=True, nullable=True)
    stripe_payment_link_id: Mapped[Optional[str]] = mapped_column(String(100), index=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoices.id"), index=True, nullable=False)
    client_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    type: Mapped[str] = mapped_column(String(20), nullable=False, default="complete")
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)  # stripe | cash | check | transfer | other
    payment_ref: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    stripe_payment_intent_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
