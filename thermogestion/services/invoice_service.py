from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from thermogestion.core.errors import InvalidOperation
from thermogestion.core.logging_config import logger
from thermogestion.models.invoice import (
    INVOICE_DRAFT,
    INVOICE_PAID,
    INVOICE_REFUNDED,
    INVOICE_SENT,
    PAYMENT_PAID,
    PAYMENT_PARTIAL,
    Invoice,
    Payment,
)
from thermogestion.schemas.invoice import InvoiceCreate, PaymentCreate
from thermogestion.services import audit
from thermogestion.services.numbering import next_numero

INVOICE_DUE_DAYS = 30
# cents tolerance when comparing paid amounts with the TTC total
PAID_EPSILON = 0.005


class InvoiceService:
    def __init__(self, db: Session, tenant_id: str, actor: Optional[str] = None):
        self.db = db
        self.tenant_id = tenant_id
        self.actor = actor

    def create(self, payload: InvoiceCreate, default_vat_pct: float) -> Invoice:
        tva_rate = payload.tva_rate if payload.tva_rate is not None else default_vat_pct
        lines = []
        for line in payload.items:
            data = line.model_dump(mode="json")
            data["total_ht"] = line.total_ht
            lines.append(data)

        total_ht = sum(line.total_ht for line in payload.items)
        invoice = Invoice(
            tenant_id=self.tenant_id,
            client_id=payload.client_id,
            project_id=payload.project_id,
            numero=next_numero(self.db, Invoice, self.tenant_id),
            type=payload.type,
            items=lines,
            total_ht=total_ht,
            tva_rate=tva_rate,
            total_ttc=total_ht * (1 + tva_rate / 100),
            due_date=payload.due_date or (date.today() + timedelta(days=INVOICE_DUE_DAYS)),
            notes=payload.notes,
            stripe_payment_link_id=payload.stripe_payment_link_id,
        )
        self.db.add(invoice)
        self.db.flush()
        audit.record(
            self.db,
            tenant_id=self.tenant_id,
            actor=self.actor,
            action="create",
            target_type="invoice",
            target_id=invoice.id,
            new=audit.snapshot(invoice, ("numero", "total_ht", "total_ttc")),
        )
        self.db.commit()
        self.db.refresh(invoice)
        logger.info("invoice_created", tenant_id=self.tenant_id, invoice_id=invoice.id, numero=invoice.numero)
        return invoice

    def paid_amount(self, invoice: Invoice) -> float:
        total = (
            self.db.query(func.coalesce(func.sum(Payment.amount), 0.0))
            .filter(Payment.invoice_id == invoice.id, Payment.status == "completed")
            .scalar()
        )
        return float(total or 0.0)

    def record_payment(self, invoice: Invoice, payload: PaymentCreate) -> Payment:
        """Manual payment (cash, cheque, transfer...). Full payment marks the invoice paid."""
        if invoice.status in (INVOICE_PAID, INVOICE_REFUNDED):
            raise InvalidOperation(f"Invoice {invoice.numero} is already {invoice.status}")

        outstanding = (invoice.total_ttc or 0.0) - self.paid_amount(invoice)
        amount = payload.amount if payload.amount is not None else outstanding
        if amount <= 0:
            raise InvalidOperation(f"Nothing left to pay on invoice {invoice.numero}")

        now = datetime.now(timezone.utc)
        payment = Payment(
            tenant_id=self.tenant_id,
            invoice_id=invoice.id,
            client_id=invoice.client_id,
            type="complete" if amount + PAID_EPSILON >= outstanding else "acompte",
            amount=amount,
            payment_method=payload.payment_method,
            payment_ref=payload.payment_ref,
            status="completed",
            paid_at=now,
        )
        self.db.add(payment)

        old = audit.snapshot(invoice, ("status", "payment_status"))
        if amount + PAID_EPSILON >= outstanding:
            invoice.status = INVOICE_PAID
            invoice.payment_status = PAYMENT_PAID
            invoice.paid_at = now
        else:
            invoice.payment_status = PAYMENT_PARTIAL

        audit.record(
            self.db,
            tenant_id=self.tenant_id,
            actor=self.actor,
            action="payment",
            target_type="invoice",
            target_id=invoice.id,
            old=old,
            new={**audit.snapshot(invoice, ("status", "payment_status")), "amount": amount},
        )
        self.db.commit()
        self.db.refresh(payment)
        logger.info(
            "payment_recorded",
            tenant_id=self.tenant_id,
            invoice_id=invoice.id,
            amount=amount,
            method=payload.payment_method,
            payment_status=invoice.payment_status,
        )
        return payment

    def send(self, invoice: Invoice) -> Invoice:
        """brouillon -> envoyee; the invoice then counts as outstanding."""
        if invoice.status != INVOICE_DRAFT:
            raise InvalidOperation(f"Invoice {invoice.numero} is already {invoice.status}")

        invoice.status = INVOICE_SENT
        audit.record(
            self.db,
            tenant_id=self.tenant_id,
            actor=self.actor,
            action="status",
            target_type="invoice",
            target_id=invoice.id,
            old={"status": INVOICE_DRAFT},
            new={"status": INVOICE_SENT},
        )
        self.db.commit()
        self.db.refresh(invoice)
        logger.info("invoice_sent", tenant_id=self.tenant_id, invoice_id=invoice.id)
        return invoice
