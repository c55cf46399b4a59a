from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from thermogestion.core.errors import InvalidOperation
from thermogestion.core.logging_config import logger
from thermogestion.models.invoice import Invoice
from thermogestion.models.project import Project
from thermogestion.models.quote import QuoteORM
from thermogestion.observability.metrics import quotes_priced_counter
from thermogestion.schemas.pricing import (
    Discount,
    PricedItem,
    QuoteItemInput,
    QuotePricing,
    QuoteTotals,
    ShopRateSettings,
)
from thermogestion.schemas.quote import QuoteCreate, QuoteOut, QuoteUpdate
from thermogestion.services import audit
from thermogestion.services.numbering import next_numero
from thermogestion.services.pricing_engine import price_quote

QUOTE_VALIDITY_DAYS = 30
INVOICE_DUE_DAYS = 30
EDITABLE_STATUSES = ("draft", "sent")
QUOTE_CONVERTED = "converted"
CONVERTIBLE_STATUSES = ("accepted", QUOTE_CONVERTED)
AUDIT_FIELDS = ("status", "total_ht", "total_ttc", "margin_pct")


# -------------------------
# JSON column <-> pydantic
# -------------------------
def items_from_json(raw: Optional[List[Dict[str, Any]]]) -> List[QuoteItemInput]:
    # stored items carry their breakdown; pricing only reads the inputs
    return [QuoteItemInput.model_validate(item) for item in raw or []]


def priced_items_from_json(raw: Optional[List[Dict[str, Any]]]) -> List[PricedItem]:
    return [PricedItem.model_validate(item) for item in raw or []]


def totals_from_row(quote: QuoteORM) -> QuoteTotals:
    total_ht = quote.total_ht or 0.0
    cost = quote.total_cost_of_goods or 0.0
    ttc = quote.total_ttc or 0.0
    margin = total_ht - cost
    return QuoteTotals(
        total_cost_of_goods=cost,
        total_sale_price_ht_gross=quote.total_ht_gross or 0.0,
        discount_amount=quote.discount_amount or 0.0,
        total_sale_price_ht=total_ht,
        vat_rate_pct=quote.tva_rate or 0.0,
        vat_amount=ttc - total_ht,
        total_ttc=ttc,
        gross_margin=margin,
        margin_pct=quote.margin_pct or 0.0,
        negative_margin=margin < 0,
    )


def quote_out(quote: QuoteORM) -> QuoteOut:
    return QuoteOut(
        id=quote.id,
        numero=quote.numero,
        status=quote.status,
        client_id=quote.client_id,
        title=quote.title,
        items=priced_items_from_json(quote.items),
        discount=Discount.model_validate(quote.discount) if quote.discount else None,
        rates=ShopRateSettings.model_validate(quote.rates) if quote.rates else None,
        totals=totals_from_row(quote),
        notes=quote.notes,
        valid_until=quote.valid_until,
        signed_at=quote.signed_at,
        created_at=quote.created_at,
    )


def apply_pricing(quote: QuoteORM, pricing: QuotePricing) -> None:
    totals = pricing.totals
    quote.items = [item.model_dump(mode="json") for item in pricing.items]
    quote.total_cost_of_goods = totals.total_cost_of_goods
    quote.total_ht_gross = totals.total_sale_price_ht_gross
    quote.discount_amount = totals.discount_amount
    quote.total_ht = totals.total_sale_price_ht
    quote.tva_rate = totals.vat_rate_pct
    quote.total_ttc = totals.total_ttc
    quote.margin_pct = totals.margin_pct


class QuoteService:
    def __init__(self, db: Session, tenant_id: str, actor: Optional[str] = None):
        self.db = db
        self.tenant_id = tenant_id
        self.actor = actor

    def create(self, payload: QuoteCreate, rates: ShopRateSettings) -> QuoteORM:
        """Shop rates are frozen into the quote at creation."""
        pricing = price_quote(payload.items, rates, payload.discount)
        quotes_priced_counter.labels(source="save").inc()

        quote = QuoteORM(
            tenant_id=self.tenant_id,
            client_id=payload.client_id,
            numero=next_numero(self.db, QuoteORM, self.tenant_id),
            status="draft",
            title=payload.title,
            discount=payload.discount.model_dump(mode="json") if payload.discount else None,
            rates=rates.model_dump(mode="json"),
            notes=payload.notes,
            valid_until=payload.valid_until or (date.today() + timedelta(days=QUOTE_VALIDITY_DAYS)),
        )
        apply_pricing(quote, pricing)
        self.db.add(quote)
        self.db.flush()

        audit.record(
            self.db,
            tenant_id=self.tenant_id,
            actor=self.actor,
            action="create",
            target_type="quote",
            target_id=quote.id,
            new=audit.snapshot(quote, AUDIT_FIELDS),
        )
        self.db.commit()
        self.db.refresh(quote)
        logger.info(
            "quote_created",
            tenant_id=self.tenant_id,
            quote_id=quote.id,
            numero=quote.numero,
            total_ht=quote.total_ht,
            negative_margin=pricing.totals.negative_margin,
        )
        return quote

    def update(self, quote: QuoteORM, payload: QuoteUpdate) -> QuoteORM:
        if quote.status not in EDITABLE_STATUSES:
            raise InvalidOperation(f"Quote {quote.numero} is {quote.status} and can no longer be edited")

        old = audit.snapshot(quote, AUDIT_FIELDS)
        changes = payload.model_dump(exclude_unset=True)

        for field in ("client_id", "title", "notes", "valid_until"):
            if field in changes:
                setattr(quote, field, changes[field])
        if "discount" in changes:
            quote.discount = payload.discount.model_dump(mode="json") if payload.discount else None

        items = payload.items if payload.items is not None else items_from_json(quote.items)
        rates = ShopRateSettings.model_validate(quote.rates) if quote.rates else ShopRateSettings()
        discount = Discount.model_validate(quote.discount) if quote.discount else None
        apply_pricing(quote, price_quote(items, rates, discount))
        quotes_priced_counter.labels(source="save").inc()

        audit.record(
            self.db,
            tenant_id=self.tenant_id,
            actor=self.actor,
            action="update",
            target_type="quote",
            target_id=quote.id,
            old=old,
            new=audit.snapshot(quote, AUDIT_FIELDS),
        )
        self.db.commit()
        self.db.refresh(quote)
        return quote

    def set_status(self, quote: QuoteORM, status: str) -> QuoteORM:
        if quote.status == QUOTE_CONVERTED and status != QUOTE_CONVERTED:
            raise InvalidOperation(f"Quote {quote.numero} was converted and can no longer change status")
        if status == QUOTE_CONVERTED and quote.status not in CONVERTIBLE_STATUSES:
            raise InvalidOperation(f"Quote {quote.numero} must be accepted before conversion")
        old = audit.snapshot(quote, ("status",))
        quote.status = status
        if status == "accepted" and quote.signed_at is None:
            quote.signed_at = datetime.now(timezone.utc)

        audit.record(
            self.db,
            tenant_id=self.tenant_id,
            actor=self.actor,
            action="status",
            target_type="quote",
            target_id=quote.id,
            old=old,
            new={"status": status},
        )
        self.db.commit()
        self.db.refresh(quote)
        logger.info("quote_status_changed", tenant_id=self.tenant_id, quote_id=quote.id, status=status)
        return quote

    # ---- conversions ------------------------------------------------

    def _require_convertible(self, quote: QuoteORM, target) -> None:
        """Accepted quotes convert once into an invoice and once into a project."""
        if quote.status not in CONVERTIBLE_STATUSES:
            raise InvalidOperation(f"Quote {quote.numero} must be accepted before conversion")
        existing = (
            self.db.query(target)
            .filter(target.tenant_id == self.tenant_id, target.quote_id == quote.id)
            .first()
        )
        if existing is not None:
            raise InvalidOperation(
                f"Quote {quote.numero} was already converted into {existing.numero}",
                {"numero": existing.numero, "id": existing.id},
            )

    def _mark_converted(self, quote: QuoteORM) -> None:
        if quote.status != QUOTE_CONVERTED:
            quote.status = QUOTE_CONVERTED

    def convert_to_invoice(self, quote: QuoteORM) -> Invoice:
        self._require_convertible(quote, Invoice)

        lines = []
        for item in priced_items_from_json(quote.items):
            sale = item.breakdown.sale_price_ht
            lines.append(
                {
                    "designation": item.designation,
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_price_ht": sale / item.quantity,
                    "total_ht": sale,
                    "surface_m2": item.breakdown.surface_m2,
                    "layer_count": item.breakdown.layer_count,
                }
            )

        invoice = Invoice(
            tenant_id=self.tenant_id,
            client_id=quote.client_id,
            quote_id=quote.id,
            numero=next_numero(self.db, Invoice, self.tenant_id),
            type="complete",
            items=lines,
            total_ht=quote.total_ht,
            tva_rate=quote.tva_rate,
            total_ttc=quote.total_ttc,
            due_date=date.today() + timedelta(days=INVOICE_DUE_DAYS),
            notes=quote.notes,
        )
        self.db.add(invoice)
        self.db.flush()
        self._mark_converted(quote)
        audit.record(
            self.db,
            tenant_id=self.tenant_id,
            actor=self.actor,
            action="convert",
            target_type="quote",
            target_id=quote.id,
            new={"invoice_id": invoice.id, "invoice_numero": invoice.numero},
        )
        self.db.commit()
        self.db.refresh(invoice)
        logger.info("quote_converted", tenant_id=self.tenant_id, quote_id=quote.id, invoice_id=invoice.id)
        return invoice

    def convert_to_project(self, quote: QuoteORM) -> Project:
        self._require_convertible(quote, Project)

        items = priced_items_from_json(quote.items)
        powder_id = next(
            (
                layer.powder.id
                for item in items
                for layer in item.layers
                if layer.powder is not None and layer.powder.id is not None
            ),
            None,
        )
        project = Project(
            tenant_id=self.tenant_id,
            client_id=quote.client_id,
            quote_id=quote.id,
            powder_id=powder_id,
            numero=next_numero(self.db, Project, self.tenant_id),
            name=quote.title or f"Projet {quote.numero}",
            status="reception",
            surface_m2=sum(i.breakdown.surface_m2 for i in items),
            layers=max((i.breakdown.layer_count for i in items), default=1),
            notes=quote.notes,
        )
        self.db.add(project)
        self.db.flush()
        self._mark_converted(quote)
        audit.record(
            self.db,
            tenant_id=self.tenant_id,
            actor=self.actor,
            action="convert",
            target_type="quote",
            target_id=quote.id,
            new={"project_id": project.id, "project_numero": project.numero},
        )
        self.db.commit()
        self.db.refresh(project)
        logger.info("quote_converted", tenant_id=self.tenant_id, quote_id=quote.id, project_id=project.id)
        return project
