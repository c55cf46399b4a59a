from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session

from thermogestion.auth.deps import get_current_user
from thermogestion.db import get_db
from thermogestion.models.client import Client
from thermogestion.models.quote import QuoteORM
from thermogestion.models.user import User
from thermogestion.observability.metrics import quotes_priced_counter
from thermogestion.routers.common import get_owned_or_404
from thermogestion.schemas.crm import ProjectOut
from thermogestion.schemas.invoice import InvoiceOut
from thermogestion.schemas.pricing import CalculateRequest, QuotePricing
from thermogestion.schemas.quote import QuoteCreate, QuoteOut, QuoteStatusUpdate, QuoteUpdate
from thermogestion.services.pdf_renderer import prepare_quote_data, renderer
from thermogestion.services.pricing_engine import price_quote
from thermogestion.services.quote_service import QuoteService, quote_out
from thermogestion.services.tenant_service import TenantService

router = APIRouter(prefix="/api/quotes", tags=["quotes"])


@router.post("/calculate", response_model=QuotePricing)
def calculate(payload: CalculateRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Price a draft without saving it."""
    rates = payload.rates or TenantService(db).get_shop_rates(user.tenant_id)
    quotes_priced_counter.labels(source="calculate").inc()
    return price_quote(payload.items, rates, payload.discount)


@router.get("", response_model=List[QuoteOut])
def list_quotes(
    status: Optional[str] = Query(None),
    client_id: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    q = db.query(QuoteORM).filter(QuoteORM.tenant_id == user.tenant_id)
    if status:
        q = q.filter(QuoteORM.status == status)
    if client_id:
        q = q.filter(QuoteORM.client_id == client_id)
    return [quote_out(row) for row in q.order_by(QuoteORM.id.desc()).all()]


@router.post("", response_model=QuoteOut, status_code=201)
def create_quote(payload: QuoteCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if payload.client_id is not None:
        get_owned_or_404(db, Client, payload.client_id, user.tenant_id, "Client not found")
    rates = TenantService(db).get_shop_rates(user.tenant_id)
    quote = QuoteService(db, user.tenant_id, user.id).create(payload, rates)
    return quote_out(quote)


@router.get("/{quote_id}", response_model=QuoteOut)
def get_quote(quote_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return quote_out(get_owned_or_404(db, QuoteORM, quote_id, user.tenant_id, "Quote not found"))


@router.put("/{quote_id}", response_model=QuoteOut)
def update_quote(
    quote_id: int,
    payload: QuoteUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    quote = get_owned_or_404(db, QuoteORM, quote_id, user.tenant_id, "Quote not found")
    if payload.client_id is not None:
        get_owned_or_404(db, Client, payload.client_id, user.tenant_id, "Client not found")
    return quote_out(QuoteService(db, user.tenant_id, user.id).update(quote, payload))


@router.patch("/{quote_id}/status", response_model=QuoteOut)
def update_quote_status(
    quote_id: int,
    payload: QuoteStatusUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    quote = get_owned_or_404(db, QuoteORM, quote_id, user.tenant_id, "Quote not found")
    return quote_out(QuoteService(db, user.tenant_id, user.id).set_status(quote, payload.status))


@router.delete("/{quote_id}", status_code=204)
def delete_quote(quote_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    quote = get_owned_or_404(db, QuoteORM, quote_id, user.tenant_id, "Quote not found")
    if quote.status != "draft":
        raise HTTPException(status_code=400, detail="Only draft quotes can be deleted")
    db.delete(quote)
    db.commit()


@router.post("/{quote_id}/convert/invoice", response_model=InvoiceOut, status_code=201)
def convert_to_invoice(quote_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    quote = get_owned_or_404(db, QuoteORM, quote_id, user.tenant_id, "Quote not found")
    return QuoteService(db, user.tenant_id, user.id).convert_to_invoice(quote)


@router.post("/{quote_id}/convert/project", response_model=ProjectOut, status_code=201)
def convert_to_project(quote_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    quote = get_owned_or_404(db, QuoteORM, quote_id, user.tenant_id, "Quote not found")
    return QuoteService(db, user.tenant_id, user.id).convert_to_project(quote)


@router.get("/{quote_id}/pdf")
def quote_pdf(
    quote_id: int,
    format: str = Query("pdf", pattern="^(pdf|html)$"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    quote = get_owned_or_404(db, QuoteORM, quote_id, user.tenant_id, "Quote not found")
    client = db.get(Client, quote.client_id) if quote.client_id else None
    tenant_settings = TenantService(db).get_settings(user.tenant_id)

    html = renderer.render_html(
        prepare_quote_data(quote, tenant_settings, client),
        template=tenant_settings.pdf_template,
        primary=tenant_settings.primary_color,
        accent=tenant_settings.accent_color,
    )
    if format == "html":
        return HTMLResponse(html)

    return Response(
        content=renderer.html_to_pdf(html, document="quote"),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{quote.numero}.pdf"'},
    )
