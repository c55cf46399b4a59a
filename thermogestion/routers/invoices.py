from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session

from thermogestion.auth.deps import get_current_user
from thermogestion.db import get_db
from thermogestion.models.client import Client
from thermogestion.models.invoice import Invoice, Payment
from thermogestion.models.project import Project
from thermogestion.models.user import User
from thermogestion.routers.common import get_owned_or_404
from thermogestion.schemas.invoice import InvoiceCreate, InvoiceOut, PaymentCreate
from thermogestion.services.invoice_service import InvoiceService
from thermogestion.services.pdf_renderer import (
    prepare_delivery_note_data,
    prepare_invoice_data,
    renderer,
)
from thermogestion.services.tenant_service import TenantService

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


def _pdf_response(pdf: bytes, filename: str) -> Response:
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@router.get("", response_model=List[InvoiceOut])
def list_invoices(
    status: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None),
    client_id: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    q = db.query(Invoice).filter(Invoice.tenant_id == user.tenant_id)
    if status:
        q = q.filter(Invoice.status == status)
    if payment_status:
        q = q.filter(Invoice.payment_status == payment_status)
    if client_id:
        q = q.filter(Invoice.client_id == client_id)
    return q.order_by(Invoice.id.desc()).all()


@router.post("", response_model=InvoiceOut, status_code=201)
def create_invoice(payload: InvoiceCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if payload.client_id is not None:
        get_owned_or_404(db, Client, payload.client_id, user.tenant_id, "Client not found")
    if payload.project_id is not None:
        get_owned_or_404(db, Project, payload.project_id, user.tenant_id, "Project not found")
    rates = TenantService(db).get_shop_rates(user.tenant_id)
    return InvoiceService(db, user.tenant_id, user.id).create(payload, rates.vat_rate_pct)


@router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice(invoice_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_owned_or_404(db, Invoice, invoice_id, user.tenant_id, "Invoice not found")


@router.post("/{invoice_id}/send", response_model=InvoiceOut)
def send_invoice(invoice_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    invoice = get_owned_or_404(db, Invoice, invoice_id, user.tenant_id, "Invoice not found")
    return InvoiceService(db, user.tenant_id, user.id).send(invoice)


@router.post("/{invoice_id}/payments", status_code=201)
def add_payment(
    invoice_id: int,
    payload: PaymentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    invoice = get_owned_or_404(db, Invoice, invoice_id, user.tenant_id, "Invoice not found")
    payment = InvoiceService(db, user.tenant_id, user.id).record_payment(invoice, payload)
    db.refresh(invoice)
    return {
        "payment_id": payment.id,
        "amount": payment.amount,
        "status": invoice.status,
        "payment_status": invoice.payment_status,
    }


@router.get("/{invoice_id}/payments")
def list_payments(invoice_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    invoice = get_owned_or_404(db, Invoice, invoice_id, user.tenant_id, "Invoice not found")
    rows = db.query(Payment).filter(Payment.invoice_id == invoice.id).order_by(Payment.id).all()
    return [
        {
            "id": p.id,
            "amount": p.amount,
            "payment_method": p.payment_method,
            "payment_ref": p.payment_ref,
            "status": p.status,
            "paid_at": p.paid_at,
        }
        for p in rows
    ]


@router.get("/{invoice_id}/pdf")
def invoice_pdf(
    invoice_id: int,
    format: str = Query("pdf", pattern="^(pdf|html)$"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    invoice = get_owned_or_404(db, Invoice, invoice_id, user.tenant_id, "Invoice not found")
    client = db.get(Client, invoice.client_id) if invoice.client_id else None
    tenant_settings = TenantService(db).get_settings(user.tenant_id)

    html = renderer.render_html(
        prepare_invoice_data(invoice, tenant_settings, client),
        template=tenant_settings.pdf_template,
        primary=tenant_settings.primary_color,
        accent=tenant_settings.accent_color,
    )
    if format == "html":
        return HTMLResponse(html)
    return _pdf_response(renderer.html_to_pdf(html, document="invoice"), f"{invoice.numero}.pdf")


@router.get("/{invoice_id}/delivery-note/pdf")
def delivery_note_pdf(
    invoice_id: int,
    format: str = Query("pdf", pattern="^(pdf|html)$"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    invoice = get_owned_or_404(db, Invoice, invoice_id, user.tenant_id, "Invoice not found")
    client = db.get(Client, invoice.client_id) if invoice.client_id else None
    project = db.get(Project, invoice.project_id) if invoice.project_id else None
    tenant_settings = TenantService(db).get_settings(user.tenant_id)

    data = prepare_delivery_note_data(invoice, tenant_settings, client, project)
    html = renderer.render_delivery_note_html(data)
    if format == "html":
        return HTMLResponse(html)
    return _pdf_response(renderer.html_to_pdf(html, document="delivery_note"), f"{data['numero']}.pdf")
