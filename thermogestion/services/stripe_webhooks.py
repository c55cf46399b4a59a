"""
Stripe webhook dispatch.

Every handler maps one event type onto local table mutations. The processor
already moved the money: refunds and disputes only update statuses and raise
alerts. Events that match no local record are logged no-ops, unknown event
types are acknowledged and ignored.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import stripe
from pydantic import ValidationError
from sqlalchemy.orm import Session

from thermogestion.core.errors import WebhookNotConfigured, WebhookSignatureError
from thermogestion.core.logging_config import logger
from thermogestion.core.settings import Settings, settings as default_settings
from thermogestion.models.invoice import (
    INVOICE_PAID,
    INVOICE_REFUNDED,
    PAYMENT_DISPUTED,
    PAYMENT_PAID,
    PAYMENT_REFUNDED,
    PAYMENT_UNPAID,
    Invoice,
    Payment,
)
from thermogestion.models.tenant import (
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_CANCELLED,
    SUBSCRIPTION_PAST_DUE,
    Tenant,
)
from thermogestion.observability.metrics import webhook_counter
from thermogestion.schemas.webhooks import StripeEvent
from thermogestion.services.notifications import create_alert, notify_invoice_paid

APPLIED = "applied"
NO_MATCH = "no_match"
IGNORED = "ignored"

# Stripe subscription.status -> local subscription state
SUBSCRIPTION_STATUS_MAP: Dict[str, str] = {
    "active": SUBSCRIPTION_ACTIVE,
    "trialing": SUBSCRIPTION_ACTIVE,
    "past_due": SUBSCRIPTION_PAST_DUE,
    "unpaid": SUBSCRIPTION_PAST_DUE,
    "incomplete": SUBSCRIPTION_PAST_DUE,
    "canceled": SUBSCRIPTION_CANCELLED,
    "incomplete_expired": SUBSCRIPTION_CANCELLED,
}

Handler = Callable[["WebhookDispatcher", Dict[str, Any]], str]
HANDLERS: Dict[str, Handler] = {}


def on(event_type: str):
    def decorator(fn: Handler) -> Handler:
        HANDLERS[event_type] = fn
        return fn

    return decorator


def _now() -> datetime:
    return datetime.now(timezone.utc)


# -------------------------
# Verification
# -------------------------
def verify_event(
    payload: bytes, signature: Optional[str], cfg: Settings = default_settings
) -> StripeEvent:
    """Check the Stripe-Signature header and parse the event envelope."""
    if not cfg.stripe_configured:
        raise WebhookNotConfigured("Stripe not configured")
    if not signature:
        raise WebhookSignatureError("Missing Stripe-Signature header")

    try:
        body = payload.decode("utf-8")
    except UnicodeDecodeError:
        # cannot have been signed by Stripe, which always sends UTF-8 JSON
        raise WebhookSignatureError("Webhook payload is not valid UTF-8")

    try:
        stripe.WebhookSignature.verify_header(
            body,
            signature,
            cfg.STRIPE_WEBHOOK_SECRET,
            tolerance=cfg.STRIPE_WEBHOOK_TOLERANCE,
        )
    except stripe.SignatureVerificationError as e:
        raise WebhookSignatureError(f"Webhook Error: {e}")

    try:
        return StripeEvent.model_validate_json(body)
    except ValidationError as e:
        raise WebhookSignatureError(f"Invalid event payload: {e.error_count()} error(s)")


# -------------------------
# Dispatcher
# -------------------------
class WebhookDispatcher:
    def __init__(self, db: Session, cfg: Settings = default_settings):
        self.db = db
        self.cfg = cfg

    def dispatch(self, event: StripeEvent) -> str:
        log = logger.bind(event_id=event.id, event_type=event.type)

        handler = HANDLERS.get(event.type)
        if handler is None:
            log.info("webhook_event_ignored")
            webhook_counter.labels(event_type=event.type, outcome=IGNORED).inc()
            return IGNORED

        try:
            outcome = handler(self, event.data.object)
            self.db.commit()
        except Exception:
            self.db.rollback()
            webhook_counter.labels(event_type=event.type, outcome="error").inc()
            log.exception("webhook_event_failed")
            raise

        webhook_counter.labels(event_type=event.type, outcome=outcome).inc()
        log.info("webhook_event_processed", outcome=outcome)
        return outcome

    # ---- lookups ---------------------------------------------------

    def tenant_for(self, obj: Dict[str, Any]) -> Optional[Tenant]:
        metadata = obj.get("metadata") or {}
        tenant_id = metadata.get("atelier_id") or metadata.get("tenant_id")
        if tenant_id:
            tenant = self.db.get(Tenant, tenant_id)
            if tenant is not None:
                return tenant

        customer = obj.get("customer")
        if customer:
            return (
                self.db.query(Tenant)
                .filter(Tenant.stripe_customer_id == customer)
                .first()
            )
        return None

    def invoice_by_payment_intent(self, payment_intent_id: Optional[str]) -> Optional[Invoice]:
        if not payment_intent_id:
            return None
        return (
            self.db.query(Invoice)
            .filter(Invoice.stripe_payment_intent_id == payment_intent_id)
            .first()
        )

    # ---- mutations -------------------------------------------------

    def mark_invoice_paid(self, invoice: Invoice, payment_intent_id: Optional[str]) -> None:
        paid_at = _now()
        invoice.status = INVOICE_PAID
        invoice.payment_status = PAYMENT_PAID
        invoice.paid_at = paid_at
        if payment_intent_id:
            invoice.stripe_payment_intent_id = payment_intent_id

        self.db.add(
            Payment(
                tenant_id=invoice.tenant_id,
                invoice_id=invoice.id,
                client_id=invoice.client_id,
                type="complete",
                amount=float(invoice.total_ttc or 0),
                payment_method="stripe",
                stripe_payment_intent_id=payment_intent_id,
                payment_ref=payment_intent_id,
                status="completed",
                paid_at=paid_at,
            )
        )
        notify_invoice_paid(self.db, invoice)


# -------------------------
# Subscription (SaaS billing of the atelier)
# -------------------------
@on("customer.subscription.created")
def subscription_created(d: WebhookDispatcher, sub: Dict[str, Any]) -> str:
    tenant = d.tenant_for(sub)
    if tenant is None:
        logger.warning("subscription_tenant_not_found", subscription_id=sub.get("id"))
        return NO_MATCH

    tenant.subscription_status = SUBSCRIPTION_ACTIVE
    tenant.stripe_subscription_id = sub.get("id")
    if sub.get("customer"):
        tenant.stripe_customer_id = sub["customer"]
    plan = (sub.get("metadata") or {}).get("plan")
    if plan:
        tenant.plan = plan
    return APPLIED


@on("customer.subscription.updated")
def subscription_updated(d: WebhookDispatcher, sub: Dict[str, Any]) -> str:
    tenant = d.tenant_for(sub)
    if tenant is None:
        logger.warning("subscription_tenant_not_found", subscription_id=sub.get("id"))
        return NO_MATCH

    remote_status = sub.get("status") or ""
    local_status = SUBSCRIPTION_STATUS_MAP.get(remote_status)
    if local_status is None:
        logger.info("subscription_status_unmapped", status=remote_status, tenant_id=tenant.id)
        return IGNORED

    tenant.subscription_status = local_status
    if remote_status == "canceled":
        tenant.plan = d.cfg.DEFAULT_PLAN
    else:
        plan = (sub.get("metadata") or {}).get("plan")
        if plan:
            tenant.plan = plan
    return APPLIED


@on("customer.subscription.deleted")
def subscription_deleted(d: WebhookDispatcher, sub: Dict[str, Any]) -> str:
    tenant = d.tenant_for(sub)
    if tenant is None:
        logger.warning("subscription_tenant_not_found", subscription_id=sub.get("id"))
        return NO_MATCH

    tenant.subscription_status = SUBSCRIPTION_CANCELLED
    tenant.stripe_subscription_id = None
    tenant.plan = d.cfg.DEFAULT_PLAN
    return APPLIED


@on("invoice.paid")
def subscription_invoice_paid(d: WebhookDispatcher, inv: Dict[str, Any]) -> str:
    tenant = d.tenant_for(inv)
    if tenant is None or tenant.subscription_status == SUBSCRIPTION_CANCELLED:
        return NO_MATCH
    tenant.subscription_status = SUBSCRIPTION_ACTIVE
    return APPLIED


@on("invoice.payment_failed")
def subscription_invoice_failed(d: WebhookDispatcher, inv: Dict[str, Any]) -> str:
    tenant = d.tenant_for(inv)
    if tenant is None or tenant.subscription_status == SUBSCRIPTION_CANCELLED:
        return NO_MATCH
    tenant.subscription_status = SUBSCRIPTION_PAST_DUE
    create_alert(
        d.db,
        tenant_id=tenant.id,
        type="abonnement_impaye",
        title="Échec du paiement de l'abonnement",
        message="Le prélèvement de votre abonnement a échoué. Mettez à jour votre moyen de paiement.",
        link="/app/parametres/abonnement",
        data={"stripe_invoice_id": inv.get("id")},
    )
    return APPLIED


# -------------------------
# Customer invoices (factures paid online)
# -------------------------
@on("payment_intent.succeeded")
def payment_intent_succeeded(d: WebhookDispatcher, pi: Dict[str, Any]) -> str:
    invoice = d.invoice_by_payment_intent(pi.get("id"))
    if invoice is None:
        logger.info("invoice_not_found", payment_intent=pi.get("id"))
        return NO_MATCH
    if invoice.payment_status == PAYMENT_PAID:
        return NO_MATCH

    d.mark_invoice_paid(invoice, pi.get("id"))
    return APPLIED


@on("payment_intent.payment_failed")
def payment_intent_failed(d: WebhookDispatcher, pi: Dict[str, Any]) -> str:
    invoice = d.invoice_by_payment_intent(pi.get("id"))
    if invoice is None:
        logger.info("invoice_not_found", payment_intent=pi.get("id"))
        return NO_MATCH

    invoice.payment_status = PAYMENT_UNPAID
    return APPLIED


@on("checkout.session.completed")
def checkout_session_completed(d: WebhookDispatcher, session: Dict[str, Any]) -> str:
    metadata = session.get("metadata") or {}

    # SaaS subscription checkout: remember the customer for later events
    if session.get("mode") == "subscription" and not metadata.get("facture_id"):
        tenant = d.tenant_for(session)
        if tenant is None:
            return NO_MATCH
        if session.get("customer"):
            tenant.stripe_customer_id = session["customer"]
        if metadata.get("plan"):
            tenant.plan = metadata["plan"]
        return APPLIED

    invoice = None
    if metadata.get("facture_id"):
        invoice = d.db.get(Invoice, _as_int(metadata["facture_id"]))
    elif session.get("payment_link"):
        invoice = (
            d.db.query(Invoice)
            .filter(Invoice.stripe_payment_link_id == session["payment_link"])
            .first()
        )
    elif session.get("client_reference_id"):
        invoice = d.db.get(Invoice, _as_int(session["client_reference_id"]))

    if invoice is None:
        logger.info("invoice_not_found", checkout_session=session.get("id"))
        return NO_MATCH
    if session.get("payment_status") != "paid" or invoice.payment_status == PAYMENT_PAID:
        return NO_MATCH

    d.mark_invoice_paid(invoice, session.get("payment_intent"))
    return APPLIED


# -------------------------
# Refunds & disputes (notification only)
# -------------------------
@on("charge.refunded")
def charge_refunded(d: WebhookDispatcher, charge: Dict[str, Any]) -> str:
    invoice = d.invoice_by_payment_intent(charge.get("payment_intent"))
    if invoice is None:
        logger.info("invoice_not_found", charge=charge.get("id"))
        return NO_MATCH

    refunded = float(charge.get("amount_refunded") or 0) / 100
    full = bool(charge.get("refunded"))
    if full:
        invoice.status = INVOICE_REFUNDED
        invoice.payment_status = PAYMENT_REFUNDED

    create_alert(
        d.db,
        tenant_id=invoice.tenant_id,
        type="remboursement",
        title=f"Remboursement - {invoice.numero}",
        message=(
            f"{'Remboursement total' if full else 'Remboursement partiel'} "
            f"de {refunded:.2f} € sur la facture {invoice.numero}"
        ),
        link=f"/app/factures/{invoice.id}",
        data={"invoice_id": invoice.id, "amount_refunded": refunded, "charge_id": charge.get("id")},
    )
    return APPLIED


@on("charge.dispute.created")
def charge_dispute_created(d: WebhookDispatcher, dispute: Dict[str, Any]) -> str:
    invoice = d.invoice_by_payment_intent(dispute.get("payment_intent"))
    if invoice is None:
        logger.info("invoice_not_found", dispute=dispute.get("id"))
        return NO_MATCH

    invoice.payment_status = PAYMENT_DISPUTED
    amount = float(dispute.get("amount") or 0) / 100
    create_alert(
        d.db,
        tenant_id=invoice.tenant_id,
        type="litige",
        title=f"Litige ouvert - {invoice.numero}",
        message=(
            f"Le client conteste le paiement de la facture {invoice.numero} "
            f"({amount:.2f} €, motif : {dispute.get('reason') or 'non précisé'})"
        ),
        link=f"/app/factures/{invoice.id}",
        data={"invoice_id": invoice.id, "dispute_id": dispute.get("id"), "amount": amount},
    )
    return APPLIED


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
