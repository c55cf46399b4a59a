import hashlib
import hmac
import json
import time

import pytest

from thermogestion.core.settings import settings
from thermogestion.models.alert import Alert
from thermogestion.models.invoice import Invoice, Payment
from thermogestion.models.tenant import Tenant

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture(autouse=True)
def stripe_configured(monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)


def _signed(event: dict, secret: str = WEBHOOK_SECRET):
    payload = json.dumps(event)
    timestamp = int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return payload, {"Stripe-Signature": f"t={timestamp},v1={signature}", "Content-Type": "application/json"}


def _post(client, event_type: str, obj: dict, secret: str = WEBHOOK_SECRET):
    payload, headers = _signed({"id": "evt_test", "type": event_type, "data": {"object": obj}}, secret)
    return client.post("/api/webhooks/stripe", content=payload, headers=headers)


def _invoice(db, tenant_id, **fields):
    data = dict(
        tenant_id=tenant_id,
        numero="FACT-2026-0001",
        items=[],
        total_ht=100.0,
        tva_rate=20.0,
        total_ttc=120.0,
        stripe_payment_intent_id="pi_123",
    )
    data.update(fields)
    invoice = Invoice(**data)
    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    return invoice


def test_not_configured_returns_503(client, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", None)
    resp = _post(client, "payment_intent.succeeded", {"id": "pi_123"})
    assert resp.status_code == 503


def test_missing_signature_returns_400(client):
    resp = client.post("/api/webhooks/stripe", content=b"{}")
    assert resp.status_code == 400


def test_bad_signature_returns_400(client):
    resp = _post(client, "payment_intent.succeeded", {"id": "pi_123"}, secret="whsec_wrong")
    assert resp.status_code == 400


def test_undecodable_body_returns_400(client, db, tenant_id):
    invoice = _invoice(db, tenant_id)

    resp = client.post(
        "/api/webhooks/stripe",
        content=b"\xff\xfe{",
        headers={"Stripe-Signature": "t=1,v1=abc", "Content-Type": "application/json"},
    )

    assert resp.status_code == 400
    db.refresh(invoice)
    assert invoice.payment_status == "unpaid"


def test_unknown_event_is_acknowledged_without_mutation(client, db, tenant_id):
    invoice = _invoice(db, tenant_id)

    resp = _post(client, "customer.created", {"id": "cus_1"})

    assert resp.status_code == 200
    assert resp.json() == {"received": True}
    db.refresh(invoice)
    assert invoice.payment_status == "unpaid"
    assert db.query(Payment).count() == 0
    assert db.query(Alert).count() == 0


def test_payment_intent_succeeded_marks_invoice_paid(client, db, tenant_id):
    invoice = _invoice(db, tenant_id)

    resp = _post(client, "payment_intent.succeeded", {"id": "pi_123"})

    assert resp.status_code == 200
    db.refresh(invoice)
    assert invoice.status == "payee"
    assert invoice.payment_status == "paid"
    assert invoice.paid_at is not None

    payment = db.query(Payment).one()
    assert payment.amount == pytest.approx(120.0)
    assert payment.payment_method == "stripe"
    assert db.query(Alert).filter(Alert.type == "paiement_recu").count() == 1


def test_payment_intent_succeeded_twice_records_one_payment(client, db, tenant_id):
    _invoice(db, tenant_id)
    _post(client, "payment_intent.succeeded", {"id": "pi_123"})
    _post(client, "payment_intent.succeeded", {"id": "pi_123"})
    assert db.query(Payment).count() == 1


def test_payment_intent_without_local_invoice_is_noop(client, db, tenant_id):
    resp = _post(client, "payment_intent.succeeded", {"id": "pi_unknown"})
    assert resp.status_code == 200
    assert db.query(Payment).count() == 0


def test_payment_intent_failed_sets_unpaid(client, db, tenant_id):
    invoice = _invoice(db, tenant_id, payment_status="partial")
    _post(client, "payment_intent.payment_failed", {"id": "pi_123"})
    db.refresh(invoice)
    assert invoice.payment_status == "unpaid"


def test_checkout_session_completed_by_facture_id(client, db, tenant_id):
    invoice = _invoice(db, tenant_id, stripe_payment_intent_id=None)

    resp = _post(
        client,
        "checkout.session.completed",
        {
            "id": "cs_1",
            "mode": "payment",
            "payment_status": "paid",
            "payment_intent": "pi_999",
            "metadata": {"facture_id": str(invoice.id)},
        },
    )

    assert resp.status_code == 200
    db.refresh(invoice)
    assert invoice.payment_status == "paid"
    assert invoice.stripe_payment_intent_id == "pi_999"


def test_checkout_session_unpaid_is_noop(client, db, tenant_id):
    invoice = _invoice(db, tenant_id, stripe_payment_link_id="plink_1")
    _post(
        client,
        "checkout.session.completed",
        {"id": "cs_2", "payment_status": "unpaid", "payment_link": "plink_1"},
    )
    db.refresh(invoice)
    assert invoice.payment_status == "unpaid"


def test_full_refund_marks_invoice_refunded(client, db, tenant_id):
    invoice = _invoice(db, tenant_id, status="payee", payment_status="paid")

    _post(
        client,
        "charge.refunded",
        {"id": "ch_1", "payment_intent": "pi_123", "amount_refunded": 12000, "refunded": True},
    )

    db.refresh(invoice)
    assert invoice.status == "remboursee"
    assert invoice.payment_status == "refunded"
    alert = db.query(Alert).filter(Alert.type == "remboursement").one()
    assert "120.00" in alert.message
    # the processor moved the money: no local payment row
    assert db.query(Payment).count() == 0


def test_partial_refund_only_alerts(client, db, tenant_id):
    invoice = _invoice(db, tenant_id, status="payee", payment_status="paid")
    _post(
        client,
        "charge.refunded",
        {"id": "ch_1", "payment_intent": "pi_123", "amount_refunded": 2000, "refunded": False},
    )
    db.refresh(invoice)
    assert invoice.payment_status == "paid"
    assert db.query(Alert).filter(Alert.type == "remboursement").count() == 1


def test_dispute_sets_disputed(client, db, tenant_id):
    invoice = _invoice(db, tenant_id, status="payee", payment_status="paid")
    _post(
        client,
        "charge.dispute.created",
        {"id": "dp_1", "payment_intent": "pi_123", "amount": 12000, "reason": "fraudulent"},
    )
    db.refresh(invoice)
    assert invoice.payment_status == "disputed"
    assert db.query(Alert).filter(Alert.type == "litige").count() == 1


def test_subscription_lifecycle(client, db, tenant_id):
    _post(
        client,
        "customer.subscription.created",
        {"id": "sub_1", "customer": "cus_1", "status": "active", "metadata": {"atelier_id": tenant_id, "plan": "pro"}},
    )
    tenant = db.get(Tenant, tenant_id)
    db.refresh(tenant)
    assert tenant.subscription_status == "active"
    assert tenant.stripe_subscription_id == "sub_1"
    assert tenant.stripe_customer_id == "cus_1"
    assert tenant.plan == "pro"

    # later events only carry the customer id
    _post(client, "customer.subscription.updated", {"id": "sub_1", "customer": "cus_1", "status": "past_due"})
    db.refresh(tenant)
    assert tenant.subscription_status == "past_due"

    _post(client, "invoice.paid", {"id": "in_1", "customer": "cus_1"})
    db.refresh(tenant)
    assert tenant.subscription_status == "active"

    _post(client, "customer.subscription.updated", {"id": "sub_1", "customer": "cus_1", "status": "canceled"})
    db.refresh(tenant)
    assert tenant.subscription_status == "cancelled"
    assert tenant.plan == settings.DEFAULT_PLAN


def test_subscription_deleted_clears_subscription(client, db, tenant_id):
    tenant = db.get(Tenant, tenant_id)
    tenant.stripe_customer_id = "cus_1"
    tenant.stripe_subscription_id = "sub_1"
    tenant.subscription_status = "active"
    db.commit()

    _post(client, "customer.subscription.deleted", {"id": "sub_1", "customer": "cus_1"})

    db.refresh(tenant)
    assert tenant.subscription_status == "cancelled"
    assert tenant.stripe_subscription_id is None


def test_subscription_payment_failed_raises_alert(client, db, tenant_id):
    tenant = db.get(Tenant, tenant_id)
    tenant.stripe_customer_id = "cus_1"
    tenant.subscription_status = "active"
    db.commit()

    _post(client, "invoice.payment_failed", {"id": "in_2", "customer": "cus_1"})

    db.refresh(tenant)
    assert tenant.subscription_status == "past_due"
    assert db.query(Alert).filter(Alert.type == "abonnement_impaye").count() == 1
