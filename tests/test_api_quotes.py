import pytest

from thermogestion.models.audit_log import AuditLog
from thermogestion.models.invoice import Invoice
from thermogestion.models.project import Project

ITEM = {
    "designation": "Portail coulissant",
    "length_mm": 1000,
    "width_mm": 1000,
    "quantity": 1,
    "layers": [{"layer_type": "base", "powder": {"price_per_kg": 20, "yield_m2_per_kg": 10}}],
}


def _client(client, headers, name="Garage Martin"):
    resp = client.post("/api/clients", json={"full_name": name, "type": "professionnel"}, headers=headers)
    assert resp.status_code == 201
    return resp.json()


def test_requires_auth(client):
    assert client.get("/api/quotes").status_code == 401
    assert client.get("/api/quotes", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_register_login_me(client):
    resp = client.post(
        "/auth/register",
        json={"company_name": "Atelier Test", "email": "Test@Example.fr", "password": "longpassword"},
    )
    assert resp.status_code == 201
    assert "access_token" in resp.cookies

    assert client.post(
        "/auth/register",
        json={"company_name": "Bis", "email": "test@example.fr", "password": "longpassword"},
    ).status_code == 400

    assert client.post("/auth/login", json={"email": "test@example.fr", "password": "wrong-one"}).status_code == 401
    token = client.post("/auth/login", json={"email": "test@example.fr", "password": "longpassword"}).json()["access_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me["email"] == "test@example.fr"
    assert me["tenant_name"] == "Atelier Test"


def test_calculate_uses_tenant_rates_or_override(client, auth_headers):
    resp = client.post("/api/quotes/calculate", json={"items": [ITEM]}, headers=auth_headers)
    assert resp.status_code == 200
    totals = resp.json()["totals"]
    # default atelier rates: 35 EUR/h, 0.15 h/m2, 2 EUR/m2, +30% powder, +50% labor
    assert totals["total_sale_price_ht"] == pytest.approx(24.95)
    assert totals["total_ttc"] == pytest.approx(29.94)

    resp = client.post(
        "/api/quotes/calculate",
        json={
            "items": [ITEM],
            "discount": {"kind": "fixed_amount", "value": 1000},
            "rates": {"vat_rate_pct": 10},
        },
        headers=auth_headers,
    )
    assert resp.json()["totals"]["total_sale_price_ht"] == 0


def test_calculate_validation_error(client, auth_headers):
    bad = {**ITEM, "quantity": 0}
    assert client.post("/api/quotes/calculate", json={"items": [bad]}, headers=auth_headers).status_code == 422


def test_quote_lifecycle(client, db, auth_headers):
    customer = _client(client, auth_headers)

    resp = client.post(
        "/api/quotes",
        json={"client_id": customer["id"], "title": "Portail", "items": [ITEM]},
        headers=auth_headers,
    )
    assert resp.status_code == 201
    quote = resp.json()
    assert quote["numero"].startswith("DEV-")
    assert quote["status"] == "draft"
    assert quote["rates"]["labor_rate_per_hour"] == 35
    assert quote["items"][0]["breakdown"]["surface_m2"] == pytest.approx(2.0)

    # rates are frozen: changing the atelier rates does not reprice the quote
    client.put("/api/settings", json={"labor_rate_per_hour": 80}, headers=auth_headers)
    resp = client.put(f"/api/quotes/{quote['id']}", json={"notes": "Urgent"}, headers=auth_headers)
    assert resp.json()["totals"]["total_sale_price_ht"] == pytest.approx(quote["totals"]["total_sale_price_ht"])

    # invoice conversion needs an accepted quote
    assert client.post(f"/api/quotes/{quote['id']}/convert/invoice", headers=auth_headers).status_code == 400

    resp = client.patch(f"/api/quotes/{quote['id']}/status", json={"status": "accepted"}, headers=auth_headers)
    assert resp.json()["signed_at"] is not None
    assert client.put(f"/api/quotes/{quote['id']}", json={"notes": "x"}, headers=auth_headers).status_code == 400
    assert client.delete(f"/api/quotes/{quote['id']}", headers=auth_headers).status_code == 400

    resp = client.post(f"/api/quotes/{quote['id']}/convert/invoice", headers=auth_headers)
    assert resp.status_code == 201
    invoice = resp.json()
    assert invoice["numero"].startswith("FACT-")
    assert invoice["quote_id"] == quote["id"]
    assert invoice["total_ttc"] == pytest.approx(quote["totals"]["total_ttc"])

    resp = client.post(f"/api/quotes/{quote['id']}/convert/project", headers=auth_headers)
    assert resp.status_code == 201
    assert resp.json()["surface_m2"] == pytest.approx(2.0)

    actions = {a.action for a in db.query(AuditLog).filter(AuditLog.target_type == "quote")}
    assert {"create", "update", "status", "convert"} <= actions


def test_quote_converts_once_per_document(client, db, auth_headers):
    quote = client.post("/api/quotes", json={"items": [ITEM]}, headers=auth_headers).json()
    client.patch(f"/api/quotes/{quote['id']}/status", json={"status": "accepted"}, headers=auth_headers)

    assert client.post(f"/api/quotes/{quote['id']}/convert/invoice", headers=auth_headers).status_code == 201
    again = client.post(f"/api/quotes/{quote['id']}/convert/invoice", headers=auth_headers)
    assert again.status_code == 400
    assert again.json()["code"] == "INVALID_OPERATION"

    assert client.post(f"/api/quotes/{quote['id']}/convert/project", headers=auth_headers).status_code == 201
    assert client.post(f"/api/quotes/{quote['id']}/convert/project", headers=auth_headers).status_code == 400

    assert db.query(Invoice).filter(Invoice.quote_id == quote["id"]).count() == 1
    assert db.query(Project).filter(Project.quote_id == quote["id"]).count() == 1

    stored = client.get(f"/api/quotes/{quote['id']}", headers=auth_headers).json()
    assert stored["status"] == "converted"
    # a converted quote cannot be reopened
    resp = client.patch(f"/api/quotes/{quote['id']}/status", json={"status": "sent"}, headers=auth_headers)
    assert resp.status_code == 400


def test_quote_html_document(client, auth_headers):
    quote = client.post("/api/quotes", json={"items": [ITEM]}, headers=auth_headers).json()
    client.put("/api/settings", json={"pdf_template": "modern", "primary_color": "#102030"}, headers=auth_headers)

    resp = client.get(f"/api/quotes/{quote['id']}/pdf", params={"format": "html"}, headers=auth_headers)
    assert resp.status_code == 200
    assert quote["numero"] in resp.text
    assert "#102030" in resp.text


def test_tenant_isolation(client, auth_headers, other_auth_headers):
    quote = client.post("/api/quotes", json={"items": [ITEM]}, headers=auth_headers).json()

    assert client.get(f"/api/quotes/{quote['id']}", headers=other_auth_headers).status_code == 404
    assert client.get("/api/quotes", headers=other_auth_headers).json() == []

    foreign_client = _client(client, other_auth_headers, "Autre")
    resp = client.post("/api/quotes", json={"client_id": foreign_client["id"], "items": []}, headers=auth_headers)
    assert resp.status_code == 404


def test_invoice_payments(client, auth_headers):
    invoice = client.post(
        "/api/invoices",
        json={"items": [{"designation": "Cadre vélo", "quantity": 2, "unit_price_ht": 50}]},
        headers=auth_headers,
    ).json()
    assert invoice["total_ht"] == 100
    assert invoice["total_ttc"] == pytest.approx(120)

    assert client.post(f"/api/invoices/{invoice['id']}/send", headers=auth_headers).json()["status"] == "envoyee"
    assert client.post(f"/api/invoices/{invoice['id']}/send", headers=auth_headers).status_code == 400

    resp = client.post(f"/api/invoices/{invoice['id']}/payments", json={"amount": 20, "payment_method": "cash"}, headers=auth_headers)
    assert resp.json()["payment_status"] == "partial"

    resp = client.post(f"/api/invoices/{invoice['id']}/payments", json={"payment_method": "transfer"}, headers=auth_headers)
    body = resp.json()
    assert body["amount"] == pytest.approx(100)
    assert body["status"] == "payee"
    assert body["payment_status"] == "paid"

    assert client.post(f"/api/invoices/{invoice['id']}/payments", json={}, headers=auth_headers).status_code == 400
    assert len(client.get(f"/api/invoices/{invoice['id']}/payments", headers=auth_headers).json()) == 2

    note = client.get(f"/api/invoices/{invoice['id']}/delivery-note/pdf", params={"format": "html"}, headers=auth_headers)
    assert invoice["numero"].replace("FACT-", "BL-") in note.text


def test_dashboard_and_alerts(client, auth_headers):
    invoice = client.post(
        "/api/invoices",
        json={"items": [{"designation": "Jantes", "quantity": 4, "unit_price_ht": 25}]},
        headers=auth_headers,
    ).json()
    client.post(f"/api/invoices/{invoice['id']}/send", headers=auth_headers)

    dashboard = client.get("/api/dashboard", headers=auth_headers).json()
    assert dashboard["outstanding_amount"] == pytest.approx(120)
    assert len(dashboard["revenue_by_month"]) == 12

    client.post(f"/api/invoices/{invoice['id']}/payments", json={}, headers=auth_headers)
    dashboard = client.get("/api/dashboard", headers=auth_headers).json()
    assert dashboard["outstanding_amount"] == 0
    assert dashboard["revenue_this_month"] == pytest.approx(100)

    powder = client.post(
        "/api/powders", json={"reference": "P1", "name": "Blanc", "stock_min_kg": 5}, headers=auth_headers
    ).json()
    client.post(f"/api/powders/{powder['id']}/stock", json={"kind": "entree", "quantity_kg": 10}, headers=auth_headers)
    client.post(f"/api/powders/{powder['id']}/stock", json={"kind": "sortie", "quantity_kg": 6}, headers=auth_headers)

    alerts = client.get("/api/alerts", params={"unread_only": True}, headers=auth_headers).json()
    assert [a["type"] for a in alerts] == ["stock_bas"]
    client.post(f"/api/alerts/{alerts[0]['id']}/read", headers=auth_headers)
    assert client.get("/api/alerts", params={"unread_only": True}, headers=auth_headers).json() == []


def test_health_and_metrics(client):
    assert client.get("/health").json() == {"status": "ok"}
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "thermogestion_quotes_priced" in resp.text
