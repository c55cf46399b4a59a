import pytest

from thermogestion.core.errors import InvalidOperation
from thermogestion.models.alert import Alert
from thermogestion.models.powder import Powder
from thermogestion.schemas.crm import StockMovementIn
from thermogestion.services.stock import apply_movement, is_low, low_stock_powders, signed_quantity


def test_signed_quantity():
    assert signed_quantity("entree", 5) == 5
    assert signed_quantity("sortie", 5) == -5
    assert signed_quantity("sortie", -5) == -5
    assert signed_quantity("ajustement", -2.5) == -2.5


def _powder(db, tenant_id, stock=10.0, minimum=5.0):
    powder = Powder(
        tenant_id=tenant_id, reference="P-9005", name="Noir foncé", stock_kg=stock, stock_min_kg=minimum
    )
    db.add(powder)
    db.commit()
    return powder


def test_movement_updates_stock_and_alerts_once(db, tenant_id):
    powder = _powder(db, tenant_id)

    apply_movement(db, powder, StockMovementIn(kind="sortie", quantity_kg=6))
    assert powder.stock_kg == pytest.approx(4.0)
    assert is_low(powder)

    apply_movement(db, powder, StockMovementIn(kind="sortie", quantity_kg=1))
    assert db.query(Alert).filter(Alert.type == "stock_bas").count() == 1
    assert [p.id for p in low_stock_powders(db, tenant_id)] == [powder.id]

    apply_movement(db, powder, StockMovementIn(kind="entree", quantity_kg=20))
    assert not is_low(powder)
    assert low_stock_powders(db, tenant_id) == []


def test_negative_stock_is_refused(db, tenant_id):
    powder = _powder(db, tenant_id, stock=2.0)
    with pytest.raises(InvalidOperation):
        apply_movement(db, powder, StockMovementIn(kind="sortie", quantity_kg=3))
    assert powder.stock_kg == 2.0


def test_stock_endpoints(client, auth_headers):
    powder = client.post(
        "/api/powders",
        json={"reference": "P-7016", "name": "Anthracite", "ral": "RAL 7016", "stock_min_kg": 3},
        headers=auth_headers,
    ).json()
    assert powder["ral"] == "7016"

    resp = client.post(f"/api/powders/{powder['id']}/stock", json={"kind": "entree", "quantity_kg": 2}, headers=auth_headers)
    assert resp.json()["stock_kg"] == 2

    low = client.get("/api/powders/low-stock", headers=auth_headers).json()
    assert [p["id"] for p in low] == [powder["id"]]

    resp = client.post(f"/api/powders/{powder['id']}/stock", json={"kind": "sortie", "quantity_kg": 5}, headers=auth_headers)
    assert resp.status_code == 400

    movements = client.get(f"/api/powders/{powder['id']}/movements", headers=auth_headers).json()
    assert [m["quantity_kg"] for m in movements] == [2]
