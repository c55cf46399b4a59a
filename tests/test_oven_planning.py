from datetime import date
from types import SimpleNamespace

import pytest

from thermogestion.core.errors import CapacityError
from thermogestion.services.oven_planning import OvenCapacity, check_batch, cure_window, remaining_slots

CAPACITY = OvenCapacity(batches_per_day=2, max_weight_kg=100.0, max_temp_c=220.0)
DAY = "2026-03-10"


def _powder(low, high):
    return SimpleNamespace(cure_temp_min_c=low, cure_temp_max_c=high)


def test_remaining_slots_never_negative():
    assert remaining_slots(CAPACITY, 0) == 2
    assert remaining_slots(CAPACITY, 5) == 0


def test_cure_window_is_the_intersection():
    assert cure_window([_powder(180, 210), _powder(190, 220), _powder(None, None)]) == (190, 210)
    assert cure_window([]) == (None, None)


def test_from_settings_defaults():
    cap = OvenCapacity.from_settings(None)
    assert cap.batches_per_day == 8
    assert cap.max_weight_kg == 500.0
    assert cap.max_temp_c == 250.0


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(planned_count=2, weight_kg=10, temperature_c=200),
        dict(planned_count=0, weight_kg=150, temperature_c=200),
        dict(planned_count=0, weight_kg=10, temperature_c=230),
        dict(planned_count=0, weight_kg=10, temperature_c=200, window=(210, 190)),
        dict(planned_count=0, weight_kg=10, temperature_c=170, window=(180, 210)),
    ],
)
def test_check_batch_rejections(kwargs):
    with pytest.raises(CapacityError):
        check_batch(CAPACITY, **kwargs)


def test_check_batch_accepts_within_limits():
    check_batch(CAPACITY, planned_count=1, weight_kg=100, temperature_c=200, window=(180, 210))


def _setup_projects(client, headers):
    powder = client.post(
        "/api/powders",
        json={"reference": "P-7016", "name": "Anthracite", "cure_temp_min_c": 180, "cure_temp_max_c": 200},
        headers=headers,
    ).json()
    heavy = client.post(
        "/api/projects", json={"name": "Portail", "weight_kg": 300, "powder_id": powder["id"]}, headers=headers
    ).json()
    light = client.post("/api/projects", json={"name": "Jantes", "weight_kg": 40}, headers=headers).json()
    return heavy, light


def test_batch_flow_pushes_project_statuses(client, auth_headers):
    heavy, light = _setup_projects(client, auth_headers)

    resp = client.post(
        "/api/oven/batches",
        json={"day": DAY, "temperature_c": 190, "project_ids": [heavy["id"], light["id"]]},
        headers=auth_headers,
    )
    assert resp.status_code == 201
    batch = resp.json()
    assert batch["total_weight_kg"] == 340
    assert batch["status"] == "planifie"

    resp = client.patch(f"/api/oven/batches/{batch['id']}/status", json={"status": "en_cours"}, headers=auth_headers)
    assert resp.status_code == 200
    assert client.get(f"/api/projects/{heavy['id']}", headers=auth_headers).json()["status"] == "en_cuisson"

    client.patch(f"/api/oven/batches/{batch['id']}/status", json={"status": "termine"}, headers=auth_headers)
    assert client.get(f"/api/projects/{light['id']}", headers=auth_headers).json()["status"] == "qc"

    # finished batches are final
    resp = client.patch(f"/api/oven/batches/{batch['id']}/status", json={"status": "en_cours"}, headers=auth_headers)
    assert resp.status_code == 400

    day = client.get(f"/api/oven/days/{DAY}", headers=auth_headers).json()
    assert day["planned"] == 1
    assert day["remaining"] == 7
    assert day["total_weight_kg"] == 340


def test_batch_rejected_outside_powder_range(client, auth_headers):
    heavy, _ = _setup_projects(client, auth_headers)
    resp = client.post(
        "/api/oven/batches",
        json={"day": DAY, "temperature_c": 230, "project_ids": [heavy["id"]]},
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "CAPACITY"


def test_batch_with_foreign_project_is_404(client, auth_headers, other_auth_headers):
    heavy, _ = _setup_projects(client, auth_headers)
    resp = client.post(
        "/api/oven/batches",
        json={"day": DAY, "project_ids": [heavy["id"]]},
        headers=other_auth_headers,
    )
    assert resp.status_code == 404


def test_slots_exhausted(client, auth_headers):
    client.put("/api/settings", json={"oven_batches_per_day": 1}, headers=auth_headers)
    assert client.post("/api/oven/batches", json={"day": DAY}, headers=auth_headers).status_code == 201
    assert client.post("/api/oven/batches", json={"day": DAY}, headers=auth_headers).status_code == 400
    # another day still has room
    assert client.post("/api/oven/batches", json={"day": str(date(2026, 3, 11))}, headers=auth_headers).status_code == 201
