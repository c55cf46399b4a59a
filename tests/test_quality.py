from thermogestion.models.project import Project
from thermogestion.schemas.crm import QualityCheckIn
from thermogestion.services.quality import derive_result, project_checks, record_check, thickness_in_range


def test_derive_result():
    assert derive_result([None, None, None, None, None]) == "en_attente"
    assert derive_result([True, None, True, None, None]) == "conforme"
    assert derive_result([True, False, None, True, True]) == "non_conforme"


def test_thickness_range():
    assert thickness_in_range(80) is True
    assert thickness_in_range(59.9) is False
    assert thickness_in_range(120) is True
    assert thickness_in_range(None) is None


def _project(db, tenant_id):
    project = Project(tenant_id=tenant_id, numero="PRJ-2026-0001", name="Portail")
    db.add(project)
    db.commit()
    return project


def test_record_check_upserts_per_step(db, tenant_id):
    project = _project(db, tenant_id)

    first = record_check(
        db,
        project=project,
        payload=QualityCheckIn(step="final", thickness_um=150, visual_ok=True),
        inspector_id="u1",
    )
    # measured thickness outside 60-120 fails the step
    assert first.thickness_ok is False
    assert first.result == "non_conforme"

    second = record_check(
        db,
        project=project,
        payload=QualityCheckIn(step="final", thickness_um=90, visual_ok=True, adhesion_ok=True),
        inspector_id="u1",
    )
    assert second.id == first.id
    assert second.result == "conforme"

    record_check(db, project=project, payload=QualityCheckIn(step="preparation"), inspector_id=None)
    assert [c.step for c in project_checks(db, project)] == ["preparation", "final"]


def test_quality_endpoints(client, auth_headers, other_auth_headers):
    project = client.post("/api/projects", json={"name": "Jantes"}, headers=auth_headers).json()

    resp = client.post(
        f"/api/projects/{project['id']}/quality",
        json={"step": "cuisson", "shade_ok": True, "gloss_ok": True},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["result"] == "conforme"

    assert len(client.get(f"/api/projects/{project['id']}/quality", headers=auth_headers).json()) == 1
    assert client.get(f"/api/projects/{project['id']}/quality", headers=other_auth_headers).status_code == 404
