from datetime import date, datetime
from types import SimpleNamespace

import pytest

from thermogestion.services.pdf_renderer import (
    THEMES,
    demo_data,
    is_valid_color,
    prepare_delivery_note_data,
    prepare_invoice_data,
    renderer,
    theme_colors,
)


def _invoice(**overrides):
    data = dict(
        numero="FACT-2026-0007",
        created_at=datetime(2026, 3, 5, 10, 0),
        due_date=date(2026, 4, 4),
        paid_at=None,
        items=[
            {"designation": "Jantes alu", "description": "RAL 9005", "quantity": 4, "unit_price_ht": 60.0, "total_ht": 240.0},
        ],
        total_ht=240.0,
        tva_rate=20.0,
        total_ttc=288.0,
        notes="Livraison sur site",
    )
    data.update(overrides)
    return SimpleNamespace(**data)


def test_color_validation():
    assert is_valid_color("#1E3A5F")
    assert not is_valid_color("1e3a5f")
    assert not is_valid_color("#fff")
    assert not is_valid_color(None)


def test_theme_colors_override_only_when_valid():
    colors = theme_colors("modern", primary="#112233", accent="red")
    assert colors["primary"] == "#112233"
    assert colors["accent"] == THEMES["modern"]["accent"]


@pytest.mark.parametrize("theme", sorted(THEMES))
def test_every_theme_renders_demo_quote(theme):
    html = renderer.render_html(demo_data(date(2026, 3, 5)), template=theme, primary="#123456")

    assert "DEV-2026-0042" in html
    assert "SARL Métallerie Dupont" in html
    assert "1 500,00 €" in html
    assert "05 mars 2026" in html
    assert "#123456" in html


def test_unknown_theme_falls_back_to_classic():
    html = renderer.render_html(demo_data(), template="neon")
    assert THEMES["classic"]["primary"] in html


def test_invoice_document():
    data = prepare_invoice_data(_invoice(), None, SimpleNamespace(
        full_name="Garage Martin", email=None, phone=None, address=None, siret=None, type="professionnel"
    ))
    assert data["total_tva"] == pytest.approx(48.0)
    assert data["items"][0]["unit_price"] == 60.0

    html = renderer.render_html(data, template="industrial")
    assert "FACT-2026-0007" in html
    assert "Garage Martin" in html
    assert "288,00 €" in html


def test_delivery_note_numbering_and_html():
    data = prepare_delivery_note_data(_invoice(), None, None, delivery_date=date(2026, 3, 12))
    assert data["numero"] == "BL-2026-0007"
    assert data["items"] == [{"designation": "Jantes alu", "description": "RAL 9005", "quantity": 4}]

    html = renderer.render_delivery_note_html(data)
    assert "Bon de livraison BL-2026-0007" in html
    assert "12 mars 2026" in html


def test_templates_endpoint_lists_themes(client):
    resp = client.get("/api/templates")
    assert resp.status_code == 200
    assert {t["id"] for t in resp.json()} == set(THEMES)


def test_preview_endpoint(client):
    resp = client.get("/api/templates/preview", params={"template": "premium", "primary": "#abcdef"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert "#abcdef" in resp.text


def test_preview_rejects_unknown_template_and_bad_colour(client):
    assert client.get("/api/templates/preview", params={"template": "neon"}).status_code == 400
    assert client.get("/api/templates/preview", params={"accent": "#12345g"}).status_code == 400
