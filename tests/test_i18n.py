import json

from thermogestion.services.i18n import (
    I18N_DIR,
    SUPPORTED,
    load_translations,
    pick_language,
    status_label,
    translate,
)


def test_all_locales_share_the_same_keys():
    reference = set(load_translations("fr"))
    for locale in SUPPORTED:
        with (I18N_DIR / f"{locale}.json").open(encoding="utf-8") as fh:
            assert set(json.load(fh)) == reference, locale


def test_translate_with_fallbacks():
    assert translate("nav.devis", "de") == "Angebote"
    assert translate("nav.devis", "en-GB") == "Quotes"
    # unsupported locale -> French
    assert translate("nav.devis", "it") == "Devis"
    # unknown key -> key itself, placeholders still filled
    assert translate("Bonjour {name}", "en", name="Claire") == "Bonjour Claire"


def test_status_labels():
    assert status_label("project", "en_cuisson") == "Cuisson"
    assert status_label("invoice", "payee") == "Payée"
    assert status_label("project", "inconnu") == "inconnu"
    assert status_label("nope", "draft") == "draft"


def test_pick_language_priority():
    assert pick_language(user_pref="es", accept_language="de-DE,de;q=0.9") == "es"
    assert pick_language(accept_language="it-IT,it;q=0.9,en;q=0.8") == "en"
    assert pick_language(accept_language="de;q=0.5,en;q=0.9") == "en"
    assert pick_language(user_pref="xx", accept_language=None, fallback="de") == "de"
    assert pick_language() == "fr"


def test_i18n_endpoints(client):
    resp = client.get("/api/i18n", headers={"Accept-Language": "en-US,en;q=0.9"})
    assert resp.json()["locale"] == "en"

    resp = client.get("/api/i18n", params={"lang": "de"}, headers={"Accept-Language": "en"})
    assert resp.json()["locale"] == "de"

    resp = client.get("/api/i18n/es")
    assert resp.status_code == 200
    assert resp.json()["nav.devis"] == "Presupuestos"

    assert client.get("/api/i18n/it").status_code == 404
    assert "project" in client.get("/api/i18n/status-labels").json()
