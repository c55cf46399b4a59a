from __future__ import annotations

import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Set

from fastapi import Request

from thermogestion.core.settings import settings

# ============ CONFIGURATION ============

I18N_DIR = Path(__file__).resolve().parent.parent / "data" / "i18n"

SUPPORTED: Set[str] = {"fr", "en", "es", "de"}
DEFAULT_LOCALE = "fr"

LOCALES = [
    {"code": "fr", "name": "Français"},
    {"code": "en", "name": "English"},
    {"code": "es", "name": "Español"},
    {"code": "de", "name": "Deutsch"},
]

# Status labels shown in the back-office (French, the product language)
PROJECT_STATUS_LABELS: Dict[str, str] = {
    "devis": "Devis",
    "reception": "Réceptionné",
    "en_preparation": "En préparation",
    "en_cours": "En production",
    "en_cuisson": "Cuisson",
    "qc": "Contrôle qualité",
    "termine": "Terminé",
    "pret": "Prêt à retirer",
    "livre": "Livré",
    "annule": "Annulé",
}

QUOTE_STATUS_LABELS: Dict[str, str] = {
    "draft": "Brouillon",
    "sent": "Envoyé",
    "accepted": "Accepté",
    "converted": "Converti",
    "refused": "Refusé",
    "expired": "Expiré",
}

INVOICE_STATUS_LABELS: Dict[str, str] = {
    "brouillon": "Brouillon",
    "envoyee": "Envoyée",
    "payee": "Payée",
    "remboursee": "Remboursée",
}

PAYMENT_STATUS_LABELS: Dict[str, str] = {
    "paid": "Payée",
    "unpaid": "À payer",
    "partial": "Partiel",
    "refunded": "Remboursée",
    "disputed": "Litige",
}

BATCH_STATUS_LABELS: Dict[str, str] = {
    "planifie": "Planifiée",
    "en_cours": "En cours",
    "termine": "Terminée",
    "annule": "Annulée",
}

QUALITY_RESULT_LABELS: Dict[str, str] = {
    "en_attente": "En attente",
    "conforme": "Conforme",
    "non_conforme": "Non conforme",
}

STATUS_LABELS: Dict[str, Dict[str, str]] = {
    "project": PROJECT_STATUS_LABELS,
    "quote": QUOTE_STATUS_LABELS,
    "invoice": INVOICE_STATUS_LABELS,
    "payment": PAYMENT_STATUS_LABELS,
    "batch": BATCH_STATUS_LABELS,
    "quality": QUALITY_RESULT_LABELS,
}


# ============ TRANSLATIONS ============


@lru_cache(maxsize=None)
def load_translations(locale: str) -> Dict[str, str]:
    path = I18N_DIR / f"{locale}.json"
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def translate(key: str, locale: str = DEFAULT_LOCALE, **kwargs) -> str:
    """
    Look up `key` for the locale, falling back to French then to the key itself.
    Keyword arguments fill `{name}` placeholders.
    """
    code = supported_locale(locale) or DEFAULT_LOCALE

    text = load_translations(code).get(key)
    if text is None:
        text = load_translations(DEFAULT_LOCALE).get(key, key)
    if kwargs:
        try:
            text = text.format(**kwargs)
        except (KeyError, IndexError):
            pass
    return text


def status_label(kind: str, status: str) -> str:
    """Unknown kinds or statuses come back unchanged."""
    return STATUS_LABELS.get(kind, {}).get(status, status)


# ============ LANGUAGE PICKING ============

# one Accept-Language range: "en-US" or "de;q=0.7"
LANGUAGE_RANGE = re.compile(r"^\s*([A-Za-z]{1,8}(?:[-_][A-Za-z0-9]{1,8})*)\s*(?:;\s*q\s*=\s*([0-9.]+))?\s*$")


def supported_locale(code: Optional[str]) -> Optional[str]:
    """'fr-FR' and 'fr_BE' map to 'fr'; anything not shipped maps to None."""
    if not code:
        return None
    primary = re.split(r"[-_]", code.strip().lower(), maxsplit=1)[0]
    return primary if primary in SUPPORTED else None


def browser_locale(header: Optional[str]) -> Optional[str]:
    """Best supported language of an Accept-Language header, by q-weight."""
    best: Optional[str] = None
    best_q = 0.0
    for chunk in (header or "").split(","):
        match = LANGUAGE_RANGE.match(chunk)
        if match is None:
            continue
        try:
            q = float(match.group(2)) if match.group(2) else 1.0
        except ValueError:
            continue
        code = supported_locale(match.group(1))
        # strict comparison keeps the first of equal weights
        if code is not None and q > best_q:
            best, best_q = code, q
    return best


def pick_language(
    *,
    accept_language: Optional[str] = None,
    user_pref: Optional[str] = None,
    fallback: str = DEFAULT_LOCALE,
) -> str:
    """Explicit choice (?lang=, cookie, profile), then the browser, then the atelier locale."""
    return (
        supported_locale(user_pref)
        or browser_locale(accept_language)
        or supported_locale(fallback)
        or DEFAULT_LOCALE
    )


def get_request_language(request: Request, fallback: Optional[str] = None) -> str:
    """?lang= wins over the `lang` cookie."""
    return pick_language(
        accept_language=request.headers.get("accept-language"),
        user_pref=request.query_params.get("lang") or request.cookies.get("lang"),
        fallback=fallback or settings.DEFAULT_LOCALE,
    )
