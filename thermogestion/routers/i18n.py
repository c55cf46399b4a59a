from fastapi import APIRouter, HTTPException, Request

from thermogestion.services.i18n import (
    LOCALES,
    STATUS_LABELS,
    SUPPORTED,
    get_request_language,
    load_translations,
)

router = APIRouter(prefix="/api/i18n", tags=["i18n"])


@router.get("")
def negotiate(request: Request):
    return {"locale": get_request_language(request), "locales": LOCALES}


@router.get("/status-labels")
def status_labels():
    return STATUS_LABELS


@router.get("/{locale}")
def translations(locale: str):
    if locale not in SUPPORTED:
        raise HTTPException(status_code=404, detail=f"Unsupported locale: {locale}")
    return load_translations(locale)
