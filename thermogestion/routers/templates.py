from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import HTMLResponse

from thermogestion.services.pdf_renderer import THEMES, demo_data, is_valid_color, renderer

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("")
def list_templates():
    return [{"id": key, **info} for key, info in THEMES.items()]


@router.get("/preview", response_class=HTMLResponse)
def preview(
    template: str = Query("classic"),
    primary: Optional[str] = Query(None),
    accent: Optional[str] = Query(None),
):
    """Theme preview on demo data, used by the settings screen."""
    if template not in THEMES:
        raise HTTPException(status_code=400, detail="Template invalide")
    for value in (primary, accent):
        if value is not None and not is_valid_color(value):
            raise HTTPException(status_code=400, detail=f"Couleur invalide: {value}")

    return HTMLResponse(renderer.render_html(demo_data(), template=template, primary=primary, accent=accent))
