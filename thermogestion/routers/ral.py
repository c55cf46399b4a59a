from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from thermogestion.services.ral import FAMILIES, get_color, search_colors

router = APIRouter(prefix="/api/ral", tags=["ral"])


@router.get("")
def list_colors(
    q: str = Query("", description="Code prefix or part of the name"),
    family: Optional[str] = Query(None, pattern="^[1-9]$"),
    limit: int = Query(50, ge=1, le=250),
):
    return {"families": FAMILIES, "colors": search_colors(q, family=family, limit=limit)}


@router.get("/{code}")
def get_ral(code: str):
    color = get_color(code)
    if color is None:
        raise HTTPException(status_code=404, detail=f"Unknown RAL code: {code}")
    return color
