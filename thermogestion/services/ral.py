import json
import unicodedata
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

RAL_FILE = Path(__file__).resolve().parent.parent / "data" / "ral_classic.json"

FAMILIES: Dict[str, str] = {
    "1": "Jaunes et beiges",
    "2": "Oranges",
    "3": "Rouges",
    "4": "Violets",
    "5": "Bleus",
    "6": "Verts",
    "7": "Gris",
    "8": "Bruns",
    "9": "Blancs et noirs",
}


@lru_cache(maxsize=1)
def load_ral_colors() -> List[Dict[str, str]]:
    with RAL_FILE.open(encoding="utf-8") as fh:
        return json.load(fh)


def normalize_code(code: str) -> str:
    """'RAL 7016', 'ral7016', ' 7016 ' -> '7016'"""
    code = (code or "").strip().upper()
    if code.startswith("RAL"):
        code = code[3:]
    return code.replace(" ", "")


def _fold(text: str) -> str:
    # accent-insensitive matching ("bleu" finds "Bleu ciel", "gris" finds "Gris")
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def get_color(code: str) -> Optional[Dict[str, str]]:
    wanted = normalize_code(code)
    for color in load_ral_colors():
        if color["code"] == wanted:
            return {**color, "family": FAMILIES.get(wanted[:1])}
    return None


def search_colors(query: str = "", family: Optional[str] = None, limit: int = 50) -> List[Dict[str, str]]:
    """Match on code prefix or on name fragment; empty query lists everything."""
    needle = _fold(query.strip())
    code_needle = normalize_code(query)

    results = []
    for color in load_ral_colors():
        if family and not color["code"].startswith(family):
            continue
        if needle and not (
            color["code"].startswith(code_needle) or needle in _fold(color["name"])
        ):
            continue
        results.append(color)
        if len(results) >= limit:
            break
    return results
