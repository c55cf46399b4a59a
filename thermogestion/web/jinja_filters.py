from datetime import date, datetime
from decimal import Decimal

MONTHS_FR = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)


def format_number_fr(value: Decimal | str | float | None, decimals: int = 2, thousand_sep=" ") -> str:
    # 12345.67 -> 12 345,67
    d = Decimal(str(value or 0))
    s = f"{d:.{decimals}f}"
    sign = ""
    if s.startswith("-"):
        sign, s = "-", s[1:]
    whole, _, frac = s.partition(".")
    parts = []
    while whole:
        parts.append(whole[-3:])
        whole = whole[:-3]
    whole = thousand_sep.join(reversed(parts)) or "0"
    return f"{sign}{whole},{frac}" if frac else f"{sign}{whole}"


def format_money(value, currency_symbol="€") -> str:
    return f"{format_number_fr(value)} {currency_symbol}"


def format_area_m2(value) -> str:
    if value is None or value == "":
        return "-"
    return f"{format_number_fr(value)} m²"


def format_percent(value, decimals: int = 1) -> str:
    return f"{format_number_fr(value, decimals)} %"


def format_date(value) -> str:
    """ISO string / date / datetime -> '05 mars 2026'."""
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    if isinstance(value, (date, datetime)):
        return f"{value.day:02d} {MONTHS_FR[value.month - 1]} {value.year}"
    return str(value)


def layer_count(value) -> int:
    # couches come either as a count or as the list of layers
    if not value:
        return 1
    if isinstance(value, (list, tuple)):
        return len(value) or 1
    return int(value)


def register_filters(env) -> None:
    env.filters["money"] = format_money
    env.filters["area"] = format_area_m2
    env.filters["percent"] = format_percent
    env.filters["date_fr"] = format_date
    env.filters["layers"] = layer_count
