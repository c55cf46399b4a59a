from __future__ import annotations

from typing import Iterable, Optional, Tuple

from thermogestion.schemas.pricing import (
    Discount,
    DiscountKind,
    ItemBreakdown,
    Layer,
    PowderRef,
    PricedItem,
    QuoteItemInput,
    QuotePricing,
    QuoteTotals,
    ShopRateSettings,
)

# -------------------------
# Defaults
# -------------------------
DEFAULT_CONSUMPTION_KG_PER_M2 = 0.15
DEFAULT_POWDER_PRICE_PER_KG = 25.0
MM2_PER_M2 = 1_000_000


# -------------------------
# Geometry
# -------------------------
def surface_area_m2(
    length_mm: float,
    width_mm: float,
    height_mm: Optional[float] = None,
    quantity: int = 1,
) -> float:
    """
    Total coated surface in m2, both faces.

    With a height the piece is a box (all six faces), without it a flat
    sheet (two faces). Not rounded: display code rounds.
    """
    if not length_mm or not width_mm:
        return 0.0
    if height_mm:
        faces = length_mm * width_mm + length_mm * height_mm + width_mm * height_mm
    else:
        faces = length_mm * width_mm
    return quantity * 2 * faces / MM2_PER_M2


# -------------------------
# Powder
# -------------------------
def powder_consumption_kg_per_m2(powder: PowderRef) -> float:
    # yield wins over an explicit consumption
    if powder.yield_m2_per_kg is not None and powder.yield_m2_per_kg > 0:
        return 1 / powder.yield_m2_per_kg
    if powder.consumption_kg_per_m2 is not None:
        return powder.consumption_kg_per_m2
    return DEFAULT_CONSUMPTION_KG_PER_M2


def layer_powder_cost(
    area_m2: float, layer: Layer, rates: ShopRateSettings
) -> Tuple[float, float]:
    """Returns (cost_of_goods, sale_price) of the powder for one layer."""
    if layer.powder is None:
        return 0.0, 0.0

    price = layer.powder.price_per_kg
    if price is None:
        price = DEFAULT_POWDER_PRICE_PER_KG

    cost = area_m2 * powder_consumption_kg_per_m2(layer.powder) * price
    sale = cost * (1 + rates.powder_margin_pct / 100)
    return cost, sale


# -------------------------
# Labor & consumables
# -------------------------
def labor_and_consumables(
    area_m2: float, layer_count: int, rates: ShopRateSettings
) -> Tuple[float, float, float, float]:
    """Returns (labor_hours, labor_cost_of_goods, labor_sale_price, consumables_cost)."""
    layers = max(1, layer_count)

    hours = area_m2 * rates.labor_hours_per_m2 * layers
    labor_cost = hours * rates.labor_rate_per_hour
    labor_sale = labor_cost * (1 + rates.labor_margin_pct / 100)
    consumables = area_m2 * rates.consumables_cost_per_m2 * layers
    return hours, labor_cost, labor_sale, consumables


# -------------------------
# Item & quote
# -------------------------
def price_item(item: QuoteItemInput, rates: ShopRateSettings) -> PricedItem:
    area = surface_area_m2(item.length_mm, item.width_mm, item.height_mm, item.quantity)

    powder_cost = 0.0
    powder_sale = 0.0
    for layer in item.layers:
        cost, sale = layer_powder_cost(area, layer, rates)
        powder_cost += cost
        powder_sale += sale

    layer_count = max(1, len(item.layers))
    hours, labor_cost, labor_sale, consumables = labor_and_consumables(
        area, layer_count, rates
    )

    cost_total = powder_cost + labor_cost + consumables
    sale_total = powder_sale + labor_sale + consumables

    breakdown = ItemBreakdown(
        surface_m2=area,
        layer_count=layer_count,
        powder_cost_of_goods=powder_cost,
        powder_sale_price=powder_sale,
        labor_hours=hours,
        labor_cost_of_goods=labor_cost,
        labor_sale_price=labor_sale,
        consumables_cost=consumables,
        cost_of_goods_total=cost_total,
        sale_price_ht=sale_total,
        margin=sale_total - cost_total,
    )
    # PricedItem extends the input; breakdown is always recomputed here
    return PricedItem(**item.model_dump(exclude={"breakdown"}), breakdown=breakdown)


def discount_amount(gross_ht: float, discount: Optional[Discount]) -> float:
    if discount is None or discount.value <= 0:
        return 0.0
    if discount.kind == DiscountKind.PERCENTAGE:
        return gross_ht * (discount.value / 100)
    return discount.value


def quote_totals(
    items: Iterable[PricedItem],
    rates: ShopRateSettings,
    discount: Optional[Discount] = None,
) -> QuoteTotals:
    items = list(items)
    total_cost = sum(i.breakdown.cost_of_goods_total for i in items)
    gross = sum(i.breakdown.sale_price_ht for i in items)

    # capped at the gross amount
    reduction = min(discount_amount(gross, discount), gross)
    total_ht = max(0.0, gross - reduction)
    total_ttc = total_ht * (1 + rates.vat_rate_pct / 100)

    margin = total_ht - total_cost
    margin_pct = margin / total_cost * 100 if total_cost > 0 else 0.0

    return QuoteTotals(
        total_cost_of_goods=total_cost,
        total_sale_price_ht_gross=gross,
        discount_amount=reduction,
        total_sale_price_ht=total_ht,
        vat_rate_pct=rates.vat_rate_pct,
        vat_amount=total_ttc - total_ht,
        total_ttc=total_ttc,
        gross_margin=margin,
        margin_pct=margin_pct,
        negative_margin=margin < 0,
    )


def price_quote(
    items: Iterable[QuoteItemInput],
    rates: ShopRateSettings,
    discount: Optional[Discount] = None,
) -> QuotePricing:
    """Recompute every item and the quote totals. Pure and synchronous."""
    priced = [price_item(item, rates) for item in items]
    return QuotePricing(items=priced, totals=quote_totals(priced, rates, discount))
