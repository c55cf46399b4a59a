import json

import pytest

from thermogestion.schemas.pricing import (
    Discount,
    DiscountKind,
    Layer,
    PowderRef,
    QuoteItemInput,
    ShopRateSettings,
)
from thermogestion.services.pricing_engine import (
    DEFAULT_CONSUMPTION_KG_PER_M2,
    discount_amount,
    layer_powder_cost,
    labor_and_consumables,
    powder_consumption_kg_per_m2,
    price_item,
    price_quote,
    surface_area_m2,
)
from thermogestion.services.quote_service import items_from_json


def _item(**overrides):
    data = dict(
        designation="Portail",
        length_mm=1000,
        width_mm=1000,
        quantity=1,
        layers=[Layer(powder=PowderRef(price_per_kg=20.0, yield_m2_per_kg=10.0))],
    )
    data.update(overrides)
    return QuoteItemInput(**data)


def test_flat_piece_counts_both_faces():
    assert surface_area_m2(1000, 1000, None, 1) == pytest.approx(2.0)


def test_box_counts_all_six_faces():
    # 2 * (1000*500 + 1000*200 + 500*200) / 1e6
    assert surface_area_m2(1000, 500, 200, 1) == pytest.approx(1.6)


def test_area_scales_with_quantity_and_zero_dimension():
    assert surface_area_m2(1000, 1000, None, 3) == pytest.approx(6.0)
    assert surface_area_m2(0, 1000, None, 5) == 0
    assert surface_area_m2(1000, 0, 200, 1) == 0


def test_yield_wins_over_consumption():
    powder = PowderRef(yield_m2_per_kg=4, consumption_kg_per_m2=0.5)
    assert powder_consumption_kg_per_m2(powder) == pytest.approx(0.25)


def test_consumption_fallbacks():
    assert powder_consumption_kg_per_m2(PowderRef(consumption_kg_per_m2=0.2)) == pytest.approx(0.2)
    assert powder_consumption_kg_per_m2(PowderRef(yield_m2_per_kg=0)) == DEFAULT_CONSUMPTION_KG_PER_M2
    assert powder_consumption_kg_per_m2(PowderRef()) == DEFAULT_CONSUMPTION_KG_PER_M2


def test_layer_without_powder_costs_nothing():
    assert layer_powder_cost(10.0, Layer(), ShopRateSettings()) == (0.0, 0.0)


def test_layer_powder_default_price():
    rates = ShopRateSettings(powder_margin_pct=0)
    cost, sale = layer_powder_cost(2.0, Layer(powder=PowderRef(yield_m2_per_kg=10)), rates)
    # 2 m2 * 0.1 kg/m2 * 25 EUR/kg
    assert cost == pytest.approx(5.0)
    assert sale == pytest.approx(5.0)


def test_labor_and_consumables_scale_with_layers():
    rates = ShopRateSettings(
        labor_rate_per_hour=40, labor_hours_per_m2=0.5, consumables_cost_per_m2=2, labor_margin_pct=50
    )
    hours, cost, sale, consumables = labor_and_consumables(2.0, 2, rates)
    assert hours == pytest.approx(2.0)
    assert cost == pytest.approx(80.0)
    assert sale == pytest.approx(120.0)
    assert consumables == pytest.approx(8.0)

    # zero layers still count as one pass
    hours, _, _, consumables = labor_and_consumables(2.0, 0, rates)
    assert hours == pytest.approx(1.0)
    assert consumables == pytest.approx(4.0)


def test_price_item_breakdown():
    rates = ShopRateSettings(
        labor_rate_per_hour=35,
        labor_hours_per_m2=0.15,
        consumables_cost_per_m2=2,
        powder_margin_pct=30,
        labor_margin_pct=50,
    )
    b = price_item(_item(), rates).breakdown

    assert b.surface_m2 == pytest.approx(2.0)
    assert b.layer_count == 1
    assert b.powder_cost_of_goods == pytest.approx(4.0)  # 2 * 0.1 * 20
    assert b.powder_sale_price == pytest.approx(5.2)
    assert b.labor_hours == pytest.approx(0.3)
    assert b.labor_cost_of_goods == pytest.approx(10.5)
    assert b.labor_sale_price == pytest.approx(15.75)
    assert b.consumables_cost == pytest.approx(4.0)
    assert b.cost_of_goods_total == pytest.approx(18.5)
    assert b.sale_price_ht == pytest.approx(24.95)
    assert b.margin == pytest.approx(6.45)


def test_discount_kinds():
    assert discount_amount(200, Discount(kind=DiscountKind.PERCENTAGE, value=10)) == pytest.approx(20)
    assert discount_amount(200, Discount(kind=DiscountKind.FIXED_AMOUNT, value=30)) == 30
    assert discount_amount(200, None) == 0


def test_fixed_discount_larger_than_gross_clamps_to_zero():
    rates = ShopRateSettings(
        labor_rate_per_hour=0, consumables_cost_per_m2=0, powder_margin_pct=0, vat_rate_pct=20
    )
    # 2 m2 * 0.1 kg/m2 * 500 EUR/kg = 100 gross
    item = _item(layers=[Layer(powder=PowderRef(price_per_kg=500, yield_m2_per_kg=10))])
    totals = price_quote([item], rates, Discount(kind=DiscountKind.FIXED_AMOUNT, value=150)).totals

    assert totals.total_sale_price_ht_gross == pytest.approx(100)
    assert totals.discount_amount == pytest.approx(100)
    assert totals.total_sale_price_ht == 0
    assert totals.total_ttc == 0
    assert totals.vat_amount == 0


def test_vat_applies_after_discount():
    rates = ShopRateSettings(
        labor_rate_per_hour=0, consumables_cost_per_m2=0, powder_margin_pct=0, vat_rate_pct=20
    )
    item = _item(layers=[Layer(powder=PowderRef(price_per_kg=500, yield_m2_per_kg=10))])
    totals = price_quote([item], rates, Discount(kind=DiscountKind.PERCENTAGE, value=10)).totals

    assert totals.total_sale_price_ht == pytest.approx(90)
    assert totals.total_ttc == pytest.approx(108)


def test_negative_margin_flag():
    rates = ShopRateSettings(powder_margin_pct=-50, labor_margin_pct=-50)
    totals = price_quote([_item()], rates).totals

    assert totals.gross_margin < 0
    assert totals.negative_margin is True
    assert totals.margin_pct < 0


def test_zero_cost_margin_pct_is_zero():
    totals = price_quote([_item(length_mm=0)], ShopRateSettings()).totals
    assert totals.total_cost_of_goods == 0
    assert totals.margin_pct == 0


def test_json_round_trip_reproduces_totals():
    rates = ShopRateSettings()
    items = [
        _item(),
        _item(designation="Garde-corps", height_mm=40, quantity=4, layers=[
            Layer(layer_type="primer", powder=PowderRef(price_per_kg=18, consumption_kg_per_m2=0.12)),
            Layer(layer_type="base", powder=PowderRef(price_per_kg=24, yield_m2_per_kg=8)),
        ]),
    ]
    discount = Discount(kind=DiscountKind.PERCENTAGE, value=5)
    first = price_quote(items, rates, discount)

    stored = json.loads(json.dumps([i.model_dump(mode="json") for i in first.items]))
    second = price_quote(items_from_json(stored), rates, discount)

    assert second.totals == first.totals
    assert [i.breakdown for i in second.items] == [i.breakdown for i in first.items]


def test_invalid_item_rejected():
    with pytest.raises(ValueError):
        QuoteItemInput(designation="x", length_mm=-1, width_mm=10)
    with pytest.raises(ValueError):
        QuoteItemInput(designation="x", length_mm=1, width_mm=10, quantity=0)
