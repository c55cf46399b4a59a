from datetime import date, datetime

from thermogestion.web.jinja_filters import (
    format_area_m2,
    format_date,
    format_money,
    format_number_fr,
    format_percent,
    layer_count,
)


def test_number_grouping():
    assert format_number_fr(1234567.891) == "1 234 567,89"
    assert format_number_fr(-1234.5) == "-1 234,50"
    assert format_number_fr(None) == "0,00"
    assert format_number_fr(42, decimals=0) == "42"


def test_money_area_percent():
    assert format_money(1234.56) == "1 234,56 €"
    assert format_area_m2(3.5) == "3,50 m²"
    assert format_area_m2(None) == "-"
    assert format_percent(12.345) == "12,3 %"


def test_dates():
    assert format_date(date(2026, 3, 5)) == "05 mars 2026"
    assert format_date(datetime(2026, 12, 24, 8, 30)) == "24 décembre 2026"
    assert format_date("2026-08-01T10:00:00Z") == "01 août 2026"
    assert format_date("demain") == "demain"
    assert format_date(None) == ""


def test_layer_count():
    assert layer_count(None) == 1
    assert layer_count([{"layer_type": "primer"}, {"layer_type": "base"}]) == 2
    assert layer_count([]) == 1
    assert layer_count(3) == 3
