from datetime import datetime

from thermogestion.models.invoice import Invoice
from thermogestion.models.quote import QuoteORM
from thermogestion.services.numbering import format_numero, next_numero


def test_format_numero():
    assert format_numero("DEV", 2026, 7) == "DEV-2026-0007"


def test_sequence_per_tenant_and_year(db, tenant_id):
    now = datetime(2026, 5, 1)
    assert next_numero(db, QuoteORM, tenant_id, now) == "DEV-2026-0001"

    db.add(QuoteORM(tenant_id=tenant_id, numero="DEV-2026-0001", items=[]))
    db.add(QuoteORM(tenant_id=tenant_id, numero="DEV-2026-0002", items=[]))
    db.add(QuoteORM(tenant_id="other", numero="DEV-2026-0009", items=[]))
    db.add(QuoteORM(tenant_id=tenant_id, numero="DEV-2025-0041", items=[]))
    db.commit()

    assert next_numero(db, QuoteORM, tenant_id, now) == "DEV-2026-0003"
    assert next_numero(db, QuoteORM, tenant_id, datetime(2027, 1, 2)) == "DEV-2027-0001"
    assert next_numero(db, Invoice, tenant_id, now) == "FACT-2026-0001"


def test_sequence_keeps_growing_past_four_digits(db, tenant_id):
    now = datetime(2026, 5, 1)
    db.add(Invoice(tenant_id=tenant_id, numero="FACT-2026-9999", items=[]))
    db.add(Invoice(tenant_id=tenant_id, numero="FACT-2026-10000", items=[]))
    db.commit()

    assert next_numero(db, Invoice, tenant_id, now) == "FACT-2026-10001"
