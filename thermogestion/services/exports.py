"""
Accounting exports: invoice list (CSV / XLSX) and the FEC
(Fichier des Ecritures Comptables) in XML.
"""
from __future__ import annotations

import csv
import io
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from xml.etree import ElementTree as ET

from openpyxl import Workbook
from sqlalchemy.orm import Session

from thermogestion.models.client import Client
from thermogestion.models.invoice import Invoice, Payment

CSV_HEADERS = [
    "Numéro",
    "Date",
    "Client",
    "Type",
    "Total HT",
    "TVA",
    "Total TTC",
    "Statut",
    "Paiement",
    "Date paiement",
]

# Plan comptable general
ACCOUNT_CUSTOMERS = "411"
ACCOUNT_VAT_COLLECTED = "44571"
ACCOUNT_SALES = "701"
ACCOUNT_BANK = "512"

FEC_FIELDS = (
    "JournalCode",
    "JournalLib",
    "EcritureNum",
    "EcritureDate",
    "CompteNum",
    "CompteLib",
    "CompAuxNum",
    "CompAuxLib",
    "PieceRef",
    "PieceDate",
    "EcritureLib",
    "Debit",
    "Credit",
    "EcritureLet",
    "DateLet",
    "ValidDate",
    "Montantdevise",
    "Idevise",
)


# -------------------------
# Queries
# -------------------------
def invoices_in_range(
    db: Session, tenant_id: str, start: Optional[date] = None, end: Optional[date] = None
) -> List[Invoice]:
    q = db.query(Invoice).filter(Invoice.tenant_id == tenant_id)
    if start:
        q = q.filter(Invoice.created_at >= datetime.combine(start, time.min))
    if end:
        q = q.filter(Invoice.created_at <= datetime.combine(end, time.max))
    return q.order_by(Invoice.created_at, Invoice.id).all()


def clients_by_id(db: Session, tenant_id: str, invoices: Sequence[Invoice]) -> Dict[int, Client]:
    ids = {i.client_id for i in invoices if i.client_id}
    if not ids:
        return {}
    rows = db.query(Client).filter(Client.tenant_id == tenant_id, Client.id.in_(ids)).all()
    return {c.id: c for c in rows}


def completed_payments(db: Session, tenant_id: str, invoices: Sequence[Invoice]) -> List[Payment]:
    ids = [i.id for i in invoices]
    if not ids:
        return []
    return (
        db.query(Payment)
        .filter(
            Payment.tenant_id == tenant_id,
            Payment.invoice_id.in_(ids),
            Payment.status == "completed",
        )
        .order_by(Payment.id)
        .all()
    )


# -------------------------
# Invoice list
# -------------------------
def _fr_date(value) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def _amount(value) -> str:
    return f"{float(value or 0):.2f}"


def invoice_rows(invoices: Iterable[Invoice], clients: Dict[int, Client]) -> List[List[str]]:
    rows = []
    for inv in invoices:
        client = clients.get(inv.client_id) if inv.client_id else None
        rows.append(
            [
                inv.numero,
                _fr_date(inv.created_at),
                client.full_name if client else "",
                inv.type,
                _amount(inv.total_ht),
                _amount((inv.total_ttc or 0) - (inv.total_ht or 0)),
                _amount(inv.total_ttc),
                inv.status,
                inv.payment_status,
                _fr_date(inv.paid_at),
            ]
        )
    return rows


def invoices_csv(invoices: Iterable[Invoice], clients: Dict[int, Client]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    writer.writerows(invoice_rows(invoices, clients))
    return buf.getvalue()


def invoices_xlsx(invoices: Iterable[Invoice], clients: Dict[int, Client]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Factures"

    ws.append(CSV_HEADERS)
    for row in invoice_rows(invoices, clients):
        # amounts as numbers so the sheet can sum them
        row[4:7] = [float(v) for v in row[4:7]]
        ws.append(row)

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


# -------------------------
# FEC
# -------------------------
def _entry(**values: str) -> Dict[str, str]:
    return {field: values.get(field, "") for field in FEC_FIELDS}


def fec_entries(
    invoices: Sequence[Invoice], clients: Dict[int, Client], payments: Iterable[Payment]
) -> List[Dict[str, str]]:
    """
    Sales journal (VT): customer debit TTC, VAT credit, sales credit HT.
    Bank journal (BQ): bank credit and customer debit per completed payment.
    Debits equal credits for every EcritureNum.
    """
    entries: List[Dict[str, str]] = []
    by_id = {i.id: i for i in invoices}

    for inv in invoices:
        day = inv.created_at.date().isoformat() if inv.created_at else ""
        client = clients.get(inv.client_id) if inv.client_id else None
        client_name = client.full_name if client else "Client"
        client_siret = (client.siret or "") if client else ""
        common = dict(
            JournalCode="VT",
            JournalLib="Ventes",
            EcritureNum=inv.numero,
            EcritureDate=day,
            PieceRef=inv.numero,
            PieceDate=day,
            ValidDate=day,
        )

        entries.append(
            _entry(
                **common,
                CompteNum=ACCOUNT_CUSTOMERS,
                CompteLib=client_name,
                CompAuxNum=client_siret,
                CompAuxLib=client.full_name if client else "",
                EcritureLib=f"Facture {inv.numero}",
                Debit=_amount(inv.total_ttc),
                Credit="0.00",
            )
        )

        vat = (inv.total_ttc or 0) - (inv.total_ht or 0)
        if vat > 0:
            entries.append(
                _entry(
                    **common,
                    CompteNum=ACCOUNT_VAT_COLLECTED,
                    CompteLib="TVA collectée",
                    EcritureLib=f"TVA {inv.numero}",
                    Debit="0.00",
                    Credit=_amount(vat),
                )
            )

        entries.append(
            _entry(
                **common,
                CompteNum=ACCOUNT_SALES,
                CompteLib="Ventes",
                EcritureLib=f"Vente {inv.numero}",
                Debit="0.00",
                Credit=_amount(inv.total_ht),
            )
        )

    for pay in payments:
        if pay.status != "completed":
            continue
        when = pay.paid_at or pay.created_at
        day = when.date().isoformat() if when else ""
        ref = pay.payment_ref or str(pay.id)
        common = dict(
            JournalCode="BQ",
            JournalLib="Banque",
            EcritureNum=f"PAY-{pay.id}",
            EcritureDate=day,
            PieceRef=ref,
            PieceDate=day,
            ValidDate=day,
            EcritureLib=f"Paiement {pay.type}",
        )

        entries.append(
            _entry(**common, CompteNum=ACCOUNT_BANK, CompteLib="Banque", Debit="0.00", Credit=_amount(pay.amount))
        )

        inv = by_id.get(pay.invoice_id)
        if inv is not None:
            client = clients.get(inv.client_id) if inv.client_id else None
            entries.append(
                _entry(
                    **common,
                    CompteNum=ACCOUNT_CUSTOMERS,
                    CompteLib=client.full_name if client else "Client",
                    CompAuxNum=(client.siret or "") if client else "",
                    CompAuxLib=client.full_name if client else "",
                    Debit=_amount(pay.amount),
                    Credit="0.00",
                )
            )

    return entries


def fec_xml(entries: Iterable[Dict[str, str]], now: Optional[datetime] = None) -> str:
    now = now or datetime.now()

    root = ET.Element("FichierDesEcrituresComptables")
    fichier = ET.SubElement(ET.SubElement(root, "EnTete"), "Fichier")
    for tag, text in (
        ("CodeFichier", "FEC"),
        ("DateExport", now.date().isoformat()),
        ("HeureExport", now.strftime("%H:%M:%S")),
        ("Logiciel", "ThermoGestion"),
        ("Version", "1.0"),
    ):
        ET.SubElement(fichier, tag).text = text

    ecritures = ET.SubElement(root, "Ecritures")
    for entry in entries:
        node = ET.SubElement(ecritures, "Ecriture")
        for field in FEC_FIELDS:
            ET.SubElement(node, field).text = entry.get(field, "")

    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")


def build_fec(
    db: Session, tenant_id: str, start: Optional[date] = None, end: Optional[date] = None
) -> Tuple[str, int]:
    invoices = invoices_in_range(db, tenant_id, start, end)
    clients = clients_by_id(db, tenant_id, invoices)
    entries = fec_entries(invoices, clients, completed_payments(db, tenant_id, invoices))
    return fec_xml(entries), len(entries)
