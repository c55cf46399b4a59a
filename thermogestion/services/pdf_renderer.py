"""
Quote, invoice and delivery-note documents.

Data preparation turns ORM rows into a flat template context; rendering picks
one of the visual themes (classic, modern, industrial, premium) and fills it
with Jinja2. WeasyPrint converts the HTML to PDF bytes.
"""
from __future__ import annotations

import re
import time
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from thermogestion.core.logging_config import logger
from thermogestion.observability.metrics import pdf_render_hist
from thermogestion.web.jinja_filters import register_filters

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

THEMES: Dict[str, Dict[str, str]] = {
    "classic": {
        "name": "Classic",
        "description": "Design professionnel et épuré, parfait pour tous secteurs",
        "primary": "#1e3a5f",
        "secondary": "#6b7280",
        "accent": "#3b82f6",
    },
    "modern": {
        "name": "Modern",
        "description": "Design contemporain avec touches de couleur vives",
        "primary": "#0f172a",
        "secondary": "#64748b",
        "accent": "#06b6d4",
    },
    "industrial": {
        "name": "Industriel",
        "description": "Conçu pour les ateliers de thermolaquage et métallurgie",
        "primary": "#dc2626",
        "secondary": "#374151",
        "accent": "#f97316",
    },
    "premium": {
        "name": "Premium",
        "description": "Design haut de gamme avec finitions élégantes",
        "primary": "#1f2937",
        "secondary": "#9ca3af",
        "accent": "#d4af37",
    },
}
DEFAULT_THEME = "classic"

# Delivery notes use their own blue so they are not mistaken for an invoice
DELIVERY_NOTE_COLORS = {"primary": "#1e40af", "accent": "#3b82f6"}

QUOTE_VALIDITY_DAYS = 30


def is_valid_color(value: Optional[str]) -> bool:
    return bool(value) and HEX_COLOR.match(value) is not None


def theme_colors(
    template: str, primary: Optional[str] = None, accent: Optional[str] = None
) -> Dict[str, str]:
    """Theme defaults overridden by the atelier's own colours when valid."""
    theme = THEMES.get(template, THEMES[DEFAULT_THEME])
    return {
        "primary": primary if is_valid_color(primary) else theme["primary"],
        "secondary": theme["secondary"],
        "accent": accent if is_valid_color(accent) else theme["accent"],
    }


# -------------------------
# Data preparation
# -------------------------
def atelier_context(tenant_settings) -> Dict[str, Any]:
    if tenant_settings is None:
        return {"name": "Atelier"}
    return {
        "name": tenant_settings.company_name or "Atelier",
        "address": tenant_settings.address,
        "phone": tenant_settings.phone,
        "email": tenant_settings.email,
        "siret": tenant_settings.siret,
        "tva_intra": tenant_settings.tva_intra,
        "rcs": tenant_settings.rcs,
        "logo_url": tenant_settings.logo_url,
        "iban": tenant_settings.iban,
        "bic": tenant_settings.bic,
    }


def client_context(client) -> Dict[str, Any]:
    if client is None:
        return {"name": "Client"}
    return {
        "name": client.full_name or "Client",
        "email": client.email,
        "phone": client.phone,
        "address": client.address,
        "siret": client.siret,
        "type": client.type,
    }


def _quote_lines(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    lines = []
    for item in items or []:
        breakdown = item.get("breakdown") or {}
        quantity = item.get("quantity") or 1
        total_ht = float(breakdown.get("sale_price_ht") or 0)
        lines.append(
            {
                "designation": item.get("designation") or "Article",
                "description": item.get("description"),
                "quantity": quantity,
                "surface_m2": breakdown.get("surface_m2"),
                "layers": item.get("layers") or breakdown.get("layer_count") or 1,
                "unit_price": total_ht / quantity if quantity else total_ht,
                "total_ht": total_ht,
            }
        )
    return lines


def _invoice_lines(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    lines = []
    for item in items or []:
        quantity = item.get("quantity") or 1
        unit_price = float(item.get("unit_price_ht") or 0)
        lines.append(
            {
                "designation": item.get("designation") or "Article",
                "description": item.get("description"),
                "quantity": quantity,
                "surface_m2": item.get("surface_m2"),
                "layers": item.get("layer_count") or 1,
                "unit_price": unit_price,
                "total_ht": float(item.get("total_ht") or quantity * unit_price),
            }
        )
    return lines


def prepare_quote_data(quote, tenant_settings, client) -> Dict[str, Any]:
    total_ht = float(quote.total_ht or 0)
    total_ttc = float(quote.total_ttc or 0)
    created = quote.created_at or datetime.now()
    return {
        "kind": "devis",
        "title": "DEVIS",
        "numero": quote.numero or "N/A",
        "date": created,
        "valid_until": quote.valid_until or (created + timedelta(days=QUOTE_VALIDITY_DAYS)),
        "items": _quote_lines(quote.items),
        "total_ht_gross": float(quote.total_ht_gross or total_ht),
        "discount": quote.discount,
        "discount_amount": float(quote.discount_amount or 0),
        "total_ht": total_ht,
        "tva_rate": float(quote.tva_rate if quote.tva_rate is not None else 20),
        "total_tva": total_ttc - total_ht,
        "total_ttc": total_ttc,
        "client": client_context(client),
        "atelier": atelier_context(tenant_settings),
        "signed_at": quote.signed_at,
        "notes": quote.notes,
        "cgv": getattr(tenant_settings, "cgv_quote", None),
    }


def prepare_invoice_data(invoice, tenant_settings, client) -> Dict[str, Any]:
    total_ht = float(invoice.total_ht or 0)
    total_ttc = float(invoice.total_ttc or 0)
    return {
        "kind": "facture",
        "title": "FACTURE",
        "numero": invoice.numero or "N/A",
        "date": invoice.created_at or datetime.now(),
        "due_date": invoice.due_date,
        "items": _invoice_lines(invoice.items),
        "total_ht_gross": total_ht,
        "discount": None,
        "discount_amount": 0.0,
        "total_ht": total_ht,
        "tva_rate": float(invoice.tva_rate if invoice.tva_rate is not None else 20),
        "total_tva": total_ttc - total_ht,
        "total_ttc": total_ttc,
        "client": client_context(client),
        "atelier": atelier_context(tenant_settings),
        "paid_at": invoice.paid_at,
        "notes": invoice.notes,
        "cgv": getattr(tenant_settings, "cgv_invoice", None),
    }


def prepare_delivery_note_data(
    invoice, tenant_settings, client, project=None, delivery_date: Optional[date] = None
) -> Dict[str, Any]:
    numero = (invoice.numero or "N/A").replace("FACT-", "BL-", 1)
    return {
        "numero": numero,
        "delivery_date": delivery_date or date.today(),
        "client": client_context(client),
        "atelier": atelier_context(tenant_settings),
        "project": {
            "numero": project.numero if project else invoice.numero,
            "name": project.name if project else "",
        },
        "items": [
            {
                "designation": line["designation"],
                "description": line["description"],
                "quantity": line["quantity"],
            }
            for line in _invoice_lines(invoice.items)
        ],
        "observations": invoice.notes,
    }


DEMO_DATA: Dict[str, Any] = {
    "kind": "devis",
    "title": "DEVIS",
    "numero": "DEV-2026-0042",
    "items": [
        {
            "designation": "Thermolaquage portail aluminium",
            "description": "RAL 7016 gris anthracite - finition satinée",
            "quantity": 2,
            "surface_m2": 3.5,
            "layers": 2,
            "unit_price": 210.0,
            "total_ht": 420.0,
        },
        {
            "designation": "Thermolaquage garde-corps",
            "description": "RAL 9005 noir profond - finition brillante",
            "quantity": 4,
            "surface_m2": 2.8,
            "layers": 2,
            "unit_price": 95.0,
            "total_ht": 380.0,
        },
        {
            "designation": "Traitement anticorrosion",
            "description": "Primaire époxy bi-composant",
            "quantity": 6,
            "surface_m2": 6.3,
            "layers": 1,
            "unit_price": 75.0,
            "total_ht": 450.0,
        },
    ],
    "total_ht_gross": 1250.0,
    "discount": None,
    "discount_amount": 0.0,
    "total_ht": 1250.0,
    "tva_rate": 20.0,
    "total_tva": 250.0,
    "total_ttc": 1500.0,
    "client": {
        "name": "SARL Métallerie Dupont",
        "email": "contact@metallerie-dupont.fr",
        "phone": "01 23 45 67 89",
        "address": "15 rue de l'Industrie\n69000 Lyon",
        "siret": "123 456 789 00012",
        "type": "professionnel",
    },
    "atelier": {
        "name": "ThermoLaquage Pro",
        "address": "42 avenue des Artisans, 69100 Villeurbanne",
        "phone": "04 78 90 12 34",
        "email": "contact@thermolaquage-pro.fr",
        "siret": "987 654 321 00023",
        "tva_intra": "FR12987654321",
        "rcs": "Lyon B 987 654 321",
    },
    "notes": "Délai de réalisation estimé : 5 jours ouvrés.\nPièces à déposer à l'atelier avant le 15 du mois.",
    "cgv": "Devis valable 30 jours. Acompte de 30% à la commande. Solde à la livraison.",
}


def demo_data(today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    return {**DEMO_DATA, "date": today, "valid_until": today + timedelta(days=QUOTE_VALIDITY_DAYS)}


# -------------------------
# Rendering
# -------------------------
class DocumentRenderer:
    """Renders documents to HTML and PDF with the atelier's theme and colours."""

    def __init__(self, templates_dir: Path = TEMPLATES_DIR):
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        register_filters(self.jinja_env)

    def render_html(
        self,
        data: Dict[str, Any],
        template: str = DEFAULT_THEME,
        primary: Optional[str] = None,
        accent: Optional[str] = None,
    ) -> str:
        """Unknown theme names fall back to classic."""
        if template not in THEMES:
            template = DEFAULT_THEME
        started = time.perf_counter()
        html = self.jinja_env.get_template(f"pdf/{template}.html").render(
            doc=data, colors=theme_colors(template, primary, accent), theme=template
        )
        pdf_render_hist.labels(document=data.get("kind", "document"), output="html").observe(
            time.perf_counter() - started
        )
        return html

    def render_delivery_note_html(
        self, data: Dict[str, Any], primary: Optional[str] = None, accent: Optional[str] = None
    ) -> str:
        colors = {
            "primary": primary if is_valid_color(primary) else DELIVERY_NOTE_COLORS["primary"],
            "secondary": "#6b7280",
            "accent": accent if is_valid_color(accent) else DELIVERY_NOTE_COLORS["accent"],
        }
        return self.jinja_env.get_template("pdf/delivery_note.html").render(doc=data, colors=colors)

    def html_to_pdf(self, html: str, document: str = "document") -> bytes:
        # weasyprint needs pango/cairo at import time, keep it off the import path
        from weasyprint import CSS, HTML
        from weasyprint.text.fonts import FontConfiguration

        started = time.perf_counter()
        font_config = FontConfiguration()
        css = CSS(
            string="@page { size: A4; margin: 15mm 15mm 20mm 15mm; }",
            font_config=font_config,
        )
        pdf_bytes = HTML(string=html).write_pdf(stylesheets=[css], font_config=font_config)

        elapsed = time.perf_counter() - started
        pdf_render_hist.labels(document=document, output="pdf").observe(elapsed)
        logger.info("pdf_rendered", document=document, size=len(pdf_bytes), seconds=round(elapsed, 3))
        return pdf_bytes


renderer = DocumentRenderer()
