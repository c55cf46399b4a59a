from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from thermogestion.core.logging_config import logger
from thermogestion.models.alert import Alert


def create_alert(
    db: Session,
    *,
    tenant_id: str,
    type: str,
    title: str,
    message: str,
    link: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> Alert:
    """Adds an alert row to the session. The caller commits."""
    alert = Alert(
        tenant_id=tenant_id,
        type=type,
        title=title,
        message=message,
        link=link,
        data=data or {},
    )
    db.add(alert)
    logger.info("alert_created", tenant_id=tenant_id, alert_type=type)
    return alert


def notify_invoice_paid(db: Session, invoice) -> Alert:
    return create_alert(
        db,
        tenant_id=invoice.tenant_id,
        type="paiement_recu",
        title=f"Paiement reçu - {invoice.numero}",
        message=f"La facture {invoice.numero} a été payée en ligne ({invoice.total_ttc:.2f} €)",
        link=f"/app/factures/{invoice.id}",
        data={"invoice_id": invoice.id, "amount": invoice.total_ttc},
    )


def notify_low_stock(db: Session, powder) -> Alert:
    return create_alert(
        db,
        tenant_id=powder.tenant_id,
        type="stock_bas",
        title=f"Stock bas - {powder.name}",
        message=(
            f"Le stock de {powder.reference} est à {powder.stock_kg:.1f} kg "
            f"(minimum {powder.stock_min_kg:.1f} kg)"
        ),
        link=f"/app/poudres/{powder.id}",
        data={"powder_id": powder.id, "stock_kg": powder.stock_kg},
    )
