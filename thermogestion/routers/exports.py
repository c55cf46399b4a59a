from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from thermogestion.auth.deps import get_current_user
from thermogestion.core.logging_config import logger
from thermogestion.db import get_db
from thermogestion.models.user import User
from thermogestion.services import exports

router = APIRouter(prefix="/api/exports", tags=["exports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _check_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must be before end")


@router.get("/invoices.csv")
def invoices_csv(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_range(start, end)
    invoices = exports.invoices_in_range(db, user.tenant_id, start, end)
    body = exports.invoices_csv(invoices, exports.clients_by_id(db, user.tenant_id, invoices))
    logger.info("export_csv", tenant_id=user.tenant_id, rows=len(invoices))
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="factures_{date.today().isoformat()}.csv"'},
    )


@router.get("/invoices.xlsx")
def invoices_xlsx(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_range(start, end)
    invoices = exports.invoices_in_range(db, user.tenant_id, start, end)
    body = exports.invoices_xlsx(invoices, exports.clients_by_id(db, user.tenant_id, invoices))
    return Response(
        content=body,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="factures_{date.today().isoformat()}.xlsx"'},
    )


@router.get("/fec")
def fec(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Defaults to the whole current (or given) year."""
    year = year or date.today().year
    start = start or date(year, 1, 1)
    end = end or date(year, 12, 31)
    _check_range(start, end)

    xml, count = exports.build_fec(db, user.tenant_id, start, end)
    logger.info("export_fec", tenant_id=user.tenant_id, entries=count)
    return Response(
        content=xml,
        media_type="application/xml; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="FEC_{start.year}.xml"'},
    )
