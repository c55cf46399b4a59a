# Services package for ThermoGestion

from .quote_service import QuoteService
from .invoice_service import InvoiceService
from .tenant_service import TenantService

__all__ = [
    "InvoiceService",
    "QuoteService",
    "TenantService",
]
