# Models package for ThermoGestion (registers all SQLAlchemy tables on Base)

from .alert import Alert
from .audit_log import AuditLog
from .client import Client
from .curing_batch import CuringBatch
from .invoice import Invoice, Payment
from .powder import Powder, StockMovement
from .project import Project, QualityCheck
from .quote import QuoteORM
from .tenant import Tenant
from .tenant_settings import TenantSettings
from .user import User

__all__ = [
    "Alert",
    "AuditLog",
    "Client",
    "CuringBatch",
    "Invoice",
    "Payment",
    "Powder",
    "StockMovement",
    "Project",
    "QualityCheck",
    "QuoteORM",
    "Tenant",
    "TenantSettings",
    "User",
]
