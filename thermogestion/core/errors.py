# thermogestion/core/errors.py
from typing import Any, Dict, Optional


class ThermoGestionError(Exception):
    """Base class for domain errors raised by services."""

    code = "ERROR"

    def __init__(self, message: str, meta: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.meta = meta or {}


class NotFoundError(ThermoGestionError):
    code = "NOT_FOUND"


class CapacityError(ThermoGestionError):
    """Oven planning rejected a batch (count, weight or temperature)."""

    code = "CAPACITY"


class WebhookNotConfigured(ThermoGestionError):
    code = "WEBHOOK_NOT_CONFIGURED"


class WebhookSignatureError(ThermoGestionError):
    code = "WEBHOOK_SIGNATURE"


class InvalidOperation(ThermoGestionError):
    """Business rule rejected the request (wrong status, insufficient stock...)."""

    code = "INVALID_OPERATION"
