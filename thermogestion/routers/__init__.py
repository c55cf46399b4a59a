# Routers package for ThermoGestion

from . import (
    analytics,
    auth,
    clients,
    exports,
    i18n,
    invoices,
    oven,
    powders,
    projects,
    quotes,
    ral,
    settings,
    templates,
    webhooks,
)

__all__ = [
    "analytics",
    "auth",
    "clients",
    "exports",
    "i18n",
    "invoices",
    "oven",
    "powders",
    "projects",
    "quotes",
    "ral",
    "settings",
    "templates",
    "webhooks",
]
