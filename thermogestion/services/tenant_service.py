from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from thermogestion.auth.passwords import hash_password
from thermogestion.core.logging_config import logger
from thermogestion.core.settings import settings
from thermogestion.models.tenant import Tenant
from thermogestion.models.tenant_settings import TenantSettings
from thermogestion.models.user import User
from thermogestion.schemas.pricing import ShopRateSettings

SHOP_RATE_FIELDS = tuple(ShopRateSettings.model_fields.keys())


class TenantService:
    """Atelier lifecycle and per-atelier settings, stored in the database."""

    def __init__(self, db: Session):
        self.db = db

    def register(self, *, company_name: str, email: str, password: str, full_name: str = "") -> User:
        """Create an atelier, its default settings and its owner account."""
        tenant = Tenant(id=str(uuid4()), name=company_name)
        self.db.add(tenant)
        self.db.flush()
        self.db.add(self._default_settings(tenant.id, company_name))

        user = User(
            id=str(uuid4()),
            tenant_id=tenant.id,
            email=email.lower().strip(),
            full_name=full_name,
            password_hash=hash_password(password),
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info("tenant_registered", tenant_id=tenant.id, company_name=company_name)
        return user

    def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return self.db.get(Tenant, tenant_id)

    def get_settings(self, tenant_id: str) -> TenantSettings:
        """Settings row for the atelier, created with defaults when missing."""
        row = (
            self.db.query(TenantSettings)
            .filter(TenantSettings.tenant_id == tenant_id)
            .first()
        )
        if row is None:
            tenant = self.get_tenant(tenant_id)
            row = self._default_settings(tenant_id, tenant.name if tenant else "Atelier")
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.info("tenant_settings_created", tenant_id=tenant_id)
        return row

    def update_settings(self, tenant_id: str, **changes: Any) -> TenantSettings:
        row = self.get_settings(tenant_id)
        for key, value in changes.items():
            if value is not None and hasattr(row, key):
                setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        logger.info("tenant_settings_updated", tenant_id=tenant_id, fields=sorted(changes))
        return row

    def get_shop_rates(self, tenant_id: str) -> ShopRateSettings:
        row = self.get_settings(tenant_id)
        return shop_rates_from_settings(row)

    @staticmethod
    def _default_settings(tenant_id: str, company_name: str) -> TenantSettings:
        return TenantSettings(
            tenant_id=tenant_id,
            company_name=company_name,
            pdf_template="classic",
            locale=settings.DEFAULT_LOCALE,
            labor_rate_per_hour=settings.DEFAULT_LABOR_RATE_PER_HOUR,
            labor_hours_per_m2=settings.DEFAULT_LABOR_HOURS_PER_M2,
            consumables_cost_per_m2=settings.DEFAULT_CONSUMABLES_COST_PER_M2,
            powder_margin_pct=settings.DEFAULT_POWDER_MARGIN_PCT,
            labor_margin_pct=settings.DEFAULT_LABOR_MARGIN_PCT,
            vat_rate_pct=settings.DEFAULT_VAT_RATE_PCT,
            oven_max_weight_kg=settings.DEFAULT_OVEN_MAX_WEIGHT_KG,
            oven_batches_per_day=settings.DEFAULT_OVEN_BATCHES_PER_DAY,
            oven_max_temp_c=settings.DEFAULT_OVEN_MAX_TEMP_C,
        )


def shop_rates_from_settings(row: TenantSettings) -> ShopRateSettings:
    values: Dict[str, Any] = {}
    for field in SHOP_RATE_FIELDS:
        value = getattr(row, field, None)
        if value is not None:
            values[field] = value
    return ShopRateSettings(**values)
