# thermogestion/models/tenant.py
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from thermogestion.db import Base

# Local subscription states, driven by Stripe webhooks only
SUBSCRIPTION_NONE = "none"
SUBSCRIPTION_ACTIVE = "active"
SUBSCRIPTION_PAST_DUE = "past_due"
SUBSCRIPTION_CANCELLED = "cancelled"


class Tenant(Base):
    """An atelier: the multi-tenant unit every business row is scoped to."""

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    plan: Mapped[str] = mapped_column(String(20), nullable=False, server_default="trial")
    subscription_status: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=SUBSCRIPTION_NONE
    )
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(
        String(100), index=True, nullable=True
    )
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id!r} plan={self.plan!r} status={self.subscription_status!r}>"
