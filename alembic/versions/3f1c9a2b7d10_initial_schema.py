"""initial schema

Revision ID: 3f1c9a2b7d10
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f1c9a2b7d10"
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


def _tenant_column():
    return sa.Column("tenant_id", sa.String(100), nullable=False)


def upgrade():
    op.create_table(
        "tenants",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("plan", sa.String(20), nullable=False, server_default="trial"),
        sa.Column("subscription_status", sa.String(20), nullable=False, server_default="none"),
        sa.Column("stripe_customer_id", sa.String(100)),
        sa.Column("stripe_subscription_id", sa.String(100)),
        _created_at(),
    )
    op.create_index("ix_tenants_stripe_customer_id", "tenants", ["stripe_customer_id"])

    op.create_table(
        "users",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("tenant_id", sa.String(100), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False, server_default=""),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="owner"),
        sa.Column("locale", sa.String(5), nullable=False, server_default="fr"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="1"),
        _created_at(),
    )
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "tenant_settings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant_column(),
        sa.Column("company_name", sa.String(200), nullable=False),
        sa.Column("address", sa.Text),
        sa.Column("phone", sa.String(50)),
        sa.Column("email", sa.String(320)),
        sa.Column("siret", sa.String(20)),
        sa.Column("tva_intra", sa.String(20)),
        sa.Column("rcs", sa.String(100)),
        sa.Column("iban", sa.String(40)),
        sa.Column("bic", sa.String(20)),
        sa.Column("logo_url", sa.Text),
        sa.Column("cgv_quote", sa.Text),
        sa.Column("cgv_invoice", sa.Text),
        sa.Column("pdf_template", sa.String(20)),
        sa.Column("primary_color", sa.String(20)),
        sa.Column("accent_color", sa.String(20)),
        sa.Column("locale", sa.String(5)),
        sa.Column("labor_rate_per_hour", sa.Float),
        sa.Column("labor_hours_per_m2", sa.Float),
        sa.Column("consumables_cost_per_m2", sa.Float),
        sa.Column("powder_margin_pct", sa.Float),
        sa.Column("labor_margin_pct", sa.Float),
        sa.Column("vat_rate_pct", sa.Float),
        sa.Column("oven_length_cm", sa.Float),
        sa.Column("oven_width_cm", sa.Float),
        sa.Column("oven_height_cm", sa.Float),
        sa.Column("oven_max_weight_kg", sa.Float),
        sa.Column("oven_batches_per_day", sa.Integer),
        sa.Column("oven_max_temp_c", sa.Float),
    )
    op.create_index("ix_tenant_settings_tenant_id", "tenant_settings", ["tenant_id"], unique=True)

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant_column(),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("email", sa.String(320)),
        sa.Column("phone", sa.String(50)),
        sa.Column("address", sa.Text),
        sa.Column("siret", sa.String(20)),
        sa.Column("notes", sa.Text),
        _created_at(),
    )
    op.create_index("ix_clients_tenant_id", "clients", ["tenant_id"])

    op.create_table(
        "quotes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant_column(),
        sa.Column("client_id", sa.Integer),
        sa.Column("numero", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("title", sa.String(200)),
        sa.Column("items", sa.JSON, nullable=False),
        sa.Column("discount", sa.JSON),
        sa.Column("rates", sa.JSON),
        sa.Column("total_cost_of_goods", sa.Float),
        sa.Column("total_ht_gross", sa.Float),
        sa.Column("discount_amount", sa.Float),
        sa.Column("total_ht", sa.Float),
        sa.Column("tva_rate", sa.Float),
        sa.Column("total_ttc", sa.Float),
        sa.Column("margin_pct", sa.Float),
        sa.Column("notes", sa.Text),
        sa.Column("valid_until", sa.Date),
        sa.Column("signed_at", sa.DateTime(timezone=True)),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_quotes_tenant_id", "quotes", ["tenant_id"])
    op.create_index("ix_quotes_client_id", "quotes", ["client_id"])

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant_column(),
        sa.Column("client_id", sa.Integer),
        sa.Column("project_id", sa.Integer),
        sa.Column("quote_id", sa.Integer),
        sa.Column("numero", sa.String(30), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("payment_status", sa.String(20), nullable=False),
        sa.Column("items", sa.JSON, nullable=False),
        sa.Column("total_ht", sa.Float),
        sa.Column("tva_rate", sa.Float),
        sa.Column("total_ttc", sa.Float),
        sa.Column("due_date", sa.Date),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("notes", sa.Text),
        sa.Column("stripe_payment_intent_id", sa.String(100)),
        sa.Column("stripe_payment_link_id", sa.String(100)),
        _created_at(),
    )
    op.create_index("ix_invoices_tenant_id", "invoices", ["tenant_id"])
    op.create_index("ix_invoices_client_id", "invoices", ["client_id"])
    op.create_index("ix_invoices_stripe_payment_intent_id", "invoices", ["stripe_payment_intent_id"])
    op.create_index("ix_invoices_stripe_payment_link_id", "invoices", ["stripe_payment_link_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant_column(),
        sa.Column("invoice_id", sa.Integer, sa.ForeignKey("invoices.id"), nullable=False),
        sa.Column("client_id", sa.Integer),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("amount", sa.Float, nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("payment_ref", sa.String(100)),
        sa.Column("stripe_payment_intent_id", sa.String(100)),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        _created_at(),
    )
    op.create_index("ix_payments_tenant_id", "payments", ["tenant_id"])
    op.create_index("ix_payments_invoice_id", "payments", ["invoice_id"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant_column(),
        sa.Column("client_id", sa.Integer),
        sa.Column("quote_id", sa.Integer),
        sa.Column("powder_id", sa.Integer),
        sa.Column("numero", sa.String(30), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("surface_m2", sa.Float),
        sa.Column("weight_kg", sa.Float),
        sa.Column("layers", sa.Integer, nullable=False),
        sa.Column("due_date", sa.Date),
        sa.Column("notes", sa.Text),
        _created_at(),
    )
    op.create_index("ix_projects_tenant_id", "projects", ["tenant_id"])
    op.create_index("ix_projects_client_id", "projects", ["client_id"])

    op.create_table(
        "quality_checks",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant_column(),
        sa.Column("project_id", sa.Integer, sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("inspector_id", sa.String(100)),
        sa.Column("step", sa.String(20), nullable=False),
        sa.Column("thickness_ok", sa.Boolean),
        sa.Column("thickness_um", sa.Float),
        sa.Column("adhesion_ok", sa.Boolean),
        sa.Column("visual_ok", sa.Boolean),
        sa.Column("shade_ok", sa.Boolean),
        sa.Column("gloss_ok", sa.Boolean),
        sa.Column("result", sa.String(20), nullable=False),
        sa.Column("comments", sa.Text),
        sa.Column(
            "checked_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    )
    op.create_index("ix_quality_checks_tenant_id", "quality_checks", ["tenant_id"])
    op.create_index("ix_quality_checks_project_id", "quality_checks", ["project_id"])

    op.create_table(
        "powders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant_column(),
        sa.Column("reference", sa.String(100), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("brand", sa.String(100)),
        sa.Column("ral", sa.String(10)),
        sa.Column("finish", sa.String(50)),
        sa.Column("price_per_kg", sa.Float),
        sa.Column("yield_m2_per_kg", sa.Float),
        sa.Column("consumption_kg_per_m2", sa.Float),
        sa.Column("cure_temp_min_c", sa.Float),
        sa.Column("cure_temp_max_c", sa.Float),
        sa.Column("cure_duration_min", sa.Integer),
        sa.Column("stock_kg", sa.Float, nullable=False),
        sa.Column("stock_min_kg", sa.Float, nullable=False),
        _created_at(),
    )
    op.create_index("ix_powders_tenant_id", "powders", ["tenant_id"])

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant_column(),
        sa.Column("powder_id", sa.Integer, sa.ForeignKey("powders.id"), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("quantity_kg", sa.Float, nullable=False),
        sa.Column("project_id", sa.Integer),
        sa.Column("note", sa.Text),
        _created_at(),
    )
    op.create_index("ix_stock_movements_tenant_id", "stock_movements", ["tenant_id"])
    op.create_index("ix_stock_movements_powder_id", "stock_movements", ["powder_id"])

    op.create_table(
        "curing_batches",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant_column(),
        sa.Column("day", sa.Date, nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("temperature_c", sa.Float, nullable=False),
        sa.Column("project_ids", sa.JSON, nullable=False),
        sa.Column("total_weight_kg", sa.Float, nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("notes", sa.Text),
        _created_at(),
    )
    op.create_index("ix_curing_batches_tenant_id", "curing_batches", ["tenant_id"])
    op.create_index("ix_curing_batches_day", "curing_batches", ["day"])

    op.create_table(
        "alerts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant_column(),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("link", sa.String(300)),
        sa.Column("data", sa.JSON),
        sa.Column("is_read", sa.Boolean, nullable=False),
        _created_at(),
    )
    op.create_index("ix_alerts_tenant_id", "alerts", ["tenant_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        _tenant_column(),
        sa.Column("actor", sa.String(100)),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("target_type", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(100)),
        sa.Column("old_json", sa.JSON),
        sa.Column("new_json", sa.JSON),
        _created_at(),
    )
    op.create_index("ix_audit_logs_tenant_id", "audit_logs", ["tenant_id"])


def downgrade():
    for table in (
        "audit_logs",
        "alerts",
        "curing_batches",
        "stock_movements",
        "powders",
        "quality_checks",
        "projects",
        "payments",
        "invoices",
        "quotes",
        "clients",
        "tenant_settings",
        "users",
        "tenants",
    ):
        op.drop_table(table)
