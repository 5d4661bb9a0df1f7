"""initial domopay schema

Revision ID: 0001_domopay
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_domopay"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "vendors",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("business_name", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("postal_code", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("country", sa.String(length=2), nullable=False),
        sa.Column("certification_rate", sa.Integer(), nullable=True),
        sa.Column("key_rate", sa.Integer(), nullable=True),
        sa.Column("hour_rate", sa.Integer(), nullable=True),
        sa.Column("stripe_account_id", sa.String(), nullable=True),
        sa.Column("onboarding_complete", sa.Boolean(), nullable=False),
        sa.Column("api_key", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vendors_email", "vendors", ["email"], unique=True)
    op.create_index("ix_vendors_api_key", "vendors", ["api_key"], unique=True)
    op.create_index("ix_vendors_stripe_account_id", "vendors", ["stripe_account_id"])

    op.create_table(
        "customers",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("stripe_customer_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customers_email", "customers", ["email"], unique=True)

    op.create_table(
        "offerings",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("vendor_id", sa.String(), nullable=False),
        sa.Column("customer_id", sa.String(), nullable=False),
        sa.Column("origin", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("destination", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("pickup_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("dropoff_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("routing", sa.String(), nullable=True),
        sa.Column("stripe_charge_id", sa.String(), nullable=True),
        sa.Column("stripe_transfer_id", sa.String(), nullable=True),
        sa.Column("stripe_payment_intent_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_offerings_amount_positive"),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_offerings_vendor_id", "offerings", ["vendor_id"])
    op.create_index("ix_offerings_customer_id", "offerings", ["customer_id"])
    op.create_index("ix_offerings_created_at", "offerings", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_offerings_created_at", table_name="offerings")
    op.drop_index("ix_offerings_customer_id", table_name="offerings")
    op.drop_index("ix_offerings_vendor_id", table_name="offerings")
    op.drop_table("offerings")
    op.drop_index("ix_customers_email", table_name="customers")
    op.drop_table("customers")
    op.drop_index("ix_vendors_stripe_account_id", table_name="vendors")
    op.drop_index("ix_vendors_api_key", table_name="vendors")
    op.drop_index("ix_vendors_email", table_name="vendors")
    op.drop_table("vendors")
