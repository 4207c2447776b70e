"""Initial schema

Revision ID: 3b7c1d2e9a40
Revises:
Create Date: 2026-10-16 09:12:05.418311

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3b7c1d2e9a40"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(10, 2)


def _timestamps(with_updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False
        )
    ]
    if with_updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(),
                server_default=sa.func.now(),
                nullable=False,
            )
        )
    return columns


def upgrade():
    """Create every CarHub table."""
    # --- Staff accounts ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=True),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("role IN ('admin', 'technician')", name="CK_users_role"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )

    # --- Customers and vehicles ---
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=20), nullable=True),
        sa.Column("document", sa.String(length=14), nullable=False),
        sa.Column("document_type", sa.String(length=4), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("address", sa.String(length=300), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=2), nullable=True),
        sa.Column("zip_code", sa.String(length=10), nullable=True),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("loyalty_points", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "document_type IN ('cpf', 'cnpj')", name="CK_customers_document_type"
        ),
        sa.CheckConstraint("loyalty_points >= 0", name="CK_customers_loyalty"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sa.UniqueConstraint("document"),
    )
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("license_plate", sa.String(length=10), nullable=False),
        sa.Column("brand", sa.String(length=100), nullable=False),
        sa.Column("model", sa.String(length=100), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("color", sa.String(length=50), nullable=True),
        sa.Column("chassis", sa.String(length=50), nullable=True),
        sa.Column("engine", sa.String(length=50), nullable=True),
        sa.Column("fuel_type", sa.String(length=20), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("license_plate"),
    )
    op.create_index("ix_vehicles_customer_id", "vehicles", ["customer_id"])

    # --- Service catalog ---
    op.create_table(
        "service_types",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("default_price", MONEY, nullable=False),
        sa.Column("estimated_duration", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False),
        sa.Column("interval_months", sa.Integer(), nullable=True),
        sa.Column("loyalty_points", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    # --- Service orders ---
    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        sa.Column("technician_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("scheduled_time", sa.Time(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("estimated_value", MONEY, nullable=True),
        sa.Column("final_value", MONEY, nullable=True),
        sa.Column("amount_paid", MONEY, nullable=False),
        sa.Column("paid_pix", MONEY, nullable=False),
        sa.Column("paid_cash", MONEY, nullable=False),
        sa.Column("paid_check", MONEY, nullable=False),
        sa.Column("paid_card", MONEY, nullable=False),
        sa.Column(
            "loyalty_credited", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('scheduled', 'in_progress', 'completed', 'cancelled')",
            name="CK_services_status",
        ),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicles.id"]),
        sa.ForeignKeyConstraint(["technician_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_services_customer_id", "services", ["customer_id"])
    op.create_index("ix_services_vehicle_id", "services", ["vehicle_id"])
    op.create_index("ix_services_technician_id", "services", ["technician_id"])
    op.create_index("ix_services_scheduled_date", "services", ["scheduled_date"])

    op.create_table(
        "service_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("service_type_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", MONEY, nullable=False),
        sa.Column("total_price", MONEY, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(with_updated=False),
        sa.CheckConstraint("quantity >= 1", name="CK_service_items_qty"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["service_type_id"], ["service_types.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_service_items_service_id", "service_items", ["service_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("payment_method", sa.String(length=10), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(with_updated=False),
        sa.CheckConstraint("amount > 0", name="CK_payments_amount"),
        sa.CheckConstraint(
            "payment_method IN ('pix', 'cash', 'check', 'card')",
            name="CK_payments_method",
        ),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payments_service_id", "payments", ["service_id"])

    op.create_table(
        "service_reminders",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("reminder_minutes", sa.Integer(), nullable=False),
        sa.Column("scheduled_for", sa.DateTime(), nullable=False),
        sa.Column("notification_sent", sa.Boolean(), nullable=False),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_service_reminders_service_id", "service_reminders", ["service_id"]
    )
    op.create_index(
        "ix_service_reminders_scheduled_for", "service_reminders", ["scheduled_for"]
    )

    # --- Photos ---
    op.create_table(
        "photos",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("entity_type", sa.String(length=20), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("original_name", sa.String(length=255), nullable=True),
        sa.Column("mime_type", sa.String(length=100), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("url", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("uploaded_by", sa.Integer(), nullable=True),
        *_timestamps(with_updated=False),
        sa.CheckConstraint(
            "entity_type IN ('customer', 'vehicle', 'service')",
            name="CK_photos_entity_type",
        ),
        sa.ForeignKeyConstraint(["uploaded_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("IX_photos_entity", "photos", ["entity_type", "entity_id"])

    # --- Audit trail ---
    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("previous_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])


def downgrade():
    """Drop every table created in upgrade(), children first."""
    op.drop_index("ix_audit_log_created_at", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("IX_photos_entity", table_name="photos")
    op.drop_table("photos")
    op.drop_index("ix_service_reminders_scheduled_for", table_name="service_reminders")
    op.drop_index("ix_service_reminders_service_id", table_name="service_reminders")
    op.drop_table("service_reminders")
    op.drop_index("ix_payments_service_id", table_name="payments")
    op.drop_table("payments")
    op.drop_index("ix_service_items_service_id", table_name="service_items")
    op.drop_table("service_items")
    op.drop_index("ix_services_scheduled_date", table_name="services")
    op.drop_index("ix_services_technician_id", table_name="services")
    op.drop_index("ix_services_vehicle_id", table_name="services")
    op.drop_index("ix_services_customer_id", table_name="services")
    op.drop_table("services")
    op.drop_table("service_types")
    op.drop_index("ix_vehicles_customer_id", table_name="vehicles")
    op.drop_table("vehicles")
    op.drop_table("customers")
    op.drop_table("users")
