"""Studios, bookings, galleries, orders and payments.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = postgresql.JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), "sqlite")

BOOKING_STATUS = sa.Enum(
    "SCHEDULED", "IN_PROGRESS", "COMPLETED", "CANCELLED", name="bookingstatus"
)
ORDER_STATUS = sa.Enum("PENDING", "PAID", "CANCELLED", "EXPIRED", name="orderstatus")
ORDER_KIND = sa.Enum("ADVANCE_BOOKING", "EXTRA_PHOTOS", name="orderkind")
PAYMENT_STATUS = sa.Enum("PENDING", "APPROVED", "REJECTED", name="paymentstatus")
PAYMENT_KIND = sa.Enum("DEPOSIT", "SELECTION", name="paymentkind")
WEBHOOK_LOG_STATUS = sa.Enum("SUCCESS", "FAILED", name="webhooklogstatus")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "studios",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("business_name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        sa.Column("contact_email", sa.String(length=255)),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("package_photo_count", sa.Integer(), nullable=False),
        sa.Column("package_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("extra_photo_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("advance_payment_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("discount_tiers", JSON_TYPE, nullable=False),
        sa.Column("mercadopago_access_token", sa.String(length=255)),
        *_timestamps(),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "studio_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("studios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("client_name", sa.String(length=255), nullable=False),
        sa.Column("client_email", sa.String(length=255), nullable=False),
        sa.Column("client_phone", sa.String(length=32), nullable=False),
        sa.Column("session_type", sa.String(length=64), nullable=False),
        sa.Column("event_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=False),
        sa.Column("notes", sa.String(length=1024)),
        sa.Column("status", BOOKING_STATUS, nullable=False),
        sa.Column("deposit_external_id", sa.String(length=64), unique=True),
        sa.Column("deposit_amount", sa.Numeric(12, 2)),
        *_timestamps(),
    )
    op.create_index("ix_bookings_studio_id", "bookings", ["studio_id"])

    op.create_table(
        "albums",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "studio_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("studios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("share_token", sa.String(length=64), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    op.create_table(
        "photos",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "album_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("albums.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("original_path", sa.String(length=1024), nullable=False),
        sa.Column("thumbnail_path", sa.String(length=1024)),
        sa.Column("watermarked_path", sa.String(length=1024)),
        sa.Column("is_selected", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_photos_album_id", "photos", ["album_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "studio_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("studios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="SET NULL"),
        ),
        sa.Column(
            "album_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("albums.id", ondelete="SET NULL"),
        ),
        sa.Column("kind", ORDER_KIND, nullable=False),
        sa.Column("client_email", sa.String(length=255), nullable=False),
        sa.Column("selected_photo_ids", JSON_TYPE, nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", ORDER_STATUS, nullable=False),
        sa.Column(
            "external_reference", sa.String(length=128), nullable=False, unique=True
        ),
        sa.Column("metadata", JSON_TYPE, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_orders_studio_status", "orders", ["studio_id", "status"])

    op.create_table(
        "payment_attempts",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "studio_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("studios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", PAYMENT_KIND, nullable=False),
        sa.Column("external_id", sa.String(length=64), nullable=False, unique=True),
        sa.Column("status", PAYMENT_STATUS, nullable=False),
        sa.Column("gateway_status", sa.String(length=32)),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payer_email", sa.String(length=255), nullable=False),
        sa.Column("booking_draft", JSON_TYPE),
        sa.Column(
            "album_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("albums.id", ondelete="SET NULL"),
        ),
        sa.Column("selected_photo_ids", JSON_TYPE, nullable=False),
        sa.Column("failure_reason", sa.Text()),
        sa.Column("resolved_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    op.create_table(
        "webhook_logs",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("provider_event_id", sa.String(length=255), unique=True),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        sa.Column("payload", JSON_TYPE, nullable=False),
        sa.Column("status", WEBHOOK_LOG_STATUS, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_webhook_logs_event_type", "webhook_logs", ["event_type"])


def downgrade() -> None:
    op.drop_index("ix_webhook_logs_event_type", table_name="webhook_logs")
    op.drop_table("webhook_logs")
    op.drop_table("payment_attempts")
    op.drop_index("ix_orders_studio_status", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_photos_album_id", table_name="photos")
    op.drop_table("photos")
    op.drop_table("albums")
    op.drop_index("ix_bookings_studio_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("studios")

    bind = op.get_bind()
    for enum_type in (
        WEBHOOK_LOG_STATUS,
        PAYMENT_KIND,
        PAYMENT_STATUS,
        ORDER_KIND,
        ORDER_STATUS,
        BOOKING_STATUS,
    ):
        enum_type.drop(bind, checkfirst=True)
