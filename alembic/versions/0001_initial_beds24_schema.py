"""Initial Beds24 schema

Revision ID: 0001
Revises:
Create Date: 2025-09-02 10:12:31.104522

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op  # type: ignore[attr-defined]
from sync_beds24.config import SCHEMA

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    ]


def _fk(table: str) -> str:
    return f"{SCHEMA}.{table}.id" if SCHEMA else f"{table}.id"


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "connection_secrets",
        sa.Column("reference", sa.String(64), primary_key=True),
        sa.Column("ciphertext", sa.LargeBinary(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        schema=SCHEMA,
    )

    op.create_table(
        "connections",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("org_id", sa.String(64), nullable=False),
        sa.Column("hotel_id", sa.String(64), nullable=False),
        sa.Column("external_property_id", sa.String(64), nullable=False),
        sa.Column("scopes", JSONType, nullable=False),
        sa.Column("refresh_token_read_ref", sa.String(64), nullable=False),
        sa.Column("refresh_token_write_ref", sa.String(64), nullable=True),
        sa.Column("cached_access_token", sa.Text(), nullable=True),
        sa.Column("cached_access_token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cached_write_access_token", sa.Text(), nullable=True),
        sa.Column("cached_write_access_token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("last_token_use_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("hotel_id", "provider", name="uq_connections_hotel_provider"),
        schema=SCHEMA,
    )
    op.create_index("ix_connections_org_id", "connections", ["org_id"], schema=SCHEMA)

    op.create_table(
        "external_id_mappings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("entity_type", sa.String(32), nullable=False),
        sa.Column("external_id", sa.String(128), nullable=False),
        sa.Column("internal_id", sa.String(64), nullable=False),
        sa.Column("meta", JSONType, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "provider", "entity_type", "external_id", name="uq_mappings_provider_entity_external"
        ),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_mappings_internal",
        "external_id_mappings",
        ["provider", "entity_type", "internal_id"],
        schema=SCHEMA,
    )

    op.create_table(
        "sync_state",
        sa.Column("hotel_id", sa.String(64), primary_key=True),
        sa.Column("provider", sa.String(32), primary_key=True),
        sa.Column("external_property_id", sa.String(64), nullable=True),
        sa.Column("sync_enabled", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("bookings_modified_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_bookings_sync", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_calendar_sync", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bootstrap_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("meta", JSONType, nullable=True),
        *_timestamps(),
        schema=SCHEMA,
    )

    op.create_table(
        "ingestion_audit",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("operation", sa.String(64), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("hotel_id", sa.String(64), nullable=True),
        sa.Column("org_id", sa.String(64), nullable=True),
        sa.Column("external_id", sa.String(128), nullable=True),
        sa.Column("request_payload", JSONType, nullable=True),
        sa.Column("response_payload", JSONType, nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("request_cost", sa.Integer(), nullable=True),
        sa.Column("limit_remaining", sa.Integer(), nullable=True),
        sa.Column("limit_resets_in", sa.Integer(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        schema=SCHEMA,
    )
    for column in ("operation", "hotel_id", "created_at"):
        op.create_index(f"ix_ingestion_audit_{column}", "ingestion_audit", [column], schema=SCHEMA)

    op.create_table(
        "room_types",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("hotel_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("max_occupancy", sa.Integer(), nullable=True),
        sa.Column("raw_payload", JSONType, nullable=True),
        *_timestamps(),
        schema=SCHEMA,
    )
    op.create_index("ix_room_types_hotel_id", "room_types", ["hotel_id"], schema=SCHEMA)

    op.create_table(
        "reservations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("hotel_id", sa.String(64), nullable=False),
        sa.Column(
            "room_type_id",
            sa.String(36),
            sa.ForeignKey(_fk("room_types"), ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("guest_id", sa.String(36), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("check_in", sa.Date(), nullable=True),
        sa.Column("check_out", sa.Date(), nullable=True),
        sa.Column("adults", sa.Integer(), nullable=True),
        sa.Column("children", sa.Integer(), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("channel", sa.String(64), nullable=True),
        sa.Column("guest_name", sa.String(255), nullable=True),
        sa.Column("raw_payload", JSONType, nullable=False),
        *_timestamps(),
        schema=SCHEMA,
    )
    op.create_index("ix_reservations_hotel_id", "reservations", ["hotel_id"], schema=SCHEMA)

    op.create_table(
        "calendar_days",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("hotel_id", sa.String(64), nullable=False),
        sa.Column(
            "room_type_id",
            sa.String(36),
            sa.ForeignKey(_fk("room_types"), ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("available", sa.Integer(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("min_stay", sa.Integer(), nullable=True),
        sa.Column("max_stay", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("room_type_id", "day", name="uq_calendar_days_room_day"),
        schema=SCHEMA,
    )
    op.create_index("ix_calendar_days_hotel_id", "calendar_days", ["hotel_id"], schema=SCHEMA)


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        "calendar_days",
        "reservations",
        "room_types",
        "ingestion_audit",
        "sync_state",
        "external_id_mappings",
        "connections",
        "connection_secrets",
    ):
        op.drop_table(table, schema=SCHEMA)
