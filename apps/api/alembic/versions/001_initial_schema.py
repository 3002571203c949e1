"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-12

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Territories table
    op.create_table(
        "territories",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("path", postgresql.JSONB, nullable=False),
        sa.Column("polygon_wkt", sa.Text, nullable=False),
        sa.Column("bbox_min_lat", sa.Float, nullable=False),
        sa.Column("bbox_max_lat", sa.Float, nullable=False),
        sa.Column("bbox_min_lon", sa.Float, nullable=False),
        sa.Column("bbox_max_lon", sa.Float, nullable=False),
        sa.Column("area", sa.Float, nullable=False),
        sa.Column("point_count", sa.Integer, nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
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
    )
    op.create_index("ix_territories_owner_id", "territories", ["owner_id"])
    op.create_index("ix_territories_is_active", "territories", ["is_active"])
    op.create_index(
        "ix_territories_bbox",
        "territories",
        ["bbox_min_lat", "bbox_max_lat", "bbox_min_lon", "bbox_max_lon"],
    )

    # Tracking sessions table
    op.create_table(
        "tracking_sessions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="recording"),
        sa.Column("path", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column(
            "territory_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("territories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_tracking_sessions_owner_status", "tracking_sessions", ["owner_id", "status"]
    )

    # Player buildings table
    op.create_table(
        "player_buildings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "territory_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("territories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("template_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="constructing"),
        sa.Column("level", sa.Integer, nullable=False, server_default="1"),
        sa.Column("location_lat", sa.Float, nullable=False),
        sa.Column("location_lon", sa.Float, nullable=False),
        sa.Column("build_started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("build_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
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
    )
    op.create_index("ix_player_buildings_owner_id", "player_buildings", ["owner_id"])
    op.create_index(
        "ix_player_buildings_territory_template",
        "player_buildings",
        ["territory_id", "template_id"],
    )

    # Inventory ledger table
    op.create_table(
        "inventory_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("resource_name", sa.String(64), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("owner_id", "resource_name", name="uq_inventory_owner_resource"),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )


def downgrade() -> None:
    op.drop_table("inventory_items")
    op.drop_table("player_buildings")
    op.drop_table("tracking_sessions")
    op.drop_table("territories")
