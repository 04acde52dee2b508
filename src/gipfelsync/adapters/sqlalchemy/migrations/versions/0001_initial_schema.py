"""Initial climbing schema.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from gipfelsync.adapters.sqlalchemy.mappings import UTCDateTime

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _bookkeeping() -> list[sa.Column[object]]:
    return [
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "region",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        *_bookkeeping(),
        sa.PrimaryKeyConstraint("id", name="pk_region"),
        sa.UniqueConstraint("name", name="uq_region_name"),
    )
    op.create_table(
        "summit",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("region_id", sa.Uuid(), nullable=False),
        sa.Column("gps_lat", sa.Float(), nullable=True),
        sa.Column("gps_lng", sa.Float(), nullable=True),
        sa.Column("teufelsturm_id", sa.String(), nullable=True),
        *_bookkeeping(),
        sa.ForeignKeyConstraint(
            ["region_id"],
            ["region.id"],
            name="fk_summit_region_id_region",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_summit"),
        sa.UniqueConstraint("name", "region_id", name="uq_summit_name_region_id"),
    )
    op.create_table(
        "route",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("summit_id", sa.Uuid(), nullable=False),
        sa.Column("difficulty_jump", sa.String(), nullable=True),
        sa.Column("difficulty_rp", sa.String(), nullable=True),
        sa.Column("difficulty_normal", sa.String(), nullable=True),
        sa.Column("difficulty_without_support", sa.String(), nullable=True),
        sa.Column("unsecure", sa.Boolean(), nullable=False),
        sa.Column("stars", sa.Integer(), nullable=False),
        sa.Column("teufelsturm_id", sa.String(), nullable=True),
        sa.Column("teufelsturm_score", sa.String(), nullable=True),
        *_bookkeeping(),
        sa.ForeignKeyConstraint(
            ["summit_id"],
            ["summit.id"],
            name="fk_route_summit_id_summit",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_route"),
        sa.UniqueConstraint("name", "summit_id", name="uq_route_name_summit_id"),
    )
    op.create_table(
        "climber",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        *_bookkeeping(),
        sa.PrimaryKeyConstraint("id", name="pk_climber"),
        sa.UniqueConstraint("first_name", "last_name", name="uq_climber_first_name_last_name"),
    )
    op.create_table(
        "ascent",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("date", UTCDateTime(), nullable=False),
        sa.Column("route_id", sa.Uuid(), nullable=False),
        sa.Column("lead_climber_id", sa.Uuid(), nullable=True),
        sa.Column("is_aborted", sa.Boolean(), nullable=False),
        sa.Column("is_top_rope", sa.Boolean(), nullable=False),
        sa.Column("is_solo", sa.Boolean(), nullable=False),
        sa.Column("is_without_support", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_bookkeeping(),
        sa.ForeignKeyConstraint(
            ["route_id"],
            ["route.id"],
            name="fk_ascent_route_id_route",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["lead_climber_id"],
            ["climber.id"],
            name="fk_ascent_lead_climber_id_climber",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_ascent"),
        sa.UniqueConstraint(
            "date",
            "route_id",
            "lead_climber_id",
            name="uq_ascent_date_route_id_lead_climber_id",
        ),
    )
    op.create_index("ix_ascent_date", "ascent", ["date"])
    op.create_table(
        "ascent_climber",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("ascent_id", sa.Uuid(), nullable=False),
        sa.Column("climber_id", sa.Uuid(), nullable=False),
        sa.Column("is_aborted", sa.Boolean(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["ascent_id"],
            ["ascent.id"],
            name="fk_ascent_climber_ascent_id_ascent",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["climber_id"],
            ["climber.id"],
            name="fk_ascent_climber_climber_id_climber",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_ascent_climber"),
    )
    op.create_index("ix_ascent_climber_ascent_id", "ascent_climber", ["ascent_id"])
    op.create_table(
        "last_change",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("collection_name", sa.String(), nullable=False),
        sa.Column("last_modified", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_last_change"),
        sa.UniqueConstraint("collection_name", name="uq_last_change_collection_name"),
    )


def downgrade() -> None:
    op.drop_table("last_change")
    op.drop_index("ix_ascent_climber_ascent_id", table_name="ascent_climber")
    op.drop_table("ascent_climber")
    op.drop_index("ix_ascent_date", table_name="ascent")
    op.drop_table("ascent")
    op.drop_table("climber")
    op.drop_table("route")
    op.drop_table("summit")
    op.drop_table("region")
