"""Add storage_locations and items tables

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "storage_locations",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("parent_id", sa.UUID(), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column(
            "path_names",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
            comment="Ancestor names from the top-level root down to this node, inclusive",
        ),
        sa.Column(
            "path_ids",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
            comment="Ancestor ids matching path_names, ending with this node's id",
        ),
        sa.Column("depth", sa.SmallInteger(), server_default="0", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint("id <> parent_id", name="ck_storage_locations_not_self_parent"),
        sa.CheckConstraint("depth >= 0", name="ck_storage_locations_depth_non_negative"),
        sa.ForeignKeyConstraint(
            ["parent_id"],
            ["storage_locations.id"],
            ondelete="CASCADE",
            name="fk_storage_locations_parent_id_storage_locations",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_storage_locations"),
    )
    op.create_index(
        "ix_storage_locations_owner_parent", "storage_locations", ["owner_id", "parent_id"], unique=False
    )
    op.create_index(
        "ix_storage_locations_owner_depth", "storage_locations", ["owner_id", "depth"], unique=False
    )

    op.create_table(
        "items",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("location_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("quantity", sa.Integer(), server_default="1", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint("quantity > 0", name="ck_items_quantity_positive"),
        sa.ForeignKeyConstraint(
            ["location_id"],
            ["storage_locations.id"],
            ondelete="CASCADE",
            name="fk_items_location_id_storage_locations",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_items"),
    )
    op.create_index("ix_items_owner_location", "items", ["owner_id", "location_id"], unique=False)
    op.create_index("ix_items_owner_name", "items", ["owner_id", "name"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_items_owner_name", table_name="items")
    op.drop_index("ix_items_owner_location", table_name="items")
    op.drop_table("items")
    op.drop_index("ix_storage_locations_owner_depth", table_name="storage_locations")
    op.drop_index("ix_storage_locations_owner_parent", table_name="storage_locations")
    op.drop_table("storage_locations")
