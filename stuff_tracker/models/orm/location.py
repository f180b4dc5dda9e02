"""
StorageLocation ORM model.

A node in the per-owner location tree. Besides the parent pointer every row
carries a materialized path: the ordered ancestor names and ids from the
top-level root down to and including the node itself, plus its depth.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Index, SmallInteger, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from stuff_tracker.models.orm.base import Base

# JSONB on PostgreSQL, plain JSON elsewhere
PathArray = JSON().with_variant(JSONB(), "postgresql")


class StorageLocation(Base):
    """Storage location database table."""

    __tablename__ = "storage_locations"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    owner_id: Mapped[UUID] = mapped_column(nullable=False)
    parent_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("storage_locations.id", ondelete="CASCADE"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    path_names: Mapped[list[str]] = mapped_column(
        PathArray,
        nullable=False,
        default=list,
        comment="Ancestor names from the top-level root down to this node, inclusive",
    )
    path_ids: Mapped[list[str]] = mapped_column(
        PathArray,
        nullable=False,
        default=list,
        comment="Ancestor ids matching path_names, ending with this node's id",
    )
    depth: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        CheckConstraint("id <> parent_id", name="ck_storage_locations_not_self_parent"),
        CheckConstraint("depth >= 0", name="ck_storage_locations_depth_non_negative"),
        Index("ix_storage_locations_owner_parent", "owner_id", "parent_id"),
        Index("ix_storage_locations_owner_depth", "owner_id", "depth"),
    )

    def __repr__(self) -> str:
        return f"<StorageLocation(id={self.id}, name='{self.name}', parent_id={self.parent_id})>"
