"""
Location contracts (API request/response schemas).
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LocationCreate(BaseModel):
    """Location creation request model. A null parent creates a top-level location."""

    name: str
    parent_id: UUID | None = None


class LocationUpdate(BaseModel):
    """Location rename request model."""

    name: str


class LocationMove(BaseModel):
    """Location move request model. A null parent moves the location to the top level."""

    parent_id: UUID | None = None


class LocationPublic(BaseModel):
    """Location public response model."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    parent_id: UUID | None
    breadcrumbs: list[str] = Field(default_factory=list, description="Ancestor names, ending with this location")
    breadcrumb_ids: list[UUID] = Field(default_factory=list, description="Ancestor ids, ending with this location")
    depth: int
    created_at: datetime
    updated_at: datetime


class LocationListItem(BaseModel):
    """Location summary with direct content counts."""

    id: UUID
    name: str
    child_count: int = 0
    item_count: int = 0


class LocationItemSummary(BaseModel):
    """Item as listed inside a location."""

    id: UUID
    name: str
    quantity: int


class LocationDetail(LocationPublic):
    """Location with its direct children and items."""

    children: list[LocationListItem] = Field(default_factory=list)
    items: list[LocationItemSummary] = Field(default_factory=list)


class LocationTreeNode(BaseModel):
    """Flat tree node; the forest is ordered by depth then name."""

    id: UUID
    parent_id: UUID | None
    name: str
    depth: int


class PathRebuildResponse(BaseModel):
    """Result of a materialized path rebuild."""

    rebuilt_count: int = Field(..., description="Number of locations whose cached path changed")
