"""
Item contracts (API request/response schemas).

Name and quantity ranges are checked by ``ItemService`` so that they surface
as ``validation_error`` responses with field details.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ItemCreate(BaseModel):
    """Item creation request model."""

    name: str
    location_id: UUID
    description: str | None = None
    quantity: int = Field(default=1, description="Must be at least 1")


class ItemUpdate(BaseModel):
    """Item update request model. Omitted fields are left unchanged."""

    name: str | None = None
    description: str | None = None
    quantity: int | None = None


class ItemMove(BaseModel):
    """Item move request model."""

    location_id: UUID


class ItemPublic(BaseModel):
    """Item public response model."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    quantity: int
    location_id: UUID
    created_at: datetime
    updated_at: datetime


class ItemDetail(ItemPublic):
    """Item with the current path of its location."""

    location_path: list[str] = Field(default_factory=list)
    location_name: str = ""
