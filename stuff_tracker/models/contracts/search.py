"""
Search contracts (API request/response schemas).
"""

from uuid import UUID

from pydantic import BaseModel, Field


class SearchResultItem(BaseModel):
    """A single item search hit."""

    id: UUID
    name: str
    description: str | None
    quantity: int
    location_id: UUID
    location_path: list[str] = Field(default_factory=list)


class SearchResults(BaseModel):
    """Page of item search results."""

    items: list[SearchResultItem]
    total: int = Field(..., description="Total number of items matching the query")
    has_more: bool = Field(..., description="Whether more items exist after this page")
