"""Common Pydantic schemas."""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema exchanged on the wire with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    """Page metadata for list responses."""

    current_page: int = Field(..., ge=1, description="Current page number")
    total_pages: int = Field(..., ge=0, description="Total number of pages")
    total_bookings: int = Field(..., ge=0, description="Total matching bookings")
    limit: int = Field(..., ge=1, description="Page size")
    has_next_page: bool = Field(..., description="Whether a later page exists")
    has_prev_page: bool = Field(..., description="Whether an earlier page exists")


class Violation(BaseModel):
    """Validation error violation."""

    path: str = Field(..., description="Path to the invalid field")
    message: str = Field(..., description="Validation error message")


class ErrorResponse(BaseModel):
    """Error envelope."""

    success: bool = Field(False, description="Always false for errors")
    error: str = Field(..., description="Human-readable message")
    code: str = Field(..., description="Application-specific error code")
    details: Optional[List[Violation]] = Field(None, description="Validation errors")


def envelope(data: Any = None, pagination: Optional[Pagination] = None) -> dict:
    """Build a JSON-ready success envelope."""
    body: dict = {"success": True, "data": data}
    if pagination is not None:
        body["pagination"] = pagination.model_dump(mode="json", by_alias=True)
    return body
