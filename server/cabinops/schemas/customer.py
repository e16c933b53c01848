"""Customer profile schemas."""

from typing import Optional

from pydantic import Field

from .common import CamelModel


class CustomerProfile(CamelModel):
    """Display profile of a customer resolved from the identity provider."""

    id: str = Field(..., description="Opaque customer identifier")
    name: str = Field("", description="Display name")
    email: Optional[str] = Field(None, description="Primary email address")
    phone: Optional[str] = Field(None, description="Primary phone number")
    image_url: Optional[str] = Field(None, description="Avatar URL")
