"""Tenant payload schemas."""

from pydantic import BaseModel, ConfigDict, Field


class TenantCreate(BaseModel):
    """Payload for creating a tenant."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    is_active: bool = True


class TenantUpdate(BaseModel):
    """Payload for updating a tenant (partial)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    is_active: bool | None = None
