"""Permission payload schemas."""

from pydantic import BaseModel, ConfigDict, Field


class PermissionCreate(BaseModel):
    """Payload for creating a (global) permission."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    is_active: bool = True


class PermissionUpdate(BaseModel):
    """Payload for updating a permission (partial)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    is_active: bool | None = None
