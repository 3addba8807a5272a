"""Schema configuration: sparse overrides resolved against fixed defaults.

A host passes RbacConfig (adapter plus optional renamed models and keys);
resolve_rbac_config fills every unspecified name so services never hardcode a
table or foreign-key field.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tenant_rbac.core.constants import DEFAULT_KEYS, DEFAULT_MODELS
from tenant_rbac.domain.exceptions import ConfigurationException


class ModelOverrides(BaseModel):
    """Sparse override of physical model names."""

    model_config = ConfigDict(extra="forbid")

    users: str | None = Field(default=None, min_length=1)
    tenants: str | None = Field(default=None, min_length=1)
    roles: str | None = Field(default=None, min_length=1)
    permissions: str | None = Field(default=None, min_length=1)
    user_roles: str | None = Field(default=None, min_length=1)
    role_permissions: str | None = Field(default=None, min_length=1)


class KeyOverrides(BaseModel):
    """Sparse override of foreign-key field names."""

    model_config = ConfigDict(extra="forbid")

    user_id: str | None = Field(default=None, min_length=1)
    tenant_id: str | None = Field(default=None, min_length=1)
    role_id: str | None = Field(default=None, min_length=1)
    permission_id: str | None = Field(default=None, min_length=1)


class ModelNames(BaseModel):
    """Fully-resolved physical model names."""

    model_config = ConfigDict(frozen=True)

    users: str = DEFAULT_MODELS["users"]
    tenants: str = DEFAULT_MODELS["tenants"]
    roles: str = DEFAULT_MODELS["roles"]
    permissions: str = DEFAULT_MODELS["permissions"]
    user_roles: str = DEFAULT_MODELS["user_roles"]
    role_permissions: str = DEFAULT_MODELS["role_permissions"]


class KeyNames(BaseModel):
    """Fully-resolved foreign-key field names."""

    model_config = ConfigDict(frozen=True)

    user_id: str = DEFAULT_KEYS["user_id"]
    tenant_id: str = DEFAULT_KEYS["tenant_id"]
    role_id: str = DEFAULT_KEYS["role_id"]
    permission_id: str = DEFAULT_KEYS["permission_id"]

    def aliases(self) -> Iterator[tuple[str, str]]:
        """Yield (canonical, configured) pairs."""
        for canonical in DEFAULT_KEYS:
            yield canonical, getattr(self, canonical)


class RbacConfig(BaseModel):
    """Configuration a host passes at start-up.

    Attributes:
        adapter: Storage adapter instance (see application.interfaces.adapters).
        models: Sparse override of the six model names.
        keys: Sparse override of the four foreign-key names.
        options: Backend-specific connection parameters, passed through untouched.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    adapter: Any = None
    models: ModelOverrides = Field(default_factory=ModelOverrides)
    keys: KeyOverrides = Field(default_factory=KeyOverrides)
    options: dict[str, Any] = Field(default_factory=dict)


class ResolvedRbacConfig(BaseModel):
    """Fully-specified configuration used by every service."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    adapter: Any
    models: ModelNames
    keys: KeyNames
    options: dict[str, Any] = Field(default_factory=dict)


def resolve_rbac_config(config: RbacConfig | Mapping[str, Any]) -> ResolvedRbacConfig:
    """Merge sparse overrides over the defaults.

    Args:
        config: RbacConfig or an equivalent mapping.

    Returns:
        ResolvedRbacConfig with every model and key name filled.

    Raises:
        ConfigurationException: Adapter missing or an override is malformed.
    """
    if not isinstance(config, RbacConfig):
        try:
            config = RbacConfig.model_validate(config)
        except ValidationError as exc:
            raise ConfigurationException(f"Invalid RBAC configuration: {exc}") from exc
    if config.adapter is None:
        raise ConfigurationException("RBAC adapter is required")
    return ResolvedRbacConfig(
        adapter=config.adapter,
        models=ModelNames(**config.models.model_dump(exclude_none=True)),
        keys=KeyNames(**config.keys.model_dump(exclude_none=True)),
        options=dict(config.options),
    )
