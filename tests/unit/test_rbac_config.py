"""Tests for settings validation and the schema configuration resolver."""

import pytest
from pydantic import ValidationError

from tenant_rbac.core.config import Settings
from tenant_rbac.core.rbac_config import KeyNames, RbacConfig, resolve_rbac_config
from tenant_rbac.domain.exceptions import ConfigurationException
from tenant_rbac.infrastructure.adapters import InMemoryAdapter


def test_settings_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.cache_backend == "memory"
    assert settings.cache_ttl_seconds == 30
    assert settings.database_create_tables is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"cache_backend": "memcached"},
        {"cache_ttl_seconds": 0},
        {"log_level": "verbose"},
    ],
)
def test_settings_rejects_invalid_values(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_settings_read_env_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    """RBAC_-prefixed environment variables populate Settings."""
    monkeypatch.setenv("RBAC_CACHE_BACKEND", "redis")
    monkeypatch.setenv("RBAC_CACHE_TTL_SECONDS", "5")
    settings = Settings(_env_file=None)
    assert settings.cache_backend == "redis"
    assert settings.cache_ttl_seconds == 5


def test_resolve_fills_defaults() -> None:
    """With no overrides every model and key name takes its default."""
    adapter = InMemoryAdapter()
    resolved = resolve_rbac_config(RbacConfig(adapter=adapter))
    assert resolved.adapter is adapter
    assert resolved.models.tenants == "tenants"
    assert resolved.models.user_roles == "user_roles"
    assert resolved.models.role_permissions == "role_permissions"
    assert resolved.keys.tenant_id == "tenant_id"
    assert resolved.keys.permission_id == "permission_id"


def test_resolve_merges_sparse_overrides() -> None:
    """Overrides replace only the names they mention."""
    resolved = resolve_rbac_config(
        {
            "adapter": InMemoryAdapter(),
            "models": {"tenants": "workspaces"},
            "keys": {"tenant_id": "workspace_id"},
            "options": {"database_url": "sqlite+aiosqlite://"},
        }
    )
    assert resolved.models.tenants == "workspaces"
    assert resolved.models.roles == "roles"
    assert resolved.keys.tenant_id == "workspace_id"
    assert resolved.keys.user_id == "user_id"
    assert resolved.options == {"database_url": "sqlite+aiosqlite://"}


def test_resolve_requires_adapter() -> None:
    with pytest.raises(ConfigurationException) as exc_info:
        resolve_rbac_config(RbacConfig())
    assert exc_info.value.message == "RBAC adapter is required"


@pytest.mark.parametrize(
    "config",
    [
        {"adapter": object(), "models": {"groups": "teams"}},
        {"adapter": object(), "keys": {"tenant_id": ""}},
    ],
)
def test_resolve_rejects_malformed_overrides(config: dict) -> None:
    """Unknown model names and empty key names are configuration errors."""
    with pytest.raises(ConfigurationException):
        resolve_rbac_config(config)


def test_key_names_aliases_pairs_canonical_with_configured() -> None:
    keys = KeyNames(tenant_id="org_id")
    pairs = dict(keys.aliases())
    assert pairs["tenant_id"] == "org_id"
    assert pairs["role_id"] == "role_id"
    assert set(pairs) == {"user_id", "tenant_id", "role_id", "permission_id"}
