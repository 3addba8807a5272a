"""Cache key builders. Single place for key format.

Key components (tenant_id, user_id) must not contain CACHE_KEY_SEP to avoid
ambiguous or colliding keys.
"""

from tenant_rbac.core.constants import CACHE_KEY_SEP, CACHE_PREFIX_PERMISSION


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value contains the cache key separator."""
    if CACHE_KEY_SEP in value:
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
        )


def permission_key(tenant_id: str, user_id: str) -> str:
    """Cache key for a user's effective permissions in a tenant."""
    _validate_key_component(tenant_id, "tenant_id")
    _validate_key_component(user_id, "user_id")
    return f"{CACHE_PREFIX_PERMISSION}{CACHE_KEY_SEP}{tenant_id}{CACHE_KEY_SEP}{user_id}"


def tenant_permission_pattern(tenant_id: str) -> str:
    """Glob pattern matching every effective-permission key of a tenant."""
    _validate_key_component(tenant_id, "tenant_id")
    return f"{CACHE_PREFIX_PERMISSION}{CACHE_KEY_SEP}{tenant_id}{CACHE_KEY_SEP}*"


def all_permissions_pattern() -> str:
    """Glob pattern matching every effective-permission key."""
    return f"{CACHE_PREFIX_PERMISSION}{CACHE_KEY_SEP}*"
