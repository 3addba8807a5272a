"""Core constants: default schema names and cache key structure.

Single source of truth for the defaults the configuration resolver fills in
and for cache key prefixes.
"""

# Default physical model (table / collection) names, keyed by logical name.
DEFAULT_MODELS: dict[str, str] = {
    "users": "users",
    "tenants": "tenants",
    "roles": "roles",
    "permissions": "permissions",
    "user_roles": "user_roles",
    "role_permissions": "role_permissions",
}

# Default foreign-key field names, keyed by canonical name.
DEFAULT_KEYS: dict[str, str] = {
    "user_id": "user_id",
    "tenant_id": "tenant_id",
    "role_id": "role_id",
    "permission_id": "permission_id",
}

# Cache key prefix for effective permissions (permission:<tenant_id>:<user_id>)
CACHE_PREFIX_PERMISSION = "permission"

# Delimiter for composite keys
CACHE_KEY_SEP = ":"
