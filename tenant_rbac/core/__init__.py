"""Core: settings, schema configuration, constants and host integration.

Single place for settings and the configuration resolver.
"""

from tenant_rbac.core.config import Settings, get_settings
from tenant_rbac.core.rbac_config import (
    KeyNames,
    ModelNames,
    RbacConfig,
    ResolvedRbacConfig,
    resolve_rbac_config,
)

__all__ = [
    "Settings",
    "get_settings",
    "KeyNames",
    "ModelNames",
    "RbacConfig",
    "ResolvedRbacConfig",
    "resolve_rbac_config",
]
