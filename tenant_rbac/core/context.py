"""RBAC context: the object created once at start-up for one RBAC instance.

Holds the resolved configuration, the adapter (behind a StorageGateway), the
audit trail and the hook bus. There is no process-wide singleton: a host that
needs two isolated instances creates two contexts.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from tenant_rbac.application.services.storage_gateway import StorageGateway
from tenant_rbac.core.config import Settings, get_settings
from tenant_rbac.core.rbac_config import RbacConfig, ResolvedRbacConfig, resolve_rbac_config
from tenant_rbac.domain.exceptions import ConfigurationException
from tenant_rbac.infrastructure.events.audit_trail import AuditTrail
from tenant_rbac.infrastructure.events.hooks import HookBus

logger = logging.getLogger(__name__)


class RbacContext:
    """Resolved configuration plus event sinks for one RBAC instance.

    Call init() exactly once; accessing config, adapter or gateway before that
    raises ConfigurationException.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.audit = AuditTrail()
        self.hooks = HookBus()
        self._config: ResolvedRbacConfig | None = None
        self._gateway: StorageGateway | None = None

    @property
    def initialized(self) -> bool:
        return self._config is not None

    async def init(self, config: RbacConfig | Mapping[str, Any]) -> RbacContext:
        """Resolve config and run the adapter's optional init hook.

        Raises:
            ConfigurationException: Already initialized, or config is invalid.
        """
        if self._config is not None:
            raise ConfigurationException("RBAC context is already initialized")
        resolved = resolve_rbac_config(config)
        adapter_init = getattr(resolved.adapter, "init", None)
        if callable(adapter_init):
            await adapter_init(resolved)
        self._config = resolved
        self._gateway = StorageGateway(resolved.adapter)
        logger.info(
            "RBAC context initialized with %s (models: %s)",
            type(resolved.adapter).__name__,
            resolved.models.model_dump(),
        )
        return self

    @property
    def config(self) -> ResolvedRbacConfig:
        if self._config is None:
            raise ConfigurationException("RBAC context is not initialized; call init() first")
        return self._config

    @property
    def adapter(self) -> Any:
        return self.config.adapter

    @property
    def gateway(self) -> StorageGateway:
        if self._gateway is None:
            raise ConfigurationException("RBAC context is not initialized; call init() first")
        return self._gateway

    async def close(self) -> None:
        """Wait for pending async hook listeners and audit handlers, then close the adapter."""
        await self.hooks.drain()
        await self.audit.drain()
        if self._config is None:
            return
        adapter_close = getattr(self._config.adapter, "close", None)
        if callable(adapter_close):
            await adapter_close()
