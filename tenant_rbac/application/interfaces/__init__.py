"""Application interfaces (ports): adapter contract and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from tenant_rbac.infrastructure.
"""

from tenant_rbac.application.interfaces.adapters import (
    IBulkCreate,
    ICallbackTransaction,
    IExplicitTransaction,
    IInitializable,
    IStorageAdapter,
    Record,
    Where,
)
from tenant_rbac.application.interfaces.services import (
    AuditHandler,
    HookListener,
    IAuditTrail,
    ICacheService,
    IHookBus,
)

__all__ = [
    "AuditHandler",
    "HookListener",
    "IAuditTrail",
    "IBulkCreate",
    "ICacheService",
    "ICallbackTransaction",
    "IExplicitTransaction",
    "IHookBus",
    "IInitializable",
    "IStorageAdapter",
    "Record",
    "Where",
]
