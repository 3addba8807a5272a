"""Who is driving the current RBAC mutation.

The audit trail stamps every event with the actor read from here, so hosts set
it once per request (or per job) instead of passing it to each service call.
Values live in contextvars and therefore follow the current asyncio task.

Usage:
    with acting_as("admin-1"):
        await rbac.assign_role_to_user(tenant_id, user_id, "editor")
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass

from tenant_rbac.shared.enums import ActorType

_actor_id: ContextVar[str | None] = ContextVar("rbac_actor_id", default=None)
_actor_type: ContextVar[ActorType] = ContextVar("rbac_actor_type", default=ActorType.SYSTEM)


@dataclass(frozen=True)
class ActorContext:
    actor_id: str | None
    actor_type: ActorType


def _check(actor_id: str | None, actor_type: ActorType) -> None:
    if actor_type == ActorType.USER and not actor_id:
        raise ValueError("actor_id is required when actor_type is USER")


def set_current_actor(actor_id: str | None, actor_type: ActorType = ActorType.USER) -> None:
    """Set the actor for the rest of the current task.

    Raises:
        ValueError: actor_type is USER without an actor_id.
    """
    _check(actor_id, actor_type)
    _actor_id.set(actor_id)
    _actor_type.set(actor_type)


def clear_current_actor() -> None:
    """Back to the SYSTEM default."""
    _actor_id.set(None)
    _actor_type.set(ActorType.SYSTEM)


@contextmanager
def acting_as(actor_id: str | None, actor_type: ActorType = ActorType.USER) -> Iterator[ActorContext]:
    """Scope an actor to a block; the previous actor is restored on exit, even on error."""
    _check(actor_id, actor_type)
    id_token = _actor_id.set(actor_id)
    type_token = _actor_type.set(actor_type)
    try:
        yield ActorContext(actor_id=actor_id, actor_type=actor_type)
    finally:
        _actor_type.reset(type_token)
        _actor_id.reset(id_token)


def get_current_actor_id() -> str | None:
    return _actor_id.get()


def get_current_actor_type() -> ActorType:
    return _actor_type.get()


def get_actor_context() -> ActorContext:
    return ActorContext(actor_id=_actor_id.get(), actor_type=_actor_type.get())
