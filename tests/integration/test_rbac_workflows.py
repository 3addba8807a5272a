"""End-to-end workflows through MultiTenantRBAC (in-memory adapter, in-memory cache)."""

import asyncio

import pytest

from tenant_rbac import (
    AuditAction,
    DuplicateAssignmentException,
    ForbiddenException,
    HookEvent,
    InMemoryAdapter,
    MultiTenantRBAC,
    RbacConfig,
    ResourceNotFoundException,
    Settings,
    create_rbac,
)
from tenant_rbac.infrastructure.cache import permission_key
from tenant_rbac.shared.context import acting_as


async def test_tenant_creation_is_idempotent(rbac: MultiTenantRBAC) -> None:
    first = await rbac.create_tenant("Acme")
    second = await rbac.create_tenant("Acme", return_if_found=True)
    assert first.id == second.id
    assert len(await rbac.list_tenants()) == 1


async def test_grant_and_check(rbac: MultiTenantRBAC) -> None:
    acme = await rbac.create_tenant("acme")
    await rbac.create_permission({"title": "read:invoice"})
    await rbac.create_role(acme.slug, {"title": "auditor"})
    await rbac.grant_permissions_to_role(acme.id, "auditor", ["read:invoice"])
    await rbac.assign_role_to_user(acme.id, "u1", "auditor")
    assert await rbac.authorize(acme.id, "u1", "read:invoice") is True
    assert await rbac.authorize(acme.id, "u1", "write:invoice") is False


async def test_duplicate_assignment_rejected(rbac: MultiTenantRBAC, seeded) -> None:
    await rbac.assign_role_to_user(seeded.tenant.id, "u1", "editor")
    with pytest.raises(DuplicateAssignmentException) as exc_info:
        await rbac.assign_role_to_user(seeded.tenant.id, "u1", "editor")
    assert exc_info.value.error_code == "ALREADY_EXISTS"


async def test_cross_tenant_role_lookup_fails(rbac: MultiTenantRBAC, seeded) -> None:
    other = await rbac.create_tenant("Globex")
    with pytest.raises(ResourceNotFoundException):
        await rbac.find_role(other.id, "editor")
    with pytest.raises(ResourceNotFoundException):
        await rbac.assign_role_to_user(other.id, "u1", "editor")


async def test_tenant_isolation_of_same_named_roles(rbac: MultiTenantRBAC) -> None:
    """'manager' in A and B hold disjoint permissions; holding it in A grants only A's."""
    a = await rbac.create_tenant("Tenant A")
    b = await rbac.create_tenant("Tenant B")
    await rbac.ensure_permissions([{"title": "perm.x"}, {"title": "perm.y"}])
    for tenant, permission in ((a, "perm.x"), (b, "perm.y")):
        await rbac.create_role(tenant.slug, {"title": "manager"})
        await rbac.grant_permissions_to_role(tenant.id, "manager", [permission])

    await rbac.assign_role_to_user(a.id, "u1", "manager")

    assert await rbac.authorize(a.id, "u1", "perm.x") is True
    assert await rbac.authorize(a.id, "u1", "perm.y") is False
    assert await rbac.authorize(b.id, "u1", "perm.x") is False
    assert await rbac.authorize(b.id, "u1", "perm.y") is False
    assert [p.title for p in await rbac.list_effective_permissions(b.id, "u1")] == []


async def test_sync_role_permissions_replaces_fully(rbac: MultiTenantRBAC, seeded) -> None:
    tenant = seeded.tenant
    await rbac.assign_role_to_user(tenant.id, "u1", "viewer")
    await rbac.sync_role_with_permissions(tenant.id, "viewer", ["posts.read", "posts.edit"])
    assert {p.title for p in await rbac.list_effective_permissions(tenant.id, "u1")} == {
        "posts.read",
        "posts.edit",
    }
    await rbac.sync_role_with_permissions(tenant.id, "viewer", ["posts.delete"])
    assert {p.title for p in await rbac.list_effective_permissions(tenant.id, "u1")} == {
        "posts.delete"
    }


async def test_revocation_is_immediate_despite_cache(rbac: MultiTenantRBAC, seeded) -> None:
    tenant = seeded.tenant
    cache = rbac.authorization.cache
    await rbac.assign_role_to_user(tenant.id, "u1", "editor")
    await rbac.list_effective_permissions(tenant.id, "u1")
    assert await cache.get(permission_key(tenant.id, "u1")) is not None
    assert await rbac.authorize(tenant.id, "u1", "posts.edit") is True

    assert await rbac.revoke_role_from_user(tenant.id, "u1", "editor") == 1

    assert await rbac.authorize(tenant.id, "u1", "posts.edit") is False


async def test_permission_grant_reaches_cached_holders(rbac: MultiTenantRBAC, seeded) -> None:
    """Granting to a role invalidates every holder's cached permissions."""
    tenant = seeded.tenant
    await rbac.assign_role_to_user(tenant.id, "u1", "viewer")
    await rbac.assign_role_to_user(tenant.id, "u2", "viewer")
    for user in ("u1", "u2"):
        assert await rbac.authorize(tenant.id, user, "posts.delete") is False
        await rbac.list_effective_permissions(tenant.id, user)

    await rbac.grant_permissions_to_role(tenant.id, "viewer", ["posts.delete"])

    for user in ("u1", "u2"):
        assert await rbac.authorize(tenant.id, user, "posts.delete") is True


async def test_role_and_permission_deletes_invalidate(rbac: MultiTenantRBAC, seeded) -> None:
    tenant = seeded.tenant
    await rbac.assign_role_to_user(tenant.id, "u1", "viewer")
    await rbac.assign_role_to_user(tenant.id, "u2", "editor")
    await rbac.list_effective_permissions(tenant.id, "u1")
    await rbac.list_effective_permissions(tenant.id, "u2")

    await rbac.delete_role(tenant.id, seeded.viewer.id)
    assert await rbac.authorize(tenant.id, "u1", "posts.read") is False

    await rbac.delete_permission("posts.edit")
    assert await rbac.authorize(tenant.id, "u2", "posts.edit") is False
    assert [p.title for p in await rbac.list_effective_permissions(tenant.id, "u2")] == [
        "posts.read"
    ]


async def test_bulk_sync_of_user_roles(rbac: MultiTenantRBAC, seeded, adapter) -> None:
    tenant = seeded.tenant
    await rbac.sync_user_roles(tenant.id, "u1", ["editor", "viewer"])
    assignments = await rbac.sync_user_roles(tenant.id, "u1", ["editor"])
    assert [a.role_id for a in assignments] == [seeded.editor.id]
    rows = await adapter.find_many("user_roles", {"tenant_id": tenant.id, "user_id": "u1"})
    assert [r["role_id"] for r in rows] == [seeded.editor.id]


async def test_bulk_assign_then_views(rbac: MultiTenantRBAC, seeded) -> None:
    tenant = seeded.tenant
    created = await rbac.assign_roles_to_user_bulk(tenant.id, "u1", ["editor", "viewer"])
    assert len(created) == 2
    assert await rbac.assign_roles_to_user_bulk(tenant.id, "u1", ["viewer"]) == []
    permissions = await rbac.get_user_permissions(tenant.id, "u1")
    assert sorted(p.title for p in permissions.permissions) == ["posts.edit", "posts.read"]
    holders = await rbac.find_users_by_role(tenant.id, "viewer")
    assert [a.user_id for a in holders] == ["u1"]
    assert await rbac.user_has_role(tenant.id, "u1", seeded.viewer.id) is True
    tree = await rbac.get_tenant_with_roles_and_permissions(tenant.slug)
    assert {entry.role.slug for entry in tree.roles} == {"editor", "viewer"}


async def test_tenant_delete_rules(rbac: MultiTenantRBAC, seeded) -> None:
    await rbac.update_tenant(seeded.tenant.slug, {"is_active": False})
    with pytest.raises(ForbiddenException):
        await rbac.delete_tenant(seeded.tenant.slug)
    await rbac.update_tenant(seeded.tenant.slug, {"is_active": True})
    deleted = await rbac.delete_tenant(seeded.tenant.slug)
    assert deleted.id == seeded.tenant.id
    assert await rbac.find_tenant(seeded.tenant.slug, reject_if_not_found=False) is None


async def test_audit_and_hooks_through_facade(rbac: MultiTenantRBAC, seeded) -> None:
    """Audit events carry the current actor; async hook listeners complete on close."""
    events = []
    synced = []
    rbac.register_audit_handler(events.append)

    async def on_sync(payload: dict) -> None:
        synced.append(payload["user_id"])

    rbac.on(HookEvent.AFTER_ROLE_SYNC, on_sync)
    with acting_as("admin-1"):
        await rbac.sync_user_roles(seeded.tenant.id, "u1", ["viewer"])
    await rbac.context.hooks.drain()

    (event,) = events
    assert event.action is AuditAction.USER_ROLE_SYNC
    assert event.actor_id == "admin-1"
    assert event.tenant_id == seeded.tenant.id
    assert synced == ["u1"]


async def test_failing_audit_handler_does_not_fail_mutation(rbac: MultiTenantRBAC, seeded) -> None:
    def broken(event) -> None:
        raise RuntimeError("sink down")

    rbac.register_audit_handler(broken)
    assignment = await rbac.assign_role_to_user(seeded.tenant.id, "u1", "viewer")
    assert assignment.role_id == seeded.viewer.id
    assert await rbac.authorize(seeded.tenant.id, "u1", "posts.read") is True


async def test_permission_and_role_updates(rbac: MultiTenantRBAC, seeded) -> None:
    read = seeded.permissions["posts.read"]
    updated = await rbac.update_permission(read.id, {"description": "Read posts"})
    assert updated.description == "Read posts"
    assert (await rbac.find_permission_by_id(read.id)).description == "Read posts"
    assert len(await rbac.list_permissions()) == 3

    role = await rbac.update_role(seeded.tenant.id, seeded.editor.id, {"title": "Writer"})
    assert role.slug == "writer"
    assert (await rbac.find_role_by_id(seeded.tenant.id, role.id)).title == "Writer"
    assert (await rbac.find_role_by_name(seeded.tenant.id, "Writer")).id == role.id
    assert len(await rbac.list_roles(seeded.tenant.id)) == 2
    found = await rbac.find_roles(seeded.tenant.id, ["writer", "viewer"])
    assert {r.slug for r in found} == {"writer", "viewer"}
    link = await rbac.find_role_permission(role.id, read.id)
    assert link.permission_id == read.id
    assert await rbac.role_has_permission(role.id, read.id) is True


class GatedAdapter(InMemoryAdapter):
    """Pauses user-role reads after fetching rows until the test releases the gate."""

    def __init__(self) -> None:
        super().__init__()
        self.gate: asyncio.Event | None = None
        self.reached = asyncio.Event()

    async def find_many(self, model, where=None):
        rows = await super().find_many(model, where)
        gate = self.gate
        if gate is not None and model == "user_roles":
            self.reached.set()
            await gate.wait()
        return rows


async def test_revoke_during_permission_read_is_not_undone(settings: Settings) -> None:
    """A read that fetched assignments before a revoke must not re-cache the old grant."""
    adapter = GatedAdapter()
    rbac = await create_rbac(RbacConfig(adapter=adapter), settings=settings)
    try:
        acme = await rbac.create_tenant("acme")
        await rbac.create_permission({"title": "read:invoice"})
        await rbac.create_role(acme.slug, {"title": "billing"})
        await rbac.grant_permissions_to_role(acme.id, "billing", ["read:invoice"])
        await rbac.assign_role_to_user(acme.id, "u1", "billing")

        adapter.gate = asyncio.Event()
        reading = asyncio.create_task(rbac.list_effective_permissions(acme.id, "u1"))
        await adapter.reached.wait()
        assert await rbac.revoke_role_from_user(acme.id, "u1", "billing") == 1
        gate, adapter.gate = adapter.gate, None
        gate.set()

        assert [p.title for p in await reading] == ["read:invoice"]
        assert await rbac.authorize(acme.id, "u1", "read:invoice") is False
        assert await rbac.list_effective_permissions(acme.id, "u1") == []
    finally:
        await rbac.close()
