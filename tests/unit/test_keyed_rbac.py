"""Tests for KeyedRBAC: configured key aliases with canonical fallback."""

import pytest

from tenant_rbac import (
    InMemoryAdapter,
    KeyedRBAC,
    MissingConfiguredKeyError,
    RbacConfig,
    Settings,
    ValidationException,
    create_keyed_rbac,
)


@pytest.fixture
def adapter() -> InMemoryAdapter:
    return InMemoryAdapter()


@pytest.fixture
async def keyed(adapter: InMemoryAdapter) -> KeyedRBAC:
    """Workspace deployment: tenants table and tenant key renamed."""
    instance = await create_keyed_rbac(
        RbacConfig(
            adapter=adapter,
            models={"tenants": "workspaces"},
            keys={"tenant_id": "workspace_id", "user_id": "account_id"},
        ),
        settings=Settings(_env_file=None),
    )
    rbac = instance.rbac
    workspace = await rbac.create_tenant("Acme")
    await rbac.ensure_permissions([{"title": "posts.read"}, {"title": "posts.edit"}])
    await rbac.create_role(workspace.slug, [{"title": "Editor"}, {"title": "Viewer"}])
    await rbac.grant_permissions_to_role(workspace.id, "editor", ["posts.read", "posts.edit"])
    await rbac.grant_permissions_to_role(workspace.id, "viewer", ["posts.read"])
    instance.workspace_id = workspace.id
    yield instance
    await rbac.close()


async def test_aliases_come_from_configured_keys(keyed: KeyedRBAC) -> None:
    assert keyed.aliases == {
        "user_id": "account_id",
        "tenant_id": "workspace_id",
        "role_id": "role_id",
        "permission_id": "permission_id",
    }
    assert keyed.resolve_key({"role_id": "r1"}, "role_id") == "r1"


async def test_renamed_fields_are_stored(keyed: KeyedRBAC, adapter: InMemoryAdapter) -> None:
    assignment = await keyed.assign_role_to_user(
        {"workspace_id": keyed.workspace_id, "account_id": "u1", "role": "editor"}
    )
    assert assignment.tenant_id == keyed.workspace_id
    assert adapter.count("workspaces") == 1
    assert adapter.count("tenants") == 0
    (row,) = await adapter.find_many("user_roles")
    assert row["workspace_id"] == keyed.workspace_id
    assert row["account_id"] == "u1"
    assert "tenant_id" not in row


async def test_canonical_names_are_accepted(keyed: KeyedRBAC) -> None:
    """Canonical tenant_id and user_id work when the aliases are absent."""
    await keyed.assign_role_to_user(
        {"tenant_id": keyed.workspace_id, "user_id": "u1", "role_slug": "viewer"}
    )
    assert await keyed.authorize(
        {"workspace_id": keyed.workspace_id, "user_id": "u1", "permission": "posts.read"}
    )


async def test_missing_key_names_alias_and_canonical(keyed: KeyedRBAC) -> None:
    with pytest.raises(MissingConfiguredKeyError) as exc_info:
        await keyed.authorize({"account_id": "u1", "permission": "posts.read"})
    assert exc_info.value.details == {"field": "workspace_id", "canonical": "tenant_id"}


async def test_missing_role_argument(keyed: KeyedRBAC) -> None:
    with pytest.raises(ValidationException) as exc_info:
        await keyed.assign_role_to_user({"workspace_id": keyed.workspace_id, "account_id": "u1"})
    assert exc_info.value.details == {"field": "role"}


async def test_keyed_user_role_flow(keyed: KeyedRBAC) -> None:
    scope = {"workspace_id": keyed.workspace_id, "account_id": "u1"}
    await keyed.assign_roles_to_user_bulk({**scope, "roles": ["editor", "viewer"]})
    view = await keyed.get_user_permissions(scope)
    assert sorted(p.title for p in view.permissions) == ["posts.edit", "posts.read"]

    editor = await keyed.rbac.find_role(keyed.workspace_id, "editor")
    assert await keyed.user_has_role({**scope, "role_id": editor.id}) is True
    assert (await keyed.find_user_role({**scope, "role_id": editor.id})).role_id == editor.id

    await keyed.sync_user_roles({**scope, "roles": ["viewer"]})
    assert await keyed.authorize({**scope, "permission": "posts.edit"}) is False
    roles = await keyed.get_user_roles_and_permissions(scope)
    assert [entry.role.slug for entry in roles.roles] == ["viewer"]

    assert await keyed.revoke_role_from_user({**scope, "role": "viewer"}) == 1
    assert await keyed.list_effective_permissions(scope) == []
    assert (await keyed.get_user_role({**scope, "reject_if_not_found": False})).roles == ()


async def test_keyed_role_permission_flow(keyed: KeyedRBAC) -> None:
    args = {"workspace_id": keyed.workspace_id, "role": "viewer"}
    await keyed.sync_role_with_permissions({**args, "permissions": ["posts.edit"]})
    viewer = await keyed.rbac.find_role(keyed.workspace_id, "viewer")
    edit = await keyed.rbac.find_permission("posts.edit")
    assert await keyed.role_has_permission({"role_id": viewer.id, "permission_id": edit.id})
    assert await keyed.revoke_permissions_from_role({**args, "permissions": ["posts.edit"]}) == 1
    links = await keyed.grant_permissions_to_role({**args, "permissions": ["posts.read"]})
    assert len(links) == 1
    await keyed.assign_role_to_user({**args, "account_id": "u9"})
    holders = await keyed.find_users_by_role(args)
    assert [a.user_id for a in holders] == ["u9"]
