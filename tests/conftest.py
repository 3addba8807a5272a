"""Pytest configuration and fixtures for tenant-rbac.

Services run against InMemoryAdapter unless a test builds its own adapter.
Settings are constructed explicitly so a developer's .env never leaks in.
"""

from dataclasses import dataclass

import pytest

from tenant_rbac import InMemoryAdapter, MultiTenantRBAC, RbacConfig, Settings, create_rbac
from tenant_rbac.application.dtos import PermissionResult, RoleResult, TenantResult
from tenant_rbac.shared.context import clear_current_actor


@dataclass
class Seed:
    """Tenant with an editor and a viewer role and three permissions."""

    tenant: TenantResult
    editor: RoleResult
    viewer: RoleResult
    permissions: dict[str, PermissionResult]


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, cache_backend="memory", cache_ttl_seconds=30)


@pytest.fixture
def adapter() -> InMemoryAdapter:
    return InMemoryAdapter()


@pytest.fixture
async def rbac(adapter: InMemoryAdapter, settings: Settings) -> MultiTenantRBAC:
    """Facade over a fresh in-memory store."""
    instance = await create_rbac(RbacConfig(adapter=adapter), settings=settings)
    yield instance
    await instance.close()
    clear_current_actor()


@pytest.fixture
async def seeded(rbac: MultiTenantRBAC) -> Seed:
    """Acme tenant: editor -> posts.read/posts.edit, viewer -> posts.read; posts.delete unassigned."""
    tenant = await rbac.create_tenant("Acme Corp", description="Test tenant")
    permissions = await rbac.ensure_permissions(
        [{"title": "posts.read"}, {"title": "posts.edit"}, {"title": "posts.delete"}]
    )
    editor, viewer = await rbac.create_role(
        tenant.slug, [{"title": "Editor"}, {"title": "Viewer"}]
    )
    await rbac.grant_permissions_to_role(tenant.id, "editor", ["posts.read", "posts.edit"])
    await rbac.grant_permissions_to_role(tenant.id, "viewer", ["posts.read"])
    return Seed(
        tenant=tenant,
        editor=editor,
        viewer=viewer,
        permissions={p.title: p for p in permissions},
    )
