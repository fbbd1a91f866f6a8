"""HTTP tests for the roles router."""

from __future__ import annotations

from uuid import UUID

import pytest
from httpx import AsyncClient

from role_engine.core.catalog.registry import ALL_PERMISSION_KEYS
from role_engine.features.roles.usage import StaticUsageResolver

pytestmark = pytest.mark.asyncio

API = "/api/v1"
SYSTEM_ROLE_NAMES = ["Owner", "Admin", "Attorney", "Paralegal", "Support Staff"]


async def _roles_by_name(client: AsyncClient) -> dict[str, dict]:
    response = await client.get(f"{API}/roles")
    assert response.status_code == 200
    return {item["name"]: item for item in response.json()["items"]}


async def _create(client: AsyncClient, name: str, permissions: list[str]) -> dict:
    response = await client.post(
        f"{API}/roles",
        json={"name": name, "description": f"{name} role", "permissions": permissions},
        headers={"X-Actor": "admin@example.test"},
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_health(async_client: AsyncClient) -> None:
    response = await async_client.get(f"{API}/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["permissions"] == len(ALL_PERMISSION_KEYS)
    assert payload["database"] == "ok"


async def test_request_id_is_echoed(async_client: AsyncClient) -> None:
    response = await async_client.get(f"{API}/health", headers={"X-Request-ID": "req-123"})
    generated = await async_client.get(f"{API}/health")

    assert response.headers["X-Request-ID"] == "req-123"
    assert generated.headers["X-Request-ID"]


async def test_catalog_endpoints(async_client: AsyncClient) -> None:
    permissions = await async_client.get(f"{API}/permissions")
    groups = await async_client.get(f"{API}/permission-groups")

    assert permissions.status_code == 200
    keys = [item["key"] for item in permissions.json()]
    assert keys == list(ALL_PERMISSION_KEYS)
    billing = next(item for item in permissions.json() if item["key"] == "billing:view")
    assert billing["resource"] == "billing"
    assert billing["action"] == "view"

    assert groups.status_code == 200
    billing_group = next(item for item in groups.json() if item["name"] == "Billing & Finance")
    assert "billing:approve" in billing_group["permissions"]


async def test_system_roles_are_seeded(async_client: AsyncClient) -> None:
    roles = await _roles_by_name(async_client)

    assert list(roles) == SYSTEM_ROLE_NAMES
    assert all(role["type"] == "system" for role in roles.values())
    assert roles["Attorney"]["is_default"] is True
    assert sorted(roles["Owner"]["permissions"]) == sorted(ALL_PERMISSION_KEYS)
    assert "assignments" not in roles["Owner"]


async def test_list_roles_with_usage(
    async_client: AsyncClient,
    app_usage: StaticUsageResolver,
) -> None:
    roles = await _roles_by_name(async_client)
    app_usage.set_count(UUID(roles["Paralegal"]["id"]), 3)

    response = await async_client.get(f"{API}/roles", params={"include_usage": "true"})

    assert response.status_code == 200
    counts = {item["name"]: item["assignments"] for item in response.json()["items"]}
    assert counts["Paralegal"] == 3
    assert counts["Owner"] == 0


async def test_create_and_read_role(async_client: AsyncClient) -> None:
    created = await async_client.post(
        f"{API}/roles",
        json={
            "name": "  Billing Clerk ",
            "description": "Handles invoices",
            "permissions": ["billing:view", "billing:create", "billing:view"],
        },
    )

    assert created.status_code == 201
    assert created.headers["ETag"] == '"1"'
    body = created.json()
    assert body["name"] == "Billing Clerk"
    assert body["type"] == "custom"
    assert body["permissions"] == ["billing:create", "billing:view"]
    assert body["version"] == 1

    fetched = await async_client.get(f"{API}/roles/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.headers["ETag"] == '"1"'
    assert fetched.json()["name"] == "Billing Clerk"


async def test_create_role_rejections(async_client: AsyncClient) -> None:
    duplicate = await async_client.post(f"{API}/roles", json={"name": "paralegal"})
    unknown = await async_client.post(
        f"{API}/roles",
        json={"name": "Mystery", "permissions": ["billing:view", "vault:open"]},
    )
    blank = await async_client.post(f"{API}/roles", json={"name": "   "})

    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["code"] == "role_name_conflict"
    assert unknown.status_code == 422
    assert unknown.json()["detail"]["meta"]["permission"] == "vault:open"
    assert blank.status_code == 422

    roles = await _roles_by_name(async_client)
    assert "Mystery" not in roles


async def test_read_missing_role(async_client: AsyncClient) -> None:
    response = await async_client.get(f"{API}/roles/01920000-0000-7000-8000-00000000ffff")

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "role_not_found"


async def test_update_role_with_if_match(async_client: AsyncClient) -> None:
    role = await _create(async_client, "Intern", ["document:view"])

    updated = await async_client.patch(
        f"{API}/roles/{role['id']}",
        json={"name": "Summer Intern", "permissions": ["document:view", "matter:view"]},
        headers={"If-Match": '"1"'},
    )
    stale = await async_client.patch(
        f"{API}/roles/{role['id']}",
        json={"description": "late"},
        headers={"If-Match": '"1"'},
    )
    malformed = await async_client.patch(
        f"{API}/roles/{role['id']}",
        json={"description": "bad header"},
        headers={"If-Match": "soon"},
    )

    assert updated.status_code == 200
    assert updated.headers["ETag"] == '"2"'
    assert updated.json()["permissions"] == ["document:view", "matter:view"]
    assert stale.status_code == 412
    assert stale.json()["detail"]["code"] == "version_conflict"
    assert stale.json()["detail"]["meta"]["current_version"] == 2
    assert malformed.status_code == 400
    assert malformed.json()["detail"]["code"] == "invalid_if_match"

    current = await async_client.get(f"{API}/roles/{role['id']}")
    assert current.json()["name"] == "Summer Intern"
    assert current.json()["description"] == "Intern role"


async def test_system_role_name_is_immutable(async_client: AsyncClient) -> None:
    roles = await _roles_by_name(async_client)
    owner = roles["Owner"]

    response = await async_client.patch(
        f"{API}/roles/{owner['id']}",
        json={"name": "Superuser"},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "system_role_immutable"
    assert (await _roles_by_name(async_client))["Owner"]["version"] == owner["version"]


async def test_clone_role(async_client: AsyncClient) -> None:
    roles = await _roles_by_name(async_client)
    paralegal = roles["Paralegal"]

    first = await async_client.post(f"{API}/roles/{paralegal['id']}/clone")
    second = await async_client.post(f"{API}/roles/{paralegal['id']}/clone")

    assert first.status_code == 201
    assert first.json()["name"] == "Paralegal (Copy)"
    assert first.json()["type"] == "custom"
    assert first.json()["permissions"] == sorted(paralegal["permissions"])
    assert second.json()["name"] == "Paralegal (Copy 2)"


async def test_delete_custom_role(async_client: AsyncClient) -> None:
    role = await _create(async_client, "Temp", [])

    response = await async_client.delete(
        f"{API}/roles/{role['id']}",
        headers={"If-Match": '"1"'},
    )

    assert response.status_code == 204
    missing = await async_client.get(f"{API}/roles/{role['id']}")
    assert missing.status_code == 404


async def test_delete_blocked_while_assigned(
    async_client: AsyncClient,
    app_usage: StaticUsageResolver,
) -> None:
    role = await _create(async_client, "Contractor", ["matter:view"])
    app_usage.set_count(UUID(role["id"]), 2)

    blocked = await async_client.delete(f"{API}/roles/{role['id']}")

    assert blocked.status_code == 409
    assert blocked.json()["detail"]["code"] == "role_in_use"
    assert blocked.json()["detail"]["meta"]["assignments"] == 2
    assert (await async_client.get(f"{API}/roles/{role['id']}")).status_code == 200

    app_usage.set_count(UUID(role["id"]), 0)
    allowed = await async_client.delete(f"{API}/roles/{role['id']}")
    assert allowed.status_code == 204


async def test_delete_protected_roles(async_client: AsyncClient) -> None:
    roles = await _roles_by_name(async_client)

    system = await async_client.delete(f"{API}/roles/{roles['Owner']['id']}")

    assert system.status_code == 400
    assert system.json()["detail"]["code"] == "system_role_protected"
    assert list(await _roles_by_name(async_client)) == SYSTEM_ROLE_NAMES


async def test_role_group_states(async_client: AsyncClient) -> None:
    role = await _create(async_client, "Biller", ["billing:view", "billing:create"])

    response = await async_client.get(f"{API}/roles/{role['id']}/groups")

    assert response.status_code == 200
    assert response.headers["ETag"] == '"1"'
    states = {item["name"]: item for item in response.json()["groups"]}
    assert states["Billing & Finance"]["state"] == "some"
    assert states["Billing & Finance"]["granted_count"] == 2
    assert states["Reports & Analytics"]["state"] == "none"


async def test_toggle_group_by_name(async_client: AsyncClient) -> None:
    role = await _create(async_client, "Biller", ["billing:view"])

    granted = await async_client.post(
        f"{API}/roles/{role['id']}/groups/toggle",
        json={"group": "billing & finance"},
        headers={"If-Match": '"1"', "X-Actor": "ops"},
    )

    assert granted.status_code == 200
    body = granted.json()
    assert body["state"] == "all"
    assert body["role"]["version"] == 2
    assert granted.headers["ETag"] == '"2"'
    billing = next(item for item in body["groups"] if item["name"] == "Billing & Finance")
    assert billing["state"] == "all"

    revoked = await async_client.post(
        f"{API}/roles/{role['id']}/groups/toggle",
        json={"group": "Billing & Finance"},
    )
    assert revoked.json()["state"] == "none"
    assert revoked.json()["role"]["permissions"] == []


async def test_toggle_group_by_permissions(async_client: AsyncClient) -> None:
    role = await _create(async_client, "Reader", ["reports:view"])

    response = await async_client.post(
        f"{API}/roles/{role['id']}/groups/toggle",
        json={"permissions": ["reports:view", "reports:export"]},
    )

    assert response.status_code == 200
    assert response.json()["state"] == "all"
    assert response.json()["role"]["permissions"] == ["reports:export", "reports:view"]


async def test_toggle_group_rejections(async_client: AsyncClient) -> None:
    role = await _create(async_client, "Reader", [])
    url = f"{API}/roles/{role['id']}/groups/toggle"

    unknown_group = await async_client.post(url, json={"group": "Vault"})
    unknown_key = await async_client.post(url, json={"permissions": ["vault:open"]})
    both = await async_client.post(url, json={"group": "Billing & Finance", "permissions": []})
    stale = await async_client.post(
        url,
        json={"group": "Billing & Finance"},
        headers={"If-Match": '"7"'},
    )

    assert unknown_group.status_code == 422
    assert unknown_group.json()["detail"]["code"] == "unknown_permission_group"
    assert unknown_key.status_code == 422
    assert both.status_code == 422
    assert both.json()["detail"]["code"] == "validation_error"
    assert stale.status_code == 412

    current = await async_client.get(f"{API}/roles/{role['id']}")
    assert current.json()["version"] == 1


async def test_audit_trail(async_client: AsyncClient) -> None:
    role = await _create(async_client, "Auditor", ["reports:view"])
    await async_client.patch(
        f"{API}/roles/{role['id']}",
        json={"permissions": ["reports:view", "reports:export"]},
        headers={"X-Actor": "lead@example.test"},
    )

    response = await async_client.get(f"{API}/roles/{role['id']}/audit")

    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["action"] for item in items] == ["role:create", "role:edit"]
    assert items[0]["actor"] == "admin@example.test"
    assert items[1]["actor"] == "lead@example.test"
    assert items[1]["details"]["added"] == ["reports:export"]
