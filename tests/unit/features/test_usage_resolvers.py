from __future__ import annotations

import sys
import types
from uuid import UUID

import httpx
import pytest

from role_engine.core.roles.types import Role, RoleType
from role_engine.features.roles.exceptions import UsageResolverUnavailableError
from role_engine.features.roles.usage import (
    CallbackUsageResolver,
    HttpUsageResolver,
    StaticUsageResolver,
    build_usage_resolver,
)
from role_engine.settings import Settings

pytestmark = pytest.mark.asyncio

ROLE_ID = UUID("01920000-0000-7000-8000-000000000001")
ROLE = Role(
    id=ROLE_ID,
    name="Paralegal",
    description="",
    type=RoleType.CUSTOM,
    permissions=frozenset(),
)


def _resolver(handler, endpoint: str = "https://directory.test/usage") -> HttpUsageResolver:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpUsageResolver(endpoint, timeout=1.0, client=client)


async def test_static_resolver_defaults_to_zero() -> None:
    resolver = StaticUsageResolver({ROLE_ID: 4})

    assert await resolver.count_assignments(ROLE) == 4
    resolver.set_count(ROLE_ID, 0)
    assert await resolver.count_assignments(ROLE) == 0
    assert await StaticUsageResolver().count_assignments(ROLE) == 0


async def test_callback_resolver_accepts_sync_and_async_callables() -> None:
    async def async_count(role: Role) -> int:
        return len(role.name)

    assert await CallbackUsageResolver(lambda role: 2).count_assignments(ROLE) == 2
    assert await CallbackUsageResolver(async_count).count_assignments(ROLE) == len("Paralegal")


@pytest.mark.parametrize("value", [-1, "3", 1.5, True, None])
async def test_callback_resolver_rejects_invalid_counts(value: object) -> None:
    with pytest.raises(UsageResolverUnavailableError):
        await CallbackUsageResolver(lambda role: value).count_assignments(ROLE)


async def test_callback_resolver_from_reference(monkeypatch: pytest.MonkeyPatch) -> None:
    module = types.ModuleType("directory_hooks")
    module.count_for_role = lambda role: 7  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "directory_hooks", module)

    resolver = CallbackUsageResolver.from_reference("directory_hooks:count_for_role")

    assert await resolver.count_assignments(ROLE) == 7


async def test_http_resolver_appends_role_id() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"count": 5})

    resolver = _resolver(handler, endpoint="https://directory.test/usage/")

    assert await resolver.count_assignments(ROLE) == 5
    assert seen == [f"https://directory.test/usage/{ROLE_ID}"]


async def test_http_resolver_fills_placeholder() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"/roles/{ROLE_ID}/assignments"
        assert request.url.params["active"] == "1"
        return httpx.Response(200, json={"count": 0})

    resolver = _resolver(
        handler,
        endpoint="https://directory.test/roles/{role_id}/assignments?active=1",
    )

    assert await resolver.count_assignments(ROLE) == 0


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"count": 0}),
        httpx.Response(404),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json={"total": 1}),
        httpx.Response(200, json=[1]),
        httpx.Response(200, json={"count": -2}),
        httpx.Response(200, json={"count": "2"}),
    ],
)
async def test_http_resolver_unusable_responses(response: httpx.Response) -> None:
    resolver = _resolver(lambda request: response)

    with pytest.raises(UsageResolverUnavailableError):
        await resolver.count_assignments(ROLE)


async def test_http_resolver_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UsageResolverUnavailableError):
        await _resolver(handler).count_assignments(ROLE)


async def test_http_resolver_closes_only_its_own_client() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    resolver = HttpUsageResolver("https://directory.test", client=client)

    await resolver.aclose()

    assert not client.is_closed
    await client.aclose()


async def test_build_usage_resolver_selects_implementation(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    module = types.ModuleType("directory_hooks")
    module.count_for_role = lambda role: 1  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "directory_hooks", module)

    unset = build_usage_resolver(Settings(_env_file=None))
    http = build_usage_resolver(
        Settings(_env_file=None, usage_resolver_endpoint="https://directory.test/usage")
    )
    callback = build_usage_resolver(
        Settings(_env_file=None, usage_resolver_endpoint="directory_hooks:count_for_role")
    )

    assert isinstance(unset, StaticUsageResolver)
    assert isinstance(http, HttpUsageResolver)
    assert isinstance(callback, CallbackUsageResolver)
    assert await callback.count_assignments(ROLE) == 1
    await http.aclose()
