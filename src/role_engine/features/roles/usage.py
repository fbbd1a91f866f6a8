"""Usage resolvers: how many principals currently hold a role."""

from __future__ import annotations

import importlib
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Protocol
from uuid import UUID

import httpx

from role_engine.common.logging import log_context
from role_engine.core.roles.types import Role
from role_engine.settings import Settings

from .exceptions import UsageResolverUnavailableError

logger = logging.getLogger(__name__)

UsageCallback = Callable[[Role], "int | Awaitable[int]"]


class UsageResolver(Protocol):
    async def count_assignments(self, role: Role) -> int: ...


def _validated_count(value: object, *, source: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise UsageResolverUnavailableError(f"{source} returned a non-integer count")
    if value < 0:
        raise UsageResolverUnavailableError(f"{source} returned a negative count")
    return value


class StaticUsageResolver:
    """Counts from a fixed mapping; roles not listed have zero assignments."""

    def __init__(self, counts: Mapping[UUID, int] | None = None) -> None:
        self._counts: dict[UUID, int] = dict(counts or {})

    def set_count(self, role_id: UUID, count: int) -> None:
        self._counts[role_id] = count

    async def count_assignments(self, role: Role) -> int:
        return _validated_count(self._counts.get(role.id, 0), source="static resolver")


class CallbackUsageResolver:
    """Delegates to a sync or async callable taking the role."""

    def __init__(self, callback: UsageCallback) -> None:
        self._callback = callback

    @classmethod
    def from_reference(cls, reference: str) -> CallbackUsageResolver:
        """Build from a ``package.module:callable`` reference."""

        module_name, _, attr = reference.partition(":")
        module = importlib.import_module(module_name.strip())
        target: object = module
        for part in attr.strip().split("."):
            target = getattr(target, part)
        if not callable(target):
            raise TypeError(f"Usage resolver '{reference}' is not callable")
        return cls(target)  # type: ignore[arg-type]

    async def count_assignments(self, role: Role) -> int:
        value = self._callback(role)
        if inspect.isawaitable(value):
            value = await value
        return _validated_count(value, source="usage callback")


class HttpUsageResolver:
    """Fetches ``{"count": n}`` from an HTTP endpoint.

    ``endpoint`` may contain a ``{role_id}`` placeholder; otherwise the role id
    is appended as a path segment.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def url_for(self, role_id: UUID) -> str:
        if "{role_id}" in self._endpoint:
            return self._endpoint.replace("{role_id}", str(role_id))
        return f"{self._endpoint.rstrip('/')}/{role_id}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def count_assignments(self, role: Role) -> int:
        url = self.url_for(role.id)
        try:
            response = await self._get_client().get(url, timeout=self._timeout)
        except httpx.HTTPError as exc:
            logger.warning(
                "usage.resolve.failed",
                extra=log_context(role_id=role.id, url=url, error=type(exc).__name__),
            )
            raise UsageResolverUnavailableError("Usage service request failed") from exc

        if response.status_code != 200:
            logger.warning(
                "usage.resolve.status",
                extra=log_context(role_id=role.id, url=url, status_code=response.status_code),
            )
            raise UsageResolverUnavailableError("Usage service response was not successful")

        try:
            payload = response.json()
        except ValueError as exc:
            raise UsageResolverUnavailableError("Usage service returned invalid JSON") from exc
        if not isinstance(payload, dict) or "count" not in payload:
            raise UsageResolverUnavailableError("Usage service response is missing 'count'")
        return _validated_count(payload["count"], source="usage service")

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


def build_usage_resolver(settings: Settings) -> UsageResolver:
    """Pick a resolver from ``ROLE_ENGINE_USAGE_RESOLVER_ENDPOINT``."""

    endpoint = settings.usage_resolver_endpoint
    if not endpoint:
        logger.warning(
            "usage.resolver.unconfigured",
            extra=log_context(detail="all roles report zero assignments"),
        )
        return StaticUsageResolver()

    if endpoint.startswith(("http://", "https://")):
        logger.info("usage.resolver.http", extra=log_context(endpoint=endpoint))
        return HttpUsageResolver(endpoint, timeout=settings.usage_resolver_timeout_seconds)

    logger.info("usage.resolver.callback", extra=log_context(reference=endpoint))
    return CallbackUsageResolver.from_reference(endpoint)


__all__ = [
    "CallbackUsageResolver",
    "HttpUsageResolver",
    "StaticUsageResolver",
    "UsageResolver",
    "build_usage_resolver",
]
