"""Shared HTTP helpers for the roles feature."""

from __future__ import annotations

from typing import Annotated, NoReturn
from uuid import UUID

from fastapi import HTTPException, Path, status

from .exceptions import (
    DefaultRoleProtectedError,
    InvalidRoleNameError,
    RoleError,
    RoleInUseError,
    RoleNameConflictError,
    RoleNotFoundError,
    RoleVersionConflictError,
    SystemRoleImmutableError,
    SystemRoleProtectedError,
    UnknownPermissionError,
    UsageResolverUnavailableError,
)

RoleIdPath = Annotated[
    UUID,
    Path(
        ...,
        description="Role identifier",
    ),
]

# Ordered most specific first: RoleNameConflictError subclasses InvalidRoleNameError.
_STATUS_BY_ERROR: tuple[tuple[type[RoleError], int], ...] = (
    (RoleNotFoundError, status.HTTP_404_NOT_FOUND),
    (RoleNameConflictError, status.HTTP_409_CONFLICT),
    (InvalidRoleNameError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (UnknownPermissionError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (SystemRoleImmutableError, status.HTTP_400_BAD_REQUEST),
    (SystemRoleProtectedError, status.HTTP_400_BAD_REQUEST),
    (DefaultRoleProtectedError, status.HTTP_400_BAD_REQUEST),
    (RoleInUseError, status.HTTP_409_CONFLICT),
    (RoleVersionConflictError, status.HTTP_412_PRECONDITION_FAILED),
    (UsageResolverUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def raise_problem(
    code: str,
    status_code: int,
    *,
    detail: str | None = None,
    title: str | None = None,
    meta: dict | None = None,
    headers: dict[str, str] | None = None,
) -> NoReturn:
    """Raise a Problem Details-style HTTPException."""

    payload = {
        "type": "about:blank",
        "title": title or code.replace("_", " ").title(),
        "status": status_code,
        "detail": detail,
        "code": code,
    }
    if meta:
        payload["meta"] = meta
    raise HTTPException(status_code, detail=payload, headers=headers)


def status_for(exc: RoleError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def raise_role_problem(exc: RoleError) -> NoReturn:
    """Translate a domain error into its HTTP problem response."""

    meta: dict = {"retryable": exc.retryable}
    headers: dict[str, str] | None = None
    if isinstance(exc, UnknownPermissionError):
        meta["permission"] = exc.key
    elif isinstance(exc, RoleInUseError):
        meta["assignments"] = exc.count
    elif isinstance(exc, RoleVersionConflictError) and exc.actual is not None:
        meta["current_version"] = exc.actual
    elif isinstance(exc, UsageResolverUnavailableError):
        headers = {"Retry-After": "5"}
    raise_problem(
        exc.code,
        status_for(exc),
        detail=str(exc),
        meta=meta,
        headers=headers,
    )


__all__ = ["RoleIdPath", "raise_problem", "raise_role_problem", "status_for"]
