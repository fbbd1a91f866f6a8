"""HTTP endpoints for permissions, permission groups and roles."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Request, Response, status

from role_engine.common.etag import parse_version_etag, version_etag
from role_engine.core.roles.types import Role, RolePatch

from .dependencies import ActorDep, CatalogDep, RegistryDep
from .exceptions import RoleError
from .http import RoleIdPath, raise_problem, raise_role_problem
from .schemas import (
    AuditEventListResponse,
    AuditEventOut,
    GroupSelectionOut,
    GroupToggleRequest,
    GroupToggleResponse,
    PermissionGroupOut,
    PermissionOut,
    RoleCreate,
    RoleGroupsResponse,
    RoleListResponse,
    RoleOut,
    RoleUpdate,
)

router = APIRouter(tags=["roles"])


def _expected_version(request: Request) -> int | None:
    try:
        return parse_version_etag(request.headers.get("if-match"))
    except ValueError as exc:
        raise_problem("invalid_if_match", status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _with_etag(response: Response, role: Role) -> None:
    response.headers["ETag"] = version_etag(role.version)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@router.get(
    "/permissions",
    response_model=list[PermissionOut],
    summary="List the permission catalog",
)
async def list_permissions(catalog: CatalogDep) -> list[PermissionOut]:
    return [PermissionOut.from_permission(permission) for permission in catalog.permissions()]


@router.get(
    "/permission-groups",
    response_model=list[PermissionGroupOut],
    summary="List permission groups",
)
async def list_permission_groups(catalog: CatalogDep) -> list[PermissionGroupOut]:
    return [PermissionGroupOut.from_group(group) for group in catalog.groups()]


# ---------------------------------------------------------------------------
# Role definitions
# ---------------------------------------------------------------------------


@router.get(
    "/roles",
    response_model=RoleListResponse,
    response_model_exclude_none=True,
    summary="List role definitions",
)
async def list_roles(
    registry: RegistryDep,
    include_usage: Annotated[
        bool,
        Query(description="Include the number of principals holding each role"),
    ] = False,
) -> RoleListResponse:
    try:
        if include_usage:
            usage = await registry.list_roles_with_usage()
            items = [RoleOut.from_role(item.role, assignments=item.assignments) for item in usage]
        else:
            items = [RoleOut.from_role(role) for role in await registry.list_roles()]
    except RoleError as exc:
        raise_role_problem(exc)
    return RoleListResponse(items=items)


@router.post(
    "/roles",
    response_model=RoleOut,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a custom role",
)
async def create_role(
    payload: RoleCreate,
    registry: RegistryDep,
    actor: ActorDep,
    response: Response,
) -> RoleOut:
    try:
        role = await registry.create_role(
            payload.name,
            payload.description,
            payload.permissions,
            actor=actor,
        )
    except RoleError as exc:
        raise_role_problem(exc)
    _with_etag(response, role)
    return RoleOut.from_role(role)


@router.get(
    "/roles/{role_id}",
    response_model=RoleOut,
    response_model_exclude_none=True,
    summary="Retrieve a role definition",
)
async def read_role(
    role_id: RoleIdPath,
    registry: RegistryDep,
    response: Response,
) -> RoleOut:
    try:
        role = await registry.get_role(role_id)
    except RoleError as exc:
        raise_role_problem(exc)
    _with_etag(response, role)
    return RoleOut.from_role(role)


@router.patch(
    "/roles/{role_id}",
    response_model=RoleOut,
    response_model_exclude_none=True,
    summary="Update an existing role",
)
async def update_role(
    role_id: RoleIdPath,
    payload: RoleUpdate,
    request: Request,
    registry: RegistryDep,
    actor: ActorDep,
    response: Response,
) -> RoleOut:
    patch = RolePatch(
        name=payload.name,
        description=payload.description,
        permissions=frozenset(payload.permissions) if payload.permissions is not None else None,
    )
    try:
        role = await registry.update_role(
            role_id,
            patch,
            expected_version=_expected_version(request),
            actor=actor,
        )
    except RoleError as exc:
        raise_role_problem(exc)
    _with_etag(response, role)
    return RoleOut.from_role(role)


@router.delete(
    "/roles/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a custom role",
)
async def delete_role(
    role_id: RoleIdPath,
    request: Request,
    registry: RegistryDep,
    actor: ActorDep,
) -> Response:
    try:
        await registry.delete_role(
            role_id,
            expected_version=_expected_version(request),
            actor=actor,
        )
    except RoleError as exc:
        raise_role_problem(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/roles/{role_id}/clone",
    response_model=RoleOut,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Clone a role into a new custom role",
)
async def clone_role(
    role_id: RoleIdPath,
    registry: RegistryDep,
    actor: ActorDep,
    response: Response,
) -> RoleOut:
    try:
        role = await registry.clone_role(role_id, actor=actor)
    except RoleError as exc:
        raise_role_problem(exc)
    _with_etag(response, role)
    return RoleOut.from_role(role)


# ---------------------------------------------------------------------------
# Group selection
# ---------------------------------------------------------------------------


@router.get(
    "/roles/{role_id}/groups",
    response_model=RoleGroupsResponse,
    summary="Show the tri-state selection of every permission group",
)
async def read_role_groups(
    role_id: RoleIdPath,
    registry: RegistryDep,
    response: Response,
) -> RoleGroupsResponse:
    try:
        role = await registry.get_role(role_id)
    except RoleError as exc:
        raise_role_problem(exc)
    _with_etag(response, role)
    return RoleGroupsResponse(
        role_id=role.id,
        version=role.version,
        groups=[GroupSelectionOut.from_selection(item) for item in registry.group_summary(role)],
    )


@router.post(
    "/roles/{role_id}/groups/toggle",
    response_model=GroupToggleResponse,
    summary="Grant or revoke a permission group in one step",
)
async def toggle_role_group(
    role_id: RoleIdPath,
    payload: GroupToggleRequest,
    request: Request,
    registry: RegistryDep,
    catalog: CatalogDep,
    actor: ActorDep,
    response: Response,
) -> GroupToggleResponse:
    if payload.group is not None:
        group = catalog.group(payload.group)
        if group is None:
            raise_problem(
                "unknown_permission_group",
                status.HTTP_422_UNPROCESSABLE_CONTENT,
                detail=f"Permission group '{payload.group}' is not defined",
            )
        keys = list(group.permissions)
    else:
        keys = list(payload.permissions or [])

    try:
        result = await registry.toggle_group(
            role_id,
            keys,
            expected_version=_expected_version(request),
            actor=actor,
        )
    except RoleError as exc:
        raise_role_problem(exc)
    _with_etag(response, result.role)
    return GroupToggleResponse(
        role=RoleOut.from_role(result.role),
        state=result.state.value,
        groups=[
            GroupSelectionOut.from_selection(item)
            for item in registry.group_summary(result.role)
        ],
    )


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------


@router.get(
    "/roles/{role_id}/audit",
    response_model=AuditEventListResponse,
    response_model_exclude_none=True,
    summary="List recorded changes for a role",
)
async def list_role_audit(
    role_id: RoleIdPath,
    registry: RegistryDep,
) -> AuditEventListResponse:
    events = await registry.audit_events(role_id)
    return AuditEventListResponse(items=[AuditEventOut.from_event(event) for event in events])


__all__ = ["router"]
