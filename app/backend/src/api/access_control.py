"""Administration of role permissions, user grants and site assignments."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.backend.src.core.permissions import ALL_PERMISSIONS, Permissions
from app.backend.src.core.security import require_permission
from app.backend.src.db import get_session_dependency
from app.backend.src.schemas.access_control import (
    PermissionSet,
    RolePermissionsOut,
    SiteSet,
    UserPermissionsOut,
    UserSitesOut,
)
from app.backend.src.services import access as access_service
from app.backend.src.services.access import Actor

router = APIRouter(prefix="/access-control", tags=["Access Control"])

require_access_admin = require_permission(Permissions.MANAGE_ACCESS_CONTROL)

LOGGER = structlog.get_logger(__name__)

SessionDep = Annotated[Session, Depends(get_session_dependency)]
AdminDep = Annotated[Actor, Depends(require_access_admin)]


@router.get("/permissions", response_model=list[str])
def list_permissions(_: AdminDep) -> list[str]:
    """Return every permission name known to the service."""

    return sorted(ALL_PERMISSIONS)


@router.get("/roles/{role_name}/permissions", response_model=RolePermissionsOut)
def read_role_permissions(role_name: str, session: SessionDep, _: AdminDep) -> dict[str, object]:
    role = access_service.get_role(session, role_name)
    return {"role": role.name, "permissions": role.permission_names}


@router.put("/roles/{role_name}/permissions", response_model=RolePermissionsOut)
def replace_role_permissions(
    role_name: str,
    payload: PermissionSet,
    session: SessionDep,
    admin: AdminDep,
) -> dict[str, object]:
    """Replace the permission set of a role, creating the role when missing."""

    role = access_service.set_role_permissions(session, role_name, payload.permissions)
    LOGGER.info("role_permissions_replaced", role=role.name, admin_id=admin.id)
    return {"role": role.name, "permissions": role.permission_names}


def _user_permissions(session: Session, user_id: int) -> dict[str, object]:
    user = access_service.get_user(session, user_id)
    return {
        "user_id": user.id,
        "role": user.role,
        "permissions": sorted(grant.permission_name for grant in user.permissions),
        "effective_permissions": sorted(access_service.effective_permissions(session, user)),
    }


@router.get("/users/{user_id}/permissions", response_model=UserPermissionsOut)
def read_user_permissions(user_id: int, session: SessionDep, _: AdminDep) -> dict[str, object]:
    return _user_permissions(session, user_id)


@router.put("/users/{user_id}/permissions", response_model=UserPermissionsOut)
def replace_user_permissions(
    user_id: int,
    payload: PermissionSet,
    session: SessionDep,
    admin: AdminDep,
) -> dict[str, object]:
    """Replace the permissions granted directly to a user."""

    access_service.set_user_permissions(session, user_id, payload.permissions)
    LOGGER.info("user_permissions_replaced", user_id=user_id, admin_id=admin.id)
    return _user_permissions(session, user_id)


@router.get("/users/{user_id}/sites", response_model=UserSitesOut)
def read_user_sites(user_id: int, session: SessionDep, _: AdminDep) -> dict[str, object]:
    user = access_service.get_user(session, user_id)
    return {"user_id": user.id, "site_ids": user.site_ids}


@router.put("/users/{user_id}/sites", response_model=UserSitesOut)
def replace_user_sites(
    user_id: int,
    payload: SiteSet,
    session: SessionDep,
    admin: AdminDep,
) -> dict[str, object]:
    user = access_service.set_user_sites(session, user_id, payload.site_ids)
    LOGGER.info("user_sites_replaced", user_id=user_id, admin_id=admin.id)
    return {"user_id": user.id, "site_ids": user.site_ids}


__all__ = ["router", "require_access_admin"]
