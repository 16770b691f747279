"""Resolve users into actors carrying their effective permissions and sites."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.core.errors import NotFoundError, WorkflowValidationError
from app.backend.src.core.permissions import ADMIN_PERMISSIONS, ALL_PERMISSIONS, Permissions, Roles
from app.backend.src.models import Role, RolePermission, Site, SiteAssignment, User, UserPermission

LOGGER = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Actor:
    """The acting user as seen by the workflow engine."""

    id: int
    role: str | None = None
    permissions: frozenset[str] = field(default_factory=frozenset)
    site_ids: frozenset[int] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == Roles.ADMIN

    @property
    def auto_approves_level_2(self) -> bool:
        return Permissions.AUTO_APPROVE_LEVEL_2 in self.permissions

    def has(self, permission: str) -> bool:
        return permission in self.permissions

    def can_access_site(self, site_id: int | None) -> bool:
        if site_id is None or self.is_admin:
            return True
        return site_id in self.site_ids


def role_permissions(session: Session, role_name: str | None) -> set[str]:
    """Return the permission names granted to ``role_name``."""

    if not role_name:
        return set()
    stmt = (
        select(RolePermission.permission_name)
        .join(Role, Role.id == RolePermission.role_id)
        .where(Role.name == role_name.lower())
    )
    return set(session.scalars(stmt))


def effective_permissions(session: Session, user: User) -> frozenset[str]:
    """Union of the user's role permissions and direct grants.

    Administrators hold every permission regardless of the stored role grants,
    except automatic level-2 approval which must be granted to them directly.
    """

    if (user.role or "").lower() == Roles.ADMIN:
        granted = set(ADMIN_PERMISSIONS)
    else:
        granted = role_permissions(session, user.role)
    granted.update(
        session.scalars(
            select(UserPermission.permission_name).where(UserPermission.user_id == user.id)
        )
    )
    return frozenset(granted)


def resolve_actor(session: Session, user: User) -> Actor:
    """Build the :class:`Actor` for ``user``."""

    return Actor(
        id=user.id,
        role=(user.role or "").lower() or None,
        permissions=effective_permissions(session, user),
        site_ids=frozenset(
            session.scalars(select(SiteAssignment.site_id).where(SiteAssignment.user_id == user.id))
        ),
    )


def _validate_permission_names(names: Iterable[str]) -> list[str]:
    cleaned = sorted({name.strip() for name in names if name and name.strip()})
    unknown = [name for name in cleaned if name not in ALL_PERMISSIONS]
    if unknown:
        raise WorkflowValidationError(
            f"Unknown permissions: {', '.join(unknown)}", permissions=unknown
        )
    return cleaned


def get_role(session: Session, role_name: str) -> Role:
    role = session.scalars(select(Role).where(Role.name == role_name.lower())).one_or_none()
    if role is None:
        raise NotFoundError(f"Role '{role_name}' not found", role=role_name)
    return role


def set_role_permissions(session: Session, role_name: str, names: Iterable[str]) -> Role:
    """Replace the permission set of ``role_name``, creating the role if needed."""

    cleaned = _validate_permission_names(names)
    role = session.scalars(select(Role).where(Role.name == role_name.lower())).one_or_none()
    if role is None:
        role = Role(name=role_name.lower())
        session.add(role)
    current = {grant.permission_name: grant for grant in role.permissions}
    for name, grant in current.items():
        if name not in cleaned:
            role.permissions.remove(grant)
    for name in cleaned:
        if name not in current:
            role.permissions.append(RolePermission(permission_name=name))
    session.commit()
    session.refresh(role)
    LOGGER.info("role_permissions_updated", role=role.name, permissions=cleaned)
    return role


def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found", user_id=user_id)
    return user


def set_user_permissions(session: Session, user_id: int, names: Iterable[str]) -> User:
    """Replace the permissions granted directly to a user."""

    cleaned = _validate_permission_names(names)
    user = get_user(session, user_id)
    current = {grant.permission_name: grant for grant in user.permissions}
    for name, grant in current.items():
        if name not in cleaned:
            user.permissions.remove(grant)
    for name in cleaned:
        if name not in current:
            user.permissions.append(UserPermission(permission_name=name))
    session.commit()
    session.refresh(user)
    LOGGER.info("user_permissions_updated", user_id=user.id, permissions=cleaned)
    return user


def set_user_sites(session: Session, user_id: int, site_ids: Iterable[int]) -> User:
    """Replace the sites a user is assigned to."""

    user = get_user(session, user_id)
    wanted = sorted(set(site_ids))
    if wanted:
        existing = set(session.scalars(select(Site.id).where(Site.id.in_(wanted))))
        missing = [site_id for site_id in wanted if site_id not in existing]
        if missing:
            raise NotFoundError(
                f"Sites not found: {', '.join(str(site_id) for site_id in missing)}",
                site_ids=missing,
            )
    current = {assignment.site_id: assignment for assignment in user.site_assignments}
    for site_id, assignment in current.items():
        if site_id not in wanted:
            user.site_assignments.remove(assignment)
    for site_id in wanted:
        if site_id not in current:
            user.site_assignments.append(SiteAssignment(site_id=site_id))
    session.commit()
    session.refresh(user)
    LOGGER.info("user_sites_updated", user_id=user.id, site_ids=wanted)
    return user


__all__ = [
    "Actor",
    "effective_permissions",
    "get_role",
    "get_user",
    "resolve_actor",
    "role_permissions",
    "set_role_permissions",
    "set_user_permissions",
    "set_user_sites",
]
