"""Utilities for seeding access control and development data."""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.core.permissions import DEFAULT_ROLE_PERMISSIONS, Roles
from app.backend.src.models import Role, RolePermission, Site, SiteAssignment, User

DEFAULT_SITE_NAME = "Demo Tower"
DEFAULT_SITE_CODE = "DT01"

DEMO_USERS: tuple[tuple[str, str, str], ...] = (
    ("admin@siteflow.example", "Demo Admin", Roles.ADMIN),
    ("director@siteflow.example", "Demo Project Director", Roles.PROJECT_DIRECTOR),
    ("engineer@siteflow.example", "Demo Site Engineer", Roles.SITE_ENGINEER),
    ("accounts@siteflow.example", "Demo Accountant", Roles.ACCOUNTANT),
)


@dataclass
class SeedResult:
    """Information about what seeding created."""

    roles_created: list[str] = field(default_factory=list)
    site: Site | None = None
    users_created: list[str] = field(default_factory=list)


def seed_roles(session: Session) -> list[str]:
    """Create missing default roles with their default grants.

    Existing roles are left alone so grants an administrator removed stay
    removed.
    """

    created: list[str] = []
    for role_name, permissions in DEFAULT_ROLE_PERMISSIONS.items():
        role = session.scalars(select(Role).where(Role.name == role_name)).one_or_none()
        if role is not None:
            continue
        role = Role(
            name=role_name,
            permissions=[RolePermission(permission_name=name) for name in sorted(permissions)],
        )
        session.add(role)
        created.append(role_name)
    session.flush()
    return created


def seed_development_data(session: Session, *, auth0_sub: str | None = None) -> SeedResult:
    """Ensure default roles, a demo site and one demo user per role exist.

    ``auth0_sub`` is linked to the demo admin so a real login maps onto it.
    """

    result = SeedResult(roles_created=seed_roles(session))

    site = session.scalars(select(Site).where(Site.site_code == DEFAULT_SITE_CODE)).one_or_none()
    if site is None:
        site = Site(name=DEFAULT_SITE_NAME, site_code=DEFAULT_SITE_CODE)
        session.add(site)
        session.flush()
    result.site = site

    for email, name, role in DEMO_USERS:
        user = session.scalars(select(User).where(User.email == email)).one_or_none()
        if user is None:
            user = User(email=email, name=name, role=role)
            session.add(user)
            session.flush()
            result.users_created.append(email)
        if role == Roles.ADMIN and auth0_sub and user.auth0_sub != auth0_sub:
            user.auth0_sub = auth0_sub
        if site.id not in user.site_ids:
            session.add(SiteAssignment(user_id=user.id, site_id=site.id))
    session.flush()
    return result


__all__ = ["DEMO_USERS", "SeedResult", "seed_development_data", "seed_roles"]
