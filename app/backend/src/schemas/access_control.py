"""Pydantic schemas for access control administration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr


class PermissionSet(BaseModel):
    permissions: list[str]


class SiteSet(BaseModel):
    site_ids: list[int]


class RolePermissionsOut(BaseModel):
    role: str
    permissions: list[str]


class UserPermissionsOut(BaseModel):
    user_id: int
    role: str | None
    permissions: list[str]
    effective_permissions: list[str]


class UserSitesOut(BaseModel):
    user_id: int
    site_ids: list[int]


class CurrentUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    name: str
    role: str | None
    is_active: bool
    site_ids: list[int]
    permissions: list[str]
    auto_approves_level_2: bool
