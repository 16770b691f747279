"""Permission resolution and the access control administration API."""

from __future__ import annotations

import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_siteflow.db")

import pytest
from fastapi.testclient import TestClient

from app.backend.src.core.errors import NotFoundError, WorkflowValidationError
from app.backend.src.core.permissions import ADMIN_PERMISSIONS, ALL_PERMISSIONS, Permissions
from app.backend.src.core.security import get_current_user
from app.backend.src.db import get_engine, session_scope
from app.backend.src.main import app
from app.backend.src.models import Site, User
from app.backend.src.models.base import Base
from app.backend.src.services import access
from app.backend.src.services.seed import seed_roles


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.clear()


@pytest.fixture()
def world() -> dict[str, int]:
    with session_scope() as session:
        seed_roles(session)
        site = Site(name="North Block", site_code="NB01")
        admin = User(email="admin@example.com", name="Admin", role="admin")
        engineer = User(email="engineer@example.com", name="Engineer", role="site_engineer")
        session.add_all([site, admin, engineer])
        session.flush()
        return {"site": site.id, "admin": admin.id, "engineer": engineer.id}


def _login(user_id: int) -> None:
    def _override() -> User:
        with session_scope() as session:
            user = session.get(User, user_id)
            assert user is not None
            return user

    app.dependency_overrides[get_current_user] = _override


def test_admin_holds_every_permission_and_site(world: dict[str, int]) -> None:
    with session_scope() as session:
        actor = access.resolve_actor(session, session.get(User, world["admin"]))

    assert actor.permissions == ADMIN_PERMISSIONS
    assert actor.is_admin
    assert actor.can_access_site(world["site"])


def test_admin_auto_approval_requires_a_direct_grant(world: dict[str, int]) -> None:
    with session_scope() as session:
        actor = access.resolve_actor(session, session.get(User, world["admin"]))
        assert not actor.auto_approves_level_2
        assert Permissions.APPROVE_INDENTS_L1 in actor.permissions

        access.set_user_permissions(session, world["admin"], [Permissions.AUTO_APPROVE_LEVEL_2])
        granted = access.resolve_actor(session, session.get(User, world["admin"]))

    assert granted.auto_approves_level_2
    assert granted.permissions == ALL_PERMISSIONS


def test_admin_level_one_approval_stops_at_level_one(world: dict[str, int]) -> None:
    with session_scope() as session:
        access.set_user_sites(session, world["engineer"], [world["site"]])
    client = TestClient(app)
    _login(world["engineer"])
    created = client.post(
        "/api/indents",
        json={
            "indent_date": "2024-05-02",
            "delivery_date": "2024-05-10",
            "site_id": world["site"],
            "items": [{"item_name": "Cement", "unit": "bag", "indent_qty": "10"}],
        },
    )
    assert created.status_code == 201, created.text
    indent = created.json()

    _login(world["admin"])
    response = client.post(
        f"/api/indents/{indent['id']}/actions",
        json={"action": "approve1", "items": [{"id": indent["items"][0]["id"], "approved_qty": "10"}]},
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["status"] == "APPROVED_LEVEL_1"
    assert body["approved2_by_id"] is None


def test_direct_grants_extend_role_permissions(world: dict[str, int]) -> None:
    with session_scope() as session:
        access.set_user_permissions(session, world["engineer"], [Permissions.APPROVE_INDENTS_L2])
        access.set_user_sites(session, world["engineer"], [world["site"]])
        actor = access.resolve_actor(session, session.get(User, world["engineer"]))

    assert Permissions.APPROVE_INDENTS_L1 in actor.permissions
    assert Permissions.APPROVE_INDENTS_L2 in actor.permissions
    assert not actor.auto_approves_level_2
    assert actor.site_ids == frozenset({world["site"]})


def test_replacing_grants_removes_old_ones(world: dict[str, int]) -> None:
    with session_scope() as session:
        access.set_user_permissions(
            session, world["engineer"], [Permissions.APPROVE_INDENTS_L2, Permissions.COMPLETE_INDENTS]
        )
        access.set_user_permissions(session, world["engineer"], [Permissions.COMPLETE_INDENTS])
        user = session.get(User, world["engineer"])
        assert [grant.permission_name for grant in user.permissions] == [Permissions.COMPLETE_INDENTS]


def test_unknown_permission_and_site_are_rejected(world: dict[str, int]) -> None:
    with session_scope() as session:
        with pytest.raises(WorkflowValidationError):
            access.set_role_permissions(session, "user", ["APPROVE:EVERYTHING"])
        with pytest.raises(NotFoundError):
            access.set_user_sites(session, world["engineer"], [4242])


def test_role_permissions_can_be_replaced(world: dict[str, int]) -> None:
    with session_scope() as session:
        role = access.set_role_permissions(session, "storekeeper", [Permissions.READ_INDENTS])
        assert role.permission_names == [Permissions.READ_INDENTS]
        assert access.role_permissions(session, "Storekeeper") == {Permissions.READ_INDENTS}


def test_access_control_api_requires_manage_permission(world: dict[str, int]) -> None:
    client = TestClient(app)
    _login(world["engineer"])

    response = client.get("/api/access-control/permissions")

    assert response.status_code == 403
    assert response.json()["reason"] == "missing_permission"


def test_access_control_api_round_trip(world: dict[str, int]) -> None:
    client = TestClient(app)
    _login(world["admin"])

    assert Permissions.AUTO_APPROVE_LEVEL_2 in client.get("/api/access-control/permissions").json()

    granted = client.put(
        f"/api/access-control/users/{world['engineer']}/permissions",
        json={"permissions": [Permissions.AUTO_APPROVE_LEVEL_2]},
    )
    assert granted.status_code == 200, granted.text
    body = granted.json()
    assert body["permissions"] == [Permissions.AUTO_APPROVE_LEVEL_2]
    assert Permissions.EDIT_INDENTS in body["effective_permissions"]

    sites = client.put(
        f"/api/access-control/users/{world['engineer']}/sites", json={"site_ids": [world["site"]]}
    )
    assert sites.json() == {"user_id": world["engineer"], "site_ids": [world["site"]]}

    role = client.put(
        "/api/access-control/roles/user/permissions",
        json={"permissions": [Permissions.READ_INDENTS]},
    )
    assert role.json() == {"role": "user", "permissions": [Permissions.READ_INDENTS]}

    unknown = client.put(
        f"/api/access-control/users/{world['engineer']}/permissions",
        json={"permissions": ["APPROVE:EVERYTHING"]},
    )
    assert unknown.status_code == 400
    assert unknown.json()["reason"] == "validation_error"

    assert client.get("/api/access-control/roles/nobody/permissions").status_code == 404

    _login(world["engineer"])
    me = client.get("/api/auth/me").json()
    assert me["auto_approves_level_2"] is True
    assert me["site_ids"] == [world["site"]]
