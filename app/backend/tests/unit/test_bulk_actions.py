"""Bulk transitions through the engine and the Celery task."""

from __future__ import annotations

import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_siteflow.db")

import pytest

from app.backend.src.core.errors import BulkLimitError, InvalidTransitionError, WorkflowValidationError
from app.backend.src.core.permissions import Permissions
from app.backend.src.db import get_engine, session_scope
from app.backend.src.models import ApprovalStatus, Indent, IndentItem, Site, SiteAssignment, User
from app.backend.src.models.base import Base
from app.backend.src.services.access import Actor
from app.backend.src.services.approval_engine import bulk_apply, normalize_bulk_ids
from app.backend.src.services.seed import seed_roles
from app.backend.src.services.workflows import INDENT, INDENT_WORKFLOW
from tasks.approval_tasks import bulk_transition


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def world() -> dict[str, int]:
    with session_scope() as session:
        seed_roles(session)
        site = Site(name="North Block", site_code="NB01")
        engineer = User(email="engineer@example.com", name="Engineer", role="site_engineer")
        approver = User(email="approver@example.com", name="Approver", role="site_engineer")
        session.add_all([site, engineer, approver])
        session.flush()
        session.add_all(
            [
                SiteAssignment(user_id=engineer.id, site_id=site.id),
                SiteAssignment(user_id=approver.id, site_id=site.id),
            ]
        )
        return {"site": site.id, "engineer": engineer.id, "approver": approver.id}


def _indent(world: dict[str, int], number: int, creator: str = "engineer") -> int:
    with session_scope() as session:
        indent = Indent(
            indent_no=f"IND-{number:05d}",
            indent_date=date(2024, 5, 2),
            delivery_date=date(2024, 5, 9),
            site_id=world["site"],
            created_by_id=world[creator],
            items=[IndentItem(item_name="Steel", unit="kg", indent_qty=Decimal("250"))],
        )
        session.add(indent)
        session.flush()
        return indent.id


def _approver(world: dict[str, int]) -> Actor:
    return Actor(
        id=world["approver"],
        role="site_engineer",
        permissions=frozenset({Permissions.APPROVE_INDENTS_L1}),
        site_ids=frozenset({world["site"]}),
    )


def test_bulk_reports_each_document_independently(world: dict[str, int]) -> None:
    first = _indent(world, 1)
    second = _indent(world, 2)
    own = _indent(world, 3, creator="approver")

    result = bulk_apply(
        session_scope, INDENT_WORKFLOW, [first, second, own, 9999, first], "approve1", _approver(world)
    )

    assert result.succeeded == [first, second]
    assert result.success_count == 2
    assert result.failure_count == 2
    assert {entry["id"]: entry["reason"] for entry in result.failed} == {
        own: "self_approval_forbidden",
        9999: "not_found",
    }
    assert result.to_dict()["document_type"] == INDENT

    with session_scope() as session:
        approved = session.get(Indent, first)
        assert approved.status == ApprovalStatus.APPROVED_LEVEL_1
        assert approved.items[0].approved1_qty == Decimal("250")
        assert session.get(Indent, own).status == ApprovalStatus.DRAFT


def test_bulk_rejects_unknown_action_before_touching_documents(world: dict[str, int]) -> None:
    first = _indent(world, 1)

    with pytest.raises(InvalidTransitionError):
        bulk_apply(session_scope, INDENT_WORKFLOW, [first], "accept", _approver(world))


def test_bulk_id_normalization() -> None:
    assert normalize_bulk_ids([3, 1, 3, 2], limit=5) == [3, 1, 2]

    with pytest.raises(BulkLimitError):
        normalize_bulk_ids(range(1, 52), limit=50)
    with pytest.raises(WorkflowValidationError):
        normalize_bulk_ids([1, 0])
    with pytest.raises(WorkflowValidationError):
        normalize_bulk_ids([])


def test_bulk_task_resolves_the_actor_when_it_runs(world: dict[str, int]) -> None:
    first = _indent(world, 1)
    second = _indent(world, 2)

    summary = bulk_transition(INDENT, [first, second], "approve1", world["approver"], remarks="ok")

    assert summary["success_count"] == 2
    assert summary["failed"] == []
    with session_scope() as session:
        assert session.get(Indent, second).status == ApprovalStatus.APPROVED_LEVEL_1
