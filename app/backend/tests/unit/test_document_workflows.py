"""Document specific workflow behaviour: budgets, orders, transfers and cashbooks."""

from __future__ import annotations

import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_siteflow.db")

import pytest
from pydantic import ValidationError

from app.backend.src.core.errors import (
    ConflictError,
    InvalidTransitionError,
    SelfApprovalError,
    WorkflowValidationError,
)
from app.backend.src.core.permissions import ADMIN_PERMISSIONS, Permissions
from app.backend.src.db import get_engine, session_scope
from app.backend.src.models import (
    ApprovalStatus,
    Asset,
    AssetTransfer,
    Cashbook,
    CashbookBudget,
    PurchaseOrder,
    Site,
    User,
)
from app.backend.src.models.asset import ASSET_ASSIGNED, ASSET_AVAILABLE, ASSET_IN_TRANSIT
from app.backend.src.models.base import Base
from app.backend.src.schemas.asset_transfer import AssetTransferCreate
from app.backend.src.schemas.cashbook import CashbookCreate
from app.backend.src.schemas.cashbook_budget import CashbookBudgetCreate, CashbookBudgetUpdate
from app.backend.src.schemas.purchase_order import PurchaseOrderCreate, PurchaseOrderUpdate
from app.backend.src.services import documents
from app.backend.src.services.access import Actor
from app.backend.src.services.approval_engine import ItemValue, apply_transition
from app.backend.src.services.numbering import financial_year_label
from app.backend.src.services.workflows import (
    ASSET_TRANSFER_WORKFLOW,
    CASHBOOK_BUDGET_WORKFLOW,
    CASHBOOK_WORKFLOW,
    PURCHASE_ORDER_WORKFLOW,
)

MANUAL = ADMIN_PERMISSIONS


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def world() -> dict[str, int]:
    with session_scope() as session:
        site = Site(name="North Block", site_code="NB01")
        yard = Site(name="Central Yard", site_code="CY01")
        users = {
            key: User(email=f"{key}@example.com", name=key.title(), role="site_engineer")
            for key in ("a", "b", "c", "d")
        }
        session.add_all([site, yard, *users.values()])
        session.flush()
        ids = {key: user.id for key, user in users.items()}
        ids["site"] = site.id
        ids["yard"] = yard.id
    return ids


def _actor(world: dict[str, int], key: str) -> Actor:
    return Actor(
        id=world[key],
        role="site_engineer",
        permissions=MANUAL,
        site_ids=frozenset({world["site"], world["yard"]}),
    )


def _apply(definition, document_id: int, action: str, actor: Actor, **kwargs):
    with session_scope() as session:
        return apply_transition(session, definition, document_id, action, actor, **kwargs)


def _create(create, actor: Actor, payload):
    with session_scope() as session:
        document = create(session, actor, payload)
        return {"id": document.id, "items": [item.id for item in getattr(document, "items", [])]}


# -------------------------------------------------------
# Cashbook budgets
# -------------------------------------------------------

def _budget_payload(world: dict[str, int], month: str = "2024-05") -> CashbookBudgetCreate:
    return CashbookBudgetCreate(
        name="Site expenses",
        month=month,
        site_id=world["site"],
        items=[
            {"cashbook_head": "Labour", "amount": "1000"},
            {"cashbook_head": "Fuel", "amount": "500"},
        ],
    )


def test_budget_totals_follow_each_approval_level(world: dict[str, int]) -> None:
    budget = _create(documents.create_cashbook_budget, _actor(world, "a"), _budget_payload(world))
    labour, fuel = budget["items"]

    _apply(
        CASHBOOK_BUDGET_WORKFLOW,
        budget["id"],
        "approve1",
        _actor(world, "b"),
        items=[ItemValue(id=labour, value="900"), ItemValue(id=fuel, value="500")],
        remarks="Labour trimmed",
    )
    _apply(
        CASHBOOK_BUDGET_WORKFLOW,
        budget["id"],
        "approve2",
        _actor(world, "c"),
        items=[ItemValue(id=labour, value="800"), ItemValue(id=fuel, value="450")],
        remarks="Final figures",
    )
    _apply(CASHBOOK_BUDGET_WORKFLOW, budget["id"], "accept", _actor(world, "d"))

    with session_scope() as session:
        stored = session.get(CashbookBudget, budget["id"])
        assert stored.status == ApprovalStatus.ACCEPTED
        assert stored.total_budget == Decimal("1500")
        assert stored.approved1_budget_amount == Decimal("1400")
        assert stored.approved_budget_amount == Decimal("1250")
        assert stored.approved1_remarks == "Labour trimmed"
        assert stored.remarks_for_final_approval == "Final figures"
        assert stored.decided_by_id == world["d"]

    with pytest.raises(InvalidTransitionError):
        _apply(CASHBOOK_BUDGET_WORKFLOW, budget["id"], "reject", _actor(world, "d"))


def test_budget_can_be_rejected_before_acceptance(world: dict[str, int]) -> None:
    budget = _create(documents.create_cashbook_budget, _actor(world, "a"), _budget_payload(world))

    with pytest.raises(SelfApprovalError):
        _apply(CASHBOOK_BUDGET_WORKFLOW, budget["id"], "reject", _actor(world, "a"))
    _apply(CASHBOOK_BUDGET_WORKFLOW, budget["id"], "reject", _actor(world, "b"), remarks="Too high")

    with session_scope() as session:
        stored = session.get(CashbookBudget, budget["id"])
        assert stored.status == ApprovalStatus.REJECTED
        assert stored.decided_by_id == world["b"]


def test_one_budget_per_site_and_month(world: dict[str, int]) -> None:
    _create(documents.create_cashbook_budget, _actor(world, "a"), _budget_payload(world))

    with pytest.raises(ConflictError):
        _create(documents.create_cashbook_budget, _actor(world, "a"), _budget_payload(world))

    _create(documents.create_cashbook_budget, _actor(world, "a"), _budget_payload(world, "2024-06"))


def test_editing_budget_month_cannot_duplicate_another_budget(world: dict[str, int]) -> None:
    actor = _actor(world, "a")
    company_wide = _budget_payload(world).model_copy(update={"site_id": None})
    _create(documents.create_cashbook_budget, actor, company_wide)
    june = _create(
        documents.create_cashbook_budget,
        actor,
        _budget_payload(world, "2024-06").model_copy(update={"site_id": None}),
    )

    with session_scope() as session:
        with pytest.raises(ConflictError):
            documents.update_document(
                session, CASHBOOK_BUDGET_WORKFLOW, june["id"], actor, CashbookBudgetUpdate(month="2024-05")
            )
    with session_scope() as session:
        with pytest.raises(ConflictError):
            documents.update_document(
                session,
                CASHBOOK_BUDGET_WORKFLOW,
                june["id"],
                actor,
                CashbookBudgetUpdate(month="2024-05", site_id=None),
            )

    with session_scope() as session:
        renamed = documents.update_document(
            session, CASHBOOK_BUDGET_WORKFLOW, june["id"], actor, CashbookBudgetUpdate(month="2024-06", name="June")
        )
        assert renamed.name == "June"
        assert session.query(CashbookBudget).filter(CashbookBudget.month == "2024-05").count() == 1


# -------------------------------------------------------
# Purchase orders
# -------------------------------------------------------

def _order_payload(world: dict[str, int], qty: str, rate: str) -> PurchaseOrderCreate:
    return PurchaseOrderCreate(
        purchase_order_date=date(2024, 5, 3),
        site_id=world["site"],
        vendor_name="Acme Cement",
        items=[{"item_name": "Cement", "qty": qty, "rate": rate}],
    )


def test_purchase_order_number_and_amount(world: dict[str, int]) -> None:
    order = _create(
        documents.create_purchase_order, _actor(world, "a"), _order_payload(world, "10", "250.555")
    )

    with session_scope() as session:
        stored = session.get(PurchaseOrder, order["id"])
        assert stored.purchase_order_no == (
            f"SF/{financial_year_label(date.today())}/NB01/00001"
        )
        assert stored.amount == Decimal("2505.55")
        assert stored.items[0].serial_no == 1


def test_purchase_order_site_is_fixed_after_creation(world: dict[str, int]) -> None:
    order = _create(
        documents.create_purchase_order, _actor(world, "a"), _order_payload(world, "10", "100")
    )

    with pytest.raises(ValidationError):
        PurchaseOrderUpdate.model_validate({"site_id": world["yard"]})

    with session_scope() as session:
        documents.update_document(
            session,
            PURCHASE_ORDER_WORKFLOW,
            order["id"],
            _actor(world, "a"),
            PurchaseOrderUpdate(vendor_name="Acme Steel"),
        )
        stored = session.get(PurchaseOrder, order["id"])
        assert stored.site_id == world["site"]
        assert stored.purchase_order_no.split("/")[2] == "NB01"
        assert stored.vendor_name == "Acme Steel"


def test_small_purchase_order_reaches_level_two_on_first_approval(world: dict[str, int]) -> None:
    order = _create(
        documents.create_purchase_order, _actor(world, "a"), _order_payload(world, "10", "100")
    )

    _apply(
        PURCHASE_ORDER_WORKFLOW,
        order["id"],
        "approve1",
        _actor(world, "b"),
        items=[ItemValue(id=order["items"][0], value="8")],
    )

    with session_scope() as session:
        stored = session.get(PurchaseOrder, order["id"])
        assert stored.status == ApprovalStatus.APPROVED_LEVEL_2
        assert stored.approved2_by_id == world["b"]
        assert stored.items[0].approved2_qty == Decimal("8")


def test_large_purchase_order_needs_a_second_approver(world: dict[str, int]) -> None:
    order = _create(
        documents.create_purchase_order, _actor(world, "a"), _order_payload(world, "1000", "200")
    )

    _apply(
        PURCHASE_ORDER_WORKFLOW,
        order["id"],
        "approve1",
        _actor(world, "b"),
        items=[ItemValue(id=order["items"][0], value="1000")],
    )

    with session_scope() as session:
        stored = session.get(PurchaseOrder, order["id"])
        assert stored.status == ApprovalStatus.APPROVED_LEVEL_1
        assert stored.approved2_by_id is None


# -------------------------------------------------------
# Asset transfers
# -------------------------------------------------------

def _assets(world: dict[str, int], *, at_yard: bool = False) -> list[int]:
    with session_scope() as session:
        assets = [
            Asset(
                asset_no=f"AS-{index}",
                asset_name=name,
                current_site_id=world["yard"] if at_yard else None,
                transfer_status=ASSET_ASSIGNED if at_yard else ASSET_AVAILABLE,
            )
            for index, name in enumerate(("Mixer", "Vibrator"), start=1)
        ]
        session.add_all(assets)
        session.flush()
        return [asset.id for asset in assets]


def _asset_states(asset_ids: list[int]) -> list[tuple[int | None, str]]:
    with session_scope() as session:
        return [
            (session.get(Asset, asset_id).current_site_id, session.get(Asset, asset_id).transfer_status)
            for asset_id in asset_ids
        ]


def test_accepted_new_assignment_moves_assets_to_site(world: dict[str, int]) -> None:
    asset_ids = _assets(world)
    transfer = _create(
        documents.create_asset_transfer,
        _actor(world, "a"),
        AssetTransferCreate(
            challan_date=date(2024, 5, 4),
            transfer_type="New Assign",
            to_site_id=world["site"],
            asset_ids=asset_ids,
        ),
    )
    assert _asset_states(asset_ids) == [(None, ASSET_IN_TRANSIT)] * 2

    with pytest.raises(SelfApprovalError):
        _apply(ASSET_TRANSFER_WORKFLOW, transfer["id"], "approve", _actor(world, "a"))
    _apply(ASSET_TRANSFER_WORKFLOW, transfer["id"], "approve", _actor(world, "b"))

    with session_scope() as session:
        stored = session.get(AssetTransfer, transfer["id"])
        assert stored.challan_no == "CHN-00001"
        assert stored.status == ApprovalStatus.ACCEPTED
        assert stored.decided_by_id == world["b"]
    assert _asset_states(asset_ids) == [(world["site"], ASSET_ASSIGNED)] * 2

    with pytest.raises(InvalidTransitionError):
        _apply(ASSET_TRANSFER_WORKFLOW, transfer["id"], "reject", _actor(world, "c"))


def test_rejected_transfer_leaves_assets_at_source_site(world: dict[str, int]) -> None:
    asset_ids = _assets(world, at_yard=True)
    transfer = _create(
        documents.create_asset_transfer,
        _actor(world, "a"),
        AssetTransferCreate(
            challan_date=date(2024, 5, 4),
            transfer_type="Transfer",
            from_site_id=world["yard"],
            to_site_id=world["site"],
            asset_ids=asset_ids,
        ),
    )

    _apply(ASSET_TRANSFER_WORKFLOW, transfer["id"], "reject", _actor(world, "b"), remarks="Not needed")

    assert _asset_states(asset_ids) == [(world["yard"], ASSET_ASSIGNED)] * 2


def test_asset_in_transit_cannot_join_another_transfer(world: dict[str, int]) -> None:
    asset_ids = _assets(world)
    payload = AssetTransferCreate(
        challan_date=date(2024, 5, 4),
        transfer_type="New Assign",
        to_site_id=world["site"],
        asset_ids=asset_ids[:1],
    )
    _create(documents.create_asset_transfer, _actor(world, "a"), payload)

    with pytest.raises(WorkflowValidationError):
        _create(documents.create_asset_transfer, _actor(world, "a"), payload)


def test_deleting_pending_transfer_releases_assets(world: dict[str, int]) -> None:
    asset_ids = _assets(world)
    transfer = _create(
        documents.create_asset_transfer,
        _actor(world, "a"),
        AssetTransferCreate(
            challan_date=date(2024, 5, 4),
            transfer_type="New Assign",
            to_site_id=world["site"],
            asset_ids=asset_ids,
        ),
    )

    with session_scope() as session:
        documents.delete_document(session, ASSET_TRANSFER_WORKFLOW, transfer["id"], _actor(world, "a"))

    assert _asset_states(asset_ids) == [(None, ASSET_AVAILABLE)] * 2


# -------------------------------------------------------
# Cashbooks
# -------------------------------------------------------

def _cashbook_payload(world: dict[str, int]) -> CashbookCreate:
    return CashbookCreate(
        voucher_date=date(2024, 5, 7),
        site_id=world["site"],
        details=[{"cashbook_head": "Petty cash", "amount_paid": "120.50"}],
    )


def test_cashbook_vouchers_and_flags(world: dict[str, int]) -> None:
    first = _create(documents.create_cashbook, _actor(world, "a"), _cashbook_payload(world))
    second = _create(documents.create_cashbook, _actor(world, "a"), _cashbook_payload(world))

    _apply(CASHBOOK_WORKFLOW, first["id"], "approve1", _actor(world, "b"))
    _apply(CASHBOOK_WORKFLOW, first["id"], "approve2", _actor(world, "c"))

    with session_scope() as session:
        approved = session.get(Cashbook, first["id"])
        pending = session.get(Cashbook, second["id"])
        assert approved.voucher_no == "B/7/1"
        assert pending.voucher_no == "B/7/2"
        assert approved.is_approved_1 and approved.is_approved_2
        assert not pending.is_approved_1
        assert approved.status == ApprovalStatus.APPROVED_LEVEL_2
