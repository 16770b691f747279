"""Transition tables for each approvable document type."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import NotFoundError
from app.backend.src.core.permissions import Permissions
from app.backend.src.models import (
    ApprovalStatus,
    AssetTransfer,
    Cashbook,
    CashbookBudget,
    Indent,
    PurchaseOrder,
)
from app.backend.src.models.asset import ASSET_ASSIGNED, ASSET_AVAILABLE

from .approval_engine import Transition, TransitionContext, WorkflowDefinition

CASHBOOK = "cashbook"
CASHBOOK_BUDGET = "cashbook_budget"
INDENT = "indent"
PURCHASE_ORDER = "purchase_order"
ASSET_TRANSFER = "asset_transfer"

_DRAFT = frozenset({ApprovalStatus.DRAFT})
_LEVEL_1 = frozenset({ApprovalStatus.APPROVED_LEVEL_1})
_LEVEL_2 = frozenset({ApprovalStatus.APPROVED_LEVEL_2})


def _two_level(
    level_1_permission: str,
    level_2_permission: str,
    *,
    item_field_1: str | None = None,
    item_field_2: str | None = None,
    requested_field: str | None = None,
) -> dict[str, Transition]:
    return {
        "approve1": Transition(
            action="approve1",
            sources=_DRAFT,
            target=ApprovalStatus.APPROVED_LEVEL_1,
            permission=level_1_permission,
            stamp="approved1",
            forbid_creator=True,
            item_field=item_field_1,
            carry_from=requested_field,
            auto_level_2=True,
        ),
        "approve2": Transition(
            action="approve2",
            sources=_LEVEL_1,
            target=ApprovalStatus.APPROVED_LEVEL_2,
            permission=level_2_permission,
            stamp="approved2",
            forbid_creator=True,
            forbid_prior=("approved1",),
            item_field=item_field_2,
            carry_from=item_field_1,
        ),
    }


def _complete_and_suspend(complete_permission: str, suspend_permission: str) -> dict[str, Transition]:
    return {
        "complete": Transition(
            action="complete",
            sources=_LEVEL_2,
            target=ApprovalStatus.COMPLETED,
            permission=complete_permission,
            stamp="completed",
        ),
        "suspend": Transition(
            action="suspend",
            sources=None,
            target=ApprovalStatus.SUSPENDED,
            permission=suspend_permission,
            stamp="suspended",
        ),
        "unsuspend": Transition(
            action="unsuspend",
            sources=frozenset({ApprovalStatus.SUSPENDED}),
            target=None,
            permission=suspend_permission,
        ),
    }


# -------------------------------------------------------
# Hooks
# -------------------------------------------------------

def _sum(values: list[Any]) -> Decimal:
    return sum((Decimal(value) for value in values if value is not None), Decimal("0"))


def _budget_level_1(session: Session, budget: CashbookBudget, context: TransitionContext) -> None:
    budget.total_budget = _sum([item.amount for item in budget.items])
    budget.approved1_budget_amount = _sum([item.approved1_amount for item in budget.items])
    if context.remarks is not None:
        budget.approved1_remarks = context.remarks


def _budget_level_2(session: Session, budget: CashbookBudget, context: TransitionContext) -> None:
    budget.total_budget = _sum([item.amount for item in budget.items])
    budget.approved_budget_amount = _sum([item.approved_amount for item in budget.items])
    if context.remarks is not None:
        budget.remarks_for_final_approval = context.remarks


def _transfer_accepted(session: Session, transfer: AssetTransfer, context: TransitionContext) -> None:
    for item in transfer.items:
        if item.asset is None:
            raise NotFoundError(f"Asset {item.asset_id} not found", asset_id=item.asset_id)
        item.asset.current_site_id = transfer.to_site_id
        item.asset.transfer_status = ASSET_ASSIGNED


def _transfer_rejected(session: Session, transfer: AssetTransfer, context: TransitionContext) -> None:
    for item in transfer.items:
        if item.asset is None:
            continue
        if transfer.from_site_id is None:
            item.asset.transfer_status = ASSET_AVAILABLE
        else:
            item.asset.current_site_id = transfer.from_site_id
            item.asset.transfer_status = ASSET_ASSIGNED


def _purchase_order_within_limit(order: PurchaseOrder) -> bool:
    return Decimal(order.amount or 0) <= get_settings().po_auto_approve_limit


# -------------------------------------------------------
# Definitions
# -------------------------------------------------------

CASHBOOK_WORKFLOW = WorkflowDefinition(
    document_type=CASHBOOK,
    model=Cashbook,
    initial_state=ApprovalStatus.DRAFT,
    transitions=_two_level(Permissions.APPROVE_CASHBOOKS_L1, Permissions.APPROVE_CASHBOOKS_L2),
    read_permission=Permissions.READ_CASHBOOKS,
    edit_permission=Permissions.EDIT_CASHBOOKS,
    items_attr="details",
)

CASHBOOK_BUDGET_WORKFLOW = WorkflowDefinition(
    document_type=CASHBOOK_BUDGET,
    model=CashbookBudget,
    initial_state=ApprovalStatus.DRAFT,
    transitions={
        **_two_level(
            Permissions.APPROVE_CASHBOOK_BUDGETS_L1,
            Permissions.APPROVE_CASHBOOK_BUDGETS_L2,
            item_field_1="approved1_amount",
            item_field_2="approved_amount",
            requested_field="amount",
        ),
        "accept": Transition(
            action="accept",
            sources=_LEVEL_2,
            target=ApprovalStatus.ACCEPTED,
            permission=Permissions.ACCEPT_CASHBOOK_BUDGETS,
            stamp="decided",
            forbid_creator=True,
        ),
        "reject": Transition(
            action="reject",
            sources=frozenset(
                {
                    ApprovalStatus.DRAFT,
                    ApprovalStatus.APPROVED_LEVEL_1,
                    ApprovalStatus.APPROVED_LEVEL_2,
                }
            ),
            target=ApprovalStatus.REJECTED,
            permission=Permissions.ACCEPT_CASHBOOK_BUDGETS,
            stamp="decided",
            forbid_creator=True,
        ),
    },
    read_permission=Permissions.READ_CASHBOOK_BUDGETS,
    edit_permission=Permissions.EDIT_CASHBOOK_BUDGETS,
    hooks={"approve1": _budget_level_1, "approve2": _budget_level_2},
)

INDENT_WORKFLOW = WorkflowDefinition(
    document_type=INDENT,
    model=Indent,
    initial_state=ApprovalStatus.DRAFT,
    transitions={
        **_two_level(
            Permissions.APPROVE_INDENTS_L1,
            Permissions.APPROVE_INDENTS_L2,
            item_field_1="approved1_qty",
            item_field_2="approved2_qty",
            requested_field="indent_qty",
        ),
        **_complete_and_suspend(Permissions.COMPLETE_INDENTS, Permissions.SUSPEND_INDENTS),
    },
    read_permission=Permissions.READ_INDENTS,
    edit_permission=Permissions.EDIT_INDENTS,
)

PURCHASE_ORDER_WORKFLOW = WorkflowDefinition(
    document_type=PURCHASE_ORDER,
    model=PurchaseOrder,
    initial_state=ApprovalStatus.DRAFT,
    transitions={
        **_two_level(
            Permissions.APPROVE_PURCHASE_ORDERS_L1,
            Permissions.APPROVE_PURCHASE_ORDERS_L2,
            item_field_1="approved1_qty",
            item_field_2="approved2_qty",
            requested_field="qty",
        ),
        **_complete_and_suspend(
            Permissions.COMPLETE_PURCHASE_ORDERS, Permissions.SUSPEND_PURCHASE_ORDERS
        ),
    },
    read_permission=Permissions.READ_PURCHASE_ORDERS,
    edit_permission=Permissions.EDIT_PURCHASE_ORDERS,
    auto_level_2_predicate=_purchase_order_within_limit,
)

ASSET_TRANSFER_WORKFLOW = WorkflowDefinition(
    document_type=ASSET_TRANSFER,
    model=AssetTransfer,
    initial_state=ApprovalStatus.PENDING,
    transitions={
        "approve": Transition(
            action="approve",
            sources=frozenset({ApprovalStatus.PENDING}),
            target=ApprovalStatus.ACCEPTED,
            permission=Permissions.APPROVE_ASSET_TRANSFERS,
            stamp="decided",
            forbid_creator=True,
        ),
        "reject": Transition(
            action="reject",
            sources=frozenset({ApprovalStatus.PENDING}),
            target=ApprovalStatus.REJECTED,
            permission=Permissions.APPROVE_ASSET_TRANSFERS,
            stamp="decided",
            forbid_creator=True,
        ),
    },
    read_permission=Permissions.READ_ASSET_TRANSFERS,
    edit_permission=Permissions.EDIT_ASSET_TRANSFERS,
    site_attr="to_site_id",
    hooks={"approve": _transfer_accepted, "reject": _transfer_rejected},
)

WORKFLOWS: dict[str, WorkflowDefinition] = {
    definition.document_type: definition
    for definition in (
        CASHBOOK_WORKFLOW,
        CASHBOOK_BUDGET_WORKFLOW,
        INDENT_WORKFLOW,
        PURCHASE_ORDER_WORKFLOW,
        ASSET_TRANSFER_WORKFLOW,
    )
}


def get_workflow(document_type: str) -> WorkflowDefinition:
    try:
        return WORKFLOWS[document_type]
    except KeyError:
        raise NotFoundError(
            f"Unknown document type '{document_type}'", document_type=document_type
        ) from None


__all__ = [
    "ASSET_TRANSFER",
    "ASSET_TRANSFER_WORKFLOW",
    "CASHBOOK",
    "CASHBOOK_BUDGET",
    "CASHBOOK_BUDGET_WORKFLOW",
    "CASHBOOK_WORKFLOW",
    "INDENT",
    "INDENT_WORKFLOW",
    "PURCHASE_ORDER",
    "PURCHASE_ORDER_WORKFLOW",
    "WORKFLOWS",
    "get_workflow",
]
