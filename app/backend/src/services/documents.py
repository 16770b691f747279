"""Create, edit, delete and list approvable documents.

Editing and deleting are only possible while a document is still in the
initial state of its workflow; afterwards it changes only through
:mod:`app.backend.src.services.approval_engine`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import structlog
from pydantic import BaseModel
from sqlalchemy import Select, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.backend.src.core.errors import (
    ConflictError,
    DocumentLockedError,
    NotFoundError,
    SiteAccessError,
    WorkflowValidationError,
)
from app.backend.src.models import (
    ApprovalStatus,
    Asset,
    AssetTransfer,
    AssetTransferItem,
    Cashbook,
    CashbookBudget,
    CashbookBudgetItem,
    CashbookDetail,
    Indent,
    IndentItem,
    PurchaseOrder,
    PurchaseOrderDetail,
    Site,
)
from app.backend.src.models.asset import (
    ASSET_ASSIGNED,
    ASSET_AVAILABLE,
    ASSET_IN_TRANSIT,
    TRANSFER_NEW_ASSIGNMENT,
)

from . import numbering
from .access import Actor
from .approval_engine import WorkflowDefinition
from .pagination import Page, paginate
from .workflows import (
    ASSET_TRANSFER,
    CASHBOOK,
    CASHBOOK_BUDGET,
    INDENT,
    PURCHASE_ORDER,
)

LOGGER = structlog.get_logger(__name__)

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class ListingConfig:
    search_columns: tuple[Any, ...]
    sort_columns: dict[str, Any]
    default_sort: str


LISTINGS: dict[str, ListingConfig] = {
    CASHBOOK: ListingConfig(
        search_columns=(Cashbook.voucher_no, Cashbook.remarks),
        sort_columns={
            "voucher_no": Cashbook.voucher_no,
            "voucher_date": Cashbook.voucher_date,
            "created_at": Cashbook.created_at,
            "status": Cashbook.status,
        },
        default_sort="voucher_date",
    ),
    CASHBOOK_BUDGET: ListingConfig(
        search_columns=(CashbookBudget.name, CashbookBudget.month),
        sort_columns={
            "name": CashbookBudget.name,
            "month": CashbookBudget.month,
            "total_budget": CashbookBudget.total_budget,
            "created_at": CashbookBudget.created_at,
            "status": CashbookBudget.status,
        },
        default_sort="month",
    ),
    INDENT: ListingConfig(
        search_columns=(Indent.indent_no, Indent.remarks),
        sort_columns={
            "indent_no": Indent.indent_no,
            "indent_date": Indent.indent_date,
            "delivery_date": Indent.delivery_date,
            "created_at": Indent.created_at,
            "status": Indent.status,
        },
        default_sort="indent_date",
    ),
    PURCHASE_ORDER: ListingConfig(
        search_columns=(PurchaseOrder.purchase_order_no, PurchaseOrder.vendor_name),
        sort_columns={
            "purchase_order_no": PurchaseOrder.purchase_order_no,
            "purchase_order_date": PurchaseOrder.purchase_order_date,
            "amount": PurchaseOrder.amount,
            "created_at": PurchaseOrder.created_at,
            "status": PurchaseOrder.status,
        },
        default_sort="purchase_order_date",
    ),
    ASSET_TRANSFER: ListingConfig(
        search_columns=(AssetTransfer.challan_no, AssetTransfer.remarks),
        sort_columns={
            "challan_no": AssetTransfer.challan_no,
            "challan_date": AssetTransfer.challan_date,
            "created_at": AssetTransfer.created_at,
            "status": AssetTransfer.status,
        },
        default_sort="challan_date",
    ),
}


# -------------------------------------------------------
# Shared helpers
# -------------------------------------------------------

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _require_site(session: Session, actor: Actor, site_id: int | None) -> None:
    if site_id is None:
        return
    if session.get(Site, site_id) is None:
        raise NotFoundError(f"Site {site_id} not found", site_id=site_id)
    if not actor.can_access_site(site_id):
        raise SiteAccessError(f"You are not assigned to site {site_id}", site_id=site_id)


def _commit(session: Session, document: Any) -> Any:
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        if "not null" in str(exc.orig).lower():
            raise WorkflowValidationError("A required field is missing") from exc
        raise ConflictError("The document conflicts with an existing record") from exc
    session.refresh(document)
    return document


def _ensure_unique_budget(
    session: Session, month: str, site_id: int | None, exclude_id: int | None = None
) -> None:
    stmt = select(CashbookBudget.id).where(
        CashbookBudget.month == month,
        CashbookBudget.site_id.is_(None) if site_id is None else CashbookBudget.site_id == site_id,
    )
    if exclude_id is not None:
        stmt = stmt.where(CashbookBudget.id != exclude_id)
    existing = session.scalars(stmt).first()
    if existing is not None:
        raise ConflictError(f"A budget for {month} already exists for this site", budget_id=existing)


def _check_merged(document: Any, changes: dict[str, Any]) -> None:
    """Validate cross-field rules against the stored values overlaid with ``changes``."""

    def merged(name: str) -> Any:
        return changes[name] if name in changes else getattr(document, name)

    if isinstance(document, Indent):
        if merged("delivery_date") < merged("indent_date"):
            raise WorkflowValidationError("delivery_date cannot be before indent_date")


def get_document(session: Session, definition: WorkflowDefinition, document_id: int, actor: Actor) -> Any:
    """Load a document the actor may see, or raise."""

    document = session.get(definition.model, document_id)
    if document is None:
        raise NotFoundError(
            f"{definition.document_type} {document_id} not found", document_id=document_id
        )
    site_id = getattr(document, definition.site_attr)
    if not actor.can_access_site(site_id):
        raise SiteAccessError(f"You are not assigned to site {site_id}", site_id=site_id)
    return document


def _get_editable(session: Session, definition: WorkflowDefinition, document_id: int, actor: Actor) -> Any:
    document = get_document(session, definition, document_id, actor)
    if document.status != definition.initial_state:
        raise DocumentLockedError(
            f"Only a {definition.initial_state.value} {definition.document_type} can be changed",
            status=document.status.value,
        )
    return document


def list_documents(
    session: Session,
    definition: WorkflowDefinition,
    actor: Actor,
    *,
    page: int = 1,
    per_page: int | None = None,
    search: str | None = None,
    status: ApprovalStatus | None = None,
    site_id: int | None = None,
    sort: str | None = None,
    order: str = "desc",
) -> Page[Any]:
    """Return one page of documents restricted to the actor's sites."""

    model = definition.model
    listing = LISTINGS[definition.document_type]
    site_column = getattr(model, definition.site_attr)

    stmt: Select[Any] = select(model)
    if not actor.is_admin:
        stmt = stmt.where(
            or_(site_column.is_(None), site_column.in_(sorted(actor.site_ids)))
        )
    if site_id is not None:
        stmt = stmt.where(site_column == site_id)
    if status is not None:
        stmt = stmt.where(model.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(*(column.ilike(pattern) for column in listing.search_columns)))

    column = listing.sort_columns.get(sort or listing.default_sort)
    if column is None:
        raise WorkflowValidationError(
            f"Cannot sort by '{sort}'", allowed=sorted(listing.sort_columns)
        )
    ordering = column.asc() if order.lower() == "asc" else column.desc()
    stmt = stmt.order_by(ordering, model.id.desc())
    return paginate(session, stmt, page=page, per_page=per_page)


def update_document(
    session: Session,
    definition: WorkflowDefinition,
    document_id: int,
    actor: Actor,
    payload: BaseModel,
) -> Any:
    """Apply a partial update to a document still in its initial state."""

    document = _get_editable(session, definition, document_id, actor)
    changes = payload.model_dump(exclude_unset=True)
    items_key = "asset_ids" if definition.document_type == ASSET_TRANSFER else definition.items_attr
    new_items = changes.pop(items_key, None)

    if definition.site_attr in changes:
        _require_site(session, actor, changes[definition.site_attr])
    _check_merged(document, changes)
    if isinstance(document, CashbookBudget) and ("month" in changes or "site_id" in changes):
        _ensure_unique_budget(
            session,
            changes.get("month", document.month),
            changes.get("site_id", document.site_id),
            exclude_id=document.id,
        )
    for field_name, value in changes.items():
        setattr(document, field_name, value)
    if new_items is not None:
        _ITEM_REPLACERS[definition.document_type](session, document, new_items)
    _refresh_totals(document)

    document.updated_by_id = actor.id
    document.updated_at = _now()
    _commit(session, document)
    LOGGER.info(
        "document_updated",
        document_type=definition.document_type,
        document_id=document.id,
        actor_id=actor.id,
        fields=sorted(changes),
        items_replaced=new_items is not None,
    )
    return document


def delete_document(session: Session, definition: WorkflowDefinition, document_id: int, actor: Actor) -> None:
    """Delete a document still in its initial state."""

    document = _get_editable(session, definition, document_id, actor)
    if definition.document_type == ASSET_TRANSFER:
        _release_assets(document)
    session.delete(document)
    session.commit()
    LOGGER.info(
        "document_deleted",
        document_type=definition.document_type,
        document_id=document_id,
        actor_id=actor.id,
    )


def _refresh_totals(document: Any) -> None:
    if isinstance(document, PurchaseOrder):
        document.amount = sum((item.amount for item in document.items), Decimal("0"))
    elif isinstance(document, CashbookBudget):
        document.total_budget = sum((item.amount for item in document.items), Decimal("0"))


# -------------------------------------------------------
# Line items
# -------------------------------------------------------

def _cashbook_details(items: list[dict[str, Any]]) -> list[CashbookDetail]:
    return [CashbookDetail(**item) for item in items]


def _budget_items(items: list[dict[str, Any]]) -> list[CashbookBudgetItem]:
    return [CashbookBudgetItem(**item) for item in items]


def _indent_items(items: list[dict[str, Any]]) -> list[IndentItem]:
    return [IndentItem(**item) for item in items]


def _order_details(items: list[dict[str, Any]]) -> list[PurchaseOrderDetail]:
    details = []
    for serial_no, item in enumerate(items, start=1):
        amount = (Decimal(item["qty"]) * Decimal(item["rate"])).quantize(_CENT, ROUND_HALF_UP)
        details.append(PurchaseOrderDetail(serial_no=serial_no, amount=amount, **item))
    return details


def _transferable_assets(
    session: Session,
    transfer_type: str,
    from_site_id: int | None,
    asset_ids: list[int],
    *,
    already_held: set[int] = frozenset(),
) -> list[Asset]:
    """Return the assets for ``asset_ids`` after checking they can be moved.

    A new assignment takes assets that are ``Available``; a site to site
    transfer takes assets ``Assigned`` to the source site.
    """

    unique_ids = list(dict.fromkeys(asset_ids))
    assets = {asset.id: asset for asset in session.scalars(select(Asset).where(Asset.id.in_(unique_ids)))}
    missing = [asset_id for asset_id in unique_ids if asset_id not in assets]
    if missing:
        raise NotFoundError(
            f"Assets not found: {', '.join(str(asset_id) for asset_id in missing)}",
            asset_ids=missing,
        )

    unavailable = []
    for asset_id in unique_ids:
        if asset_id in already_held:
            continue
        asset = assets[asset_id]
        if transfer_type == TRANSFER_NEW_ASSIGNMENT:
            ok = asset.transfer_status == ASSET_AVAILABLE
        else:
            ok = asset.transfer_status == ASSET_ASSIGNED and asset.current_site_id == from_site_id
        if not ok:
            unavailable.append(asset_id)
    if unavailable:
        raise WorkflowValidationError(
            "Some assets are not available for this transfer",
            asset_ids=unavailable,
        )
    return [assets[asset_id] for asset_id in unique_ids]


def _release_assets(transfer: AssetTransfer, keep: set[int] = frozenset()) -> None:
    for item in transfer.items:
        if item.asset_id in keep or item.asset is None:
            continue
        item.asset.transfer_status = (
            ASSET_AVAILABLE if transfer.transfer_type == TRANSFER_NEW_ASSIGNMENT else ASSET_ASSIGNED
        )


def _replace_transfer_items(session: Session, transfer: AssetTransfer, asset_ids: list[int]) -> None:
    held = {item.asset_id for item in transfer.items}
    assets = _transferable_assets(
        session, transfer.transfer_type, transfer.from_site_id, asset_ids, already_held=held
    )
    wanted = {asset.id for asset in assets}
    _release_assets(transfer, keep=wanted)
    transfer.items = [AssetTransferItem(asset=asset) for asset in assets]
    for asset in assets:
        asset.transfer_status = ASSET_IN_TRANSIT


def _replace(attr: str, build: Callable[[list[dict[str, Any]]], list[Any]]):
    def replacer(session: Session, document: Any, items: list[dict[str, Any]]) -> None:
        setattr(document, attr, build(items))

    return replacer


_ITEM_REPLACERS: dict[str, Callable[[Session, Any, Any], None]] = {
    CASHBOOK: _replace("details", _cashbook_details),
    CASHBOOK_BUDGET: _replace("items", _budget_items),
    INDENT: _replace("items", _indent_items),
    PURCHASE_ORDER: _replace("items", _order_details),
    ASSET_TRANSFER: _replace_transfer_items,
}


# -------------------------------------------------------
# Creation
# -------------------------------------------------------

def _created(session: Session, document: Any, document_type: str, actor: Actor) -> Any:
    session.add(document)
    _commit(session, document)
    LOGGER.info(
        "document_created",
        document_type=document_type,
        document_id=document.id,
        actor_id=actor.id,
    )
    return document


def create_cashbook(session: Session, actor: Actor, payload: BaseModel) -> Cashbook:
    data = payload.model_dump()
    details = data.pop("details")
    _require_site(session, actor, data.get("site_id"))
    voucher_date: date = data["voucher_date"]
    cashbook = Cashbook(
        voucher_no=numbering.next_voucher_no(session, voucher_date),
        created_by_id=actor.id,
        details=_cashbook_details(details),
        **data,
    )
    return _created(session, cashbook, CASHBOOK, actor)


def create_cashbook_budget(session: Session, actor: Actor, payload: BaseModel) -> CashbookBudget:
    data = payload.model_dump()
    items = data.pop("items")
    _require_site(session, actor, data.get("site_id"))
    _ensure_unique_budget(session, data["month"], data.get("site_id"))
    budget = CashbookBudget(created_by_id=actor.id, items=_budget_items(items), **data)
    _refresh_totals(budget)
    return _created(session, budget, CASHBOOK_BUDGET, actor)


def create_indent(session: Session, actor: Actor, payload: BaseModel) -> Indent:
    data = payload.model_dump()
    items = data.pop("items")
    _require_site(session, actor, data["site_id"])
    indent = Indent(
        indent_no=numbering.next_indent_no(session),
        created_by_id=actor.id,
        items=_indent_items(items),
        **data,
    )
    return _created(session, indent, INDENT, actor)


def create_purchase_order(session: Session, actor: Actor, payload: BaseModel) -> PurchaseOrder:
    data = payload.model_dump()
    items = data.pop("items")
    _require_site(session, actor, data["site_id"])
    order = PurchaseOrder(
        purchase_order_no=numbering.next_purchase_order_no(session, data["site_id"]),
        created_by_id=actor.id,
        items=_order_details(items),
        **data,
    )
    _refresh_totals(order)
    return _created(session, order, PURCHASE_ORDER, actor)


def create_asset_transfer(session: Session, actor: Actor, payload: BaseModel) -> AssetTransfer:
    """Create a pending transfer and mark its assets ``In Transit``."""

    data = payload.model_dump()
    asset_ids = data.pop("asset_ids")
    _require_site(session, actor, data["to_site_id"])
    if data.get("from_site_id") is not None and session.get(Site, data["from_site_id"]) is None:
        raise NotFoundError(f"Site {data['from_site_id']} not found", site_id=data["from_site_id"])

    assets = _transferable_assets(
        session, data["transfer_type"], data.get("from_site_id"), asset_ids
    )
    transfer = AssetTransfer(
        challan_no=numbering.next_challan_no(session),
        created_by_id=actor.id,
        items=[AssetTransferItem(asset=asset) for asset in assets],
        **data,
    )
    for asset in assets:
        asset.transfer_status = ASSET_IN_TRANSIT
    return _created(session, transfer, ASSET_TRANSFER, actor)


__all__ = [
    "LISTINGS",
    "create_asset_transfer",
    "create_cashbook",
    "create_cashbook_budget",
    "create_indent",
    "create_purchase_order",
    "delete_document",
    "get_document",
    "list_documents",
    "update_document",
]
