"""Purchase order endpoints."""

from __future__ import annotations

from app.backend.src.schemas.purchase_order import PurchaseOrderOut, PurchaseOrderCreate, PurchaseOrderUpdate
from app.backend.src.services.documents import create_purchase_order
from app.backend.src.services.workflows import PURCHASE_ORDER_WORKFLOW

from .workflow_routes import build_document_router

router = build_document_router(
    PURCHASE_ORDER_WORKFLOW,
    prefix="/purchase-orders",
    tag="Purchase Orders",
    out_schema=PurchaseOrderOut,
    create_schema=PurchaseOrderCreate,
    update_schema=PurchaseOrderUpdate,
    create=create_purchase_order,
)

__all__ = ["router"]
