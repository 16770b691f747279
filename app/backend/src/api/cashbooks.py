"""Cashbook voucher endpoints."""

from __future__ import annotations

from app.backend.src.schemas.cashbook import CashbookOut, CashbookCreate, CashbookUpdate
from app.backend.src.services.documents import create_cashbook
from app.backend.src.services.workflows import CASHBOOK_WORKFLOW

from .workflow_routes import build_document_router

router = build_document_router(
    CASHBOOK_WORKFLOW,
    prefix="/cashbooks",
    tag="Cashbooks",
    out_schema=CashbookOut,
    create_schema=CashbookCreate,
    update_schema=CashbookUpdate,
    create=create_cashbook,
)

__all__ = ["router"]
