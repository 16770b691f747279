"""Cashbook budget endpoints."""

from __future__ import annotations

from app.backend.src.schemas.cashbook_budget import CashbookBudgetOut, CashbookBudgetCreate, CashbookBudgetUpdate
from app.backend.src.services.documents import create_cashbook_budget
from app.backend.src.services.workflows import CASHBOOK_BUDGET_WORKFLOW

from .workflow_routes import build_document_router

router = build_document_router(
    CASHBOOK_BUDGET_WORKFLOW,
    prefix="/cashbook-budgets",
    tag="Cashbook Budgets",
    out_schema=CashbookBudgetOut,
    create_schema=CashbookBudgetCreate,
    update_schema=CashbookBudgetUpdate,
    create=create_cashbook_budget,
)

__all__ = ["router"]
