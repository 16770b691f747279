"""Public API routers exposed by the FastAPI application."""

from . import (
    access_control,
    asset_transfers,
    auth,
    cashbook_budgets,
    cashbooks,
    health,
    indents,
    purchase_orders,
)

__all__ = [
    "access_control",
    "asset_transfers",
    "auth",
    "cashbook_budgets",
    "cashbooks",
    "health",
    "indents",
    "purchase_orders",
]
