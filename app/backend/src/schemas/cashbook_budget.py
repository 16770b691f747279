"""Pydantic schemas for cashbook budgets."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .workflow import ApprovalFieldsOut, DocumentUpdate

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class CashbookBudgetItemIn(BaseModel):
    cashbook_head: str = Field(min_length=1, max_length=255)
    description: str | None = None
    amount: Decimal = Field(ge=0, le=Decimal("9999999999.99"))


class CashbookBudgetCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    month: str = Field(pattern=MONTH_PATTERN, description="Budget month as YYYY-MM")
    site_id: int | None = None
    attach_copy_url: str | None = Field(default=None, max_length=512)
    items: list[CashbookBudgetItemIn] = Field(min_length=1)


class CashbookBudgetUpdate(DocumentUpdate):
    required_fields = ("name", "month", "items")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    month: str | None = Field(default=None, pattern=MONTH_PATTERN)
    site_id: int | None = None
    attach_copy_url: str | None = Field(default=None, max_length=512)
    items: list[CashbookBudgetItemIn] | None = Field(default=None, min_length=1)


class CashbookBudgetItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cashbook_head: str
    description: str | None
    amount: Decimal
    approved1_amount: Decimal | None
    approved_amount: Decimal | None


class CashbookBudgetOut(ApprovalFieldsOut):
    id: int
    name: str
    month: str
    site_id: int | None
    attach_copy_url: str | None
    total_budget: Decimal
    approved1_budget_amount: Decimal | None
    approved_budget_amount: Decimal | None
    approved1_remarks: str | None
    remarks_for_final_approval: str | None
    items: list[CashbookBudgetItemOut] = []
