"""Pydantic schemas for indents."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .workflow import ApprovalFieldsOut, DocumentUpdate

Priority = Literal["LOW", "MEDIUM", "HIGH", "URGENT"]


class IndentItemIn(BaseModel):
    item_name: str = Field(min_length=1, max_length=255)
    unit: str | None = Field(default=None, max_length=32)
    remark: str | None = None
    indent_qty: Decimal = Field(ge=0)


class IndentCreate(BaseModel):
    indent_date: date
    delivery_date: date
    site_id: int
    priority: Priority = "LOW"
    remarks: str | None = None
    items: list[IndentItemIn] = Field(min_length=1)

    @model_validator(mode="after")
    def _delivery_after_indent(self) -> "IndentCreate":
        if self.delivery_date < self.indent_date:
            raise ValueError("delivery_date cannot be before indent_date")
        return self


class IndentUpdate(DocumentUpdate):
    required_fields = ("indent_date", "delivery_date", "site_id", "priority", "items")

    indent_date: date | None = None
    delivery_date: date | None = None
    site_id: int | None = None
    priority: Priority | None = None
    remarks: str | None = None
    items: list[IndentItemIn] | None = Field(default=None, min_length=1)


class IndentItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_name: str
    unit: str | None
    remark: str | None
    indent_qty: Decimal
    approved1_qty: Decimal | None
    approved2_qty: Decimal | None


class IndentOut(ApprovalFieldsOut):
    id: int
    indent_no: str
    indent_date: date
    delivery_date: date
    site_id: int
    priority: str
    remarks: str | None
    items: list[IndentItemOut] = []
