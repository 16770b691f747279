"""Pydantic schemas for cashbooks."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .workflow import ApprovalFieldsOut, DocumentUpdate


class CashbookDetailIn(BaseModel):
    cashbook_head: str = Field(min_length=1, max_length=255)
    description: str | None = None
    amount_received: Decimal | None = Field(default=None, ge=0)
    amount_paid: Decimal | None = Field(default=None, ge=0)
    document_url: str | None = Field(default=None, max_length=512)

    @model_validator(mode="after")
    def _one_amount(self) -> "CashbookDetailIn":
        if self.amount_received is None and self.amount_paid is None:
            raise ValueError("Either amount_received or amount_paid is required")
        return self


class CashbookCreate(BaseModel):
    voucher_date: date
    site_id: int | None = None
    attach_voucher_copy_url: str | None = Field(default=None, max_length=512)
    remarks: str | None = None
    details: list[CashbookDetailIn] = Field(min_length=1)


class CashbookUpdate(DocumentUpdate):
    required_fields = ("voucher_date", "details")

    voucher_date: date | None = None
    site_id: int | None = None
    attach_voucher_copy_url: str | None = Field(default=None, max_length=512)
    remarks: str | None = None
    details: list[CashbookDetailIn] | None = Field(default=None, min_length=1)


class CashbookDetailOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cashbook_head: str
    description: str | None
    amount_received: Decimal | None
    amount_paid: Decimal | None
    document_url: str | None


class CashbookOut(ApprovalFieldsOut):
    id: int
    voucher_no: str
    voucher_date: date
    site_id: int | None
    attach_voucher_copy_url: str | None
    remarks: str | None
    is_approved_1: bool
    is_approved_2: bool
    details: list[CashbookDetailOut] = []
