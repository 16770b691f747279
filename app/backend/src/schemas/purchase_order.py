"""Pydantic schemas for purchase orders."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .workflow import ApprovalFieldsOut, DocumentUpdate


class PurchaseOrderDetailIn(BaseModel):
    item_name: str = Field(min_length=1, max_length=255)
    remark: str | None = None
    qty: Decimal = Field(gt=0)
    rate: Decimal = Field(ge=0)


class PurchaseOrderCreate(BaseModel):
    purchase_order_date: date
    delivery_date: date | None = None
    site_id: int
    vendor_name: str = Field(min_length=1, max_length=255)
    remarks: str | None = None
    items: list[PurchaseOrderDetailIn] = Field(min_length=1)


class PurchaseOrderUpdate(DocumentUpdate):
    required_fields = ("purchase_order_date", "vendor_name", "items")

    purchase_order_date: date | None = None
    delivery_date: date | None = None
    vendor_name: str | None = Field(default=None, min_length=1, max_length=255)
    remarks: str | None = None
    items: list[PurchaseOrderDetailIn] | None = Field(default=None, min_length=1)


class PurchaseOrderDetailOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    serial_no: int
    item_name: str
    remark: str | None
    qty: Decimal
    rate: Decimal
    amount: Decimal
    approved1_qty: Decimal | None
    approved2_qty: Decimal | None


class PurchaseOrderOut(ApprovalFieldsOut):
    id: int
    purchase_order_no: str
    purchase_order_date: date
    delivery_date: date | None
    site_id: int
    vendor_name: str
    amount: Decimal
    remarks: str | None
    items: list[PurchaseOrderDetailOut] = []
