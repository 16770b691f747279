"""Pydantic schemas for asset transfers."""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .workflow import ApprovalFieldsOut, DocumentUpdate

TransferType = Literal["New Assign", "Transfer"]


class AssetTransferCreate(BaseModel):
    challan_date: date
    transfer_type: TransferType
    from_site_id: int | None = None
    to_site_id: int
    challan_copy_url: str | None = Field(default=None, max_length=512)
    remarks: str | None = None
    asset_ids: list[int] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_sites(self) -> "AssetTransferCreate":
        if self.transfer_type == "Transfer":
            if self.from_site_id is None:
                raise ValueError("from_site_id is required for a Transfer")
            if self.from_site_id == self.to_site_id:
                raise ValueError("from_site_id and to_site_id must differ")
        else:
            self.from_site_id = None
        return self


class AssetTransferUpdate(DocumentUpdate):
    required_fields = ("challan_date", "asset_ids")

    challan_date: date | None = None
    challan_copy_url: str | None = Field(default=None, max_length=512)
    remarks: str | None = None
    asset_ids: list[int] | None = Field(default=None, min_length=1)


class AssetTransferItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    asset_id: int


class AssetTransferOut(ApprovalFieldsOut):
    id: int
    challan_no: str
    challan_date: date
    transfer_type: str
    from_site_id: int | None
    to_site_id: int
    challan_copy_url: str | None
    remarks: str | None
    items: list[AssetTransferItemOut] = []
