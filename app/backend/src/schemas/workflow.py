"""Schemas shared by every approvable document."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.backend.src.models.status import ApprovalStatus

T = TypeVar("T")


class DocumentUpdate(BaseModel):
    """Partial update of a draft document.

    Omitted fields keep their stored value. Fields listed in ``required_fields``
    may be omitted but never cleared with an explicit null, and unknown fields
    are rejected so immutable columns cannot be smuggled in.
    """

    model_config = ConfigDict(extra="forbid")

    required_fields: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def _no_null_required(self) -> "DocumentUpdate":
        cleared = [
            name for name in self.required_fields if name in self.model_fields_set and getattr(self, name) is None
        ]
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self


class ApprovalFieldsOut(BaseModel):
    """Status, audit stamps and row version of a document."""

    model_config = ConfigDict(from_attributes=True)

    status: ApprovalStatus
    suspended_from_status: ApprovalStatus | None = None
    created_by_id: int
    created_at: datetime | None = None
    updated_by_id: int | None = None
    updated_at: datetime | None = None
    approved1_by_id: int | None = None
    approved1_at: datetime | None = None
    approved2_by_id: int | None = None
    approved2_at: datetime | None = None
    completed_by_id: int | None = None
    completed_at: datetime | None = None
    suspended_by_id: int | None = None
    suspended_at: datetime | None = None
    decided_by_id: int | None = None
    decided_at: datetime | None = None
    version: int
    allowed_actions: list[str] = Field(default_factory=list)


class ActionItem(BaseModel):
    """Approved value for one line item.

    Quantity based documents send ``approved_qty``, budgets send
    ``approved_amount``. ``level_2_value`` only matters when approving level 1
    also grants level 2.
    """

    id: int
    approved_qty: Decimal | None = None
    approved_amount: Decimal | None = None
    level_2_value: Decimal | None = None

    @property
    def value(self) -> Decimal | None:
        return self.approved_qty if self.approved_qty is not None else self.approved_amount


class ActionRequest(BaseModel):
    action: str = Field(min_length=1, max_length=50)
    items: list[ActionItem] | None = None
    remarks: str | None = Field(default=None, max_length=2000)
    expected_version: int | None = None


class BulkActionRequest(BaseModel):
    ids: list[int] = Field(min_length=1)
    action: str = Field(min_length=1, max_length=50)
    remarks: str | None = Field(default=None, max_length=2000)
    defer: bool = False


class BulkFailure(BaseModel):
    id: int
    reason: str
    detail: str


class BulkActionResponse(BaseModel):
    succeeded: list[int]
    failed: list[BulkFailure]
    success_count: int
    failure_count: int


class BulkQueuedResponse(BaseModel):
    task_id: str
    status: str = "queued"


class PageOut(BaseModel, Generic[T]):
    data: list[T]
    page: int
    per_page: int
    total: int
    total_pages: int
