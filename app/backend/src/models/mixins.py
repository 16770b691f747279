"""Columns shared by approvable documents."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from .status import ApprovalStatus

_STATUS_TYPE = Enum(
    ApprovalStatus,
    native_enum=False,
    length=32,
    validate_strings=True,
)


class ApprovalTrackedMixin:
    """Status, audit actors and timestamps of an approvable document.

    Each ``*_by_id`` column is written together with its ``*_at``
    timestamp by the workflow transition that owns it.
    """

    status: Mapped[ApprovalStatus] = mapped_column(
        _STATUS_TYPE, nullable=False, default=ApprovalStatus.DRAFT, index=True
    )
    suspended_from_status: Mapped[ApprovalStatus | None] = mapped_column(
        _STATUS_TYPE, nullable=True
    )

    created_by_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    approved1_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    approved1_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved2_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    approved2_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    suspended_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    suspended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    decided_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @property
    def is_suspended(self) -> bool:
        return self.status == ApprovalStatus.SUSPENDED


__all__ = ["ApprovalTrackedMixin"]
