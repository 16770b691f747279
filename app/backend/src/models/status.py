"""Approval status enumeration shared by every approvable document."""

from __future__ import annotations

import enum


class ApprovalStatus(str, enum.Enum):
    """Lifecycle state of an approvable document."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED_LEVEL_1 = "APPROVED_LEVEL_1"
    APPROVED_LEVEL_2 = "APPROVED_LEVEL_2"
    COMPLETED = "COMPLETED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"


TERMINAL_STATUSES: frozenset[ApprovalStatus] = frozenset(
    {ApprovalStatus.COMPLETED, ApprovalStatus.ACCEPTED, ApprovalStatus.REJECTED}
)


__all__ = ["ApprovalStatus", "TERMINAL_STATUSES"]
