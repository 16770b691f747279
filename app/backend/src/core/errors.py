"""Typed errors raised by the approval workflow and document services.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer answers with. They are raised before any mutation is applied, so a
caller receiving one can assume the document is unchanged.

    WorkflowError
    +-- NotFoundError                 404 not_found
    +-- InvalidTransitionError        400 invalid_transition
    |   +-- DocumentLockedError       400 document_locked
    +-- ForbiddenError                403 forbidden
    |   +-- SelfApprovalError         403 self_approval_forbidden
    |   +-- MissingPermissionError    403 missing_permission
    |   +-- SiteAccessError           403 site_access_forbidden
    +-- WorkflowValidationError       400 validation_error
    |   +-- MissingItemValueError     400 missing_item_value
    |   +-- InvalidItemValueError     400 invalid_item_value
    |   +-- BulkLimitError            400 bulk_limit_exceeded
    +-- ConflictError                 409 conflict
"""

from __future__ import annotations

from typing import Any


class WorkflowError(Exception):
    """Base class for workflow and document errors."""

    code = "workflow_error"
    status_code = 400

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "reason": self.code}


class NotFoundError(WorkflowError):
    code = "not_found"
    status_code = 404


class InvalidTransitionError(WorkflowError):
    code = "invalid_transition"
    status_code = 400


class DocumentLockedError(InvalidTransitionError):
    """The document has left its editable state."""

    code = "document_locked"


class ForbiddenError(WorkflowError):
    code = "forbidden"
    status_code = 403


class SelfApprovalError(ForbiddenError):
    """The actor created the document or approved an earlier level."""

    code = "self_approval_forbidden"


class MissingPermissionError(ForbiddenError):
    code = "missing_permission"

    def __init__(self, message: str, *, permission: str, **context: Any) -> None:
        super().__init__(message, permission=permission, **context)
        self.permission = permission


class SiteAccessError(ForbiddenError):
    code = "site_access_forbidden"


class WorkflowValidationError(WorkflowError):
    code = "validation_error"
    status_code = 400


class MissingItemValueError(WorkflowValidationError):
    code = "missing_item_value"

    def __init__(self, message: str, *, item_ids: list[int], **context: Any) -> None:
        super().__init__(message, item_ids=item_ids, **context)
        self.item_ids = item_ids


class InvalidItemValueError(WorkflowValidationError):
    code = "invalid_item_value"


class BulkLimitError(WorkflowValidationError):
    code = "bulk_limit_exceeded"


class ConflictError(WorkflowError):
    code = "conflict"
    status_code = 409


__all__ = [
    "BulkLimitError",
    "ConflictError",
    "DocumentLockedError",
    "ForbiddenError",
    "InvalidItemValueError",
    "InvalidTransitionError",
    "MissingItemValueError",
    "MissingPermissionError",
    "NotFoundError",
    "SelfApprovalError",
    "SiteAccessError",
    "WorkflowError",
    "WorkflowValidationError",
]
