"""Table-driven approval workflow shared by every approvable document.

A :class:`WorkflowDefinition` describes one document type: its model, its
initial state and the :class:`Transition` rows that move it through the
lifecycle. :func:`apply_transition` evaluates the guards of a transition in a
fixed order, applies it in one transaction and records an
:class:`~app.backend.src.models.ApprovalLog` row. :func:`available_actions`
runs the same guard function without mutating anything, so callers can show
exactly the actions the engine would accept.

Guard order:

1. the document exists
2. the actor may access the document's site
3. the action is defined and the current status permits it
4. the actor is not the creator (where self approval is disallowed)
5. the actor did not approve an earlier level
6. the actor holds the transition's permission
7. the expected version matches
8. every item carries a valid value

Nothing is written until every guard has passed.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import (
    BulkLimitError,
    ConflictError,
    InvalidItemValueError,
    InvalidTransitionError,
    MissingItemValueError,
    MissingPermissionError,
    NotFoundError,
    SelfApprovalError,
    SiteAccessError,
    WorkflowError,
    WorkflowValidationError,
)
from app.backend.src.models import ApprovalLog, ApprovalStatus, TERMINAL_STATUSES

from .access import Actor
from .metrics import bulk_batch_size, workflow_transition_seconds, workflow_transitions_total

LOGGER = structlog.get_logger(__name__)

MAX_ITEM_VALUE = Decimal("9999999999.99")

Hook = Callable[[Session, Any, "TransitionContext"], None]


@dataclass(frozen=True)
class Transition:
    """One row of a document type's transition table.

    ``sources=None`` means any non-terminal, non-suspended status and
    ``target=None`` means the status the document was suspended from.
    """

    action: str
    sources: frozenset[ApprovalStatus] | None
    target: ApprovalStatus | None
    permission: str
    stamp: str | None = None
    forbid_creator: bool = False
    forbid_prior: tuple[str, ...] = ()
    item_field: str | None = None
    carry_from: str | None = None
    auto_level_2: bool = False

    def permits(self, status: ApprovalStatus) -> bool:
        if self.sources is None:
            return status not in TERMINAL_STATUSES and status != ApprovalStatus.SUSPENDED
        return status in self.sources


@dataclass(frozen=True)
class WorkflowDefinition:
    """The transition table and hooks of one document type."""

    document_type: str
    model: type
    initial_state: ApprovalStatus
    transitions: Mapping[str, Transition]
    read_permission: str
    edit_permission: str
    items_attr: str | None = "items"
    site_attr: str = "site_id"
    level_2_action: str = "approve2"
    auto_level_2_predicate: Callable[[Any], bool] | None = None
    hooks: Mapping[str, Hook] = field(default_factory=dict)

    def transition(self, action: str) -> Transition:
        try:
            return self.transitions[action]
        except KeyError:
            raise InvalidTransitionError(
                f"Action '{action}' is not defined for {self.document_type}",
                action=action,
            ) from None

    def items_of(self, document: Any) -> list[Any]:
        if not self.items_attr:
            return []
        return list(getattr(document, self.items_attr))


@dataclass(frozen=True)
class ItemValue:
    """A caller-supplied value for one line item."""

    id: int
    value: Any = None
    level_2_value: Any = None


@dataclass
class TransitionContext:
    """What hooks get to see about the transition being applied."""

    action: str
    actor: Actor
    now: datetime
    remarks: str | None = None
    auto_level_2: bool = False


@dataclass
class BulkResult:
    document_type: str
    action: str
    succeeded: list[int] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_type": self.document_type,
            "action": self.action,
            "succeeded": list(self.succeeded),
            "failed": list(self.failed),
            "success_count": self.success_count,
            "failure_count": self.failure_count,
        }


# -------------------------------------------------------
# Guards
# -------------------------------------------------------

def _check_guards(
    definition: WorkflowDefinition,
    action: str,
    document: Any,
    actor: Actor,
) -> Transition:
    """Raise the first failing guard among site, status, self approval and permission."""

    site_id = getattr(document, definition.site_attr, None)
    if not actor.can_access_site(site_id):
        raise SiteAccessError(
            f"You are not assigned to site {site_id}",
            site_id=site_id,
        )

    transition = definition.transition(action)

    if not transition.permits(document.status):
        raise InvalidTransitionError(
            f"Cannot {transition.action} a {definition.document_type} in status "
            f"{document.status.value}",
            action=transition.action,
            status=document.status.value,
        )

    if transition.forbid_creator and document.created_by_id == actor.id:
        raise SelfApprovalError(
            f"The creator of a {definition.document_type} cannot {transition.action} it",
            action=transition.action,
        )

    for stamp in transition.forbid_prior:
        if getattr(document, f"{stamp}_by_id") == actor.id:
            raise SelfApprovalError(
                f"The {stamp} approver cannot also {transition.action} this "
                f"{definition.document_type}",
                action=transition.action,
            )

    if not actor.has(transition.permission):
        raise MissingPermissionError(
            f"Missing permission {transition.permission}",
            permission=transition.permission,
        )
    return transition


def _auto_level_2_applies(
    definition: WorkflowDefinition,
    transition: Transition,
    document: Any,
    actor: Actor,
) -> bool:
    if not transition.auto_level_2 or definition.level_2_action not in definition.transitions:
        return False
    level_2 = definition.transitions[definition.level_2_action]
    if actor.auto_approves_level_2 and actor.has(level_2.permission):
        return True
    predicate = definition.auto_level_2_predicate
    return bool(predicate and predicate(document))


def _coerce_value(raw: Any, item_id: int) -> Decimal:
    if isinstance(raw, bool):
        raise InvalidItemValueError(f"Item {item_id} value must be numeric", item_id=item_id)
    try:
        value = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise InvalidItemValueError(
            f"Item {item_id} value must be numeric", item_id=item_id
        ) from None
    if not value.is_finite():
        raise InvalidItemValueError(f"Item {item_id} value must be numeric", item_id=item_id)
    if value < 0:
        raise InvalidItemValueError(f"Item {item_id} value cannot be negative", item_id=item_id)
    if value > MAX_ITEM_VALUE:
        raise InvalidItemValueError(
            f"Item {item_id} value exceeds {MAX_ITEM_VALUE}", item_id=item_id
        )
    return value


def _resolve_item_values(
    definition: WorkflowDefinition,
    transition: Transition,
    document: Any,
    supplied: Sequence[ItemValue] | None,
    *,
    carry_forward: bool,
) -> dict[int, tuple[Decimal, Decimal | None]]:
    """Return ``{item_id: (value, level_2_value)}`` for every item of the document."""

    items = {item.id: item for item in definition.items_of(document)}
    by_id: dict[int, ItemValue] = {}
    for entry in supplied or ():
        if entry.id not in items:
            raise NotFoundError(
                f"Item {entry.id} does not belong to this {definition.document_type}",
                item_id=entry.id,
            )
        if entry.id in by_id:
            raise InvalidItemValueError(f"Item {entry.id} appears more than once", item_id=entry.id)
        by_id[entry.id] = entry

    resolved: dict[int, tuple[Decimal, Decimal | None]] = {}
    missing: list[int] = []
    for item_id, item in items.items():
        entry = by_id.get(item_id)
        raw = entry.value if entry is not None else None
        if raw is None and carry_forward and transition.carry_from:
            raw = getattr(item, transition.carry_from)
        if raw is None:
            missing.append(item_id)
            continue
        level_2_raw = entry.level_2_value if entry is not None else None
        resolved[item_id] = (
            _coerce_value(raw, item_id),
            _coerce_value(level_2_raw, item_id) if level_2_raw is not None else None,
        )

    if missing:
        raise MissingItemValueError(
            "An approved value is required for every item",
            item_ids=missing,
        )
    return resolved


# -------------------------------------------------------
# Application
# -------------------------------------------------------

def _stamp(document: Any, stamp: str | None, actor: Actor, now: datetime) -> None:
    if stamp:
        setattr(document, f"{stamp}_by_id", actor.id)
        setattr(document, f"{stamp}_at", now)


def _log(
    session: Session,
    definition: WorkflowDefinition,
    document: Any,
    action: str,
    from_status: ApprovalStatus,
    to_status: ApprovalStatus,
    context: TransitionContext,
) -> None:
    session.add(
        ApprovalLog(
            document_type=definition.document_type,
            document_id=document.id,
            action=action,
            from_status=from_status,
            to_status=to_status,
            actor_id=context.actor.id,
            remarks=context.remarks,
            created_at=context.now,
        )
    )


def _mutate(
    session: Session,
    definition: WorkflowDefinition,
    transition: Transition,
    document: Any,
    values: dict[int, tuple[Decimal, Decimal | None]],
    context: TransitionContext,
) -> ApprovalStatus:
    from_status = document.status
    if transition.target is None:
        target = document.suspended_from_status or definition.initial_state
        document.suspended_from_status = None
    else:
        target = transition.target
        if target == ApprovalStatus.SUSPENDED:
            document.suspended_from_status = from_status

    _stamp(document, transition.stamp, context.actor, context.now)
    if transition.item_field:
        for item in definition.items_of(document):
            setattr(item, transition.item_field, values[item.id][0])
    document.status = target

    hook = definition.hooks.get(transition.action)
    if hook is not None:
        hook(session, document, context)
    _log(session, definition, document, transition.action, from_status, target, context)

    if context.auto_level_2:
        level_2 = definition.transitions[definition.level_2_action]
        _stamp(document, level_2.stamp, context.actor, context.now)
        if level_2.item_field:
            for item in definition.items_of(document):
                value, level_2_value = values[item.id]
                setattr(item, level_2.item_field, level_2_value if level_2_value is not None else value)
        document.status = level_2.target
        hook = definition.hooks.get(level_2.action)
        if hook is not None:
            hook(session, document, context)
        _log(session, definition, document, level_2.action, target, level_2.target, context)
        target = level_2.target

    return target


def apply_transition(
    session: Session,
    definition: WorkflowDefinition,
    document_id: int,
    action: str,
    actor: Actor,
    *,
    items: Sequence[ItemValue] | None = None,
    remarks: str | None = None,
    expected_version: int | None = None,
    carry_forward: bool = False,
    now: datetime | None = None,
) -> Any:
    """Apply ``action`` to a document and commit, or raise without writing."""

    started = time.perf_counter()
    log = LOGGER.bind(
        document_type=definition.document_type,
        document_id=document_id,
        action=action,
        actor_id=actor.id,
    )
    try:
        document = session.get(definition.model, document_id)
        if document is None:
            raise NotFoundError(
                f"{definition.document_type} {document_id} not found",
                document_id=document_id,
            )
        transition = _check_guards(definition, action, document, actor)

        if expected_version is not None and document.version != expected_version:
            raise ConflictError(
                f"{definition.document_type} {document_id} was modified by someone else",
                expected_version=expected_version,
                current_version=document.version,
            )

        values: dict[int, tuple[Decimal, Decimal | None]] = {}
        if transition.item_field:
            values = _resolve_item_values(
                definition, transition, document, items, carry_forward=carry_forward
            )

        context = TransitionContext(
            action=action,
            actor=actor,
            now=now or datetime.now(timezone.utc),
            remarks=remarks,
            auto_level_2=_auto_level_2_applies(definition, transition, document, actor),
        )
        from_status = document.status
        to_status = _mutate(session, definition, transition, document, values, context)

        try:
            session.flush()
        except StaleDataError as exc:
            raise ConflictError(
                f"{definition.document_type} {document_id} was modified by someone else",
            ) from exc
        session.commit()
        session.refresh(document)
    except WorkflowError as exc:
        session.rollback()
        workflow_transitions_total.labels(definition.document_type, action, exc.code).inc()
        log.info("workflow_transition_rejected", reason=exc.code, detail=exc.message)
        raise
    except Exception:
        session.rollback()
        workflow_transitions_total.labels(definition.document_type, action, "error").inc()
        raise
    finally:
        workflow_transition_seconds.labels(definition.document_type).observe(
            time.perf_counter() - started
        )

    workflow_transitions_total.labels(definition.document_type, action, "success").inc()
    log.info(
        "workflow_transition_applied",
        from_status=from_status.value,
        to_status=to_status.value,
        auto_level_2=context.auto_level_2,
    )
    return document


def normalize_bulk_ids(ids: Iterable[Any], *, limit: int | None = None) -> list[int]:
    """Deduplicate ``ids`` preserving order and enforce the batch limit."""

    limit = limit if limit is not None else get_settings().bulk_action_limit
    unique: list[int] = []
    for raw in ids:
        if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
            raise WorkflowValidationError(f"Invalid document id: {raw!r}", document_id=raw)
        if raw not in unique:
            unique.append(raw)
    if not unique:
        raise WorkflowValidationError("At least one document id is required")
    if len(unique) > limit:
        raise BulkLimitError(
            f"A bulk action accepts at most {limit} documents",
            limit=limit,
            received=len(unique),
        )
    return unique


def bulk_apply(
    session_factory: Callable[[], AbstractContextManager[Session]],
    definition: WorkflowDefinition,
    ids: Iterable[Any],
    action: str,
    actor: Actor,
    *,
    remarks: str | None = None,
    limit: int | None = None,
) -> BulkResult:
    """Apply ``action`` to each id in its own session and transaction.

    A failing id is reported and does not affect the others. Item values are
    carried forward from the previous level.
    """

    document_ids = normalize_bulk_ids(ids, limit=limit)
    definition.transition(action)
    bulk_batch_size.labels(definition.document_type).observe(len(document_ids))

    result = BulkResult(document_type=definition.document_type, action=action)
    for document_id in document_ids:
        try:
            with session_factory() as session:
                apply_transition(
                    session,
                    definition,
                    document_id,
                    action,
                    actor,
                    remarks=remarks,
                    carry_forward=True,
                )
        except WorkflowError as exc:
            result.failed.append(
                {"id": document_id, "reason": exc.code, "detail": exc.message}
            )
        except Exception:
            LOGGER.exception(
                "bulk_transition_item_failed",
                document_type=definition.document_type,
                document_id=document_id,
                action=action,
            )
            result.failed.append(
                {"id": document_id, "reason": "internal_error", "detail": "Unexpected error"}
            )
        else:
            result.succeeded.append(document_id)

    LOGGER.info(
        "bulk_transition_finished",
        document_type=definition.document_type,
        action=action,
        actor_id=actor.id,
        success_count=result.success_count,
        failure_count=result.failure_count,
    )
    return result


def available_actions(definition: WorkflowDefinition, document: Any, actor: Actor) -> list[str]:
    """Return the actions whose site, status, self approval and permission guards pass."""

    allowed: list[str] = []
    for action in definition.transitions:
        try:
            _check_guards(definition, action, document, actor)
        except WorkflowError:
            continue
        allowed.append(action)
    return allowed


__all__ = [
    "BulkResult",
    "ItemValue",
    "MAX_ITEM_VALUE",
    "Transition",
    "TransitionContext",
    "WorkflowDefinition",
    "apply_transition",
    "available_actions",
    "bulk_apply",
    "normalize_bulk_ids",
]
