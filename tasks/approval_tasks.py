"""Celery tasks running workflow transitions off the request path."""

from __future__ import annotations

from typing import Any

import structlog

from app.backend.src.core.errors import NotFoundError
from app.backend.src.db import session_scope
from app.backend.src.services.access import get_user, resolve_actor
from app.backend.src.services.approval_engine import bulk_apply
from app.backend.src.services.workflows import get_workflow

from .worker import celery

LOGGER = structlog.get_logger(__name__)


@celery.task(name="tasks.bulk_transition")
def bulk_transition(
    document_type: str,
    ids: list[int],
    action: str,
    actor_id: int,
    remarks: str | None = None,
) -> dict[str, Any]:
    """Apply ``action`` to every id and return the bulk summary.

    The actor is resolved again when the task runs, so permission changes
    made after queueing apply.
    """

    definition = get_workflow(document_type)
    with session_scope() as session:
        user = get_user(session, actor_id)
        if not user.is_active:
            raise NotFoundError(f"User {actor_id} is not active", user_id=actor_id)
        actor = resolve_actor(session, user)

    result = bulk_apply(session_scope, definition, ids, action, actor, remarks=remarks)
    LOGGER.info(
        "bulk_transition_task_finished",
        document_type=document_type,
        action=action,
        actor_id=actor_id,
        success_count=result.success_count,
        failure_count=result.failure_count,
    )
    return result.to_dict()


__all__ = ["bulk_transition"]
