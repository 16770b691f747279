"""Router factory shared by every approvable document type.

Each document router is the same set of endpoints bound to a different
:class:`~app.backend.src.services.approval_engine.WorkflowDefinition`, so the
route handlers are declared inside :func:`build_document_router` with the
document's schemas as their annotations.
"""

from collections.abc import Callable
from typing import Annotated, Any, Literal

import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.backend.src.core.security import get_current_actor, require_permission
from app.backend.src.db import get_session_dependency, session_scope
from app.backend.src.models.status import ApprovalStatus
from app.backend.src.schemas.workflow import (
    ActionRequest,
    BulkActionRequest,
    BulkActionResponse,
    PageOut,
)
from app.backend.src.services import documents
from app.backend.src.services.access import Actor
from app.backend.src.services.approval_engine import (
    ItemValue,
    WorkflowDefinition,
    apply_transition,
    available_actions,
    bulk_apply,
    normalize_bulk_ids,
)
from tasks.approval_tasks import bulk_transition

LOGGER = structlog.get_logger(__name__)

SessionDep = Annotated[Session, Depends(get_session_dependency)]
ActorDep = Annotated[Actor, Depends(get_current_actor)]


def build_document_router(
    definition: WorkflowDefinition,
    *,
    prefix: str,
    tag: str,
    out_schema: type[BaseModel],
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    create: Callable[[Session, Actor, BaseModel], Any],
) -> APIRouter:
    """Return the CRUD, action and bulk-action routes for one document type."""

    router = APIRouter(prefix=prefix, tags=[tag])
    can_read = require_permission(definition.read_permission)
    can_edit = require_permission(definition.edit_permission)

    def serialize(document: Any, actor: Actor) -> BaseModel:
        out = out_schema.model_validate(document)
        out.allowed_actions = available_actions(definition, document, actor)
        return out

    @router.get("", response_model=PageOut[out_schema])
    def list_documents(
        session: SessionDep,
        actor: Annotated[Actor, Depends(can_read)],
        page: int = Query(1, ge=1),
        per_page: int | None = Query(None, ge=1),
        search: str | None = None,
        status_filter: ApprovalStatus | None = Query(None, alias="status"),
        site_id: int | None = None,
        sort: str | None = None,
        order: Literal["asc", "desc"] = "desc",
    ) -> dict[str, Any]:
        result = documents.list_documents(
            session,
            definition,
            actor,
            page=page,
            per_page=per_page,
            search=search,
            status=status_filter,
            site_id=site_id,
            sort=sort,
            order=order,
        )
        return {
            "data": [serialize(document, actor) for document in result.data],
            "page": result.page,
            "per_page": result.per_page,
            "total": result.total,
            "total_pages": result.total_pages,
        }

    @router.get("/{document_id}", response_model=out_schema)
    def read_document(
        document_id: int,
        session: SessionDep,
        actor: Annotated[Actor, Depends(can_read)],
    ) -> BaseModel:
        return serialize(documents.get_document(session, definition, document_id, actor), actor)

    @router.post("", response_model=out_schema, status_code=status.HTTP_201_CREATED)
    def create_document(
        payload: create_schema,
        session: SessionDep,
        actor: Annotated[Actor, Depends(can_edit)],
    ) -> BaseModel:
        return serialize(create(session, actor, payload), actor)

    @router.patch("/{document_id}", response_model=out_schema)
    def update_document(
        document_id: int,
        payload: update_schema,
        session: SessionDep,
        actor: Annotated[Actor, Depends(can_edit)],
    ) -> BaseModel:
        document = documents.update_document(session, definition, document_id, actor, payload)
        return serialize(document, actor)

    @router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_document(
        document_id: int,
        session: SessionDep,
        actor: Annotated[Actor, Depends(can_edit)],
    ) -> Response:
        documents.delete_document(session, definition, document_id, actor)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.post("/{document_id}/actions", response_model=out_schema)
    def apply_action(
        document_id: int,
        payload: ActionRequest,
        session: SessionDep,
        actor: ActorDep,
    ) -> BaseModel:
        items = None
        if payload.items is not None:
            items = [
                ItemValue(id=item.id, value=item.value, level_2_value=item.level_2_value)
                for item in payload.items
            ]
        document = apply_transition(
            session,
            definition,
            document_id,
            payload.action,
            actor,
            items=items,
            remarks=payload.remarks,
            expected_version=payload.expected_version,
        )
        return serialize(document, actor)

    @router.post("/bulk-actions", response_model=BulkActionResponse)
    def apply_bulk_action(payload: BulkActionRequest, actor: ActorDep) -> Any:
        ids = normalize_bulk_ids(payload.ids)
        definition.transition(payload.action)

        if payload.defer:
            task = bulk_transition.apply_async(
                kwargs={
                    "document_type": definition.document_type,
                    "ids": ids,
                    "action": payload.action,
                    "actor_id": actor.id,
                    "remarks": payload.remarks,
                }
            )
            LOGGER.info(
                "bulk_transition_queued",
                document_type=definition.document_type,
                action=payload.action,
                task_id=task.id,
                count=len(ids),
            )
            return JSONResponse(
                status_code=status.HTTP_202_ACCEPTED,
                content={"task_id": task.id, "status": "queued"},
            )

        result = bulk_apply(
            session_scope, definition, ids, payload.action, actor, remarks=payload.remarks
        )
        return result.to_dict()

    return router


__all__ = ["build_document_router"]
