"""Material indent endpoints."""

from __future__ import annotations

from app.backend.src.schemas.indent import IndentOut, IndentCreate, IndentUpdate
from app.backend.src.services.documents import create_indent
from app.backend.src.services.workflows import INDENT_WORKFLOW

from .workflow_routes import build_document_router

router = build_document_router(
    INDENT_WORKFLOW,
    prefix="/indents",
    tag="Indents",
    out_schema=IndentOut,
    create_schema=IndentCreate,
    update_schema=IndentUpdate,
    create=create_indent,
)

__all__ = ["router"]
