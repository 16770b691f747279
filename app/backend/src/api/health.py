"""Liveness, readiness and metrics endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import get_session_dependency
from ..services.workflows import WORKFLOWS

router = APIRouter(tags=["health"])

LOGGER = structlog.get_logger(__name__)


@router.get("/health/live")
def liveness() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health/ready")
def readiness(session: Session = Depends(get_session_dependency)) -> dict[str, object]:
    """Report ready once the database answers and list the served document types."""

    try:
        session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        LOGGER.error("readiness_database_unavailable", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        ) from exc
    return {"status": "ready", "document_types": sorted(WORKFLOWS)}


@router.get("/metrics")
def metrics() -> Response:
    """Expose workflow transition counters and latencies to Prometheus."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
