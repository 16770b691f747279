"""Entrypoint for the FastAPI application."""

import os

import structlog
from dotenv import load_dotenv

# Load .env locally only; deployments inject env vars
env_path = os.path.join(os.path.dirname(__file__), "../.env")
if os.path.exists(env_path):
    load_dotenv(dotenv_path=os.path.abspath(env_path))

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import (
    access_control,
    asset_transfers,
    auth,
    cashbook_budgets,
    cashbooks,
    health,
    indents,
    purchase_orders,
)
from .core.errors import WorkflowError
from .core.logging import configure_logging

LOGGER = structlog.get_logger(__name__)


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    LOGGER.info(
        "request_rejected",
        path=request.url.path,
        method=request.method,
        reason=exc.code,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in errors
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": message or "Invalid request", "reason": "validation_error", "errors": errors},
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="SiteFlow Back Office", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(WorkflowError, workflow_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(health.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")
    app.include_router(access_control.router, prefix="/api")
    app.include_router(cashbooks.router, prefix="/api")
    app.include_router(cashbook_budgets.router, prefix="/api")
    app.include_router(indents.router, prefix="/api")
    app.include_router(purchase_orders.router, prefix="/api")
    app.include_router(asset_transfers.router, prefix="/api")

    return app


app = create_app()
