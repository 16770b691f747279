"""Asset transfer endpoints."""

from __future__ import annotations

from app.backend.src.schemas.asset_transfer import AssetTransferOut, AssetTransferCreate, AssetTransferUpdate
from app.backend.src.services.documents import create_asset_transfer
from app.backend.src.services.workflows import ASSET_TRANSFER_WORKFLOW

from .workflow_routes import build_document_router

router = build_document_router(
    ASSET_TRANSFER_WORKFLOW,
    prefix="/asset-transfers",
    tag="Asset Transfers",
    out_schema=AssetTransferOut,
    create_schema=AssetTransferCreate,
    update_schema=AssetTransferUpdate,
    create=create_asset_transfer,
)

__all__ = ["router"]
