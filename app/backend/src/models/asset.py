"""Asset and asset transfer models."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .mixins import ApprovalTrackedMixin
from .status import ApprovalStatus

ASSET_AVAILABLE = "Available"
ASSET_IN_TRANSIT = "In Transit"
ASSET_ASSIGNED = "Assigned"

TRANSFER_NEW_ASSIGNMENT = "New Assign"
TRANSFER_SITE_TO_SITE = "Transfer"


class Asset(Base):
    """A movable asset tracked by site."""

    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    asset_no: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    asset_name: Mapped[str] = mapped_column(String(255), nullable=False)
    current_site_id: Mapped[int | None] = mapped_column(ForeignKey("sites.id"), index=True)
    transfer_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ASSET_AVAILABLE
    )


class AssetTransfer(ApprovalTrackedMixin, Base):
    """A challan moving assets to a site, accepted or rejected once."""

    __tablename__ = "asset_transfers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    challan_no: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    challan_date: Mapped[date] = mapped_column(Date, nullable=False)
    transfer_type: Mapped[str] = mapped_column(String(32), nullable=False)
    from_site_id: Mapped[int | None] = mapped_column(ForeignKey("sites.id"))
    to_site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False, index=True)
    challan_copy_url: Mapped[str | None] = mapped_column(String(512))
    remarks: Mapped[str | None] = mapped_column(Text)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    items: Mapped[list["AssetTransferItem"]] = relationship(
        "AssetTransferItem",
        back_populates="transfer",
        cascade="all, delete-orphan",
        order_by="AssetTransferItem.id",
    )

    __mapper_args__ = {"version_id_col": version}

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("status", ApprovalStatus.PENDING)
        super().__init__(**kwargs)


class AssetTransferItem(Base):
    __tablename__ = "asset_transfer_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transfer_id: Mapped[int] = mapped_column(
        ForeignKey("asset_transfers.id"), nullable=False, index=True
    )
    asset_id: Mapped[int] = mapped_column(ForeignKey("assets.id"), nullable=False, index=True)

    transfer: Mapped["AssetTransfer"] = relationship("AssetTransfer", back_populates="items")
    asset: Mapped["Asset"] = relationship("Asset")


__all__ = [
    "ASSET_ASSIGNED",
    "ASSET_AVAILABLE",
    "ASSET_IN_TRANSIT",
    "Asset",
    "AssetTransfer",
    "AssetTransferItem",
    "TRANSFER_NEW_ASSIGNMENT",
    "TRANSFER_SITE_TO_SITE",
]
