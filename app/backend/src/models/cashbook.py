"""Cashbook voucher models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .mixins import ApprovalTrackedMixin


class Cashbook(ApprovalTrackedMixin, Base):
    """A daily cash voucher for a site."""

    __tablename__ = "cashbooks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    voucher_no: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    voucher_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    site_id: Mapped[int | None] = mapped_column(ForeignKey("sites.id"), index=True)
    attach_voucher_copy_url: Mapped[str | None] = mapped_column(String(512))
    remarks: Mapped[str | None] = mapped_column(Text)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    details: Mapped[list["CashbookDetail"]] = relationship(
        "CashbookDetail",
        back_populates="cashbook",
        cascade="all, delete-orphan",
        order_by="CashbookDetail.id",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_approved_1(self) -> bool:
        """Level-1 flag kept for clients that read cashbooks as two booleans."""

        return self.approved1_by_id is not None

    @property
    def is_approved_2(self) -> bool:
        return self.approved2_by_id is not None


class CashbookDetail(Base):
    """A receipt or payment line of a cashbook voucher."""

    __tablename__ = "cashbook_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cashbook_id: Mapped[int] = mapped_column(ForeignKey("cashbooks.id"), nullable=False, index=True)
    cashbook_head: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    amount_received: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    amount_paid: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    document_url: Mapped[str | None] = mapped_column(String(512))

    cashbook: Mapped["Cashbook"] = relationship("Cashbook", back_populates="details")


__all__ = ["Cashbook", "CashbookDetail"]
