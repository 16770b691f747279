"""Material indent models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .mixins import ApprovalTrackedMixin


class Indent(ApprovalTrackedMixin, Base):
    """A site's request for materials."""

    __tablename__ = "indents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    indent_no: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    indent_date: Mapped[date] = mapped_column(Date, nullable=False)
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    site_id: Mapped[int] = mapped_column(ForeignKey("sites.id"), nullable=False, index=True)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="LOW")
    remarks: Mapped[str | None] = mapped_column(Text)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    items: Mapped[list["IndentItem"]] = relationship(
        "IndentItem",
        back_populates="indent",
        cascade="all, delete-orphan",
        order_by="IndentItem.id",
    )

    __mapper_args__ = {"version_id_col": version}


class IndentItem(Base):
    """One requested material with its approved quantities."""

    __tablename__ = "indent_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    indent_id: Mapped[int] = mapped_column(ForeignKey("indents.id"), nullable=False, index=True)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(32))
    remark: Mapped[str | None] = mapped_column(Text)
    indent_qty: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    approved1_qty: Mapped[Decimal | None] = mapped_column(Numeric(14, 4))
    approved2_qty: Mapped[Decimal | None] = mapped_column(Numeric(14, 4))

    indent: Mapped["Indent"] = relationship("Indent", back_populates="items")


__all__ = ["Indent", "IndentItem"]
