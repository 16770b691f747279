"""Cashbook budget models."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .mixins import ApprovalTrackedMixin


class CashbookBudget(ApprovalTrackedMixin, Base):
    """A monthly cash budget for a site, approved in two levels."""

    __tablename__ = "cashbook_budgets"
    __table_args__ = (
        UniqueConstraint("month", "site_id", name="uq_cashbook_budgets_month_site"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    month: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    site_id: Mapped[int | None] = mapped_column(ForeignKey("sites.id"), index=True)
    attach_copy_url: Mapped[str | None] = mapped_column(String(512))
    total_budget: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    approved1_budget_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    approved_budget_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    approved1_remarks: Mapped[str | None] = mapped_column(Text)
    remarks_for_final_approval: Mapped[str | None] = mapped_column(Text)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    items: Mapped[list["CashbookBudgetItem"]] = relationship(
        "CashbookBudgetItem",
        back_populates="budget",
        cascade="all, delete-orphan",
        order_by="CashbookBudgetItem.id",
    )

    __mapper_args__ = {"version_id_col": version}


class CashbookBudgetItem(Base):
    """A budgeted amount for one cashbook head."""

    __tablename__ = "cashbook_budget_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    budget_id: Mapped[int] = mapped_column(
        ForeignKey("cashbook_budgets.id"), nullable=False, index=True
    )
    cashbook_head: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    approved1_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    approved_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    budget: Mapped["CashbookBudget"] = relationship("CashbookBudget", back_populates="items")


__all__ = ["CashbookBudget", "CashbookBudgetItem"]
