"""Human-readable document number generation."""

from __future__ import annotations

import re
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import NotFoundError, WorkflowValidationError
from app.backend.src.models import AssetTransfer, Cashbook, Indent, PurchaseOrder, Site

# Vouchers are coded by month with the financial year starting in April:
# April -> A, May -> B, ... December -> I, January -> J, February -> K, March -> L.
MONTH_CODES = ("J", "K", "L", "A", "B", "C", "D", "E", "F", "G", "H", "I")

_TRAILING_NUMBER = re.compile(r"(\d+)$")


def _next_in_sequence(values: list[str | None]) -> int:
    highest = 0
    for value in values:
        match = _TRAILING_NUMBER.search(value or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


def month_code(day: date) -> str:
    return MONTH_CODES[day.month - 1]


def financial_year_label(day: date) -> str:
    """Return the ``YY-YY`` label of the April-March financial year containing ``day``."""

    start = day.year if day.month >= 4 else day.year - 1
    return f"{start % 100:02d}-{(start + 1) % 100:02d}"


def next_voucher_no(session: Session, voucher_date: date) -> str:
    """Return ``{month code}/{day}/{sequence}``; the sequence restarts every month."""

    month_start = voucher_date.replace(day=1)
    if month_start.month == 12:
        month_end = month_start.replace(year=month_start.year + 1, month=1)
    else:
        month_end = month_start.replace(month=month_start.month + 1)
    numbers = session.scalars(
        select(Cashbook.voucher_no).where(
            Cashbook.voucher_date >= month_start, Cashbook.voucher_date < month_end
        )
    ).all()
    sequence = _next_in_sequence(list(numbers))
    return f"{month_code(voucher_date)}/{voucher_date.day}/{sequence}"


def next_indent_no(session: Session) -> str:
    numbers = session.scalars(select(Indent.indent_no)).all()
    return f"IND-{_next_in_sequence(list(numbers)):05d}"


def next_challan_no(session: Session) -> str:
    numbers = session.scalars(select(AssetTransfer.challan_no)).all()
    return f"CHN-{_next_in_sequence(list(numbers)):05d}"


def next_purchase_order_no(session: Session, site_id: int, today: date | None = None) -> str:
    """Return ``{company}/{financial year}/{site code}/{sequence:05d}``.

    The financial year is taken from the current date, not the order date,
    so back-dated orders still number into the running year.
    """

    site = session.get(Site, site_id)
    if site is None:
        raise NotFoundError(f"Site {site_id} not found", site_id=site_id)
    if not site.site_code:
        raise WorkflowValidationError(
            f"Site '{site.name}' has no site code; cannot number purchase orders",
            site_id=site_id,
        )

    prefix = (
        f"{get_settings().company_code}/{financial_year_label(today or date.today())}/"
        f"{site.site_code}/"
    )
    numbers = session.scalars(
        select(PurchaseOrder.purchase_order_no).where(
            PurchaseOrder.purchase_order_no.startswith(prefix)
        )
    ).all()
    return f"{prefix}{_next_in_sequence(list(numbers)):05d}"


__all__ = [
    "MONTH_CODES",
    "financial_year_label",
    "month_code",
    "next_challan_no",
    "next_indent_no",
    "next_purchase_order_no",
    "next_voucher_no",
]
