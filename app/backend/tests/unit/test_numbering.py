"""Document numbering, pagination bounds and demo seeding."""

from __future__ import annotations

import os
import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_siteflow.db")

import pytest

from app.backend.src.core.errors import NotFoundError, WorkflowValidationError
from app.backend.src.db import get_engine, session_scope
from app.backend.src.models import Cashbook, Indent, PurchaseOrder, Role, Site, User
from app.backend.src.models.base import Base
from app.backend.src.services import numbering
from app.backend.src.services.pagination import clamp_page_size
from app.backend.src.services.seed import DEMO_USERS, seed_development_data


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.mark.parametrize(
    ("day", "code"),
    [
        (date(2024, 4, 1), "A"),
        (date(2024, 12, 31), "I"),
        (date(2025, 1, 15), "J"),
        (date(2025, 3, 31), "L"),
    ],
)
def test_month_codes_follow_financial_year(day: date, code: str) -> None:
    assert numbering.month_code(day) == code


def test_financial_year_label_starts_in_april() -> None:
    assert numbering.financial_year_label(date(2024, 3, 31)) == "23-24"
    assert numbering.financial_year_label(date(2024, 4, 1)) == "24-25"
    assert numbering.financial_year_label(date(2099, 12, 1)) == "99-00"


def _user(session) -> int:
    user = User(email="engineer@example.com", name="Engineer", role="site_engineer")
    session.add(user)
    session.flush()
    return user.id


def test_voucher_sequence_restarts_each_month() -> None:
    with session_scope() as session:
        creator = _user(session)
        for voucher_no, voucher_date in (("B/2/1", date(2024, 5, 2)), ("B/9/7", date(2024, 5, 9))):
            session.add(Cashbook(voucher_no=voucher_no, voucher_date=voucher_date, created_by_id=creator))
        session.flush()

        assert numbering.next_voucher_no(session, date(2024, 5, 20)) == "B/20/8"
        assert numbering.next_voucher_no(session, date(2024, 6, 1)) == "C/1/1"


def test_indent_numbers_continue_after_gaps() -> None:
    with session_scope() as session:
        creator = _user(session)
        assert numbering.next_indent_no(session) == "IND-00001"
        site = Site(name="North Block", site_code="NB01")
        session.add(site)
        session.flush()
        session.add(
            Indent(
                indent_no="IND-00007",
                indent_date=date(2024, 5, 1),
                delivery_date=date(2024, 5, 2),
                site_id=site.id,
                created_by_id=creator,
            )
        )
        session.flush()

        assert numbering.next_indent_no(session) == "IND-00008"
        assert numbering.next_challan_no(session) == "CHN-00001"


def test_purchase_order_numbers_are_scoped_by_site_and_year() -> None:
    with session_scope() as session:
        creator = _user(session)
        north = Site(name="North Block", site_code="NB01")
        south = Site(name="South Block", site_code="SB01")
        unnamed = Site(name="Unnamed Plot")
        session.add_all([north, south, unnamed])
        session.flush()
        session.add(
            PurchaseOrder(
                purchase_order_no="SF/24-25/NB01/00004",
                purchase_order_date=date(2024, 6, 1),
                site_id=north.id,
                vendor_name="Acme",
                created_by_id=creator,
            )
        )
        session.flush()

        assert (
            numbering.next_purchase_order_no(session, north.id, today=date(2024, 9, 1))
            == "SF/24-25/NB01/00005"
        )
        assert (
            numbering.next_purchase_order_no(session, north.id, today=date(2025, 4, 1))
            == "SF/25-26/NB01/00001"
        )
        assert (
            numbering.next_purchase_order_no(session, south.id, today=date(2024, 9, 1))
            == "SF/24-25/SB01/00001"
        )
        with pytest.raises(WorkflowValidationError):
            numbering.next_purchase_order_no(session, unnamed.id)
        with pytest.raises(NotFoundError):
            numbering.next_purchase_order_no(session, 4242)


def test_page_size_is_clamped() -> None:
    assert clamp_page_size(None) == 10
    assert clamp_page_size(25) == 25
    assert clamp_page_size(1000) == 100


def test_seed_is_idempotent() -> None:
    with session_scope() as session:
        first = seed_development_data(session, auth0_sub="auth0|demo")
    with session_scope() as session:
        second = seed_development_data(session)
        assert len(first.users_created) == len(DEMO_USERS)
        assert second.users_created == []
        assert second.roles_created == []
        assert session.query(Role).count() == len(first.roles_created)
        admin = session.query(User).filter(User.email == DEMO_USERS[0][0]).one()
        assert admin.auth0_sub == "auth0|demo"
        assert admin.site_ids == [second.site.id]
