import os
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import text

from backoffice_api import create_app
from backoffice_api.common.errors import (
    ConflictError, InsufficientBalanceError, InvalidTransitionError,
    LedgerInvariantError, NotFoundError, ValidationError,
)
from backoffice_api.extensions import db
from backoffice_api.models.employee import Employee
from backoffice_api.models.leave import LeaveBalance, LeaveRequest
from backoffice_api.services.leave_ledger import (
    approve_request, create_request, delete_request, leave_overview,
    open_balance, reject_request, requests_query,
)


def _mk_app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    return app


@pytest.fixture
def session():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        yield db.session
        db.session.remove()
        db.drop_all()


@pytest.fixture
def emp(session):
    e = Employee(employee_number="EMP-0001", first_name="Aina", basic_salary=4000)
    session.add(e); session.commit()
    return e


def _state(b):
    return (b.taken, b.pending, b.available)


def test_open_balance_and_duplicate(session, emp):
    b = open_balance(session, emp.id, "annual", 2025, 14, carried_forward=2)
    assert b.leave_type == "ANNUAL"
    assert b.available == Decimal("16")
    assert b.is_balanced
    with pytest.raises(ConflictError):
        open_balance(session, emp.id, "ANNUAL", 2025, 10)
    with pytest.raises(NotFoundError):
        open_balance(session, 404, "ANNUAL", 2025, 10)


def test_create_then_approve_moves_pending_to_taken(session, emp):
    b = open_balance(session, emp.id, "ANNUAL", 2025, 14)
    r = create_request(session, emp.id, "ANNUAL", date(2025, 3, 3), date(2025, 3, 5))
    assert r.status == "PENDING"
    assert r.number_of_days == Decimal("3")
    assert _state(b) == (Decimal("0"), Decimal("3"), Decimal("11"))

    r = approve_request(session, r.id, "manager", "enjoy")
    assert r.status == "APPROVED"
    assert r.approved_by == "manager"
    assert r.approved_at is not None
    assert _state(b) == (Decimal("3"), Decimal("0"), Decimal("11"))
    assert b.is_balanced


def test_create_then_reject_restores_available(session, emp):
    b = open_balance(session, emp.id, "ANNUAL", 2025, 14)
    r = create_request(session, emp.id, "ANNUAL", date(2025, 6, 2), date(2025, 6, 6), number_of_days="4.5")
    assert b.available == Decimal("9.5")
    reject_request(session, r.id, "manager", "busy season")
    assert _state(b) == (Decimal("0"), Decimal("0"), Decimal("14"))


def test_insufficient_balance_changes_nothing(session, emp):
    b = open_balance(session, emp.id, "MEDICAL", 2025, 2)
    before = _state(b)
    with pytest.raises(InsufficientBalanceError) as ei:
        create_request(session, emp.id, "MEDICAL", date(2025, 1, 6), date(2025, 1, 8))
    assert ei.value.status_code == 422
    assert _state(b) == before
    assert session.query(LeaveRequest).count() == 0


def test_decide_only_pending(session, emp):
    open_balance(session, emp.id, "ANNUAL", 2025, 14)
    r = create_request(session, emp.id, "ANNUAL", date(2025, 3, 3), date(2025, 3, 3))
    approve_request(session, r.id, "manager")
    with pytest.raises(InvalidTransitionError):
        approve_request(session, r.id, "manager")
    with pytest.raises(InvalidTransitionError):
        reject_request(session, r.id, "manager")
    with pytest.raises(NotFoundError):
        approve_request(session, 999, "manager")


def test_delete_pending_restores_but_approved_does_not(session, emp):
    b = open_balance(session, emp.id, "ANNUAL", 2025, 14)
    pending = create_request(session, emp.id, "ANNUAL", date(2025, 4, 1), date(2025, 4, 2))
    approved = create_request(session, emp.id, "ANNUAL", date(2025, 5, 1), date(2025, 5, 3))
    approve_request(session, approved.id, "manager")
    assert _state(b) == (Decimal("3"), Decimal("2"), Decimal("9"))

    out = delete_request(session, pending.id)
    assert out["balance_restored"] is True
    assert _state(b) == (Decimal("3"), Decimal("0"), Decimal("11"))

    out = delete_request(session, approved.id)
    assert out == {"id": approved.id, "status": "APPROVED", "balance_restored": False}
    assert _state(b) == (Decimal("3"), Decimal("0"), Decimal("11"))
    assert session.query(LeaveRequest).count() == 0


def test_untracked_leave_type_is_accepted(session, emp):
    r = create_request(session, emp.id, "UNPAID", date(2025, 8, 1), date(2025, 8, 10))
    assert r.status == "PENDING"
    approve_request(session, r.id, "manager")
    assert session.query(LeaveBalance).count() == 0


def test_request_spanning_new_year_charges_start_year(session, emp):
    b2025 = open_balance(session, emp.id, "ANNUAL", 2025, 14)
    b2026 = open_balance(session, emp.id, "ANNUAL", 2026, 14)
    r = create_request(session, emp.id, "ANNUAL", date(2025, 12, 30), date(2026, 1, 2))
    assert r.number_of_days == Decimal("4")
    assert b2025.pending == Decimal("4")
    assert b2026.pending == Decimal("0")

    reject_request(session, r.id, "manager")
    assert b2025.available == Decimal("14")
    assert b2026.available == Decimal("14")


def test_out_of_balance_row_blocks_the_write(session, emp):
    broken = LeaveBalance(employee_id=emp.id, leave_type="ANNUAL", year=2025,
                          entitlement=14, carried_forward=0, taken=0, pending=0, available=20)
    session.add(broken); session.commit()

    with pytest.raises(LedgerInvariantError):
        create_request(session, emp.id, "ANNUAL", date(2025, 2, 3), date(2025, 2, 3))
    assert session.query(LeaveRequest).count() == 0
    assert broken.pending == Decimal("0")


def test_input_validation(session, emp):
    with pytest.raises(ValidationError):
        create_request(session, emp.id, "SABBATICAL", date(2025, 1, 1), date(2025, 1, 2))
    with pytest.raises(ValidationError):
        create_request(session, emp.id, "ANNUAL", date(2025, 1, 5), date(2025, 1, 2))
    with pytest.raises(ValidationError):
        create_request(session, emp.id, "ANNUAL", date(2025, 1, 1), date(2025, 1, 2), number_of_days=0)
    with pytest.raises(NotFoundError):
        create_request(session, 404, "ANNUAL", date(2025, 1, 1), date(2025, 1, 2))


def test_queries_and_overview(session, emp):
    open_balance(session, emp.id, "ANNUAL", 2025, 14)
    a = create_request(session, emp.id, "ANNUAL", date(2025, 3, 3), date(2025, 3, 7))
    create_request(session, emp.id, "MEDICAL", date(2025, 9, 1), date(2025, 9, 1))
    approve_request(session, a.id, "manager")

    march = requests_query(session, start_date=date(2025, 3, 5), end_date=date(2025, 3, 31)).all()
    assert [r.id for r in march] == [a.id]
    assert requests_query(session, status="pending").count() == 1

    ov = leave_overview(session, 2025)
    assert ov["total_requests"] == 2
    assert ov["requests_by_status"] == {"APPROVED": 1, "PENDING": 1}
    assert ov["requests_by_type"] == {"ANNUAL": 1, "MEDICAL": 1}
    assert ov["pending_requests"] == 1


def test_fractional_days_stay_balanced_after_reload(session, emp):
    b = open_balance(session, emp.id, "ANNUAL", 2025, "10.50")
    r = create_request(session, emp.id, "ANNUAL", date(2025, 2, 3), date(2025, 2, 4), number_of_days="1.25")
    session.expire_all()
    b = session.get(LeaveBalance, b.id)
    assert (b.pending, b.available) == (Decimal("1.25"), Decimal("9.25"))
    assert b.is_balanced
    approve_request(session, r.id, "manager")
    assert session.get(LeaveBalance, b.id).is_balanced


@pytest.mark.parametrize("days", ["1.335", "0.001"])
def test_days_finer_than_cents_are_rejected(session, emp, days):
    b = open_balance(session, emp.id, "ANNUAL", 2025, 10)
    with pytest.raises(ValidationError):
        create_request(session, emp.id, "ANNUAL", date(2025, 2, 3), date(2025, 2, 4), number_of_days=days)
    with pytest.raises(ValidationError):
        open_balance(session, emp.id, "MEDICAL", 2025, 14, carried_forward=days)
    assert _state(b) == (Decimal("0"), Decimal("0"), Decimal("10"))
    assert session.query(LeaveRequest).count() == 0


def test_stale_balance_write_is_a_conflict(session, emp):
    b = open_balance(session, emp.id, "ANNUAL", 2025, 14)
    assert b.version == 1
    # another writer bumps the row after this session loaded it
    session.execute(text("UPDATE leave_balances SET version = version + 1 WHERE id = :id"), {"id": b.id})

    with pytest.raises(ConflictError):
        create_request(session, emp.id, "ANNUAL", date(2025, 3, 3), date(2025, 3, 4))
    assert session.query(LeaveRequest).count() == 0
    b = session.get(LeaveBalance, b.id)
    assert _state(b) == (Decimal("0"), Decimal("0"), Decimal("14"))
