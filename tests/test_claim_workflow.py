import os
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import text

from backoffice_api import create_app
from backoffice_api.common.errors import InvalidTransitionError, NotFoundError, ValidationError
from backoffice_api.extensions import db
from backoffice_api.models.claim import Claim, ClaimLine
from backoffice_api.models.employee import Employee
from backoffice_api.models.sequence import DocumentSequence
from backoffice_api.services.claim_workflow import (
    approve_claim, can_transition, claims_overview, create_claim, delete_claim,
    pay_claim, reject_claim, submit_claim,
)
from backoffice_api.services.sequence_service import format_number, next_number


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
    e = Employee(employee_number="EMP-0007", first_name="Hafiz", basic_salary=3500)
    session.add(e); session.commit()
    return e


LINES = [
    {"amount": "120.50", "category": "fuel", "expense_date": "2025-02-03"},
    {"amount": 79.5, "gst_amount": "4.77", "description": "toll"},
]


def test_create_claim_totals_and_number(session, emp):
    c = create_claim(session, emp.id, "travel", date(2025, 2, 10), LINES, description="site visit")
    assert c.claim_number == "CLM-2025-00001"
    assert c.claim_type == "TRAVEL"
    assert c.status == "DRAFT"
    assert c.total_amount == Decimal("200.00")
    assert c.receipt_count == 2

    lines = sorted(c.lines, key=lambda x: x.line_number)
    assert [x.line_number for x in lines] == [1, 2]
    assert lines[0].expense_date == date(2025, 2, 3)
    # falls back to claim date
    assert lines[1].expense_date == date(2025, 2, 10)
    assert lines[0].gst_amount == Decimal("0")
    assert lines[1].gst_amount == Decimal("4.77")


def test_claim_numbers_are_sequential_per_year(session, emp):
    a = create_claim(session, emp.id, "MEAL", date(2025, 1, 5), [{"amount": 10}])
    b = create_claim(session, emp.id, "MEAL", date(2025, 7, 5), [{"amount": 10}])
    c = create_claim(session, emp.id, "MEAL", date(2024, 12, 31), [{"amount": 10}])
    assert [a.claim_number, b.claim_number, c.claim_number] == [
        "CLM-2025-00001", "CLM-2025-00002", "CLM-2024-00001",
    ]


def test_counter_starts_after_existing_claims(session, emp):
    session.add(Claim(claim_number="LEGACY-1", employee_id=emp.id, claim_type="OTHER",
                      claim_date=date(2023, 5, 1), total_amount=5, receipt_count=1))
    session.commit()
    c = create_claim(session, emp.id, "OTHER", date(2023, 6, 1), [{"amount": 1}])
    assert c.claim_number == "CLM-2023-00002"


def test_next_number_format(session):
    assert format_number("CLM", 2025, 42) == "CLM-2025-00042"
    assert next_number(session, "INV", 2030) == "INV-2030-00001"
    assert next_number(session, "INV", 2030) == "INV-2030-00002"


def test_create_claim_validation(session, emp):
    with pytest.raises(ValidationError):
        create_claim(session, emp.id, "MEAL", date(2025, 1, 1), [])
    with pytest.raises(ValidationError):
        create_claim(session, emp.id, "MEAL", date(2025, 1, 1), [{"category": "x"}])
    with pytest.raises(ValidationError):
        create_claim(session, emp.id, "MEAL", date(2025, 1, 1), [{"amount": "-3"}])
    with pytest.raises(ValidationError):
        create_claim(session, emp.id, "GIFTS", date(2025, 1, 1), [{"amount": 1}])
    with pytest.raises(NotFoundError):
        create_claim(session, 404, "MEAL", date(2025, 1, 1), [{"amount": 1}])
    assert session.query(Claim).count() == 0


def test_happy_path_to_paid(session, emp):
    c = create_claim(session, emp.id, "MEDICAL", date(2025, 3, 1), [{"amount": 80}])
    c = submit_claim(session, c.id)
    assert c.status == "PENDING_APPROVAL"
    assert c.submitted_at is not None
    c = approve_claim(session, c.id, "manager", "ok")
    assert (c.status, c.approved_by, c.approval_notes) == ("APPROVED", "manager", "ok")
    c = pay_claim(session, c.id, "finance", "TRX-991")
    assert (c.status, c.paid_by, c.payment_reference) == ("PAID", "finance", "TRX-991")
    assert c.paid_at is not None


def test_illegal_transitions(session, emp):
    c = create_claim(session, emp.id, "MEDICAL", date(2025, 3, 1), [{"amount": 80}])
    with pytest.raises(InvalidTransitionError):
        approve_claim(session, c.id, "manager")
    with pytest.raises(InvalidTransitionError):
        pay_claim(session, c.id, "finance")

    submit_claim(session, c.id)
    approve_claim(session, c.id, "manager")
    pay_claim(session, c.id, "finance")
    with pytest.raises(InvalidTransitionError) as ei:
        approve_claim(session, c.id, "manager")
    assert ei.value.payload == {"entity": "Claim", "from": "PAID", "to": "APPROVED"}
    assert session.get(Claim, c.id).status == "PAID"

    r = create_claim(session, emp.id, "MEAL", date(2025, 3, 2), [{"amount": 8}])
    submit_claim(session, r.id)
    reject_claim(session, r.id, "manager", "no receipt")
    with pytest.raises(InvalidTransitionError):
        pay_claim(session, r.id, "finance")


def test_transition_table():
    assert can_transition("DRAFT", "PENDING_APPROVAL")
    assert can_transition("PENDING_APPROVAL", "REJECTED")
    assert not can_transition("PAID", "APPROVED")
    assert not can_transition("REJECTED", "PENDING_APPROVAL")
    assert not can_transition("UNKNOWN", "PAID")


def test_delete_rules(session, emp):
    draft = create_claim(session, emp.id, "MEAL", date(2025, 4, 1), [{"amount": 8}, {"amount": 9}])
    out = delete_claim(session, draft.id)
    assert out == {"id": draft.id, "claim_number": "CLM-2025-00001"}
    assert session.query(ClaimLine).count() == 0

    pending = create_claim(session, emp.id, "MEAL", date(2025, 4, 2), [{"amount": 8}])
    submit_claim(session, pending.id)
    with pytest.raises(InvalidTransitionError):
        delete_claim(session, pending.id)

    rejected = create_claim(session, emp.id, "MEAL", date(2025, 4, 3), [{"amount": 8}])
    submit_claim(session, rejected.id)
    reject_claim(session, rejected.id, "manager")
    delete_claim(session, rejected.id)
    assert session.query(Claim).count() == 1
    with pytest.raises(NotFoundError):
        delete_claim(session, rejected.id)


def test_overview(session, emp):
    a = create_claim(session, emp.id, "MEAL", date(2025, 4, 1), [{"amount": 30}])
    b = create_claim(session, emp.id, "TRAVEL", date(2025, 4, 2), [{"amount": 70}])
    create_claim(session, emp.id, "TRAVEL", date(2025, 4, 3), [{"amount": 5}])
    for cid in (a.id, b.id):
        submit_claim(session, cid)
    approve_claim(session, a.id, "manager")

    ov = claims_overview(session, 2025)
    assert ov["total_claims"] == 3
    assert ov["claims_by_status"] == {"APPROVED": 1, "PENDING_APPROVAL": 1, "DRAFT": 1}
    assert ov["claims_by_type"] == {"MEAL": 1, "TRAVEL": 2}
    assert ov["total_amount"] == 30.0
    assert ov["pending_claims"] == 1


def test_counter_created_concurrently_falls_back_to_update(session):
    calls = []

    def seed():
        # another writer creates the counter row between our UPDATE and INSERT
        calls.append(1)
        session.execute(text(
            "INSERT INTO document_sequences (prefix, year, last_value) VALUES ('CLM', 2031, 7)"
        ))
        return 0

    assert next_number(session, "CLM", 2031, seed=seed) == "CLM-2031-00008"
    assert len(calls) == 1
    session.commit()
    row = session.query(DocumentSequence).filter_by(prefix="CLM", year=2031).one()
    assert row.last_value == 8
