# backoffice_api/services/claim_workflow.py
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import func

from backoffice_api.common.errors import InvalidTransitionError, NotFoundError, ValidationError
from backoffice_api.common.paging import parse_date
from backoffice_api.extensions import atomic
from backoffice_api.models.claim import (
    CLAIM_APPROVED, CLAIM_DRAFT, CLAIM_PAID, CLAIM_PENDING_APPROVAL, CLAIM_REJECTED, CLAIM_TYPES,
    Claim, ClaimLine,
)
from backoffice_api.models.employee import Employee
from backoffice_api.services.sequence_service import next_number
from backoffice_api.services.statutory import to_money

log = logging.getLogger(__name__)

CLAIM_PREFIX = "CLM"

# from-status -> statuses it may move to
TRANSITIONS: Dict[str, tuple] = {
    CLAIM_DRAFT: (CLAIM_PENDING_APPROVAL,),
    CLAIM_PENDING_APPROVAL: (CLAIM_APPROVED, CLAIM_REJECTED),
    CLAIM_APPROVED: (CLAIM_PAID,),
    CLAIM_REJECTED: (),
    CLAIM_PAID: (),
}

DELETABLE = (CLAIM_DRAFT, CLAIM_REJECTED)


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, ())


def get_claim(session, claim_id: int, lock: bool = False) -> Claim:
    claim = session.get(Claim, claim_id, with_for_update=lock or None)
    if claim is None:
        raise NotFoundError("Claim", claim_id)
    return claim


def _amount(value, field: str, line_no: int) -> Decimal:
    try:
        amt = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"line {line_no}: {field} must be a number")
    if not amt.is_finite() or amt < 0:
        raise ValidationError(f"line {line_no}: {field} must be >= 0")
    return to_money(amt)


def _build_lines(lines: Iterable[Mapping[str, Any]], claim_date: date) -> List[ClaimLine]:
    out: List[ClaimLine] = []
    for i, ln in enumerate(lines or [], start=1):
        if "amount" not in ln or ln.get("amount") in (None, ""):
            raise ValidationError(f"line {i}: amount is required")
        expense_date = ln.get("expense_date") or claim_date
        if not isinstance(expense_date, date):
            expense_date = parse_date(expense_date)
            if expense_date is None:
                raise ValidationError(f"line {i}: expense_date must be YYYY-MM-DD")
        out.append(ClaimLine(
            line_number=i,
            expense_date=expense_date,
            category=ln.get("category"),
            description=ln.get("description"),
            amount=_amount(ln["amount"], "amount", i),
            gst_amount=_amount(ln.get("gst_amount") or 0, "gst_amount", i),
            notes=ln.get("notes"),
        ))
    return out


def _claims_in_year(session, year: int) -> int:
    return (session.query(func.count(Claim.id))
            .filter(Claim.claim_date >= date(year, 1, 1), Claim.claim_date < date(year + 1, 1, 1))
            .scalar()) or 0


def create_claim(session, employee_id: int, claim_type: str, claim_date: date,
                 lines: Iterable[Mapping[str, Any]], description: Optional[str] = None,
                 notes: Optional[str] = None) -> Claim:
    """Create a DRAFT claim with its lines; total and receipt count come from the lines."""
    ct = (claim_type or "").strip().upper()
    if ct not in CLAIM_TYPES:
        raise ValidationError(f"Unknown claim type '{claim_type}'", payload={"allowed": list(CLAIM_TYPES)})
    if not isinstance(claim_date, date):
        raise ValidationError("claim_date is required")

    built = _build_lines(lines, claim_date)
    if not built:
        raise ValidationError("A claim needs at least one line")

    with atomic(session):
        if session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)

        year = claim_date.year
        number = next_number(session, CLAIM_PREFIX, year, seed=lambda: _claims_in_year(session, year))
        claim = Claim(
            claim_number=number,
            employee_id=employee_id,
            claim_type=ct,
            claim_date=claim_date,
            description=description,
            notes=notes,
            total_amount=sum((ln.amount for ln in built), Decimal("0.00")),
            receipt_count=len(built),
            status=CLAIM_DRAFT,
            lines=built,
        )
        session.add(claim)

    log.info("claim %s created for employee %s: %s line(s), total %s",
             claim.claim_number, employee_id, claim.receipt_count, claim.total_amount)
    return claim


def _advance(session, claim_id: int, target: str, **stamps) -> Claim:
    with atomic(session):
        claim = get_claim(session, claim_id, lock=True)
        if not can_transition(claim.status, target):
            raise InvalidTransitionError("Claim", claim.status, target)
        claim.status = target
        for k, v in stamps.items():
            setattr(claim, k, v)
    log.info("claim %s -> %s", claim_id, target)
    return claim


def submit_claim(session, claim_id: int) -> Claim:
    return _advance(session, claim_id, CLAIM_PENDING_APPROVAL, submitted_at=datetime.utcnow())


def approve_claim(session, claim_id: int, approved_by: Optional[str],
                  approval_notes: Optional[str] = None) -> Claim:
    return _advance(session, claim_id, CLAIM_APPROVED,
                    approved_by=approved_by, approved_at=datetime.utcnow(), approval_notes=approval_notes)


def reject_claim(session, claim_id: int, approved_by: Optional[str],
                 approval_notes: Optional[str] = None) -> Claim:
    return _advance(session, claim_id, CLAIM_REJECTED,
                    approved_by=approved_by, approved_at=datetime.utcnow(), approval_notes=approval_notes)


def pay_claim(session, claim_id: int, paid_by: Optional[str],
              payment_reference: Optional[str] = None) -> Claim:
    return _advance(session, claim_id, CLAIM_PAID,
                    paid_by=paid_by, paid_at=datetime.utcnow(), payment_reference=payment_reference)


def delete_claim(session, claim_id: int) -> Dict[str, Any]:
    with atomic(session):
        claim = get_claim(session, claim_id, lock=True)
        if claim.status not in DELETABLE:
            raise InvalidTransitionError("Claim", claim.status, "DELETED")
        number = claim.claim_number
        session.delete(claim)
    log.info("claim %s deleted", number)
    return {"id": claim_id, "claim_number": number}


def claims_query(session, employee_id: Optional[int] = None, status: Optional[str] = None,
                 claim_type: Optional[str] = None, start_date: Optional[date] = None,
                 end_date: Optional[date] = None):
    q = session.query(Claim)
    if employee_id:
        q = q.filter(Claim.employee_id == employee_id)
    if status:
        q = q.filter(Claim.status == status.upper())
    if claim_type:
        q = q.filter(Claim.claim_type == claim_type.upper())
    if start_date:
        q = q.filter(Claim.claim_date >= start_date)
    if end_date:
        q = q.filter(Claim.claim_date <= end_date)
    return q.order_by(Claim.created_at.desc(), Claim.id.desc())


def claims_overview(session, year: int) -> Dict[str, Any]:
    in_year = (Claim.claim_date >= date(year, 1, 1), Claim.claim_date < date(year + 1, 1, 1))

    by_status = (session.query(Claim.status, func.count(Claim.id))
                 .filter(*in_year).group_by(Claim.status).all())
    by_type = (session.query(Claim.claim_type, func.count(Claim.id))
               .filter(*in_year).group_by(Claim.claim_type).all())
    settled = (session.query(func.sum(Claim.total_amount))
               .filter(*in_year, Claim.status.in_((CLAIM_APPROVED, CLAIM_PAID)))
               .scalar())
    pending = (session.query(func.count(Claim.id))
               .filter(Claim.status == CLAIM_PENDING_APPROVAL).scalar()) or 0

    return {
        "year": year,
        "total_claims": _claims_in_year(session, year),
        "claims_by_status": {s: n for s, n in by_status},
        "claims_by_type": {t: n for t, n in by_type},
        "total_amount": float(settled or 0),
        "pending_claims": pending,
    }
