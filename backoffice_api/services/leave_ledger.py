# backoffice_api/services/leave_ledger.py
"""
Leave balance ledger.

A LeaveBalance row (employee, leave type, year) moves with its requests:

    create   (-> PENDING)        pending +d   available -d
    approve  (PENDING->APPROVED) pending -d   taken     +d
    reject   (PENDING->REJECTED) pending -d   available +d
    delete   (while PENDING)     pending -d   available +d

so entitlement + carried_forward == taken + pending + available after every step.
Requests are charged to the year of their start date, including requests that
run past Dec 31. A request whose type/year has no balance row is accepted
without ledger movement.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm.exc import StaleDataError

from backoffice_api.common.errors import (
    ConflictError, InsufficientBalanceError, InvalidTransitionError,
    LedgerInvariantError, NotFoundError, ValidationError,
)
from backoffice_api.extensions import atomic
from backoffice_api.models.employee import Employee
from backoffice_api.models.leave import (
    LEAVE_APPROVED, LEAVE_PENDING, LEAVE_REJECTED, LEAVE_TYPES,
    LeaveBalance, LeaveRequest,
)

log = logging.getLogger(__name__)

ZERO = Decimal("0")
DAY_SCALE = Decimal("0.01")


def _as_days(value, field: str = "number_of_days") -> Decimal:
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not d.is_finite():
        raise ValidationError(f"{field} must be a number")
    # columns are Numeric(6, 2); finer values would round apart on write
    try:
        q = d.quantize(DAY_SCALE)
    except InvalidOperation:
        raise ValidationError(f"{field} is out of range")
    if d != q:
        raise ValidationError(f"{field} allows at most 2 decimal places")
    return q


def _leave_type(value) -> str:
    lt = (value or "").strip().upper()
    if lt not in LEAVE_TYPES:
        raise ValidationError(f"Unknown leave type '{value}'", payload={"allowed": list(LEAVE_TYPES)})
    return lt


def _require_employee(session, employee_id) -> Employee:
    emp = session.get(Employee, employee_id)
    if emp is None:
        raise NotFoundError("Employee", employee_id)
    return emp


def _find_balance(session, employee_id: int, leave_type: str, year: int) -> Optional[LeaveBalance]:
    return (session.query(LeaveBalance)
            .filter_by(employee_id=employee_id, leave_type=leave_type, year=year)
            .with_for_update()
            .first())


def assert_invariant(balance: LeaveBalance) -> None:
    if not balance.is_balanced:
        raise LedgerInvariantError(
            "Leave balance out of balance",
            payload={
                "balance_id": balance.id,
                "entitlement": float(balance.entitlement),
                "carried_forward": float(balance.carried_forward),
                "taken": float(balance.taken),
                "pending": float(balance.pending),
                "available": float(balance.available),
            },
        )


def _move(balance: LeaveBalance, pending=ZERO, available=ZERO, taken=ZERO) -> None:
    balance.pending = balance.pending + pending
    balance.available = balance.available + available
    balance.taken = balance.taken + taken
    assert_invariant(balance)


def _flush(session) -> None:
    try:
        session.flush()
    except StaleDataError as e:
        raise ConflictError("Leave balance was modified concurrently; retry the operation") from e


def get_request(session, request_id: int, lock: bool = False) -> LeaveRequest:
    req = session.get(LeaveRequest, request_id, with_for_update=lock or None)
    if req is None:
        raise NotFoundError("Leave request", request_id)
    return req


# ---------- balances ----------

def open_balance(session, employee_id: int, leave_type: str, year: int,
                 entitlement, carried_forward=0) -> LeaveBalance:
    """Create the yearly balance row for one employee and leave type."""
    lt = _leave_type(leave_type)
    ent = _as_days(entitlement, "entitlement")
    cf = _as_days(carried_forward or 0, "carried_forward")
    if ent < 0 or cf < 0:
        raise ValidationError("entitlement and carried_forward must be >= 0")
    try:
        year = int(year)
    except (TypeError, ValueError):
        raise ValidationError("year must be an integer")

    with atomic(session):
        _require_employee(session, employee_id)
        if _find_balance(session, employee_id, lt, year) is not None:
            raise ConflictError(f"{lt} balance for {year} already exists",
                                payload={"employee_id": employee_id, "leave_type": lt, "year": year})
        bal = LeaveBalance(
            employee_id=employee_id,
            leave_type=lt,
            year=year,
            entitlement=ent,
            carried_forward=cf,
            taken=ZERO,
            pending=ZERO,
            available=ent + cf,
        )
        session.add(bal)
    return bal


def balances_query(session, employee_id: int, year: Optional[int] = None):
    q = session.query(LeaveBalance).filter(LeaveBalance.employee_id == employee_id)
    if year:
        q = q.filter(LeaveBalance.year == year)
    return q.order_by(LeaveBalance.year.desc(), LeaveBalance.leave_type.asc())


# ---------- request lifecycle ----------

def create_request(session, employee_id: int, leave_type: str, start_date: date, end_date: date,
                   number_of_days=None, reason: Optional[str] = None,
                   contact_during_leave: Optional[str] = None) -> LeaveRequest:
    lt = _leave_type(leave_type)
    if not (start_date and end_date):
        raise ValidationError("start_date and end_date are required")
    if start_date > end_date:
        raise ValidationError("start_date cannot be after end_date")

    if number_of_days is None or number_of_days == "":
        days = Decimal((end_date - start_date).days + 1)
    else:
        days = _as_days(number_of_days)
    if days <= 0:
        raise ValidationError("number_of_days must be greater than 0")

    with atomic(session):
        _require_employee(session, employee_id)
        balance = _find_balance(session, employee_id, lt, start_date.year)
        if balance is not None and balance.available < days:
            raise InsufficientBalanceError(
                f"Insufficient leave balance. Available: {balance.available}, Requested: {days}",
                payload={"available": float(balance.available), "requested": float(days)},
            )

        req = LeaveRequest(
            employee_id=employee_id,
            leave_type=lt,
            start_date=start_date,
            end_date=end_date,
            number_of_days=days,
            reason=reason,
            contact_during_leave=contact_during_leave,
            status=LEAVE_PENDING,
        )
        session.add(req)
        if balance is not None:
            _move(balance, pending=days, available=-days)
        _flush(session)

    log.info("leave request %s created: employee=%s %s %s day(s)%s",
             req.id, employee_id, lt, days, "" if balance is not None else " (untracked)")
    return req


def _decide(session, request_id: int, target: str, actor: Optional[str], notes: Optional[str]) -> LeaveRequest:
    with atomic(session):
        req = get_request(session, request_id, lock=True)
        if req.status != LEAVE_PENDING:
            raise InvalidTransitionError("Leave request", req.status, target)

        days = req.number_of_days
        balance = _find_balance(session, req.employee_id, req.leave_type, req.balance_year)
        if balance is not None:
            if target == LEAVE_APPROVED:
                _move(balance, pending=-days, taken=days)
            else:
                _move(balance, pending=-days, available=days)

        req.status = target
        req.approved_by = actor
        req.approved_at = datetime.utcnow()
        req.approval_notes = notes
        _flush(session)

    log.info("leave request %s %s by %s", request_id, target.lower(), actor)
    return req


def approve_request(session, request_id: int, approved_by: Optional[str],
                    approval_notes: Optional[str] = None) -> LeaveRequest:
    return _decide(session, request_id, LEAVE_APPROVED, approved_by, approval_notes)


def reject_request(session, request_id: int, approved_by: Optional[str],
                   approval_notes: Optional[str] = None) -> LeaveRequest:
    return _decide(session, request_id, LEAVE_REJECTED, approved_by, approval_notes)


def delete_request(session, request_id: int) -> Dict[str, Any]:
    """Delete a request. Only a PENDING request gives its days back."""
    with atomic(session):
        req = get_request(session, request_id, lock=True)
        restored = False
        if req.status == LEAVE_PENDING:
            balance = _find_balance(session, req.employee_id, req.leave_type, req.balance_year)
            if balance is not None:
                _move(balance, pending=-req.number_of_days, available=req.number_of_days)
                restored = True
        status = req.status
        session.delete(req)
        _flush(session)

    log.info("leave request %s (%s) deleted, balance restored=%s", request_id, status, restored)
    return {"id": request_id, "status": status, "balance_restored": restored}


# ---------- queries ----------

def requests_query(session, employee_id: Optional[int] = None, status: Optional[str] = None,
                   leave_type: Optional[str] = None, start_date: Optional[date] = None,
                   end_date: Optional[date] = None):
    q = session.query(LeaveRequest)
    if employee_id:
        q = q.filter(LeaveRequest.employee_id == employee_id)
    if status:
        q = q.filter(LeaveRequest.status == status.upper())
    if leave_type:
        q = q.filter(LeaveRequest.leave_type == leave_type.upper())
    # overlap with [start_date, end_date]
    if start_date:
        q = q.filter(LeaveRequest.end_date >= start_date)
    if end_date:
        q = q.filter(LeaveRequest.start_date <= end_date)
    return q.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())


def leave_overview(session, year: int) -> Dict[str, Any]:
    in_year = (LeaveRequest.start_date >= date(year, 1, 1), LeaveRequest.start_date < date(year + 1, 1, 1))

    total = session.query(func.count(LeaveRequest.id)).filter(*in_year).scalar() or 0
    by_status = (session.query(LeaveRequest.status, func.count(LeaveRequest.id))
                 .filter(*in_year).group_by(LeaveRequest.status).all())
    by_type = (session.query(LeaveRequest.leave_type, func.count(LeaveRequest.id))
               .filter(*in_year).group_by(LeaveRequest.leave_type).all())
    pending = (session.query(func.count(LeaveRequest.id))
               .filter(LeaveRequest.status == LEAVE_PENDING).scalar()) or 0

    return {
        "year": year,
        "total_requests": total,
        "requests_by_status": {s: n for s, n in by_status},
        "requests_by_type": {t: n for t, n in by_type},
        "pending_requests": pending,
    }
