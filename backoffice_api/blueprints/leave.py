# backoffice_api/blueprints/leave.py
from __future__ import annotations

from datetime import datetime

from flask import Blueprint, request

from backoffice_api.common.http import ok, fail
from backoffice_api.common.paging import page_limit, paginate, parse_date, iso, money
from backoffice_api.extensions import db
from backoffice_api.models.leave import LeaveBalance, LeaveRequest
from backoffice_api.services import leave_ledger

bp = Blueprint("leave", __name__, url_prefix="/api/v1/leave")


def _row_balance(b: LeaveBalance):
    return {
        "id": b.id,
        "employee_id": b.employee_id,
        "leave_type": b.leave_type,
        "year": b.year,
        "entitlement": money(b.entitlement),
        "carried_forward": money(b.carried_forward),
        "taken": money(b.taken),
        "pending": money(b.pending),
        "available": money(b.available),
    }


def _row_request(r: LeaveRequest):
    return {
        "id": r.id,
        "employee_id": r.employee_id,
        "leave_type": r.leave_type,
        "start_date": iso(r.start_date),
        "end_date": iso(r.end_date),
        "number_of_days": money(r.number_of_days),
        "reason": r.reason,
        "contact_during_leave": r.contact_during_leave,
        "status": r.status,
        "approved_by": r.approved_by,
        "approved_at": iso(r.approved_at),
        "approval_notes": r.approval_notes,
        "created_at": iso(r.created_at),
    }


# ---------- Balances ----------
@bp.get("/balances")
def get_balances():
    emp_id = request.args.get("employee_id", type=int)
    if not emp_id:
        return fail("employee_id is required", 422)
    year = request.args.get("year", type=int) or datetime.utcnow().year
    rows = leave_ledger.balances_query(db.session, emp_id, year).all()
    return ok([_row_balance(b) for b in rows])


@bp.post("/balances")
def open_balance():
    d = request.get_json(silent=True) or {}
    req_fields = ("employee_id", "leave_type", "year", "entitlement")
    if any(d.get(k) in (None, "") for k in req_fields):
        return fail("employee_id, leave_type, year, entitlement are required", 422)
    b = leave_ledger.open_balance(
        db.session, d["employee_id"], d["leave_type"], d["year"],
        d["entitlement"], d.get("carried_forward") or 0,
    )
    return ok(_row_balance(b), 201)


# ---------- Requests ----------
@bp.get("/requests")
def list_requests():
    q = leave_ledger.requests_query(
        db.session,
        employee_id=request.args.get("employee_id", type=int),
        status=request.args.get("status"),
        leave_type=request.args.get("leave_type"),
        start_date=parse_date(request.args.get("start_date")),
        end_date=parse_date(request.args.get("end_date")),
    )
    page, size = page_limit()
    rows, meta = paginate(q, page, size)
    return ok([_row_request(r) for r in rows], **meta)


@bp.get("/requests/<int:rid>")
def get_request(rid: int):
    return ok(_row_request(leave_ledger.get_request(db.session, rid)))


@bp.post("/requests")
def apply_leave():
    d = request.get_json(silent=True) or {}
    req_fields = ("employee_id", "leave_type", "start_date", "end_date")
    if any(not d.get(k) for k in req_fields):
        return fail("employee_id, leave_type, start_date, end_date are required", 422)

    sd = parse_date(d["start_date"])
    ed = parse_date(d["end_date"])
    if not (sd and ed):
        return fail("Invalid dates", 422)

    r = leave_ledger.create_request(
        db.session,
        employee_id=d["employee_id"],
        leave_type=d["leave_type"],
        start_date=sd,
        end_date=ed,
        number_of_days=d.get("number_of_days"),
        reason=d.get("reason"),
        contact_during_leave=d.get("contact_during_leave"),
    )
    return ok(_row_request(r), 201)


@bp.post("/requests/<int:rid>/approve")
def approve_request(rid: int):
    d = request.get_json(silent=True) or {}
    r = leave_ledger.approve_request(db.session, rid, d.get("approved_by"), d.get("approval_notes"))
    return ok(_row_request(r))


@bp.post("/requests/<int:rid>/reject")
def reject_request(rid: int):
    d = request.get_json(silent=True) or {}
    r = leave_ledger.reject_request(db.session, rid, d.get("approved_by"), d.get("approval_notes"))
    return ok(_row_request(r))


@bp.delete("/requests/<int:rid>")
def delete_request(rid: int):
    return ok(leave_ledger.delete_request(db.session, rid))


# ---------- Stats ----------
@bp.get("/stats/overview")
def overview():
    year = request.args.get("year", type=int) or datetime.utcnow().year
    return ok(leave_ledger.leave_overview(db.session, year))
