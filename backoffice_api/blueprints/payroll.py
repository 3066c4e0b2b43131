# backoffice_api/blueprints/payroll.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from flask import Blueprint, request

from backoffice_api.common.http import ok, fail
from backoffice_api.common.paging import page_limit, paginate, parse_date, iso, money
from backoffice_api.extensions import db
from backoffice_api.models.payroll import PayrollEntry, PayrollPeriod
from backoffice_api.services import payroll_service

bp = Blueprint("payroll", __name__, url_prefix="/api/v1/payroll")

PERIOD_TOTALS = (
    "total_gross_pay", "total_deductions", "total_net_pay",
    "total_epf_employee", "total_epf_employer",
    "total_socso", "total_eis", "total_pcb",
)
ENTRY_AMOUNTS = payroll_service.ENTRY_FIELDS


# ---------- row serializers ----------
def _row_period(p: PayrollPeriod) -> Dict[str, Any]:
    row = {
        "id": p.id,
        "name": p.name,
        "year": p.year,
        "month": p.month,
        "start_date": iso(p.start_date),
        "end_date": iso(p.end_date),
        "payment_date": iso(p.payment_date),
        "status": p.status,
        "total_employees": p.total_employees,
        "processed_by": p.processed_by,
        "processed_at": iso(p.processed_at),
        "created_at": iso(p.created_at),
    }
    row.update({f: money(getattr(p, f)) for f in PERIOD_TOTALS})
    return row


def _row_entry(x: PayrollEntry) -> Dict[str, Any]:
    emp = x.employee
    row = {
        "id": x.id,
        "period_id": x.period_id,
        "employee_id": x.employee_id,
        "employee": {
            "id": emp.id,
            "employee_number": emp.employee_number,
            "full_name": emp.full_name,
            "department": emp.department,
        } if emp else None,
        "created_at": iso(x.created_at),
    }
    row.update({f: money(getattr(x, f)) for f in ENTRY_AMOUNTS})
    return row


# ---------- periods ----------
@bp.get("/periods")
def list_periods():
    year = request.args.get("year", type=int)
    q = payroll_service.periods_query(db.session, status=request.args.get("status"), year=year)
    page, size = page_limit()
    rows, meta = paginate(q, page, size)
    return ok([_row_period(p) for p in rows], **meta)


@bp.get("/periods/<int:period_id>")
def get_period(period_id: int):
    p = payroll_service.get_period(db.session, period_id)
    data = _row_period(p)
    data["entries"] = [_row_entry(x) for x in p.entries]
    return ok(data)


@bp.post("/periods")
def create_period():
    d = request.get_json(silent=True) or {}
    if d.get("year") in (None, "") or d.get("month") in (None, ""):
        return fail("year and month are required", 422)

    dates = {}
    for k in ("start_date", "end_date", "payment_date"):
        if d.get(k):
            dates[k] = parse_date(d[k])
            if dates[k] is None:
                return fail(f"{k} must be YYYY-MM-DD", 422)

    p = payroll_service.create_period(db.session, d["year"], d["month"], name=d.get("name"), **dates)
    return ok(_row_period(p), 201)


@bp.post("/periods/<int:period_id>/process")
def process_period(period_id: int):
    d = request.get_json(silent=True) or {}
    processed_by = (d.get("processed_by") or "").strip() or None
    p = payroll_service.process_period(db.session, period_id, processed_by)
    return ok({"period": _row_period(p), "entries_created": p.total_employees})


# ---------- entries ----------
@bp.get("/entries")
def list_entries():
    q = payroll_service.entries_query(
        db.session,
        period_id=request.args.get("period_id", type=int),
        employee_id=request.args.get("employee_id", type=int),
    )
    page, size = page_limit()
    rows, meta = paginate(q, page, size)
    return ok([_row_entry(x) for x in rows], **meta)


@bp.get("/entries/<int:entry_id>")
def get_entry(entry_id: int):
    x = payroll_service.get_entry(db.session, entry_id)
    data = _row_entry(x)
    data["period"] = _row_period(x.period)
    return ok(data)


# ---------- stats ----------
@bp.get("/stats/overview")
def overview():
    year = request.args.get("year", type=int) or datetime.utcnow().year
    return ok(payroll_service.payroll_overview(db.session, year))
