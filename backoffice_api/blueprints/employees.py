# backoffice_api/blueprints/employees.py
from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy import func, or_

from backoffice_api.common.errors import NotFoundError
from backoffice_api.common.http import ok, fail
from backoffice_api.common.paging import page_limit, paginate, parse_date, parse_decimal, iso, money
from backoffice_api.extensions import db
from backoffice_api.models.employee import Employee, EMPLOYMENT_STATUSES

bp = Blueprint("employees", __name__, url_prefix="/api/v1/employees")

TEXT_FIELDS = ("first_name", "last_name", "email", "department", "position")


def _row(e: Employee):
    return {
        "id": e.id,
        "employee_number": e.employee_number,
        "first_name": e.first_name,
        "last_name": e.last_name,
        "full_name": e.full_name,
        "email": e.email,
        "department": e.department,
        "position": e.position,
        "date_joined": iso(e.date_joined),
        "basic_salary": money(e.basic_salary),
        "employment_status": e.employment_status,
        "created_at": iso(e.created_at),
        "updated_at": iso(e.updated_at),
    }


def _get_or_404(emp_id: int) -> Employee:
    e = db.session.get(Employee, emp_id)
    if e is None:
        raise NotFoundError("Employee", emp_id)
    return e


def _apply(e: Employee, d: dict):
    """Copy writable fields from payload; returns an error message or None."""
    for f in TEXT_FIELDS:
        if f in d:
            setattr(e, f, (d.get(f) or "").strip() or None)
    if "date_joined" in d:
        if d.get("date_joined") and parse_date(d["date_joined"]) is None:
            return "date_joined must be YYYY-MM-DD"
        e.date_joined = parse_date(d.get("date_joined"))
    if "basic_salary" in d:
        sal = parse_decimal(d.get("basic_salary"))
        if sal is None or not sal.is_finite() or sal < 0:
            return "basic_salary must be a number >= 0"
        e.basic_salary = sal
    if "employment_status" in d:
        st = (d.get("employment_status") or "").strip().upper()
        if st not in EMPLOYMENT_STATUSES:
            return f"employment_status must be one of {', '.join(EMPLOYMENT_STATUSES)}"
        e.employment_status = st
    return None


@bp.get("")
def list_employees():
    q = Employee.query
    status = request.args.get("status")
    if status:
        q = q.filter(Employee.employment_status == status.upper())
    dept = request.args.get("department")
    if dept:
        q = q.filter(Employee.department == dept)
    s = (request.args.get("q") or "").strip()
    if s:
        like = f"%{s}%"
        q = q.filter(or_(Employee.first_name.ilike(like),
                         Employee.last_name.ilike(like),
                         Employee.employee_number.ilike(like),
                         Employee.email.ilike(like)))
    page, size = page_limit()
    rows, meta = paginate(q.order_by(Employee.employee_number.asc()), page, size)
    return ok([_row(e) for e in rows], **meta)


@bp.get("/<int:emp_id>")
def get_employee(emp_id: int):
    return ok(_row(_get_or_404(emp_id)))


@bp.post("")
def create_employee():
    d = request.get_json(silent=True) or {}
    number = (d.get("employee_number") or "").strip()
    first = (d.get("first_name") or "").strip()
    if not (number and first):
        return fail("employee_number and first_name are required", 422)

    dup = Employee.query.filter(func.lower(Employee.employee_number) == number.lower()).first()
    if dup:
        return fail("Employee number already exists", 409)

    e = Employee(employee_number=number, first_name=first, basic_salary=0, employment_status="ACTIVE")
    err = _apply(e, d)
    if err:
        return fail(err, 422)
    db.session.add(e)
    db.session.commit()
    return ok(_row(e), 201)


@bp.patch("/<int:emp_id>")
def update_employee(emp_id: int):
    e = _get_or_404(emp_id)
    d = request.get_json(silent=True) or {}
    err = _apply(e, d)
    if err:
        db.session.rollback()
        return fail(err, 422)
    db.session.commit()
    return ok(_row(e))
