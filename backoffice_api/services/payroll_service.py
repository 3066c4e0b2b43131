# backoffice_api/services/payroll_service.py
from __future__ import annotations

import calendar
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from backoffice_api.common.errors import (
    ConflictError, InvalidTransitionError, NotFoundError, ValidationError,
)
from backoffice_api.extensions import atomic
from backoffice_api.models.employee import Employee
from backoffice_api.models.payroll import (
    PayrollEntry, PayrollPeriod, PERIOD_COMPLETED, PERIOD_OPEN,
)
from backoffice_api.services.statutory import ZERO, calculate_statutory

log = logging.getLogger(__name__)

ACTIVE = "ACTIVE"

# PayrollEntry columns copied straight from the calculator result
ENTRY_FIELDS = (
    "basic_salary", "gross_pay",
    "epf_employee", "socso_employee", "eis_employee", "pcb",
    "total_deductions", "net_pay",
    "epf_employer", "socso_employer", "eis_employer",
)


def _default_payment_date(year: int, month: int) -> date:
    if month == 12:
        return date(year + 1, 1, 5)
    return date(year, month + 1, 5)


def get_period(session, period_id: int, lock: bool = False) -> PayrollPeriod:
    period = session.get(PayrollPeriod, period_id, with_for_update=lock or None)
    if period is None:
        raise NotFoundError("Payroll period", period_id)
    return period


def get_entry(session, entry_id: int) -> PayrollEntry:
    entry = session.get(PayrollEntry, entry_id)
    if entry is None:
        raise NotFoundError("Payroll entry", entry_id)
    return entry


def create_period(session, year: int, month: int,
                  start_date: Optional[date] = None,
                  end_date: Optional[date] = None,
                  payment_date: Optional[date] = None,
                  name: Optional[str] = None) -> PayrollPeriod:
    """Open a payroll period for a calendar month.

    Dates default to the month's first/last day, payment to the 5th of the next month.
    """
    try:
        year, month = int(year), int(month)
    except (TypeError, ValueError):
        raise ValidationError("year and month must be integers")
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")

    start_date = start_date or date(year, month, 1)
    end_date = end_date or date(year, month, calendar.monthrange(year, month)[1])
    if end_date < start_date:
        raise ValidationError("end_date must be >= start_date")

    with atomic(session):
        dup = session.query(PayrollPeriod.id).filter_by(year=year, month=month).first()
        if dup:
            raise ConflictError(f"Payroll period {year}-{month:02d} already exists",
                                payload={"id": dup[0]})
        period = PayrollPeriod(
            name=(name or "").strip() or f"{year}-{month:02d}",
            year=year,
            month=month,
            start_date=start_date,
            end_date=end_date,
            payment_date=payment_date or _default_payment_date(year, month),
            status=PERIOD_OPEN,
        )
        session.add(period)
    log.info("payroll period %s opened (id=%s)", period.name, period.id)
    return period


def process_period(session, period_id: int, processed_by: Optional[str]) -> PayrollPeriod:
    """
    Run payroll for every ACTIVE employee and close the period.

    Creates one PayrollEntry per employee (primary-key order) and writes the
    period totals in the same transaction. Only OPEN periods can be processed.
    """
    with atomic(session):
        period = get_period(session, period_id, lock=True)
        if period.status != PERIOD_OPEN:
            raise InvalidTransitionError("Payroll period", period.status, PERIOD_COMPLETED)

        employees = (session.query(Employee)
                     .filter(Employee.employment_status == ACTIVE)
                     .order_by(Employee.id.asc())
                     .all())

        totals: Dict[str, Decimal] = {
            "gross": ZERO, "deductions": ZERO, "net": ZERO,
            "epf_employee": ZERO, "epf_employer": ZERO,
            "socso": ZERO, "eis": ZERO, "pcb": ZERO,
        }
        for emp in employees:
            calc = calculate_statutory(emp.basic_salary)
            session.add(PayrollEntry(
                period_id=period.id,
                employee_id=emp.id,
                **{f: getattr(calc, f) for f in ENTRY_FIELDS},
            ))
            totals["gross"] += calc.gross_pay
            totals["deductions"] += calc.total_deductions
            totals["net"] += calc.net_pay
            totals["epf_employee"] += calc.epf_employee
            totals["epf_employer"] += calc.epf_employer
            totals["socso"] += calc.socso_employee + calc.socso_employer
            totals["eis"] += calc.eis_employee + calc.eis_employer
            totals["pcb"] += calc.pcb

        period.status = PERIOD_COMPLETED
        period.total_employees = len(employees)
        period.total_gross_pay = totals["gross"]
        period.total_deductions = totals["deductions"]
        period.total_net_pay = totals["net"]
        period.total_epf_employee = totals["epf_employee"]
        period.total_epf_employer = totals["epf_employer"]
        period.total_socso = totals["socso"]
        period.total_eis = totals["eis"]
        period.total_pcb = totals["pcb"]
        period.processed_by = processed_by
        period.processed_at = datetime.utcnow()

        try:
            session.flush()
        except IntegrityError as e:
            raise ConflictError("Payroll entries already exist for this period",
                                payload={"period_id": period_id}) from e

    log.info("payroll period %s processed by %s: %s employees, net %s",
             period_id, processed_by, period.total_employees, period.total_net_pay)
    return period


def periods_query(session, status: Optional[str] = None, year: Optional[int] = None):
    q = session.query(PayrollPeriod)
    if status:
        q = q.filter(PayrollPeriod.status == status)
    if year:
        q = q.filter(PayrollPeriod.year == year)
    return q.order_by(PayrollPeriod.year.desc(), PayrollPeriod.month.desc())


def entries_query(session, period_id: Optional[int] = None, employee_id: Optional[int] = None):
    q = session.query(PayrollEntry)
    if period_id:
        q = q.filter(PayrollEntry.period_id == period_id)
    if employee_id:
        q = q.filter(PayrollEntry.employee_id == employee_id)
    return q.order_by(PayrollEntry.created_at.desc(), PayrollEntry.id.desc())


def payroll_overview(session, year: int) -> Dict[str, Any]:
    base = session.query(PayrollPeriod).filter(PayrollPeriod.year == year)
    by_status = (session.query(PayrollPeriod.status, func.count(PayrollPeriod.id))
                 .filter(PayrollPeriod.year == year)
                 .group_by(PayrollPeriod.status)
                 .all())
    active = (session.query(func.count(Employee.id))
              .filter(Employee.employment_status == ACTIVE)
              .scalar()) or 0
    completed = (base.filter(PayrollPeriod.status == PERIOD_COMPLETED)
                 .order_by(PayrollPeriod.month.asc())
                 .all())

    monthly = [{
        "month": p.month,
        "total_employees": p.total_employees,
        "total_gross_pay": float(p.total_gross_pay or 0),
        "total_net_pay": float(p.total_net_pay or 0),
    } for p in completed]

    return {
        "year": year,
        "total_periods": base.count(),
        "periods_by_status": {s: n for s, n in by_status},
        "active_employees": active,
        "monthly_summary": monthly,
        "ytd_gross_pay": float(sum((p.total_gross_pay or 0 for p in completed), ZERO)),
        "ytd_net_pay": float(sum((p.total_net_pay or 0 for p in completed), ZERO)),
    }
