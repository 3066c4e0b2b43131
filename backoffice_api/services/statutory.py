# backoffice_api/services/statutory.py
"""
Malaysian statutory contributions on basic salary (simplified).

Rates and monthly caps:
  EPF    employee 11%, employer 12%        (no cap)
  SOCSO  employee 0.5%  cap 19.75, employer 1.75% cap 69.15
  EIS    employee 0.2%  cap 8.00,  employer 0.2%  cap 8.00
  PCB    flat 5% estimate, not the progressive schedule

Every amount is rounded half-up to the cent before caps are applied.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

EPF_EMPLOYEE_RATE = Decimal("0.11")
EPF_EMPLOYER_RATE = Decimal("0.12")
SOCSO_EMPLOYEE_RATE = Decimal("0.005")
SOCSO_EMPLOYER_RATE = Decimal("0.0175")
EIS_EMPLOYEE_RATE = Decimal("0.002")
EIS_EMPLOYER_RATE = Decimal("0.002")
PCB_RATE = Decimal("0.05")

SOCSO_EMPLOYEE_CAP = Decimal("19.75")
SOCSO_EMPLOYER_CAP = Decimal("69.15")
EIS_EMPLOYEE_CAP = Decimal("8.00")
EIS_EMPLOYER_CAP = Decimal("8.00")


def to_money(x) -> Decimal:
    return Decimal(x).quantize(CENT, rounding=ROUND_HALF_UP)


def _coerce_salary(value) -> Decimal:
    if value is None or value == "":
        return ZERO
    try:
        amt = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO
    if not amt.is_finite() or amt < 0:
        return ZERO
    return to_money(amt)


def _pct(base: Decimal, rate: Decimal, cap: Decimal | None = None) -> Decimal:
    amt = to_money(base * rate)
    if cap is not None and amt > cap:
        return cap
    return amt


@dataclass(frozen=True)
class StatutoryDeductions:
    basic_salary: Decimal
    gross_pay: Decimal
    epf_employee: Decimal
    epf_employer: Decimal
    socso_employee: Decimal
    socso_employer: Decimal
    eis_employee: Decimal
    eis_employer: Decimal
    pcb: Decimal
    total_deductions: Decimal
    net_pay: Decimal

    @property
    def total_employer_contributions(self) -> Decimal:
        return self.epf_employer + self.socso_employer + self.eis_employer

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def calculate_statutory(basic_salary) -> StatutoryDeductions:
    """Compute employee deductions, employer contributions and net pay.

    Missing, malformed or negative salaries are treated as 0.
    """
    basic = _coerce_salary(basic_salary)

    epf_employee = _pct(basic, EPF_EMPLOYEE_RATE)
    epf_employer = _pct(basic, EPF_EMPLOYER_RATE)
    socso_employee = _pct(basic, SOCSO_EMPLOYEE_RATE, SOCSO_EMPLOYEE_CAP)
    socso_employer = _pct(basic, SOCSO_EMPLOYER_RATE, SOCSO_EMPLOYER_CAP)
    eis_employee = _pct(basic, EIS_EMPLOYEE_RATE, EIS_EMPLOYEE_CAP)
    eis_employer = _pct(basic, EIS_EMPLOYER_RATE, EIS_EMPLOYER_CAP)
    pcb = _pct(basic, PCB_RATE)

    total = epf_employee + socso_employee + eis_employee + pcb
    return StatutoryDeductions(
        basic_salary=basic,
        gross_pay=basic,
        epf_employee=epf_employee,
        epf_employer=epf_employer,
        socso_employee=socso_employee,
        socso_employer=socso_employer,
        eis_employee=eis_employee,
        eis_employer=eis_employer,
        pcb=pcb,
        total_deductions=total,
        net_pay=basic - total,
    )
