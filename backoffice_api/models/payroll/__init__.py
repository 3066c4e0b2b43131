# backoffice_api/models/payroll/__init__.py
from .period import PayrollPeriod, PayrollEntry, PERIOD_OPEN, PERIOD_COMPLETED

__all__ = [
    "PayrollPeriod", "PayrollEntry",
    "PERIOD_OPEN", "PERIOD_COMPLETED",
]
