from datetime import datetime
from backoffice_api.extensions import db

PERIOD_OPEN = "OPEN"
PERIOD_COMPLETED = "COMPLETED"


class PayrollPeriod(db.Model):
    __tablename__ = "payroll_periods"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(60), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    payment_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.Enum(PERIOD_OPEN, PERIOD_COMPLETED, name="payroll_period_status_enum"),
                       nullable=False, default=PERIOD_OPEN)

    # totals, written once by processing
    total_employees = db.Column(db.Integer, nullable=False, default=0)
    total_gross_pay = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_net_pay = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_epf_employee = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_epf_employer = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_socso = db.Column(db.Numeric(14, 2), nullable=False, default=0)  # employee + employer
    total_eis = db.Column(db.Numeric(14, 2), nullable=False, default=0)    # employee + employer
    total_pcb = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    processed_by = db.Column(db.String(100))
    processed_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("year", "month", name="uq_payroll_period_year_month"),
    )

    entries = db.relationship(
        "PayrollEntry",
        back_populates="period",
        cascade="all, delete-orphan",
        order_by="PayrollEntry.employee_id",
        lazy="select",
    )


class PayrollEntry(db.Model):
    __tablename__ = "payroll_entries"

    id = db.Column(db.Integer, primary_key=True)
    period_id = db.Column(db.Integer, db.ForeignKey("payroll_periods.id", ondelete="CASCADE"),
                          nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"),
                            nullable=False, index=True)

    basic_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    gross_pay = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    epf_employee = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    socso_employee = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    eis_employee = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    pcb = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_pay = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    epf_employer = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    socso_employer = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    eis_employer = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("period_id", "employee_id", name="uq_payroll_entry_period_employee"),
    )

    period = db.relationship("PayrollPeriod", back_populates="entries")
    employee = db.relationship("Employee", lazy="joined")
