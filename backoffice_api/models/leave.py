from datetime import datetime
from backoffice_api.extensions import db

LEAVE_TYPES = (
    "ANNUAL", "MEDICAL", "EMERGENCY", "UNPAID",
    "MATERNITY", "PATERNITY", "COMPASSIONATE", "HOSPITALIZATION",
)

LEAVE_PENDING = "PENDING"
LEAVE_APPROVED = "APPROVED"
LEAVE_REJECTED = "REJECTED"


class LeaveBalance(db.Model):
    __tablename__ = "leave_balances"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type = db.Column(db.String(20), nullable=False)
    year = db.Column(db.Integer, nullable=False)

    entitlement = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    carried_forward = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    taken = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    pending = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    available = db.Column(db.Numeric(6, 2), nullable=False, default=0)

    # optimistic concurrency; bumped by the ORM on every UPDATE
    version = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "leave_type", "year", name="uq_leave_balance_emp_type_year"),
    )
    __mapper_args__ = {"version_id_col": version}

    employee = db.relationship("Employee")

    @property
    def is_balanced(self) -> bool:
        return (self.entitlement + self.carried_forward) == (self.taken + self.pending + self.available)


class LeaveRequest(db.Model):
    __tablename__ = "leave_requests"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type = db.Column(db.String(20), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    number_of_days = db.Column(db.Numeric(6, 2), nullable=False)
    reason = db.Column(db.Text)
    contact_during_leave = db.Column(db.String(120))
    status = db.Column(db.String(20), nullable=False, default=LEAVE_PENDING)  # PENDING|APPROVED|REJECTED

    approved_by = db.Column(db.String(100))
    approved_at = db.Column(db.DateTime)
    approval_notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_leave_req_status", "status"),
    )

    employee = db.relationship("Employee", backref="leave_requests")

    @property
    def balance_year(self) -> int:
        # the whole request counts against the year it starts in
        return self.start_date.year
