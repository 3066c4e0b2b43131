from datetime import datetime
from backoffice_api.extensions import db

EMPLOYMENT_STATUSES = ("ACTIVE", "ON_LEAVE", "SUSPENDED", "RESIGNED", "TERMINATED")


class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)

    employee_number = db.Column(db.String(32), unique=True, nullable=False)
    first_name = db.Column(db.String(80), nullable=False)
    last_name  = db.Column(db.String(80), nullable=True)
    email      = db.Column(db.String(255), unique=True, nullable=True)
    department = db.Column(db.String(80), nullable=True)
    position   = db.Column(db.String(120), nullable=True)

    date_joined = db.Column(db.Date, nullable=True)
    basic_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    employment_status = db.Column(db.String(20), nullable=False, default="ACTIVE")  # see EMPLOYMENT_STATUSES

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_emp_status", "employment_status"),
        db.Index("ix_emp_department", "department"),
    )

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)
