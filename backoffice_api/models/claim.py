from datetime import datetime
from backoffice_api.extensions import db

CLAIM_TYPES = ("MEDICAL", "TRAVEL", "MEAL", "TRANSPORT", "ACCOMMODATION", "OTHER")

CLAIM_DRAFT = "DRAFT"
CLAIM_PENDING_APPROVAL = "PENDING_APPROVAL"
CLAIM_APPROVED = "APPROVED"
CLAIM_REJECTED = "REJECTED"
CLAIM_PAID = "PAID"


class Claim(db.Model):
    __tablename__ = "claims"

    id = db.Column(db.Integer, primary_key=True)
    claim_number = db.Column(db.String(30), unique=True, nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    claim_type = db.Column(db.String(20), nullable=False)
    claim_date = db.Column(db.Date, nullable=False)
    description = db.Column(db.Text)
    notes = db.Column(db.Text)

    total_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    receipt_count = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default=CLAIM_DRAFT)

    submitted_at = db.Column(db.DateTime)
    approved_by = db.Column(db.String(100))
    approved_at = db.Column(db.DateTime)
    approval_notes = db.Column(db.Text)
    paid_by = db.Column(db.String(100))
    paid_at = db.Column(db.DateTime)
    payment_reference = db.Column(db.String(100))

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_claim_status", "status"),
        db.Index("ix_claim_date", "claim_date"),
    )

    employee = db.relationship("Employee", backref="claims")
    lines = db.relationship(
        "ClaimLine",
        back_populates="claim",
        cascade="all, delete-orphan",
        order_by="ClaimLine.line_number",
    )


class ClaimLine(db.Model):
    __tablename__ = "claim_lines"

    id = db.Column(db.Integer, primary_key=True)
    claim_id = db.Column(db.Integer, db.ForeignKey("claims.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    expense_date = db.Column(db.Date, nullable=False)
    category = db.Column(db.String(40))
    description = db.Column(db.Text)
    amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    gst_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    notes = db.Column(db.Text)

    __table_args__ = (
        db.UniqueConstraint("claim_id", "line_number", name="uq_claim_line_number"),
    )

    claim = db.relationship("Claim", back_populates="lines")
