from datetime import datetime
from backoffice_api.extensions import db


class DocumentSequence(db.Model):
    """Year-scoped counter behind human-readable document numbers (CLM-2025-00001)."""
    __tablename__ = "document_sequences"

    id = db.Column(db.Integer, primary_key=True)
    prefix = db.Column(db.String(10), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    last_value = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("prefix", "year", name="uq_document_sequence_prefix_year"),
    )
