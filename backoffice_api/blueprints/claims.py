# backoffice_api/blueprints/claims.py
from __future__ import annotations

from datetime import datetime

from flask import Blueprint, request

from backoffice_api.common.http import ok, fail
from backoffice_api.common.paging import page_limit, paginate, parse_date, iso, money
from backoffice_api.extensions import db
from backoffice_api.models.claim import Claim, ClaimLine
from backoffice_api.services import claim_workflow

bp = Blueprint("claims", __name__, url_prefix="/api/v1/claims")


def _row_line(x: ClaimLine):
    return {
        "id": x.id,
        "line_number": x.line_number,
        "expense_date": iso(x.expense_date),
        "category": x.category,
        "description": x.description,
        "amount": money(x.amount),
        "gst_amount": money(x.gst_amount),
        "notes": x.notes,
    }


def _row(c: Claim, with_lines: bool = True):
    row = {
        "id": c.id,
        "claim_number": c.claim_number,
        "employee_id": c.employee_id,
        "claim_type": c.claim_type,
        "claim_date": iso(c.claim_date),
        "description": c.description,
        "notes": c.notes,
        "total_amount": money(c.total_amount),
        "receipt_count": c.receipt_count,
        "status": c.status,
        "submitted_at": iso(c.submitted_at),
        "approved_by": c.approved_by,
        "approved_at": iso(c.approved_at),
        "approval_notes": c.approval_notes,
        "paid_by": c.paid_by,
        "paid_at": iso(c.paid_at),
        "payment_reference": c.payment_reference,
        "created_at": iso(c.created_at),
    }
    if with_lines:
        row["lines"] = [_row_line(x) for x in c.lines]
    return row


@bp.get("")
def list_claims():
    q = claim_workflow.claims_query(
        db.session,
        employee_id=request.args.get("employee_id", type=int),
        status=request.args.get("status"),
        claim_type=request.args.get("claim_type"),
        start_date=parse_date(request.args.get("start_date")),
        end_date=parse_date(request.args.get("end_date")),
    )
    page, size = page_limit()
    rows, meta = paginate(q, page, size)
    return ok([_row(c) for c in rows], **meta)


@bp.get("/<int:claim_id>")
def get_claim(claim_id: int):
    return ok(_row(claim_workflow.get_claim(db.session, claim_id)))


@bp.post("")
def create_claim():
    d = request.get_json(silent=True) or {}
    if any(not d.get(k) for k in ("employee_id", "claim_type", "claim_date")):
        return fail("employee_id, claim_type, claim_date are required", 422)
    cd = parse_date(d["claim_date"])
    if cd is None:
        return fail("claim_date must be YYYY-MM-DD", 422)
    lines = d.get("lines") or []
    if not isinstance(lines, list):
        return fail("lines must be a list", 422)

    c = claim_workflow.create_claim(
        db.session,
        employee_id=d["employee_id"],
        claim_type=d["claim_type"],
        claim_date=cd,
        lines=lines,
        description=d.get("description"),
        notes=d.get("notes"),
    )
    return ok(_row(c), 201)


@bp.post("/<int:claim_id>/submit")
def submit_claim(claim_id: int):
    return ok(_row(claim_workflow.submit_claim(db.session, claim_id)))


@bp.post("/<int:claim_id>/approve")
def approve_claim(claim_id: int):
    d = request.get_json(silent=True) or {}
    c = claim_workflow.approve_claim(db.session, claim_id, d.get("approved_by"), d.get("approval_notes"))
    return ok(_row(c))


@bp.post("/<int:claim_id>/reject")
def reject_claim(claim_id: int):
    d = request.get_json(silent=True) or {}
    c = claim_workflow.reject_claim(db.session, claim_id, d.get("approved_by"), d.get("approval_notes"))
    return ok(_row(c))


@bp.post("/<int:claim_id>/pay")
def pay_claim(claim_id: int):
    d = request.get_json(silent=True) or {}
    c = claim_workflow.pay_claim(db.session, claim_id, d.get("paid_by"), d.get("payment_reference"))
    return ok(_row(c))


@bp.delete("/<int:claim_id>")
def delete_claim(claim_id: int):
    return ok(claim_workflow.delete_claim(db.session, claim_id))


@bp.get("/stats/overview")
def overview():
    year = request.args.get("year", type=int) or datetime.utcnow().year
    return ok(claim_workflow.claims_overview(db.session, year))
