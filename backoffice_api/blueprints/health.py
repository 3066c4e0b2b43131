from datetime import datetime

from flask import Blueprint
from sqlalchemy import text

from backoffice_api.common.http import ok, fail
from backoffice_api.extensions import db

bp = Blueprint("health", __name__, url_prefix="/api/v1")


@bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        db.session.rollback()
        return fail("database unavailable", 503, detail=str(e))
    return ok({"status": "ok", "timestamp": datetime.utcnow().isoformat()})
