# backoffice_api/common/paging.py
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from flask import request

DEFAULT_PAGE = 1
DEFAULT_SIZE = 20
MAX_SIZE = 100


def page_limit():
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except Exception:
        page = DEFAULT_PAGE
    try:
        size = int(request.args.get("size", DEFAULT_SIZE))
        size = max(1, min(size, MAX_SIZE))
    except Exception:
        size = DEFAULT_SIZE
    return page, size


def paginate(query, page: int, size: int):
    """Return (rows, meta) for a query, meta shaped for the JSON envelope."""
    total = query.count()
    rows = query.offset((page - 1) * size).limit(size).all()
    pages = (total + size - 1) // size if size else 0
    return rows, {"page": page, "size": size, "total": total, "pages": pages}


def parse_date(s):
    if not s: return None
    if isinstance(s, date): return s
    for fmt in ("%Y-%m-%d", "%d-%m-%Y"):
        try: return datetime.strptime(str(s), fmt).date()
        except ValueError: pass
    return None


def parse_decimal(x):
    if x is None or x == "":
        return None
    try:
        return Decimal(str(x))
    except (InvalidOperation, ValueError):
        return None


def iso(v):
    return v.isoformat() if v else None


def money(v):
    return float(v) if v is not None else None
