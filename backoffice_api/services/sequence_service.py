# backoffice_api/services/sequence_service.py
from __future__ import annotations

import logging
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from backoffice_api.common.errors import ConflictError
from backoffice_api.models.sequence import DocumentSequence

log = logging.getLogger(__name__)


def format_number(prefix: str, year: int, value: int, width: int = 5) -> str:
    return f"{prefix}-{year}-{value:0{width}d}"


def next_value(session, prefix: str, year: int, seed: Optional[Callable[[], int]] = None) -> int:
    """
    Reserve the next value of the (prefix, year) counter inside the caller's transaction.

    The increment is a single UPDATE, so concurrent callers serialize on the row.
    On first use the counter starts after `seed()` (count of documents already
    numbered for that year), else after 0.
    """
    key = (DocumentSequence.prefix == prefix, DocumentSequence.year == year)

    for attempt in (1, 2):
        res = session.execute(
            update(DocumentSequence)
            .where(*key)
            .values(last_value=DocumentSequence.last_value + 1)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount:
            return session.execute(select(DocumentSequence.last_value).where(*key)).scalar_one()

        start = int(seed() or 0) if seed else 0
        try:
            with session.begin_nested():
                session.add(DocumentSequence(prefix=prefix, year=year, last_value=start + 1))
            return start + 1
        except IntegrityError:
            # another writer created the row first; its UPDATE path is now open
            log.warning("sequence %s/%s created concurrently (attempt %s)", prefix, year, attempt)

    raise ConflictError(f"Could not reserve a {prefix} number for {year}",
                        payload={"prefix": prefix, "year": year})


def next_number(session, prefix: str, year: int, seed: Optional[Callable[[], int]] = None,
                width: int = 5) -> str:
    return format_number(prefix, year, next_value(session, prefix, year, seed), width)
