"""
Audit trail of Beds24 calls.

record_audit() writes each entry in its own transaction, so the trail of a
sync run survives when the run's data batch is rolled back.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sync_beds24.config import PROVIDER
from sync_beds24.db.readers.audit import get_audit_entries
from sync_beds24.db.writers.audit import insert_audit_entry
from sync_beds24.metrics import audit_write_failures
from sync_beds24.utils.redaction import redact

logger = structlog.get_logger(__name__)

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"

MAX_AUDIT_LIMIT = 1000


def record_audit(
    engine: Engine,
    operation: str,
    status: str,
    hotel_id: Optional[str] = None,
    org_id: Optional[str] = None,
    external_id: Optional[str] = None,
    request_payload: Any = None,
    response_payload: Any = None,
    error: Any = None,
    duration_ms: Optional[int] = None,
    credit: Optional[dict[str, Optional[int]]] = None,
    extra_redact_keys: Iterable[str] = (),
    provider: str = PROVIDER,
) -> Optional[str]:
    """
    Append an audit entry for one external call.

    A failure to persist the entry is logged and counted, and never replaces
    the outcome of the call being audited.

    Args:
        engine: SQLAlchemy engine
        operation: Operation name (e.g. "bookings_fetch", "token_refresh")
        status: success or error
        credit: Parsed Beds24 credit headers (request_cost, limit_remaining, limit_resets_in)
        extra_redact_keys: Additional denylist entries for this entry

    Returns:
        The entry ID, or None if it could not be written
    """
    credit = credit or {}
    try:
        with engine.begin() as conn:
            return insert_audit_entry(
                conn,
                provider=provider,
                operation=operation,
                status=status,
                hotel_id=hotel_id,
                org_id=org_id,
                external_id=external_id,
                request_payload=request_payload,
                response_payload=response_payload,
                error=error,
                duration_ms=duration_ms,
                request_cost=credit.get("request_cost"),
                limit_remaining=credit.get("limit_remaining"),
                limit_resets_in=credit.get("limit_resets_in"),
                extra_redact_keys=extra_redact_keys,
            )
    except SQLAlchemyError:
        audit_write_failures.inc()
        logger.exception("audit_write_failed", operation=operation, hotel_id=hotel_id)
        return None


def get_audit_logs(
    engine: Engine,
    operation: Optional[str] = None,
    status: Optional[str] = None,
    hotel_id: Optional[str] = None,
    limit: int = 100,
) -> list[dict[str, Any]]:
    """
    Query the audit trail for administrators.

    Args:
        operation: Case-insensitive substring of the operation name
        status: Exact status filter
        hotel_id: Internal hotel/property ID
        limit: Number of rows, clamped to 1..1000

    Returns:
        Rows newest first, with payloads passed through redaction again
    """
    limit = max(1, min(limit, MAX_AUDIT_LIMIT))
    with engine.connect() as conn:
        rows = get_audit_entries(
            conn, operation=operation, status=status, hotel_id=hotel_id, limit=limit
        )

    for row in rows:
        row["request_payload"] = redact(row.get("request_payload"))
        row["response_payload"] = redact(row.get("response_payload"))
    return rows
