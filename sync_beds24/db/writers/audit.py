import json
import uuid
from typing import Any, Iterable, Optional

from sqlalchemy import insert
from sqlalchemy.engine import Connection

from sync_beds24.models.audit import AuditLogEntry
from sync_beds24.utils.datetime import utc_now
from sync_beds24.utils.redaction import REDACT_KEYS, redact


def insert_audit_entry(
    conn: Connection,
    provider: str,
    operation: str,
    status: str,
    hotel_id: Optional[str] = None,
    org_id: Optional[str] = None,
    external_id: Optional[str] = None,
    request_payload: Any = None,
    response_payload: Any = None,
    error: Any = None,
    duration_ms: Optional[int] = None,
    request_cost: Optional[int] = None,
    limit_remaining: Optional[int] = None,
    limit_resets_in: Optional[int] = None,
    extra_redact_keys: Iterable[str] = (),
) -> str:
    """
    Append one audit entry.

    Payloads and structured errors are redacted here, before the INSERT is
    built, so no caller can persist an unredacted value.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        extra_redact_keys (Iterable[str]): Denylist entries added for this entry only.

    Returns:
        str: ID of the new entry
    """
    keys = (*REDACT_KEYS, *extra_redact_keys)

    error_message: Optional[str] = None
    if isinstance(error, (dict, list)):
        error_message = json.dumps(redact(error, keys), default=str)
    elif error is not None:
        error_message = str(error)

    entry_id = str(uuid.uuid4())
    conn.execute(
        insert(AuditLogEntry).values(
            id=entry_id,
            provider=provider,
            operation=operation,
            status=status,
            hotel_id=hotel_id,
            org_id=org_id,
            external_id=external_id,
            request_payload=redact(request_payload, keys),
            response_payload=redact(response_payload, keys),
            error_message=error_message,
            duration_ms=duration_ms,
            request_cost=request_cost,
            limit_remaining=limit_remaining,
            limit_resets_in=limit_resets_in,
            created_at=utc_now(),
        )
    )
    return entry_id
