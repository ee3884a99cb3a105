from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from sync_beds24.models.audit import AuditLogEntry


def get_audit_entries(
    conn: Connection,
    operation: Optional[str] = None,
    status: Optional[str] = None,
    hotel_id: Optional[str] = None,
    limit: int = 100,
) -> list[dict[str, Any]]:
    """
    Fetch audit entries, newest first.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        operation (Optional[str]): Case-insensitive substring of the operation name.
        status (Optional[str]): Exact status (success or error).
        hotel_id (Optional[str]): Internal hotel/property ID.
        limit (int): Maximum number of rows.

    Returns:
        list[dict]: Audit rows as stored (already redacted at write time)
    """
    stmt = select(AuditLogEntry.__table__)
    if operation:
        stmt = stmt.where(func.lower(AuditLogEntry.operation).contains(operation.lower()))
    if status:
        stmt = stmt.where(AuditLogEntry.status == status)
    if hotel_id:
        stmt = stmt.where(AuditLogEntry.hotel_id == hotel_id)
    stmt = stmt.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id).limit(limit)

    return [dict(row) for row in conn.execute(stmt).mappings().all()]
