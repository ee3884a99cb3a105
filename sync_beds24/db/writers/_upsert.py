"""
Generic upsert helper with IS DISTINCT FROM optimization.

Builds INSERT ... ON CONFLICT DO UPDATE for the dialect of the connection
(PostgreSQL in production, SQLite in tests) and only rewrites a row when one
of the compared columns actually changed.
"""

from typing import Any, Sequence

from sqlalchemy import or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection


def dialect_insert(conn: Connection, table: Any) -> Any:
    """Return the dialect-specific insert() construct supporting ON CONFLICT."""
    if conn.dialect.name == "postgresql":
        return postgresql.insert(table)
    if conn.dialect.name == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"Upsert is not supported on dialect {conn.dialect.name!r}")


def upsert_with_distinct_check(
    conn: Connection,
    table: type,
    rows: list[dict[str, Any]],
    conflict_columns: Sequence[str],
    distinct_columns: Sequence[str] = ("raw_payload",),
    update_columns: Sequence[str] | None = None,
    batch_size: int = 100,
) -> None:
    """
    Perform upsert with IS DISTINCT FROM optimization.

    Only updates rows where at least one of distinct_columns changed, so
    updated_at keeps pointing at the last real change.

    Args:
        conn: Active database connection (within transaction)
        table: SQLAlchemy ORM table class (e.g., Reservation, CalendarDay)
        rows: List of row dicts to upsert
        conflict_columns: Columns of the unique key used for ON CONFLICT
        distinct_columns: Columns compared to decide whether to update
        update_columns: Columns to update on conflict
            (default: distinct_columns plus "updated_at")
        batch_size: Rows per INSERT statement, keeping bind parameters under driver limits

    Example:
        >>> with engine.begin() as conn:
        ...     upsert_with_distinct_check(
        ...         conn=conn,
        ...         table=CalendarDay,
        ...         rows=[{"room_type_id": "...", "day": date(2025, 1, 1), ...}],
        ...         conflict_columns=["room_type_id", "day"],
        ...         distinct_columns=["available", "price", "min_stay", "max_stay"],
        ...     )
    """
    if not rows:
        return

    if update_columns is None:
        update_columns = [*distinct_columns, "updated_at"]

    for start in range(0, len(rows), batch_size):
        stmt = dialect_insert(conn, table).values(rows[start : start + batch_size])

        set_dict = {col: getattr(stmt.excluded, col) for col in update_columns}

        distinct_check = or_(
            *[
                getattr(table, col).is_distinct_from(getattr(stmt.excluded, col))
                for col in distinct_columns
            ]
        )

        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict_columns),
            set_=set_dict,
            where=distinct_check,
        )

        conn.execute(stmt)
