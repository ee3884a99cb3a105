from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.engine import Engine

from sync_beds24.dependencies import get_db_engine
from sync_beds24.errors import Beds24SyncError
from sync_beds24.security import Caller, require_admin
from sync_beds24.services.audit import get_audit_logs
from sync_beds24.services.sync import get_sync_status

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/audit-logs")
def list_audit_logs(
    operation: Optional[str] = Query(None, description="Substring of the operation name"),
    status: Optional[str] = Query(None, description="success or error"),
    hotel_id: Optional[str] = Query(None),
    limit: int = Query(100, description="Number of entries (1-1000)"),
    caller: Caller = Depends(require_admin),
    db_engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """Return audit entries newest first, with secrets redacted."""
    try:
        logs = get_audit_logs(
            db_engine, operation=operation, status=status, hotel_id=hotel_id, limit=limit
        )
        return {"logs": logs}

    except (HTTPException, Beds24SyncError):
        raise
    except Exception as e:
        logger.exception("audit_log_query_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/sync-status")
def sync_status(
    caller: Caller = Depends(require_admin),
    db_engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """Return checkpoints and connection health of every synced hotel."""
    try:
        return {"properties": get_sync_status(db_engine)}

    except (HTTPException, Beds24SyncError):
        raise
    except Exception as e:
        logger.exception("sync_status_query_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
