from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException

from sync_beds24.dependencies import get_sync_orchestrator
from sync_beds24.errors import Beds24SyncError
from sync_beds24.schemas.sync import SyncTriggerPayload
from sync_beds24.security import Caller, require_cron_or_admin
from sync_beds24.services.sync import SyncOrchestrator

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/sync")
def trigger_sync(
    payload: SyncTriggerPayload,
    caller: Caller = Depends(require_cron_or_admin),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> dict[str, Any]:
    """
    Run a bookings and/or calendar sync and wait for the result.

    Called by the scheduler (X-Cron-Secret) or an administrator.

    Returns:
        dict: {"success": true, "result": {...}}
    """
    try:
        logger.info(
            "sync_triggered", sync_type=payload.type, hotel_id=payload.hotel_id, caller_id=caller.id
        )
        result = orchestrator.trigger_sync(payload.type, hotel_id=payload.hotel_id)
        return {"success": True, "result": result}

    except (HTTPException, Beds24SyncError):
        raise
    except Exception as e:
        logger.exception("sync_trigger_failed", hotel_id=payload.hotel_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
