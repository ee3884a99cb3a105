from typing import Any

import requests
import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.engine import Engine

from sync_beds24.dependencies import get_db_engine, get_token_service
from sync_beds24.errors import Beds24SyncError
from sync_beds24.schemas.inventory import InventoryPushPayload
from sync_beds24.security import Caller, require_admin
from sync_beds24.services.inventory import push_inventory
from sync_beds24.services.token_service import TokenService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/inventory")
def push_inventory_endpoint(
    payload: InventoryPushPayload,
    caller: Caller = Depends(require_admin),
    db_engine: Engine = Depends(get_db_engine),
    token_service: TokenService = Depends(get_token_service),
) -> dict[str, Any]:
    """
    Send availability and prices to Beds24 with the connection's write token.

    Returns 409 when the connection was linked without write access.
    """
    try:
        result = push_inventory(
            db_engine,
            token_service,
            payload.hotel_id,
            [update.model_dump() for update in payload.updates],
        )
        return {"success": True, "result": result}

    except (HTTPException, Beds24SyncError):
        raise
    except requests.RequestException as e:
        logger.warning("inventory_push_rejected", hotel_id=payload.hotel_id, error=str(e))
        raise HTTPException(status_code=502, detail="Beds24 rejected the inventory update")
    except Exception as e:
        logger.exception("inventory_push_failed", hotel_id=payload.hotel_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
