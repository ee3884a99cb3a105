from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from sync_beds24.dependencies import get_token_service
from sync_beds24.errors import Beds24SyncError
from sync_beds24.schemas.tokens import TokenActionPayload
from sync_beds24.security import Caller, require_cron
from sync_beds24.services.token_service import TokenService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/tokens")
def token_action(
    payload: TokenActionPayload,
    caller: Caller = Depends(require_cron),
    token_service: TokenService = Depends(get_token_service),
) -> dict[str, Any]:
    """
    Token maintenance for scheduled jobs and internal callers.

    Actions:
        getAccessToken: {"accessToken": ...} for hotelId (forWrite for the write token)
        keepAlive: keep-alive result for hotelId
        keepAliveAll: keep-alive summary for every active connection
    """
    try:
        if payload.action == "keepAliveAll":
            return token_service.keep_alive_all()

        if not payload.hotel_id:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"hotelId is required for {payload.action}",
            )

        if payload.action == "keepAlive":
            return token_service.keep_alive(payload.hotel_id)

        token = token_service.get_access_token(payload.hotel_id, for_write=payload.for_write)
        return {"accessToken": token}

    except (HTTPException, Beds24SyncError):
        raise
    except Exception as e:
        logger.exception("token_action_failed", action=payload.action, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
