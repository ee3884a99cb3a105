from typing import Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.engine import Engine

from sync_beds24.dependencies import (
    get_db_engine,
    get_lifecycle_manager,
    get_sync_orchestrator,
    get_token_service,
)
from sync_beds24.errors import Beds24SyncError
from sync_beds24.schemas.connections import ConnectionCreatePayload
from sync_beds24.security import Caller, require_admin
from sync_beds24.services.bootstrap import run_initial_import
from sync_beds24.services.connections import ConnectionLifecycleManager
from sync_beds24.services.sync import SyncOrchestrator
from sync_beds24.services.token_service import TokenService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/connections", status_code=status.HTTP_201_CREATED)
def create_connection(
    payload: ConnectionCreatePayload,
    background_tasks: BackgroundTasks,
    caller: Caller = Depends(require_admin),
    manager: ConnectionLifecycleManager = Depends(get_lifecycle_manager),
    db_engine: Engine = Depends(get_db_engine),
    token_service: TokenService = Depends(get_token_service),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> dict[str, Any]:
    """
    Link a hotel to a Beds24 property and schedule its initial import.

    Re-posting for an already linked hotel re-keys the existing connection,
    which is how a connection in error state is recovered.

    Returns:
        dict: {"connection": {...}} without secret references or tokens
    """

    def schedule_import(hotel_id: str) -> None:
        background_tasks.add_task(
            run_initial_import,
            db_engine,
            token_service,
            hotel_id,
            flight=orchestrator.flight,
        )

    try:
        connection = manager.link_connection(
            caller=caller,
            org_id=payload.org_id,
            hotel_id=payload.hotel_id,
            external_property_id=payload.external_property_id,
            invite_code=payload.invite_code,
            scopes=payload.scopes,
            schedule_import=schedule_import,
        )
        return {"connection": connection}

    except (HTTPException, Beds24SyncError):
        raise
    except Exception as e:
        logger.exception("connection_link_failed", hotel_id=payload.hotel_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
