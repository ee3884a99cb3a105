"""
Scheduled job: keep every connection alive, then sync all eligible hotels.

Usage:
    python -m sync_beds24.pollers.sync
"""

import structlog

from sync_beds24.config import DRY_RUN
from sync_beds24.db.engine import engine
from sync_beds24.logging_config import setup_logging
from sync_beds24.services.secret_store import SecretStore
from sync_beds24.services.sync import SyncOrchestrator
from sync_beds24.services.token_service import TokenService

# Setup logging
setup_logging()
logger = structlog.get_logger(__name__)


def main() -> None:
    token_service = TokenService(engine, SecretStore())
    orchestrator = SyncOrchestrator(engine, token_service, dry_run=DRY_RUN)

    keep_alive = token_service.keep_alive_all()
    logger.info("scheduled_keep_alive_done", total=keep_alive["total"], failed=keep_alive["failed"])

    result = orchestrator.trigger_sync("both")
    logger.info(
        "scheduled_sync_done",
        hotels=len(result["hotels"]),
        bookings_processed=result["bookings_processed"],
        calendar_days_processed=result["calendar_days_processed"],
        errors=len(result["errors"]),
    )


if __name__ == "__main__":
    main()
