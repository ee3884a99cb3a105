import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import json
import logging

from sync_beds24.db.engine import engine
from sync_beds24.logging_config import setup_logging
from sync_beds24.services.bootstrap import run_initial_import
from sync_beds24.services.secret_store import SecretStore
from sync_beds24.services.sync import SYNC_TYPES, SyncOrchestrator
from sync_beds24.services.token_service import TokenService

setup_logging()
logger = logging.getLogger(__name__)


def main() -> None:
    """
    Sync a single hotel by hand.

    Usage:
        python scripts/sync_one_hotel.py <hotel_id> [bookings|calendar|both|bootstrap] [--dry-run]
    """
    parser = argparse.ArgumentParser(description="Sync one Beds24 hotel")
    parser.add_argument("hotel_id")
    parser.add_argument("sync_type", nargs="?", default="both", choices=[*SYNC_TYPES, "bootstrap"])
    parser.add_argument("--dry-run", action="store_true", help="Fetch but do not write")
    args = parser.parse_args()

    token_service = TokenService(engine, SecretStore())
    logger.info("Starting %s sync for hotel_id=%s", args.sync_type, args.hotel_id)

    if args.sync_type == "bootstrap":
        result = run_initial_import(engine, token_service, args.hotel_id)
    else:
        orchestrator = SyncOrchestrator(engine, token_service, dry_run=args.dry_run)
        result = orchestrator.trigger_sync(args.sync_type, hotel_id=args.hotel_id)

    print(json.dumps(result, indent=2, default=str))
    if result.get("status") == "error" or result.get("errors"):
        sys.exit(1)


if __name__ == "__main__":
    main()
