import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sync_beds24.config import ALLOWED_ORIGINS
from sync_beds24.errors import AuthenticationError, Beds24SyncError
from sync_beds24.logging_config import setup_logging
from sync_beds24.middleware import RequestIDMiddleware
from sync_beds24.routes.admin import router as admin_router
from sync_beds24.routes.connections import router as connections_router
from sync_beds24.routes.health import router as health_router
from sync_beds24.routes.inventory import router as inventory_router
from sync_beds24.routes.metrics import router as metrics_router
from sync_beds24.routes.sync import router as sync_router
from sync_beds24.routes.tokens import router as tokens_router
from sync_beds24.routes.webhook import router as webhook_router

# Initialize structured logging
setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Beds24 Sync API",
    description="Credential management and synchronization for Beds24 connections",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if "*" not in ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(Beds24SyncError)
async def beds24_error_handler(request: Request, exc: Beds24SyncError) -> JSONResponse:
    """Render integration errors as {"error": ..., "details": ...}."""
    if exc.status_code >= 500:
        logger.error("request_failed", error=exc.message, error_type=type(exc).__name__)
    else:
        logger.info("request_rejected", error=exc.message, status_code=exc.status_code)

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)


# Register routers
app.include_router(health_router, tags=["Health"])
app.include_router(metrics_router, tags=["Metrics"])
app.include_router(connections_router, prefix="/beds24", tags=["Connections"])
app.include_router(sync_router, prefix="/beds24", tags=["Sync"])
app.include_router(tokens_router, prefix="/beds24", tags=["Tokens"])
app.include_router(inventory_router, prefix="/beds24", tags=["Inventory"])
app.include_router(admin_router, prefix="/beds24", tags=["Admin"])
app.include_router(webhook_router, prefix="/beds24", tags=["Webhooks"])


@app.on_event("startup")
def startup_event() -> None:
    """Initialize application on startup."""
    from sync_beds24.db.engine import check_engine_health

    logger.info("FastAPI application starting up...")

    if not check_engine_health():
        logger.warning("database_unreachable_at_startup")

    logger.info("FastAPI application initialized")
