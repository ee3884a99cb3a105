"""
FastAPI dependency injection providers.

Routes receive the engine and the long-lived services through Depends(), so
tests can replace them with app.dependency_overrides.

The token service and sync orchestrator are built once per engine: the
in-memory token cache and the single-flight registries only work when every
request shares them. Both are derived from get_db_engine, so overriding it
alone moves linking, token and sync work to the same database.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Generator

from fastapi import Depends
from sqlalchemy.engine import Engine

from sync_beds24.db.engine import engine
from sync_beds24.services.connections import ConnectionLifecycleManager
from sync_beds24.services.secret_store import SecretStore
from sync_beds24.services.sync import SyncOrchestrator
from sync_beds24.services.token_service import TokenService


def get_db_engine() -> Generator[Engine, None, None]:
    """
    Provide database engine for dependency injection.

    Testing Example:
        >>> app.dependency_overrides[get_db_engine] = lambda: test_engine
    """
    yield engine


@lru_cache(maxsize=1)
def get_secret_store() -> SecretStore:
    return SecretStore()


@lru_cache(maxsize=None)
def _token_service_for(db_engine: Engine, secret_store: SecretStore) -> TokenService:
    return TokenService(db_engine, secret_store)


@lru_cache(maxsize=None)
def _sync_orchestrator_for(db_engine: Engine, token_service: TokenService) -> SyncOrchestrator:
    return SyncOrchestrator(db_engine, token_service)


def get_token_service(
    db_engine: Engine = Depends(get_db_engine),
    secret_store: SecretStore = Depends(get_secret_store),
) -> TokenService:
    """Process-wide TokenService of the injected engine."""
    return _token_service_for(db_engine, secret_store)


def get_sync_orchestrator(
    db_engine: Engine = Depends(get_db_engine),
    token_service: TokenService = Depends(get_token_service),
) -> SyncOrchestrator:
    """Process-wide SyncOrchestrator sharing the engine's TokenService."""
    return _sync_orchestrator_for(db_engine, token_service)


def get_lifecycle_manager(
    db_engine: Engine = Depends(get_db_engine),
    secret_store: SecretStore = Depends(get_secret_store),
    token_service: TokenService = Depends(get_token_service),
) -> ConnectionLifecycleManager:
    return ConnectionLifecycleManager(db_engine, secret_store, token_service)
