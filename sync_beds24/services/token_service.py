"""
Access token service for Beds24 connections.

Tokens are looked up in two tiers before a refresh grant is made:

1. the in-memory TokenCache of this process, keyed by (connection_id, direction)
2. the token persisted on the connections row by any process

A full miss mints a new token. Concurrent misses for the same
(connection_id, direction) share one refresh call through SingleFlight, and
the leader re-reads tier 2 first in case another process minted meanwhile.
A refresh token rejected by Beds24 moves the connection to status=error,
which only a new link clears.
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine

from sync_beds24.cache import TokenCache
from sync_beds24.config import (
    PROVIDER,
    TOKEN_CACHE_MAX_ENTRIES,
    TOKEN_SAFETY_MARGIN_SECONDS,
)
from sync_beds24.db.readers.connections import (
    get_active_hotel_ids,
    get_connection,
    get_connection_for_hotel,
)
from sync_beds24.db.writers.connections import (
    mark_connection_error,
    store_access_token,
    token_columns,
)
from sync_beds24.errors import (
    Beds24SyncError,
    ConnectionInErrorState,
    ConnectionNotFound,
    RefreshFailed,
)
from sync_beds24.metrics import (
    connections_in_error,
    token_cache_hits,
    token_cache_misses,
    token_refreshes,
)
from sync_beds24.models.connections import ConnectionStatus
from sync_beds24.network.auth import request_access_token
from sync_beds24.services.audit import STATUS_ERROR, STATUS_SUCCESS, record_audit
from sync_beds24.services.credentials import (
    TokenDirection,
    capability_from_connection,
    refresh_ref_for,
)
from sync_beds24.services.secret_store import SecretStore
from sync_beds24.singleflight import SingleFlight
from sync_beds24.utils.datetime import ensure_utc, utc_now

logger = structlog.get_logger(__name__)


class TokenService:
    """
    Mints and caches Beds24 access tokens per connection and direction.

    One instance is shared by all requests of a process (see
    dependencies.get_token_service); it owns its TokenCache and SingleFlight.

    Example:
        >>> service = TokenService(engine, SecretStore())
        >>> service.get_access_token("hotel-1")
        'eyJ...'
        >>> service.get_access_token("hotel-1", for_write=True)
        Traceback (most recent call last):
        NoWriteCredential: Connection has no write credential; ...
    """

    def __init__(
        self,
        engine: Engine,
        secret_store: SecretStore,
        cache: Optional[TokenCache] = None,
        flight: Optional[SingleFlight[str]] = None,
        provider: str = PROVIDER,
        safety_margin_seconds: int = TOKEN_SAFETY_MARGIN_SECONDS,
    ):
        self.engine = engine
        self.secret_store = secret_store
        self.cache = cache or TokenCache(
            max_entries=TOKEN_CACHE_MAX_ENTRIES, safety_margin_seconds=safety_margin_seconds
        )
        self.flight: SingleFlight[str] = flight or SingleFlight()
        self.provider = provider
        self.safety_margin = timedelta(seconds=safety_margin_seconds)

    def get_access_token(
        self, hotel_id: str, for_write: bool = False, stale_token: Optional[str] = None
    ) -> str:
        """
        Return a valid access token for the hotel's connection.

        Args:
            hotel_id: Internal hotel/property ID
            for_write: Request a write-scoped token
            stale_token: Token Beds24 just rejected; it is never returned again

        Raises:
            ConnectionNotFound: The hotel is not linked
            ConnectionInErrorState: The connection needs a new invite code
            NoWriteCredential: for_write on a connection without a write refresh token
            RefreshFailed: The refresh grant failed
        """
        connection = self._load_connection(hotel_id)
        direction = TokenDirection.for_write(for_write)
        return self.token_for_connection(connection, direction, stale_token)

    def token_for_connection(
        self,
        connection: dict[str, Any],
        direction: TokenDirection,
        stale_token: Optional[str] = None,
    ) -> str:
        # Raises NoWriteCredential before any cache lookup or network call
        refresh_ref_for(capability_from_connection(connection), direction)

        cached = self._cached_token(connection, direction, stale_token)
        if cached:
            return cached

        connection_id = connection["id"]
        return self.flight.do(
            (connection_id, direction.value),
            lambda: self._mint(connection_id, direction, stale_token),
        )

    def invalidate(self, connection_id: str) -> None:
        """Drop both cached directions of a connection from this process."""
        self.cache.invalidate(connection_id)

    def keep_alive(self, hotel_id: str) -> dict[str, Any]:
        """
        Make sure the hotel's connection can still mint tokens.

        Any failure moves the connection to status=error so later syncs
        short-circuit instead of retrying a dead credential.

        Returns:
            dict with ok, hotel_id and, on failure, error

        Raises:
            ConnectionNotFound: The hotel is not linked
        """
        connection = self._load_connection(hotel_id, allow_error=True)
        if connection["status"] == ConnectionStatus.ERROR.value:
            return {"ok": False, "hotel_id": hotel_id, "error": connection.get("last_error")}

        try:
            self.token_for_connection(connection, TokenDirection.READ)
        except Beds24SyncError as e:
            with self.engine.begin() as conn:
                mark_connection_error(conn, connection["id"], f"keep_alive: {e.message}")
            self.cache.invalidate(connection["id"])
            logger.warning("keep_alive_failed", hotel_id=hotel_id, error=e.message)
            return {"ok": False, "hotel_id": hotel_id, "error": e.message}

        logger.info("keep_alive_ok", hotel_id=hotel_id)
        return {"ok": True, "hotel_id": hotel_id}

    def keep_alive_all(self) -> dict[str, Any]:
        """Run keep_alive() for every active connection."""
        with self.engine.connect() as conn:
            hotel_ids = get_active_hotel_ids(conn, self.provider)

        results = []
        for hotel_id in hotel_ids:
            try:
                results.append(self.keep_alive(hotel_id))
            except ConnectionNotFound:
                # Unlinked between listing and checking
                continue

        failed = [r for r in results if not r["ok"]]
        connections_in_error.set(len(failed))
        logger.info("keep_alive_all_completed", total=len(results), failed=len(failed))
        return {
            "total": len(results),
            "ok": len(results) - len(failed),
            "failed": len(failed),
            "results": results,
        }

    def _load_connection(self, hotel_id: str, allow_error: bool = False) -> dict[str, Any]:
        with self.engine.connect() as conn:
            connection = get_connection_for_hotel(conn, hotel_id, self.provider)
        if connection is None:
            raise ConnectionNotFound("No connection for hotel", {"hotel_id": hotel_id})
        if connection["status"] == ConnectionStatus.ERROR.value and not allow_error:
            raise ConnectionInErrorState(
                "Connection is in error state; re-link with a new invite code",
                {"hotel_id": hotel_id, "last_error": connection.get("last_error")},
            )
        return connection

    def _cached_token(
        self,
        connection: dict[str, Any],
        direction: TokenDirection,
        stale_token: Optional[str],
    ) -> Optional[str]:
        connection_id = connection["id"]

        token = self.cache.get(connection_id, direction.value)
        if token and token != stale_token:
            token_cache_hits.labels(tier="memory").inc()
            return token
        if token:
            self.cache.invalidate(connection_id, direction.value)

        token_column, expiry_column = token_columns(direction.value)
        persisted = connection.get(token_column)
        expires_at = ensure_utc(connection.get(expiry_column))
        if (
            persisted
            and persisted != stale_token
            and expires_at is not None
            and expires_at - self.safety_margin > utc_now()
        ):
            self.cache.set(connection_id, direction.value, persisted, expires_at)
            token_cache_hits.labels(tier="persisted").inc()
            logger.debug("token_served_from_db", connection_id=connection_id)
            return str(persisted)

        return None

    def _mint(
        self, connection_id: str, direction: TokenDirection, stale_token: Optional[str]
    ) -> str:
        with self.engine.connect() as conn:
            connection = get_connection(conn, connection_id)
        if connection is None:
            raise ConnectionNotFound("Connection disappeared", {"connection_id": connection_id})
        if connection["status"] == ConnectionStatus.ERROR.value:
            raise ConnectionInErrorState(
                "Connection is in error state; re-link with a new invite code",
                {"hotel_id": connection["hotel_id"], "last_error": connection.get("last_error")},
            )

        cached = self._cached_token(connection, direction, stale_token)
        if cached:
            return cached

        token_cache_misses.inc()
        hotel_id = connection["hotel_id"]
        refresh_ref = refresh_ref_for(capability_from_connection(connection), direction)
        with self.engine.connect() as conn:
            refresh_token = self.secret_store.get_secret(conn, refresh_ref)

        request_payload = {"grant_type": "refresh_token", "refresh_token": refresh_token}
        start = time.monotonic()
        try:
            grant = request_access_token(refresh_token)
        except RefreshFailed as e:
            token_refreshes.labels(direction=direction.value, status="failure").inc()
            record_audit(
                self.engine,
                operation="token_refresh",
                status=STATUS_ERROR,
                hotel_id=hotel_id,
                org_id=connection.get("org_id"),
                request_payload=request_payload,
                error=e.details,
                duration_ms=int((time.monotonic() - start) * 1000),
                provider=self.provider,
            )
            if e.permanent:
                with self.engine.begin() as conn:
                    mark_connection_error(conn, connection_id, f"token_refresh: {e.message}")
                self.cache.invalidate(connection_id)
            logger.warning(
                "token_refresh_failed",
                hotel_id=hotel_id,
                direction=direction.value,
                permanent=e.permanent,
            )
            raise

        expires_at = utc_now() + timedelta(seconds=grant.expires_in)
        rotated = grant.refresh_token if grant.refresh_token != refresh_token else None
        with self.engine.begin() as conn:
            new_ref = self.secret_store.put_secret(conn, rotated) if rotated else None
            store_access_token(
                conn,
                connection_id,
                direction.value,
                grant.access_token,
                expires_at,
                refresh_ref=new_ref,
            )
        self.cache.set(connection_id, direction.value, grant.access_token, expires_at)

        token_refreshes.labels(direction=direction.value, status="success").inc()
        record_audit(
            self.engine,
            operation="token_refresh",
            status=STATUS_SUCCESS,
            hotel_id=hotel_id,
            org_id=connection.get("org_id"),
            request_payload=request_payload,
            response_payload=grant.raw,
            duration_ms=int((time.monotonic() - start) * 1000),
            provider=self.provider,
        )
        logger.info(
            "token_refreshed",
            hotel_id=hotel_id,
            direction=direction.value,
            expires_in=grant.expires_in,
            refresh_token_rotated=rotated is not None,
        )
        return grant.access_token
