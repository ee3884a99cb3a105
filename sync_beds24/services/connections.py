"""
Connection lifecycle: linking a hotel to Beds24 with an invite code.

A link exchanges the invite code for refresh tokens, stores them in the
secret store, and creates or reactivates the hotel's connection together with
its sync state and property mapping. Re-linking is the only way out of the
error state.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

import structlog
from sqlalchemy.engine import Engine

from sync_beds24.config import PROVIDER
from sync_beds24.db.mappings import ENTITY_PROPERTY, ensure_mapping
from sync_beds24.db.writers.connections import upsert_connection
from sync_beds24.db.writers.sync_state import ensure_sync_state
from sync_beds24.errors import AuthorizationError, ExchangeFailed
from sync_beds24.network.auth import exchange_invite_code
from sync_beds24.security import Caller
from sync_beds24.services.audit import STATUS_ERROR, STATUS_SUCCESS, record_audit
from sync_beds24.services.secret_store import SecretStore
from sync_beds24.services.token_service import TokenService
from sync_beds24.utils.datetime import utc_now

logger = structlog.get_logger(__name__)

DEFAULT_SCOPES = ["bookings", "inventory", "properties", "accounts", "channels"]
LINK_ROLES = frozenset({"admin", "owner"})

# Columns never returned to API callers
_PRIVATE_COLUMNS = (
    "refresh_token_read_ref",
    "refresh_token_write_ref",
    "cached_access_token",
    "cached_access_token_expiry",
    "cached_write_access_token",
    "cached_write_access_token_expiry",
)


def public_connection(row: dict[str, Any]) -> dict[str, Any]:
    """Strip secret references and cached tokens from a connection row."""
    data = {k: v for k, v in row.items() if k not in _PRIVATE_COLUMNS}
    data["has_write_access"] = bool(row.get("refresh_token_write_ref"))
    return data


class ConnectionLifecycleManager:
    """Creates and re-keys Beds24 connections."""

    def __init__(
        self,
        engine: Engine,
        secret_store: SecretStore,
        token_service: TokenService,
        provider: str = PROVIDER,
    ):
        self.engine = engine
        self.secret_store = secret_store
        self.token_service = token_service
        self.provider = provider

    def link_connection(
        self,
        caller: Caller,
        org_id: str,
        hotel_id: str,
        external_property_id: str,
        invite_code: str,
        scopes: Optional[list[str]] = None,
        schedule_import: Optional[Callable[[str], Any]] = None,
    ) -> dict[str, Any]:
        """
        Link a hotel to a Beds24 property.

        Args:
            caller: Authenticated caller; needs the admin or owner role
            org_id: Owning organization
            hotel_id: Internal hotel/property ID
            external_property_id: Beds24 property ID
            invite_code: One-time invite code from the Beds24 control panel
            scopes: Granted scopes, default DEFAULT_SCOPES
            schedule_import: Called with hotel_id after commit to start the initial import

        Returns:
            dict: The connection without secret references or tokens

        Raises:
            AuthorizationError: Caller lacks the admin/owner role
            ExchangeFailed: Beds24 rejected the invite code
        """
        if not caller.roles & LINK_ROLES:
            logger.warning("link_forbidden", caller_id=caller.id, hotel_id=hotel_id)
            raise AuthorizationError(
                "Linking a connection requires the admin or owner role", {"hotel_id": hotel_id}
            )

        grant = self._exchange(invite_code, org_id, hotel_id, external_property_id)

        with self.engine.begin() as conn:
            read_ref = self.secret_store.put_secret(conn, grant.refresh_token)
            write_ref = (
                self.secret_store.put_secret(conn, grant.refresh_token_write)
                if grant.refresh_token_write
                else None
            )
            row = upsert_connection(
                conn,
                org_id=org_id,
                hotel_id=hotel_id,
                external_property_id=external_property_id,
                scopes=list(scopes or DEFAULT_SCOPES),
                read_ref=read_ref,
                write_ref=write_ref,
                provider=self.provider,
            )
            created_state = ensure_sync_state(
                conn, hotel_id, external_property_id, utc_now(), self.provider
            )
            ensure_mapping(
                conn,
                self.provider,
                ENTITY_PROPERTY,
                external_property_id,
                hotel_id,
                {"org_id": org_id},
            )

        self.token_service.invalidate(row["id"])
        logger.info(
            "connection_linked",
            hotel_id=hotel_id,
            connection_id=row["id"],
            write_access=write_ref is not None,
            new_sync_state=created_state,
        )

        if schedule_import is not None:
            try:
                schedule_import(hotel_id)
            except Exception as e:
                logger.exception("initial_import_schedule_failed", hotel_id=hotel_id, error=str(e))

        return public_connection(row)

    def _exchange(
        self, invite_code: str, org_id: str, hotel_id: str, external_property_id: str
    ) -> Any:
        request_payload = {"grant_type": "invitation", "code": invite_code}
        start = time.monotonic()
        try:
            grant = exchange_invite_code(invite_code)
        except ExchangeFailed as e:
            record_audit(
                self.engine,
                operation="invite_exchange",
                status=STATUS_ERROR,
                hotel_id=hotel_id,
                org_id=org_id,
                external_id=external_property_id,
                request_payload=request_payload,
                error=e.details,
                duration_ms=int((time.monotonic() - start) * 1000),
                extra_redact_keys=("code",),
                provider=self.provider,
            )
            logger.warning("invite_exchange_failed", hotel_id=hotel_id)
            raise

        record_audit(
            self.engine,
            operation="invite_exchange",
            status=STATUS_SUCCESS,
            hotel_id=hotel_id,
            org_id=org_id,
            external_id=external_property_id,
            request_payload=request_payload,
            response_payload=grant.raw,
            duration_ms=int((time.monotonic() - start) * 1000),
            extra_redact_keys=("code",),
            provider=self.provider,
        )
        return grant
