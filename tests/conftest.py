"""
Shared fixtures.

Environment defaults are set before any sync_beds24 import, since config.py
reads them at import time. Database-backed tests get their own SQLite file
with every table created from the models.
"""

from __future__ import annotations

import os
import tempfile
from datetime import timedelta
from pathlib import Path
from typing import Any, Generator, Optional

TEST_FERNET_KEY = "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY="
TEST_JWT_SECRET = "test-jwt-secret"
TEST_CRON_SECRET = "test-cron-secret"

os.environ.setdefault(
    "DATABASE_URL", f"sqlite:///{Path(tempfile.gettempdir()) / 'sync_beds24_test.db'}"
)
os.environ.setdefault("ALLOWED_ORIGINS", "*")
os.environ.setdefault("SECRET_ENCRYPTION_KEY", TEST_FERNET_KEY)
os.environ.setdefault("JWT_SECRET", TEST_JWT_SECRET)
os.environ.setdefault("CRON_SECRET", TEST_CRON_SECRET)
os.environ.setdefault("BEDS24_API_URL", "https://beds24.test/v2")

import pytest  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402

from sync_beds24.db.engine import build_engine  # noqa: E402
from sync_beds24.db.mappings import ENTITY_PROPERTY, ensure_mapping  # noqa: E402
from sync_beds24.db.writers.connections import upsert_connection  # noqa: E402
from sync_beds24.db.writers.sync_state import (  # noqa: E402
    ensure_sync_state,
    update_sync_timestamps,
)
from sync_beds24.models import (  # noqa: E402, F401
    audit,
    calendar,
    connections,
    mappings,
    reservations,
    room_types,
    secrets,
    sync_state,
)
from sync_beds24.models.base import Base  # noqa: E402
from sync_beds24.network.auth import AccessTokenGrant  # noqa: E402
from sync_beds24.services.secret_store import SecretStore  # noqa: E402
from sync_beds24.services.token_service import TokenService  # noqa: E402
from sync_beds24.utils.datetime import utc_now  # noqa: E402


@pytest.fixture
def db_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """SQLite engine on a fresh file with all tables created."""
    engine = build_engine(f"sqlite:///{tmp_path / 'beds24.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def secret_store() -> SecretStore:
    return SecretStore(TEST_FERNET_KEY)


@pytest.fixture
def token_service(db_engine: Engine, secret_store: SecretStore) -> TokenService:
    return TokenService(db_engine, secret_store)


def link_hotel(
    engine: Engine,
    store: SecretStore,
    hotel_id: str = "hotel-1",
    external_property_id: str = "1001",
    org_id: str = "org-1",
    write: bool = False,
    bootstrapped: bool = True,
    watermark: Optional[Any] = None,
) -> dict[str, Any]:
    """Create a linked hotel directly in the database, without an invite exchange."""
    with engine.begin() as conn:
        read_ref = store.put_secret(conn, f"refresh-read-{hotel_id}")
        write_ref = store.put_secret(conn, f"refresh-write-{hotel_id}") if write else None
        row = upsert_connection(
            conn,
            org_id=org_id,
            hotel_id=hotel_id,
            external_property_id=external_property_id,
            scopes=["bookings", "inventory"],
            read_ref=read_ref,
            write_ref=write_ref,
        )
        ensure_sync_state(
            conn, hotel_id, external_property_id, watermark or utc_now() - timedelta(days=1)
        )
        ensure_mapping(conn, "beds24", ENTITY_PROPERTY, external_property_id, hotel_id)
        if bootstrapped:
            update_sync_timestamps(conn, hotel_id, bootstrap_completed_at=utc_now())
    return row


@pytest.fixture
def linked_hotel(db_engine: Engine, secret_store: SecretStore) -> dict[str, Any]:
    """A bootstrapped, read-only connection for hotel-1 / Beds24 property 1001."""
    return link_hotel(db_engine, secret_store)


def make_grant(
    token: str = "access-1", expires_in: int = 86400, refresh_token: Optional[str] = None
) -> AccessTokenGrant:
    return AccessTokenGrant(
        access_token=token,
        expires_in=expires_in,
        refresh_token=refresh_token,
        raw={"token": token, "expiresIn": expires_in},
    )


def make_jwt(sub: str = "user-1", roles: Optional[list[str]] = None, **claims: Any) -> str:
    payload: dict[str, Any] = {"sub": sub, **claims}
    if roles is not None:
        payload["roles"] = roles
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {make_jwt(roles=['admin'])}"}


@pytest.fixture
def cron_headers() -> dict[str, str]:
    return {"X-Cron-Secret": TEST_CRON_SECRET}
