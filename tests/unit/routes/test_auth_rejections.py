"""Unit tests for caller rejection on the /beds24 routes."""

import pytest
from conftest import make_jwt
from httpx import ASGITransport, AsyncClient

from sync_beds24.main import app


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sync_without_credentials() -> None:
    """Test that /beds24/sync returns 401 without cron secret or bearer token."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post("/beds24/sync", json={"type": "both"})

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert response.json() == {"error": "Not authenticated"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_tokens_with_wrong_cron_secret() -> None:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post(
            "/beds24/tokens",
            json={"action": "keepAliveAll"},
            headers={"X-Cron-Secret": "wrong"},
        )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid cron secret"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_inventory_with_expired_token() -> None:
    """Test that an expired bearer token is rejected before the payload is used."""
    token = make_jwt(roles=["admin"], exp=1)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post(
            "/beds24/inventory",
            json={
                "hotelId": "hotel-1",
                "updates": [
                    {"roomTypeId": "rt-1", "from": "2025-01-01", "to": "2025-01-01", "numAvail": 1}
                ],
            },
            headers={"Authorization": f"Bearer {token}"},
        )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid or expired token"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_member_cannot_link_connections() -> None:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post(
            "/beds24/connections",
            json={
                "orgId": "org-1",
                "propertyId": "P1",
                "externalPropertyId": "1001",
                "inviteCode": "INV123",
            },
            headers={"Authorization": f"Bearer {make_jwt(roles=['member'])}"},
        )

    assert response.status_code == 403
    assert response.json() == {"error": "Admin access required"}
