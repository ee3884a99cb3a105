"""Unit tests for the Beds24 webhook endpoint."""

from typing import Any
from unittest.mock import patch

import pytest
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient

from sync_beds24.main import app
from sync_beds24.routes.webhook import extract_booking

WEBHOOK_URL = "/beds24/webhook"
SECRET_HEADERS = {"X-Webhook-Secret": "hook-secret"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_webhook_missing_secret() -> None:
    """Test that webhook returns 401 when X-Webhook-Secret is missing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post(WEBHOOK_URL, json={"booking": {"id": 1}})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.unit
@pytest.mark.asyncio
@patch("sync_beds24.routes.webhook.WEBHOOK_SECRET", "hook-secret")
async def test_webhook_invalid_secret() -> None:
    """Test that webhook returns 401 when the secret does not match."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post(
            WEBHOOK_URL,
            json={"booking": {"id": 1}},
            headers={"X-Webhook-Secret": "wrong"},
        )
    assert response.status_code == 401


@pytest.mark.unit
@pytest.mark.asyncio
@patch("sync_beds24.routes.webhook.WEBHOOK_SECRET", None)
async def test_webhook_rejected_when_secret_not_configured() -> None:
    """Test that an unset WEBHOOK_SECRET never authenticates anyone."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post(
            WEBHOOK_URL, json={"booking": {"id": 1}}, headers={"X-Webhook-Secret": ""}
        )
    assert response.status_code == 401


@pytest.mark.unit
@pytest.mark.asyncio
@patch("sync_beds24.routes.webhook.WEBHOOK_SECRET", "hook-secret")
async def test_webhook_invalid_json() -> None:
    """Test that webhook returns 400 on a body that is not JSON."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post(
            WEBHOOK_URL,
            content=b"not json",
            headers={**SECRET_HEADERS, "Content-Type": "application/json"},
        )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON"}


@pytest.mark.unit
@pytest.mark.asyncio
@patch("sync_beds24.routes.webhook.WEBHOOK_SECRET", "hook-secret")
@patch("sync_beds24.routes.webhook.handle_booking")
async def test_webhook_without_booking_is_ignored(mock_handler: Any) -> None:
    """Test that payloads carrying no booking are acknowledged and not processed."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post(
            WEBHOOK_URL, json={"timeStamp": "2025-03-01T10:00:00Z"}, headers=SECRET_HEADERS
        )
    assert response.status_code == 200
    assert response.json() == {"status": "ignored"}
    mock_handler.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
@patch("sync_beds24.routes.webhook.WEBHOOK_SECRET", "hook-secret")
async def test_webhook_booking_missing_property() -> None:
    """Test that webhook returns 400 when the booking has no propertyId."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post(
            WEBHOOK_URL, json={"booking": {"id": 123}}, headers=SECRET_HEADERS
        )
    assert response.status_code == 400
    assert response.json() == {"error": "Booking is missing id or propertyId"}


@pytest.mark.unit
@pytest.mark.asyncio
@patch("sync_beds24.routes.webhook.WEBHOOK_SECRET", "hook-secret")
@patch("sync_beds24.routes.webhook.handle_booking")
async def test_webhook_booking_dispatched(mock_handler: Any) -> None:
    """Test that a booking push is handed to handle_booking with the full payload."""
    mock_handler.return_value = JSONResponse(content={"status": "accepted"})
    payload = {
        "timeStamp": "2025-03-01T10:00:00Z",
        "booking": {"id": 123, "propertyId": 1001, "status": "new"},
    }

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post(WEBHOOK_URL, json=payload, headers=SECRET_HEADERS)

    assert response.status_code == 200
    assert response.json() == {"status": "accepted"}
    _, booking, received = mock_handler.call_args[0]
    assert booking == payload["booking"]
    assert received == payload


@pytest.mark.unit
def test_extract_booking_shapes() -> None:
    """Test the wrapped and bare booking shapes."""
    booking = {"id": 1, "propertyId": 1001}

    assert extract_booking({"booking": booking}) == booking
    assert extract_booking(booking) == booking
    assert extract_booking({"id": 1}) is None
    assert extract_booking({"infoItems": []}) is None
