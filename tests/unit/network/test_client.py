"""
Unit tests for the Beds24Client request loop and pagination.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import Mock, patch

import pytest
import requests

from sync_beds24.network.client import Beds24Client, parse_credit_headers, should_retry


def _response(status_code: int, body: Any = None, headers: dict[str, str] | None = None) -> Mock:
    res = Mock(status_code=status_code, ok=200 <= status_code < 300, headers=headers or {})
    res.json.return_value = body if body is not None else {}
    if res.ok:
        res.raise_for_status.return_value = None
    else:
        res.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return res


@pytest.fixture
def token_service() -> Mock:
    service = Mock()
    service.engine = Mock()
    service.provider = "beds24"
    service.get_access_token.return_value = "tok-1"
    return service


@pytest.fixture
def client(token_service: Mock) -> Beds24Client:
    return Beds24Client(token_service, hotel_id="hotel-1", base_url="https://beds24.test/v2")


@pytest.mark.unit
@patch("sync_beds24.network.client.record_audit")
@patch("sync_beds24.network.client.requests.request")
def test_request_success_sends_token_header(
    mock_request: Mock, mock_audit: Mock, client: Beds24Client
) -> None:
    mock_request.return_value = _response(
        200,
        {"success": True, "data": []},
        headers={"x-request-cost": "1", "x-five-min-limit-remaining": "99"},
    )

    body = client.request("GET", "bookings", "bookings_fetch", params={"propertyId": "1001"})

    assert body == {"success": True, "data": []}
    args, kwargs = mock_request.call_args
    assert args == ("GET", "https://beds24.test/v2/bookings")
    assert kwargs["headers"]["token"] == "tok-1"
    assert kwargs["timeout"] > 0
    assert client.last_credit["request_cost"] == 1
    assert client.last_credit["limit_remaining"] == 99

    audit_kwargs = mock_audit.call_args[1]
    assert audit_kwargs["operation"] == "bookings_fetch"
    assert audit_kwargs["status"] == "success"
    assert audit_kwargs["credit"]["request_cost"] == 1
    assert audit_kwargs["request_payload"]["headers"]["token"] == "tok-1"


@pytest.mark.unit
@patch("sync_beds24.network.client.record_audit")
@patch("sync_beds24.network.client.requests.request")
def test_401_retries_once_with_fresh_token(
    mock_request: Mock, mock_audit: Mock, client: Beds24Client, token_service: Mock
) -> None:
    """Test that a rejected token is passed back as stale_token and the call is repeated."""
    token_service.get_access_token.side_effect = ["tok-old", "tok-new"]
    mock_request.side_effect = [_response(401), _response(200, {"data": []})]

    client.request("GET", "bookings", "bookings_fetch")

    assert mock_request.call_count == 2
    assert mock_request.call_args_list[1][1]["headers"]["token"] == "tok-new"
    second_lookup = token_service.get_access_token.call_args_list[1]
    assert second_lookup[1]["stale_token"] == "tok-old"
    assert mock_audit.call_count == 2


@pytest.mark.unit
@patch("sync_beds24.network.client.record_audit")
@patch("sync_beds24.network.client.requests.request")
def test_second_401_raises(mock_request: Mock, mock_audit: Mock, client: Beds24Client) -> None:
    mock_request.return_value = _response(401)

    with pytest.raises(requests.HTTPError):
        client.request("GET", "bookings", "bookings_fetch")

    assert mock_request.call_count == 2


@pytest.mark.unit
@patch("sync_beds24.network.client.time.sleep")
@patch("sync_beds24.network.client.record_audit")
@patch("sync_beds24.network.client.requests.request")
def test_server_errors_retry_then_raise(
    mock_request: Mock, mock_audit: Mock, mock_sleep: Mock, client: Beds24Client
) -> None:
    mock_request.return_value = _response(503)

    with pytest.raises(requests.HTTPError):
        client.request("GET", "bookings", "bookings_fetch")

    # First attempt plus MAX_RETRIES
    assert mock_request.call_count == 3
    assert mock_sleep.call_count == 2


@pytest.mark.unit
@patch("sync_beds24.network.client.time.sleep")
@patch("sync_beds24.network.client.record_audit")
@patch("sync_beds24.network.client.requests.request")
def test_timeout_is_retried(
    mock_request: Mock, mock_audit: Mock, mock_sleep: Mock, client: Beds24Client
) -> None:
    mock_request.side_effect = [requests.Timeout("slow"), _response(200, {"data": [1]})]

    body = client.request("GET", "bookings", "bookings_fetch")

    assert body == {"data": [1]}
    assert mock_audit.call_args_list[0][1]["status"] == "error"
    assert mock_audit.call_args_list[1][1]["status"] == "success"


@pytest.mark.unit
@patch("sync_beds24.network.client.record_audit")
@patch("sync_beds24.network.client.requests.request")
def test_client_error_is_not_retried(
    mock_request: Mock, mock_audit: Mock, client: Beds24Client
) -> None:
    mock_request.return_value = _response(400, {"error": "bad request"})

    with pytest.raises(requests.HTTPError):
        client.request("POST", "inventory/rooms/calendar", "inventory_push", json=[])

    assert mock_request.call_count == 1
    assert mock_audit.call_args[1]["status"] == "error"


@pytest.mark.unit
@patch("sync_beds24.network.client.record_audit")
@patch("sync_beds24.network.client.requests.request")
def test_fetch_all_follows_next_page(
    mock_request: Mock, mock_audit: Mock, client: Beds24Client
) -> None:
    mock_request.side_effect = [
        _response(200, {"data": [{"id": 1}], "pages": {"nextPageExists": True}}),
        _response(200, {"data": [{"id": 2}], "pages": {"nextPageExists": False}}),
    ]

    result = client.fetch_all("bookings", "bookings_fetch", {"propertyId": "1001"})

    assert [r["id"] for r in result] == [1, 2]
    pages = [c[1]["params"]["page"] for c in mock_request.call_args_list]
    assert pages == [1, 2]
    assert all(c[1]["params"]["propertyId"] == "1001" for c in mock_request.call_args_list)


@pytest.mark.unit
@patch("sync_beds24.network.client.record_audit")
@patch("sync_beds24.network.client.requests.request")
def test_fetch_all_single_page_without_pages_key(
    mock_request: Mock, mock_audit: Mock, client: Beds24Client
) -> None:
    mock_request.return_value = _response(200, {"data": [{"id": 1}]})

    result = client.fetch_all("properties", "property_fetch")

    assert result == [{"id": 1}]
    assert mock_request.call_count == 1


@pytest.mark.unit
@patch("sync_beds24.network.client.record_audit")
@patch("sync_beds24.network.client.requests.request")
def test_write_requests_use_write_token(
    mock_request: Mock, mock_audit: Mock, client: Beds24Client, token_service: Mock
) -> None:
    mock_request.return_value = _response(201, [{"success": True}])

    client.request("POST", "inventory/rooms/calendar", "inventory_push", json=[], for_write=True)

    token_service.get_access_token.assert_called_once_with("hotel-1", for_write=True)


@pytest.mark.unit
def test_parse_credit_headers_handles_missing_and_bad_values() -> None:
    credit = parse_credit_headers({"x-request-cost": "3", "x-five-min-limit-resets-in": "abc"})

    assert credit == {"request_cost": 3, "limit_remaining": None, "limit_resets_in": None}


@pytest.mark.unit
def test_should_retry() -> None:
    assert should_retry(Mock(status_code=429), None)
    assert should_retry(Mock(status_code=502), None)
    assert not should_retry(Mock(status_code=404), None)
    assert should_retry(None, requests.Timeout())
    assert not should_retry(None, ValueError())
