"""
Unit tests for network/auth.py (refresh-token and invite-code grants).
"""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
import requests

from sync_beds24.errors import ExchangeFailed, RefreshFailed
from sync_beds24.network.auth import exchange_invite_code, request_access_token


def _response(status_code: int, body: object) -> Mock:
    res = Mock(status_code=status_code, ok=200 <= status_code < 300)
    res.json.return_value = body
    res.text = str(body)
    return res


@pytest.mark.unit
@patch("sync_beds24.network.auth.requests.post")
def test_request_access_token_success(mock_post: Mock) -> None:
    """Test that the OAuth-style response is parsed into an AccessTokenGrant."""
    mock_post.return_value = _response(200, {"access_token": "tok-1", "expires_in": 3600})

    grant = request_access_token("refresh-1")

    assert grant.access_token == "tok-1"
    assert grant.expires_in == 3600
    url = mock_post.call_args[0][0]
    assert url.endswith("/authentication/token")
    assert mock_post.call_args[1]["json"] == {
        "grant_type": "refresh_token",
        "refresh_token": "refresh-1",
    }
    assert mock_post.call_args[1]["timeout"] > 0


@pytest.mark.unit
@patch("sync_beds24.network.auth.requests.post")
def test_request_access_token_accepts_native_shape(mock_post: Mock) -> None:
    mock_post.return_value = _response(200, {"token": "tok-2", "expiresIn": 86400})

    grant = request_access_token("refresh-1")

    assert grant.access_token == "tok-2"
    assert grant.expires_in == 86400
    assert grant.refresh_token is None


@pytest.mark.unit
@patch("sync_beds24.network.auth.requests.post")
def test_request_access_token_returns_rotated_refresh_token(mock_post: Mock) -> None:
    mock_post.return_value = _response(
        200, {"access_token": "a1", "expires_in": 3600, "refresh_token": "rotated-r2"}
    )

    grant = request_access_token("refresh-1")

    assert grant.refresh_token == "rotated-r2"


@pytest.mark.unit
@patch("sync_beds24.network.auth.requests.post")
def test_request_access_token_rejection_is_permanent(mock_post: Mock) -> None:
    mock_post.return_value = _response(401, {"success": False, "error": "invalid refresh token"})

    with pytest.raises(RefreshFailed) as exc_info:
        request_access_token("refresh-1")

    assert exc_info.value.permanent is True
    assert exc_info.value.details["status_code"] == 401


@pytest.mark.unit
@pytest.mark.parametrize("status_code", [429, 500, 503])
@patch("sync_beds24.network.auth.requests.post")
def test_request_access_token_server_errors_are_transient(mock_post: Mock, status_code: int) -> None:
    mock_post.return_value = _response(status_code, {"error": "try later"})

    with pytest.raises(RefreshFailed) as exc_info:
        request_access_token("refresh-1")

    assert exc_info.value.permanent is False


@pytest.mark.unit
@patch("sync_beds24.network.auth.requests.post")
def test_request_access_token_timeout_is_transient(mock_post: Mock) -> None:
    mock_post.side_effect = requests.Timeout("timed out")

    with pytest.raises(RefreshFailed) as exc_info:
        request_access_token("refresh-1")

    assert exc_info.value.permanent is False


@pytest.mark.unit
@patch("sync_beds24.network.auth.requests.post")
def test_request_access_token_missing_token(mock_post: Mock) -> None:
    mock_post.return_value = _response(200, {"expires_in": 3600})

    with pytest.raises(RefreshFailed):
        request_access_token("refresh-1")


@pytest.mark.unit
@patch("sync_beds24.network.auth.requests.post")
def test_exchange_invite_code_read_and_write(mock_post: Mock) -> None:
    mock_post.return_value = _response(
        200, {"refreshToken": "r1", "refreshTokenWrite": "w1", "token": "a1"}
    )

    grant = exchange_invite_code("INV123")

    assert grant.refresh_token == "r1"
    assert grant.refresh_token_write == "w1"
    assert mock_post.call_args[1]["json"] == {"grant_type": "invitation", "code": "INV123"}


@pytest.mark.unit
@patch("sync_beds24.network.auth.requests.post")
def test_exchange_invite_code_read_only(mock_post: Mock) -> None:
    mock_post.return_value = _response(200, {"refresh_token": "r1"})

    grant = exchange_invite_code("INV123")

    assert grant.refresh_token == "r1"
    assert grant.refresh_token_write is None


@pytest.mark.unit
@patch("sync_beds24.network.auth.requests.post")
def test_exchange_invite_code_failure_carries_provider_body(mock_post: Mock) -> None:
    mock_post.return_value = _response(400, {"success": False, "error": "Invalid code"})

    with pytest.raises(ExchangeFailed) as exc_info:
        exchange_invite_code("BAD")

    assert exc_info.value.status_code == 400
    assert exc_info.value.details == {
        "status_code": 400,
        "body": {"success": False, "error": "Invalid code"},
    }


@pytest.mark.unit
@patch("sync_beds24.network.auth.requests.post")
def test_exchange_invite_code_transport_error(mock_post: Mock) -> None:
    mock_post.side_effect = requests.ConnectionError("unreachable")

    with pytest.raises(ExchangeFailed):
        exchange_invite_code("INV123")
