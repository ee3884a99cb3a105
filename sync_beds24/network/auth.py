"""
Beds24 authorization endpoint calls.

Two grants are supported against POST /authentication/token:

* invitation: a one-time invite code from the Beds24 control panel is
  exchanged for long-lived refresh tokens (read, optionally write)
* refresh_token: a refresh token is exchanged for a short-lived access token

Both accept the OAuth-style snake_case response as well as the native Beds24
camelCase one ({"token", "expiresIn", "refreshToken"}).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import requests
import structlog

from sync_beds24.config import BEDS24_API_URL, BEDS24_TIMEOUT_SECONDS
from sync_beds24.errors import ExchangeFailed, RefreshFailed

logger = structlog.get_logger(__name__)

TOKEN_ENDPOINT = "authentication/token"
DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class AccessTokenGrant:
    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class InviteGrant:
    refresh_token: str
    refresh_token_write: Optional[str]
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


def token_url() -> str:
    return f"{BEDS24_API_URL}/{TOKEN_ENDPOINT}"


def response_body(res: requests.Response) -> Any:
    """Return the JSON body of a response, or its text when it is not JSON."""
    try:
        return res.json()
    except ValueError:
        return res.text


def request_access_token(refresh_token: str) -> AccessTokenGrant:
    """
    Exchange a refresh token for an access token.

    Args:
        refresh_token: Long-lived refresh token (read or write)

    Returns:
        AccessTokenGrant with the token, its lifetime in seconds and, when Beds24
        rotated the refresh token, its replacement

    Raises:
        RefreshFailed: permanent=True when Beds24 rejected the refresh token (4xx),
            permanent=False on timeouts, connection errors, 5xx or a malformed body
    """
    payload = {"grant_type": "refresh_token", "refresh_token": refresh_token}

    try:
        res = requests.post(token_url(), json=payload, timeout=BEDS24_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.warning("token_refresh_request_failed", error=type(e).__name__)
        raise RefreshFailed("Token refresh request failed", {"reason": str(e)}) from e

    body = response_body(res)
    if not res.ok:
        logger.warning("token_refresh_rejected", status_code=res.status_code)
        raise RefreshFailed(
            "Beds24 rejected the token refresh",
            {"status_code": res.status_code, "body": body},
            permanent=400 <= res.status_code < 500 and res.status_code != 429,
        )

    data = body if isinstance(body, dict) else {}
    token = data.get("access_token") or data.get("token")
    if not isinstance(token, str) or not token:
        logger.error("token_refresh_missing_token", keys=sorted(data))
        raise RefreshFailed("No access token in Beds24 response", {"body": body})

    expires_in = data.get("expires_in") or data.get("expiresIn") or DEFAULT_EXPIRES_IN
    rotated = data.get("refresh_token") or data.get("refreshToken")
    return AccessTokenGrant(
        access_token=token,
        expires_in=int(expires_in),
        refresh_token=rotated if isinstance(rotated, str) and rotated else None,
        raw=data,
    )


def exchange_invite_code(invite_code: str) -> InviteGrant:
    """
    Exchange a one-time invite code for refresh tokens.

    Args:
        invite_code: Invite code generated in the Beds24 control panel

    Returns:
        InviteGrant with the read refresh token and, when the invite granted
        write access, the write refresh token

    Raises:
        ExchangeFailed: Non-2xx response, transport failure or no refresh token;
            details carry the Beds24 error body
    """
    payload = {"grant_type": "invitation", "code": invite_code}

    try:
        res = requests.post(token_url(), json=payload, timeout=BEDS24_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.warning("invite_exchange_request_failed", error=type(e).__name__)
        raise ExchangeFailed("Failed to exchange invite code", {"reason": str(e)}) from e

    body = response_body(res)
    if not res.ok:
        logger.warning("invite_exchange_rejected", status_code=res.status_code)
        raise ExchangeFailed(
            "Failed to exchange invite code", {"status_code": res.status_code, "body": body}
        )

    data = body if isinstance(body, dict) else {}
    refresh_token = data.get("refresh_token") or data.get("refreshToken")
    if not isinstance(refresh_token, str) or not refresh_token:
        raise ExchangeFailed("No refresh token in Beds24 response", {"body": body})

    write_token = data.get("refresh_token_write") or data.get("refreshTokenWrite")
    return InviteGrant(
        refresh_token=refresh_token,
        refresh_token_write=write_token if isinstance(write_token, str) and write_token else None,
        raw=data,
    )
