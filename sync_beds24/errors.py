"""
Exception taxonomy for the Beds24 integration.

Every error carries an HTTP status code so the FastAPI exception handler in
main.py can turn it into an ``{"error": ..., "details": ...}`` body. Details are
passed through redaction before they leave the process.
"""

from __future__ import annotations

from typing import Any

from fastapi import status

from sync_beds24.utils.redaction import redact


class Beds24SyncError(Exception):
    """Base class for all integration errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = redact(self.details)
        return body


class AuthenticationError(Beds24SyncError):
    """Missing or invalid caller credential."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(Beds24SyncError):
    """Caller is authenticated but lacks the required role."""

    status_code = status.HTTP_403_FORBIDDEN


class ExchangeFailed(Beds24SyncError):
    """Beds24 rejected the invite-code exchange."""

    status_code = status.HTTP_400_BAD_REQUEST


class RefreshFailed(Beds24SyncError):
    """
    The refresh-token grant failed.

    ``permanent`` is True when Beds24 rejected the refresh token itself (4xx),
    as opposed to a timeout or server error.
    """

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, details: Any = None, permanent: bool = False):
        super().__init__(message, details)
        self.permanent = permanent


class ConnectionNotFound(Beds24SyncError):
    status_code = status.HTTP_404_NOT_FOUND


class ConnectionInErrorState(Beds24SyncError):
    """The connection was marked error and needs a fresh invite code."""

    status_code = status.HTTP_409_CONFLICT


class NoWriteCredential(Beds24SyncError):
    """A write call was attempted on a connection linked without a write token."""

    status_code = status.HTTP_409_CONFLICT


class SyncInProgress(Beds24SyncError):
    status_code = status.HTTP_409_CONFLICT


class MappingStoreError(Beds24SyncError):
    """Reading or writing external ID mappings failed."""


class SecretNotFound(Beds24SyncError):
    """A secret reference is unknown or its value cannot be decrypted."""
