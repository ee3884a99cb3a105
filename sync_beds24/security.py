"""
Caller authentication for the /beds24 routes.

Administrative callers present an HS256 bearer JWT; scheduled jobs present the
shared cron secret in the X-Cron-Secret header.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from sync_beds24 import config
from sync_beds24.errors import AuthenticationError, AuthorizationError

logger = structlog.get_logger(__name__)

ALGORITHM = "HS256"
ADMIN_ROLES = frozenset({"admin", "owner"})
CRON_CALLER_ID = "cron"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Caller:
    id: str
    roles: frozenset[str] = field(default_factory=frozenset)
    is_cron: bool = False

    @property
    def is_admin(self) -> bool:
        return bool(self.roles & ADMIN_ROLES)


def _roles_from_claims(claims: dict[str, Any]) -> frozenset[str]:
    roles: set[str] = set()
    sources = [claims, claims.get("app_metadata") or {}]
    for source in sources:
        if not isinstance(source, dict):
            continue
        role = source.get("role")
        if isinstance(role, str):
            roles.add(role)
        many = source.get("roles")
        if isinstance(many, (list, tuple)):
            roles.update(r for r in many if isinstance(r, str))
    return frozenset(roles)


def decode_caller(token: str, secret: Optional[str] = None) -> Caller:
    """
    Verify a bearer JWT and build the caller from its claims.

    Raises:
        AuthenticationError: Signature, expiry or subject is invalid
    """
    secret = secret or config.JWT_SECRET
    if not secret:
        raise AuthenticationError("Bearer authentication is not configured")
    try:
        claims = jwt.decode(
            token, secret, algorithms=[ALGORITHM], options={"verify_aud": False}
        )
    except JWTError as e:
        raise AuthenticationError("Invalid or expired token") from e

    subject = claims.get("sub")
    if not subject:
        raise AuthenticationError("Token has no subject")
    return Caller(id=str(subject), roles=_roles_from_claims(claims))


def cron_secret_matches(provided: Optional[str], expected: Optional[str] = None) -> bool:
    """Constant-time comparison of the X-Cron-Secret header with CRON_SECRET."""
    expected = expected if expected is not None else config.CRON_SECRET
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Caller:
    """Dependency: the authenticated bearer caller."""
    if not credentials:
        raise AuthenticationError("Not authenticated")
    return decode_caller(credentials.credentials)


def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    """Dependency: a bearer caller holding the admin or owner role."""
    if not caller.is_admin:
        logger.warning("admin_required", caller_id=caller.id)
        raise AuthorizationError("Admin access required")
    return caller


def require_cron(x_cron_secret: Optional[str] = Header(None)) -> Caller:
    """Dependency: the scheduled-job caller, identified by X-Cron-Secret."""
    if not cron_secret_matches(x_cron_secret):
        raise AuthenticationError("Invalid cron secret")
    return Caller(id=CRON_CALLER_ID, is_cron=True)


def require_cron_or_admin(
    x_cron_secret: Optional[str] = Header(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Caller:
    """Dependency: either the cron secret or an admin bearer token."""
    if x_cron_secret and cron_secret_matches(x_cron_secret):
        return Caller(id=CRON_CALLER_ID, is_cron=True)
    return require_admin(get_caller(credentials))
