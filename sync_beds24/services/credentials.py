"""
Credential capability of a connection.

A connection linked with a read-only invite has a ReadOnly capability; one
that also received a write refresh token has ReadWrite. Call sites ask the
capability for the refresh token reference of a direction instead of checking
nullable columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Union

from sync_beds24.errors import NoWriteCredential


class TokenDirection(str, Enum):
    READ = "read"
    WRITE = "write"

    @classmethod
    def for_write(cls, for_write: bool) -> "TokenDirection":
        return cls.WRITE if for_write else cls.READ


@dataclass(frozen=True)
class ReadOnly:
    read_ref: str


@dataclass(frozen=True)
class ReadWrite:
    read_ref: str
    write_ref: str


CredentialCapability = Union[ReadOnly, ReadWrite]


def capability_from_connection(connection: Mapping[str, Any]) -> CredentialCapability:
    """Build the capability from a connections row."""
    write_ref = connection.get("refresh_token_write_ref")
    if write_ref:
        return ReadWrite(read_ref=connection["refresh_token_read_ref"], write_ref=write_ref)
    return ReadOnly(read_ref=connection["refresh_token_read_ref"])


def refresh_ref_for(capability: CredentialCapability, direction: TokenDirection) -> str:
    """
    Return the secret reference of the refresh token for direction.

    Raises:
        NoWriteCredential: direction is WRITE and the capability is ReadOnly
    """
    if direction is TokenDirection.READ:
        return capability.read_ref
    if isinstance(capability, ReadWrite):
        return capability.write_ref
    raise NoWriteCredential(
        "Connection has no write credential; re-link with a write-enabled invite code"
    )
