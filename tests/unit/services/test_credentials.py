"""
Unit tests for credential capabilities.
"""

from __future__ import annotations

import pytest

from sync_beds24.errors import NoWriteCredential
from sync_beds24.services.credentials import (
    ReadOnly,
    ReadWrite,
    TokenDirection,
    capability_from_connection,
    refresh_ref_for,
)


@pytest.mark.unit
def test_capability_read_only() -> None:
    capability = capability_from_connection(
        {"refresh_token_read_ref": "ref-r", "refresh_token_write_ref": None}
    )

    assert capability == ReadOnly(read_ref="ref-r")
    assert refresh_ref_for(capability, TokenDirection.READ) == "ref-r"
    with pytest.raises(NoWriteCredential):
        refresh_ref_for(capability, TokenDirection.WRITE)


@pytest.mark.unit
def test_capability_read_write() -> None:
    capability = capability_from_connection(
        {"refresh_token_read_ref": "ref-r", "refresh_token_write_ref": "ref-w"}
    )

    assert isinstance(capability, ReadWrite)
    assert refresh_ref_for(capability, TokenDirection.WRITE) == "ref-w"
    assert refresh_ref_for(capability, TokenDirection.READ) == "ref-r"


@pytest.mark.unit
def test_token_direction_for_write() -> None:
    assert TokenDirection.for_write(True) is TokenDirection.WRITE
    assert TokenDirection.for_write(False) is TokenDirection.READ
    assert TokenDirection.WRITE.value == "write"
