"""
Unit tests for key-based payload redaction.
"""

from __future__ import annotations

import pytest

from sync_beds24.utils.redaction import (
    REDACTION_MARKER,
    build_redact_keys,
    is_sensitive_key,
    redact,
)


@pytest.mark.unit
def test_redacts_sensitive_keys_at_any_depth() -> None:
    payload = {
        "headers": {"Authorization": "Bearer abc", "accept": "application/json"},
        "data": [{"id": 1, "email": "guest@example.com", "guests": [{"phone": "+1555"}]}],
        "access_token": "tok-123",
    }

    result = redact(payload)

    assert result["headers"]["Authorization"] == REDACTION_MARKER
    assert result["headers"]["accept"] == "application/json"
    assert result["data"][0]["email"] == REDACTION_MARKER
    assert result["data"][0]["guests"][0]["phone"] == REDACTION_MARKER
    assert result["data"][0]["id"] == 1
    assert result["access_token"] == REDACTION_MARKER


@pytest.mark.unit
def test_whole_subtree_under_sensitive_key_is_replaced() -> None:
    result = redact({"secret": {"nested": {"value": 1}}})

    assert result == {"secret": REDACTION_MARKER}


@pytest.mark.unit
def test_input_is_not_mutated() -> None:
    payload = {"token": "abc", "items": [{"password": "x"}]}

    redact(payload)

    assert payload == {"token": "abc", "items": [{"password": "x"}]}


@pytest.mark.unit
def test_scalars_and_list_items_pass_through() -> None:
    assert redact("Bearer abc") == "Bearer abc"
    assert redact(["token", "secret"]) == ["token", "secret"]
    assert redact(None) is None


@pytest.mark.unit
def test_configured_keys_extend_defaults() -> None:
    keys = build_redact_keys(["GuestName"])

    result = redact(
        {"guestName": "Ann", "token": "abc", "Authorization": "Bearer x", "email": "a@b.c"},
        keys=keys,
    )

    assert set(result.values()) == {REDACTION_MARKER}
    assert build_redact_keys(None) == build_redact_keys([])
    assert "token" in build_redact_keys(["code"])


@pytest.mark.unit
def test_explicit_keys_argument_is_the_whole_denylist() -> None:
    result = redact({"code": "INV123", "token": "abc", "status_code": 200}, keys=["code"])

    assert result["code"] == REDACTION_MARKER
    assert result["status_code"] == REDACTION_MARKER
    assert result["token"] == "abc"


@pytest.mark.unit
@pytest.mark.parametrize(
    "key, expected",
    [
        ("X-API-KEY", False),
        ("x_api_key", True),
        ("refreshToken", True),
        ("cardNumber", True),
        ("countryCode", False),
        ("status_code", False),
        ("firstName", False),
    ],
)
def test_is_sensitive_key(key: str, expected: bool) -> None:
    assert is_sensitive_key(key) is expected
