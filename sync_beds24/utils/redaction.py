"""
Key-based redaction of payloads before they are logged or persisted.

Only key names are inspected. A key matches when its lower-cased name contains
any denylist entry; the whole value under that key (scalar or subtree) is
replaced with REDACTION_MARKER. Everything else is copied unchanged, including
list items, which have no key of their own.
"""

from __future__ import annotations

from typing import Any, Iterable

from sync_beds24.config import LOG_REDACT_KEYS

REDACTION_MARKER = "[REDACTED]"

DEFAULT_REDACT_KEYS: tuple[str, ...] = (
    "authorization",
    "token",
    "secret",
    "password",
    "apikey",
    "api_key",
    "email",
    "phone",
    "mobile",
    "cardnumber",
    "card_number",
    "cvv",
    "cvc",
    "iban",
)


def _normalize(keys: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(k.lower() for k in keys if k))


def build_redact_keys(configured: Iterable[str] | None = None) -> tuple[str, ...]:
    """Defaults plus the configured entries; configuration cannot drop a default."""
    return _normalize((*DEFAULT_REDACT_KEYS, *(configured or ())))


REDACT_KEYS: tuple[str, ...] = build_redact_keys(LOG_REDACT_KEYS)


def is_sensitive_key(key: Any, keys: tuple[str, ...] = REDACT_KEYS) -> bool:
    """Return True if the key name contains any denylisted fragment."""
    name = str(key).lower()
    return any(fragment in name for fragment in keys)


def redact(payload: Any, keys: Iterable[str] | None = None) -> Any:
    """
    Return a redacted deep copy of payload.

    Args:
        payload: Any JSON-like value (dicts, lists, tuples, scalars)
        keys: Optional denylist overriding REDACT_KEYS

    Returns:
        A new structure of the same shape; the input is never mutated.

    Example:
        >>> redact({"Authorization": "Bearer x", "data": [{"email": "a@b.c", "id": 1}]})
        {'Authorization': '[REDACTED]', 'data': [{'email': '[REDACTED]', 'id': 1}]}
    """
    denylist = REDACT_KEYS if keys is None else _normalize(keys)
    return _walk(payload, denylist)


def _walk(value: Any, denylist: tuple[str, ...]) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTION_MARKER if is_sensitive_key(k, denylist) else _walk(v, denylist)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_walk(item, denylist) for item in value]
    return value
