"""Redaction of daemon settings and JSON bodies for DEBUG logs."""

from __future__ import annotations

from typing import Any

from vmsync._constants import SENSITIVE_SETTING_KEYS

_REDACTED = "<redacted>"

# JSON field names whose value is never logged.
_SECRET_FIELDS: frozenset[str] = frozenset({"passphrase", "password", "certificate", "private_key", "token"})


def redact_setting(key: str, value: Any) -> Any:
    """Return *value* unless *key* names a secret setting."""
    if key in SENSITIVE_SETTING_KEYS:
        return _REDACTED
    return value


def redact_for_log(body: Any, *, max_string: int = 512) -> Any:
    """Copy of a decoded JSON *body* with secrets masked and long strings cut.

    A ``{"key": ..., "value": ...}`` pair naming a secret setting has its
    value masked too.
    """
    if isinstance(body, str):
        return body if len(body) <= max_string else f"{body[:max_string]}...<truncated>"
    if isinstance(body, dict):
        secret_setting = body.get("key") in SENSITIVE_SETTING_KEYS
        return {
            name: _REDACTED
            if str(name).lower() in _SECRET_FIELDS or (secret_setting and name == "value")
            else redact_for_log(item, max_string=max_string)
            for name, item in body.items()
        }
    if isinstance(body, list):
        return [redact_for_log(item, max_string=max_string) for item in body]
    return body
