from __future__ import annotations

from typing import Callable

from .cli_shared import API_KEY_PREFIX


class AuthInputError(ValueError):
    """Raised when login inputs are missing or malformed."""


class ApiKeyFormatError(AuthInputError):
    """Raised when an API key does not carry the expected prefix."""


def _require_non_empty(val: str | None, *, name: str, hint: str) -> str:
    out = (val or "").strip()
    if not out:
        raise AuthInputError(f"missing {name} ({hint})")
    return out


def preflight_api_key(api_key: str | None, *, prefix: str = API_KEY_PREFIX) -> str:
    """Check a candidate key locally, before any network call."""
    value = _require_non_empty(api_key, name="API key", hint="paste the key from your Appship dashboard")
    if not value.startswith(prefix):
        raise ApiKeyFormatError(f"invalid API key format: key should start with {prefix!r}")
    return value


def resolve_login_api_key(*, api_key: str | None, prompt: Callable[[], str]) -> str:
    """Use the --api-key flag when given, otherwise prompt for the key."""
    candidate = (api_key or "").strip()
    if not candidate:
        candidate = (prompt() or "").strip()
    return preflight_api_key(candidate)
