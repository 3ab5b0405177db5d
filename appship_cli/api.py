from __future__ import annotations

import json
from dataclasses import dataclass
from http import HTTPStatus
from http.client import HTTPException
from typing import Any, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from .cli_shared import (
    ApiError,
    NotAuthenticatedError,
    ProtocolError,
    Settings,
    TransportError,
)
from .credentials import CredentialStore


def _http_request(
    *,
    method: str,
    url: str,
    headers: dict[str, str],
    body: bytes | None = None,
    timeout_seconds: int = 30,
) -> tuple[int, dict[str, str], bytes]:
    try:
        req = Request(url, data=body, method=str(method).upper())
    except ValueError as e:
        raise TransportError(f"invalid request URL {url!r}: {e}") from e
    for k, v in headers.items():
        req.add_header(k, v)
    try:
        with urlopen(req, timeout=timeout_seconds) as resp:
            status = getattr(resp, "status", 200)
            hdrs = {k.lower(): v for k, v in dict(resp.headers).items()}
            data = resp.read()
            return int(status), hdrs, data
    except HTTPError as e:
        hdrs = {k.lower(): v for k, v in dict(e.headers or {}).items()}
        data = e.read() if hasattr(e, "read") else b""
        return int(getattr(e, "code", 0) or 0), hdrs, data
    except (URLError, OSError, HTTPException) as e:
        raise TransportError(f"http request failed: {e}") from e


def _auth_headers(api_key: str) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "x-api-key": api_key,
    }


def _error_message(status: int, raw: bytes) -> str:
    try:
        parsed = json.loads(raw.decode("utf-8"))
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        msg = parsed.get("error")
        if isinstance(msg, str) and msg.strip():
            return msg
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return f"request failed with status {status}"


def _require_fields(doc: Any, *, label: str, fields: Sequence[str]) -> dict[str, Any]:
    if not isinstance(doc, dict):
        raise ProtocolError(f"invalid response from {label}: expected JSON object")
    missing = [f for f in fields if f not in doc or doc[f] is None]
    if missing:
        raise ProtocolError(f"invalid response from {label}: missing {', '.join(missing)}")
    return doc


def _require_str(doc: dict[str, Any], *, label: str, key: str) -> str:
    val = doc.get(key)
    if not isinstance(val, str):
        raise ProtocolError(f"invalid response from {label}: {key} must be a string")
    return val


def _require_list(doc: dict[str, Any], *, label: str, key: str) -> list[Any]:
    val = doc.get(key)
    if not isinstance(val, list):
        raise ProtocolError(f"invalid response from {label}: {key} must be a list")
    return val


def _compact(body: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in body.items() if v is not None}


@dataclass(frozen=True)
class KeyValidation:
    valid: bool
    email: str | None = None


class AppshipClient:
    """Authenticated passthrough to the Appship HTTP API.

    Raises NotAuthenticatedError before any request when no credential
    resolves, ApiError for non-2xx responses, ProtocolError when a 2xx body
    lacks the declared fields, and TransportError when the API is unreachable.
    """

    def __init__(self, settings: Settings, store: CredentialStore | None = None) -> None:
        self.settings = settings
        self.store = store or CredentialStore(settings)

    def _request(self, method: str, endpoint: str, body: dict[str, Any] | None = None) -> Any:
        credential = self.store.resolve()
        if credential is None:
            raise NotAuthenticatedError("Not authenticated. Run 'appship login' first.")

        data = None
        if body is not None:
            data = json.dumps(_compact(body), separators=(",", ":")).encode("utf-8")
        status, _hdrs, raw = _http_request(
            method=method,
            url=f"{self.settings.api_url}{endpoint}",
            headers=_auth_headers(credential.api_key),
            body=data,
        )
        if status < 200 or status >= 300:
            raise ApiError(status, _error_message(status, raw))
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise ProtocolError(f"invalid JSON from {method} {endpoint}: {e}") from e

    def get_user_info(self) -> dict[str, Any]:
        doc = self._request("GET", "/user/me")
        return _require_fields(doc, label="user info", fields=("email", "credits"))

    def list_apple_apps(self) -> list[Any]:
        doc = _require_fields(self._request("GET", "/projects/apple-apps"), label="apple apps", fields=("apps",))
        return _require_list(doc, label="apple apps", key="apps")

    def generate_metadata(self, app_name: str | None, app_description: str | None, locale: str | None = None) -> dict[str, Any]:
        doc = self._request(
            "POST",
            "/generate/metadata",
            {"appName": app_name, "appDescription": app_description, "locale": locale},
        )
        return _require_fields(
            doc,
            label="metadata generation",
            fields=("title", "subtitle", "description", "keywords"),
        )

    def generate_whats_new(self, app_name: str | None, changes: str | None, locale: str | None = None) -> str:
        doc = self._request(
            "POST",
            "/generate/whats-new",
            {"appName": app_name, "changes": changes, "locale": locale},
        )
        doc = _require_fields(doc, label="what's new generation", fields=("whatsNew",))
        return _require_str(doc, label="what's new generation", key="whatsNew")

    def generate_keywords(
        self,
        app_name: str | None,
        app_description: str | None,
        current_keywords: str | None = None,
        locale: str | None = None,
    ) -> str:
        doc = self._request(
            "POST",
            "/generate/keywords",
            {
                "appName": app_name,
                "appDescription": app_description,
                "currentKeywords": current_keywords,
                "locale": locale,
            },
        )
        doc = _require_fields(doc, label="keyword generation", fields=("keywords",))
        return _require_str(doc, label="keyword generation", key="keywords")

    def list_app_versions(self, app_id: str | None) -> list[Any]:
        endpoint = f"/projects/apple-apps/{quote(str(app_id or ''), safe='')}/versions"
        doc = _require_fields(self._request("GET", endpoint), label="app versions", fields=("versions",))
        return _require_list(doc, label="app versions", key="versions")

    def submit_metadata(
        self,
        app_id: str | None,
        locale: str | None,
        *,
        description: str | None = None,
        keywords: str | None = None,
        promotional_text: str | None = None,
        whats_new: str | None = None,
        version_string: str | None = None,
        platform: str | None = None,
    ) -> dict[str, Any]:
        endpoint = (
            f"/projects/apple-apps/{quote(str(app_id or ''), safe='')}"
            f"/localizations/{quote(str(locale or ''), safe='')}"
        )
        doc = self._request(
            "POST",
            endpoint,
            {
                "description": description,
                "keywords": keywords,
                "promotionalText": promotional_text,
                "whatsNew": whats_new,
                "versionString": version_string,
                "platform": platform,
            },
        )
        return _require_fields(doc, label="metadata submission", fields=())


def validate_api_key(api_key: str, settings: Settings) -> KeyValidation:
    """Call /user/me with a candidate key; any failure reads as invalid."""
    try:
        status, _hdrs, raw = _http_request(
            method="GET",
            url=f"{settings.api_url}/user/me",
            headers=_auth_headers(api_key),
        )
        if status < 200 or status >= 300:
            return KeyValidation(valid=False)
        doc = json.loads(raw.decode("utf-8"))
    except (TransportError, ValueError):
        return KeyValidation(valid=False)
    email = doc.get("email") if isinstance(doc, dict) else None
    return KeyValidation(valid=True, email=email if isinstance(email, str) else None)
