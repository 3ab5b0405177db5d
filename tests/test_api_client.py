from __future__ import annotations

import socket
import threading
from dataclasses import replace
from typing import Iterator

import pytest

from appship_cli.api import AppshipClient, _http_request, validate_api_key
from appship_cli.cli_shared import (
    ApiError,
    NotAuthenticatedError,
    ProtocolError,
    Settings,
    TransportError,
)
from appship_cli.credentials import Credential, CredentialStore


def _logged_in(settings: Settings) -> AppshipClient:
    store = CredentialStore(settings)
    store.persist(Credential(api_key="as_live_abc", email="dev@example.com"))
    return AppshipClient(settings, store)


def test_no_credential_fails_before_any_request(settings: Settings, fake_http) -> None:
    client = AppshipClient(settings)

    for call in (
        client.get_user_info,
        client.list_apple_apps,
        lambda: client.generate_metadata("Foo", "bar"),
        lambda: client.generate_whats_new("Foo", "fixes"),
        lambda: client.generate_keywords("Foo", "bar"),
        lambda: client.list_app_versions("123"),
        lambda: client.submit_metadata("123", "en-US", description="d"),
    ):
        with pytest.raises(NotAuthenticatedError):
            call()

    assert fake_http.calls == []


def test_requests_carry_api_key_and_json_content_type(settings: Settings, fake_http) -> None:
    fake_http.reply(200, {"email": "dev@example.com", "credits": 3, "hasAppleCredentials": True, "projects": []})

    user = _logged_in(settings).get_user_info()

    assert user["credits"] == 3
    call = fake_http.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://api.example.test/api/user/me"
    assert call["headers"] == {"Content-Type": "application/json", "x-api-key": "as_live_abc"}
    assert call["body"] is None


def test_env_override_key_is_sent(settings: Settings, fake_http) -> None:
    fake_http.reply(200, {"apps": []})
    env_settings = replace(settings, api_key_override="as_live_env")

    AppshipClient(env_settings).list_apple_apps()

    assert fake_http.calls[0]["headers"]["x-api-key"] == "as_live_env"


def test_error_body_message_is_surfaced(settings: Settings, fake_http) -> None:
    fake_http.reply(400, {"error": "bad input"})

    with pytest.raises(ApiError) as excinfo:
        _logged_in(settings).generate_metadata("Foo", "bar")

    assert str(excinfo.value) == "bad input"
    assert excinfo.value.status_code == 400


def test_unparseable_error_body_falls_back_to_reason(settings: Settings, fake_http) -> None:
    fake_http.reply(502, b"<html>bad gateway</html>")

    with pytest.raises(ApiError) as excinfo:
        _logged_in(settings).get_user_info()

    assert str(excinfo.value) == "Bad Gateway"
    assert excinfo.value.status_code == 502


def test_unknown_status_without_body_uses_generic_message(settings: Settings, fake_http) -> None:
    fake_http.reply(599, b"")

    with pytest.raises(ApiError, match="request failed with status 599"):
        _logged_in(settings).get_user_info()


def test_success_missing_fields_is_protocol_error(settings: Settings, fake_http) -> None:
    fake_http.reply(200, {"title": "Foo", "subtitle": "Sub"})

    with pytest.raises(ProtocolError, match="description, keywords"):
        _logged_in(settings).generate_metadata("Foo", "bar")


def test_success_non_json_is_protocol_error(settings: Settings, fake_http) -> None:
    fake_http.reply(200, b"ok")

    with pytest.raises(ProtocolError):
        _logged_in(settings).list_apple_apps()


def test_apps_must_be_a_list(settings: Settings, fake_http) -> None:
    fake_http.reply(200, {"apps": {"id": "1"}})

    with pytest.raises(ProtocolError, match="apps must be a list"):
        _logged_in(settings).list_apple_apps()


def test_generate_metadata_posts_payload(settings: Settings, fake_http) -> None:
    doc = {"title": "Foo", "subtitle": "Sub", "description": "Desc", "keywords": "a,b"}
    fake_http.reply(200, doc)

    out = _logged_in(settings).generate_metadata("Foo", "bar", "tr")

    assert out == doc
    call = fake_http.calls[0]
    assert call["method"] == "POST"
    assert call["url"].endswith("/generate/metadata")
    assert call["body"] == {"appName": "Foo", "appDescription": "bar", "locale": "tr"}


def test_generate_whats_new_returns_text_and_omits_missing_locale(settings: Settings, fake_http) -> None:
    fake_http.reply(200, {"whatsNew": "Bug fixes."})

    out = _logged_in(settings).generate_whats_new("Foo", "fixed crash")

    assert out == "Bug fixes."
    assert fake_http.calls[0]["body"] == {"appName": "Foo", "changes": "fixed crash"}
    assert fake_http.calls[0]["url"].endswith("/generate/whats-new")


def test_generate_keywords_requires_string(settings: Settings, fake_http) -> None:
    fake_http.reply(200, {"keywords": ["a", "b"]})

    with pytest.raises(ProtocolError, match="keywords must be a string"):
        _logged_in(settings).generate_keywords("Foo", "bar", current_keywords="x")

    assert fake_http.calls[0]["body"] == {"appName": "Foo", "appDescription": "bar", "currentKeywords": "x"}


def test_list_app_versions_quotes_app_id(settings: Settings, fake_http) -> None:
    fake_http.reply(200, {"versions": [{"id": "v1", "versionString": "1.0", "appStoreState": "READY_FOR_SALE"}]})

    out = _logged_in(settings).list_app_versions("12/34")

    assert out[0]["versionString"] == "1.0"
    assert fake_http.calls[0]["method"] == "GET"
    assert fake_http.calls[0]["url"] == "https://api.example.test/api/projects/apple-apps/12%2F34/versions"


def test_submit_metadata_posts_locale_payload(settings: Settings, fake_http) -> None:
    fake_http.reply(200, {"success": True, "versionId": "v2"})

    out = _logged_in(settings).submit_metadata(
        "123",
        "en-US",
        description="Desc",
        promotional_text="Promo",
        version_string="1.2.0",
        platform="IOS",
    )

    assert out == {"success": True, "versionId": "v2"}
    call = fake_http.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://api.example.test/api/projects/apple-apps/123/localizations/en-US"
    assert call["body"] == {
        "description": "Desc",
        "promotionalText": "Promo",
        "versionString": "1.2.0",
        "platform": "IOS",
    }


def test_validate_api_key_reports_email(settings: Settings, fake_http) -> None:
    fake_http.reply(200, {"email": "dev@example.com", "credits": 1})

    result = validate_api_key("as_live_candidate", settings)

    assert result.valid is True
    assert result.email == "dev@example.com"
    assert fake_http.calls[0]["headers"]["x-api-key"] == "as_live_candidate"


def test_validate_api_key_rejected(settings: Settings, fake_http) -> None:
    fake_http.reply(401, {"error": "Invalid API key"})

    assert validate_api_key("as_live_bad", settings).valid is False


def test_validate_api_key_swallows_transport_errors(settings: Settings, monkeypatch) -> None:
    def _boom(**_kwargs):
        raise TransportError("http request failed: connection refused")

    monkeypatch.setattr("appship_cli.api._http_request", _boom)

    result = validate_api_key("as_live_abc", settings)

    assert result.valid is False
    assert result.email is None


def test_http_request_wraps_unreachable_host() -> None:
    with pytest.raises(TransportError, match="http request failed"):
        _http_request(method="GET", url="http://127.0.0.1:9/unreachable", headers={}, timeout_seconds=2)


@pytest.fixture
def garbage_server() -> Iterator[str]:
    """Local TCP server that answers one request with bytes that are not HTTP."""
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(1)
    srv.settimeout(5)

    def _serve_once() -> None:
        try:
            conn, _addr = srv.accept()
        except OSError:
            return
        with conn:
            conn.recv(65536)
            conn.sendall(b"garbage that is not http\r\n\r\n")

    t = threading.Thread(target=_serve_once, daemon=True)
    t.start()
    host, port = srv.getsockname()
    try:
        yield f"http://{host}:{port}/api"
    finally:
        t.join(timeout=5)
        srv.close()


def test_http_request_wraps_malformed_reply(garbage_server: str) -> None:
    with pytest.raises(TransportError, match="http request failed"):
        _http_request(method="GET", url=f"{garbage_server}/user/me", headers={}, timeout_seconds=5)


def test_validate_api_key_treats_malformed_reply_as_invalid(settings: Settings, garbage_server: str) -> None:
    result = validate_api_key("as_live_abc", replace(settings, api_url=garbage_server))

    assert result.valid is False
    assert result.email is None


@pytest.mark.parametrize("url", ["not a url", "/user/me"])
def test_http_request_wraps_unusable_url(url: str) -> None:
    with pytest.raises(TransportError, match="invalid request URL"):
        _http_request(method="GET", url=url, headers={})


def test_bad_api_url_is_transport_error(settings: Settings) -> None:
    client = _logged_in(replace(settings, api_url="localhost:3000"))

    with pytest.raises(TransportError):
        client.get_user_info()
