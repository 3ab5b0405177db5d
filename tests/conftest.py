from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from appship_cli.cli_shared import Settings


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("APPSHIP_API_KEY", raising=False)
    monkeypatch.delenv("APPSHIP_API_URL", raising=False)
    monkeypatch.setenv("APPSHIP_CREDENTIALS_FILE", str(tmp_path / "appship" / "credentials.json"))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        api_url="https://api.example.test/api",
        credentials_path=tmp_path / "appship" / "credentials.json",
        quiet=True,
    )


class FakeHttp:
    """Records outbound requests and replies from a queue of canned responses."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.responses: list[tuple[int, bytes]] = []

    def reply(self, status: int, body: Any) -> None:
        raw = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        self.responses.append((status, raw))

    def __call__(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
        timeout_seconds: int = 30,
    ) -> tuple[int, dict[str, str], bytes]:
        del timeout_seconds
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": headers,
                "body": json.loads(body.decode("utf-8")) if body else None,
            }
        )
        status, raw = self.responses.pop(0)
        return status, {}, raw


@pytest.fixture
def fake_http(monkeypatch) -> FakeHttp:
    fake = FakeHttp()
    monkeypatch.setattr("appship_cli.api._http_request", fake)
    return fake
