from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from dotenv import find_dotenv, load_dotenv
from rich.console import Console


class AppshipError(Exception):
    pass


class OpError(AppshipError):
    pass


class NotAuthenticatedError(OpError):
    pass


class ApiError(OpError):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(OpError):
    pass


class TransportError(OpError):
    pass


class ToolInputError(OpError):
    pass


APPSHIP_API_KEY = "APPSHIP_API_KEY"
APPSHIP_API_URL = "APPSHIP_API_URL"
APPSHIP_CREDENTIALS_FILE = "APPSHIP_CREDENTIALS_FILE"

DEFAULT_API_URL = "https://appship.up.railway.app/api"
API_KEY_PREFIX = "as_live_"
DASHBOARD_URL = "https://appship.ai/dashboard"


def _default_credentials_path() -> Path:
    return Path.home() / ".appship" / "credentials.json"


def _env_or_none(*names: str, environ: Mapping[str, str] | None = None) -> str | None:
    env = os.environ if environ is None else environ
    for n in names:
        v = (env.get(n) or "").strip()
        if v:
            return v
    return None


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    api_key_override: str | None = None
    credentials_path: Path = field(default_factory=_default_credentials_path)
    quiet: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, quiet: bool = False) -> "Settings":
        api_url = _env_or_none(APPSHIP_API_URL, environ=environ) or DEFAULT_API_URL
        creds_file = _env_or_none(APPSHIP_CREDENTIALS_FILE, environ=environ)
        return cls(
            api_url=api_url.rstrip("/"),
            api_key_override=_env_or_none(APPSHIP_API_KEY, environ=environ),
            credentials_path=Path(creds_file).expanduser() if creds_file else _default_credentials_path(),
            quiet=quiet,
        )


def _bootstrap_env() -> None:
    # Load the nearest .env from the working directory without overriding
    # already-exported values.
    load_dotenv(find_dotenv(usecwd=True))


_ERROR_CONSOLE = Console(stderr=True)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {msg}", highlight=False)


def _log(settings: Settings, msg: str) -> None:
    if settings.quiet:
        return
    _ERROR_CONSOLE.print(f"[dim]appship:[/dim] {msg}", highlight=False)


def _print_json(obj: Any, *, pretty: bool) -> None:
    if pretty:
        sys.stdout.write(json.dumps(obj, indent=2, sort_keys=True) + "\n")
    else:
        sys.stdout.write(json.dumps(obj, separators=(",", ":"), sort_keys=True) + "\n")


def _write_secure_json(*, path: Path, obj: dict[str, Any]) -> None:
    _write_secure_text(path=path, text=json.dumps(obj, indent=2) + "\n")


def _write_secure_text(*, path: Path, text: str) -> None:
    if not path.parent.exists():
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    try:
        os.chmod(path, 0o600)
    except Exception as e:
        raise OpError(f"failed to apply 0600 permissions to {path}: {e}") from e
