from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .cli_shared import Settings, _write_secure_json


@dataclass(frozen=True)
class Credential:
    api_key: str
    email: str | None = None

    def __post_init__(self) -> None:
        if not self.email:
            object.__setattr__(self, "email", None)

    def to_doc(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"apiKey": self.api_key}
        if self.email:
            doc["email"] = self.email
        return doc

    @classmethod
    def from_doc(cls, doc: Any) -> "Credential | None":
        if not isinstance(doc, dict):
            return None
        api_key = doc.get("apiKey")
        if not isinstance(api_key, str) or not api_key.strip():
            return None
        email = doc.get("email")
        if email is not None and not isinstance(email, str):
            return None
        return cls(api_key=api_key, email=email or None)


class CredentialStore:
    """Single-file credential record with a session-only env override.

    Reads never raise: a missing, unreadable or malformed file is the same as
    no credential at all.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def path(self) -> Path:
        return self.settings.credentials_path

    def read_stored(self) -> Credential | None:
        try:
            if not self.path.is_file():
                return None
            raw = self.path.read_text(encoding="utf-8")
            return Credential.from_doc(json.loads(raw))
        except (OSError, ValueError):
            return None

    def resolve(self) -> Credential | None:
        if self.settings.api_key_override:
            return Credential(api_key=self.settings.api_key_override)
        return self.read_stored()

    def active_source(self) -> str | None:
        if self.settings.api_key_override:
            return "environment"
        if self.read_stored() is not None:
            return "file"
        return None

    def persist(self, credential: Credential) -> Path:
        _write_secure_json(path=self.path, obj=credential.to_doc())
        return self.path

    def erase(self) -> bool:
        try:
            if self.path.is_file():
                self.path.unlink()
                return True
        except OSError:
            return False
        return False
