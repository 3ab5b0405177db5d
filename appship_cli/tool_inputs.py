from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .cli_shared import ToolInputError

PLATFORMS = ("IOS", "MAC_OS", "TV_OS", "VISION_OS")


def _opt_str(args: Mapping[str, Any], key: str, *, tool: str) -> str | None:
    val = args.get(key)
    if val is None:
        return None
    if not isinstance(val, str):
        raise ToolInputError(f"invalid arguments for {tool}: {key} must be a string")
    return val


@dataclass(frozen=True)
class NoInput:
    @classmethod
    def from_arguments(cls, args: Mapping[str, Any], *, tool: str) -> "NoInput":
        del args, tool
        return cls()


@dataclass(frozen=True)
class GenerateMetadataInput:
    app_name: str | None
    app_description: str | None
    locale: str | None = None

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any], *, tool: str) -> "GenerateMetadataInput":
        return cls(
            app_name=_opt_str(args, "appName", tool=tool),
            app_description=_opt_str(args, "appDescription", tool=tool),
            locale=_opt_str(args, "locale", tool=tool),
        )


@dataclass(frozen=True)
class GenerateWhatsNewInput:
    app_name: str | None
    changes: str | None
    locale: str | None = None

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any], *, tool: str) -> "GenerateWhatsNewInput":
        return cls(
            app_name=_opt_str(args, "appName", tool=tool),
            changes=_opt_str(args, "changes", tool=tool),
            locale=_opt_str(args, "locale", tool=tool),
        )


@dataclass(frozen=True)
class GenerateKeywordsInput:
    app_name: str | None
    app_description: str | None
    current_keywords: str | None = None
    locale: str | None = None

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any], *, tool: str) -> "GenerateKeywordsInput":
        return cls(
            app_name=_opt_str(args, "appName", tool=tool),
            app_description=_opt_str(args, "appDescription", tool=tool),
            current_keywords=_opt_str(args, "currentKeywords", tool=tool),
            locale=_opt_str(args, "locale", tool=tool),
        )


@dataclass(frozen=True)
class ListAppVersionsInput:
    app_id: str | None

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any], *, tool: str) -> "ListAppVersionsInput":
        return cls(app_id=_opt_str(args, "appId", tool=tool))


@dataclass(frozen=True)
class SubmitMetadataInput:
    app_id: str | None
    locale: str | None
    description: str | None = None
    keywords: str | None = None
    promotional_text: str | None = None
    whats_new: str | None = None
    version_string: str | None = None
    platform: str | None = None

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any], *, tool: str) -> "SubmitMetadataInput":
        platform = _opt_str(args, "platform", tool=tool)
        if platform is not None and platform not in PLATFORMS:
            raise ToolInputError(
                f"invalid arguments for {tool}: platform must be one of {', '.join(PLATFORMS)}"
            )
        return cls(
            app_id=_opt_str(args, "appId", tool=tool),
            locale=_opt_str(args, "locale", tool=tool),
            description=_opt_str(args, "description", tool=tool),
            keywords=_opt_str(args, "keywords", tool=tool),
            promotional_text=_opt_str(args, "promotionalText", tool=tool),
            whats_new=_opt_str(args, "whatsNew", tool=tool),
            version_string=_opt_str(args, "versionString", tool=tool),
            platform=platform,
        )
