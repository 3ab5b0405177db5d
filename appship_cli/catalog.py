from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .tool_inputs import PLATFORMS


class ToolName(str, Enum):
    GET_USER_INFO = "get_user_info"
    LIST_APPLE_APPS = "list_apple_apps"
    GENERATE_METADATA = "generate_metadata"
    GENERATE_WHATS_NEW = "generate_whats_new"
    GENERATE_KEYWORDS = "generate_keywords"
    LIST_APP_VERSIONS = "list_app_versions"
    SUBMIT_METADATA = "submit_metadata"

    @classmethod
    def parse(cls, name: str) -> "ToolName | None":
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass(frozen=True)
class ToolDef:
    name: ToolName
    description: str
    input_schema: dict[str, Any] = field(hash=False)

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name.value,
            "description": self.description,
            "inputSchema": copy.deepcopy(self.input_schema),
        }


def _schema(properties: dict[str, dict[str, Any]], required: list[str]) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


def _string(description: str) -> dict[str, Any]:
    return {"type": "string", "description": description}


_APP_NAME = _string("Name of the app")
_APP_DESCRIPTION = _string("Brief description of what the app does")
_LOCALE = _string("Target locale (e.g., 'en-US', 'tr'). Defaults to 'en-US'")
_APP_ID = _string("App Store Connect app id (from list_apple_apps)")


TOOLS: tuple[ToolDef, ...] = (
    ToolDef(
        name=ToolName.GET_USER_INFO,
        description="Get current user info including credits, Apple connection status, and projects",
        input_schema=_schema({}, []),
    ),
    ToolDef(
        name=ToolName.LIST_APPLE_APPS,
        description="List all apps from connected App Store Connect account",
        input_schema=_schema({}, []),
    ),
    ToolDef(
        name=ToolName.GENERATE_METADATA,
        description=(
            "Generate complete App Store metadata (title, subtitle, description, keywords) "
            "using AI. Costs 1 credit."
        ),
        input_schema=_schema(
            {"appName": _APP_NAME, "appDescription": _APP_DESCRIPTION, "locale": _LOCALE},
            ["appName", "appDescription"],
        ),
    ),
    ToolDef(
        name=ToolName.GENERATE_WHATS_NEW,
        description="Generate release notes / What's New text using AI. Costs 1 credit.",
        input_schema=_schema(
            {
                "appName": _APP_NAME,
                "changes": _string("List of changes, bug fixes, or new features in this release"),
                "locale": _LOCALE,
            },
            ["appName", "changes"],
        ),
    ),
    ToolDef(
        name=ToolName.GENERATE_KEYWORDS,
        description="Generate optimized App Store keywords for ASO using AI. Costs 1 credit.",
        input_schema=_schema(
            {
                "appName": _APP_NAME,
                "appDescription": _APP_DESCRIPTION,
                "currentKeywords": _string("Current keywords (optional, for optimization)"),
                "locale": _LOCALE,
            },
            ["appName", "appDescription"],
        ),
    ),
    ToolDef(
        name=ToolName.LIST_APP_VERSIONS,
        description="List editable and live App Store versions for an app",
        input_schema=_schema({"appId": _APP_ID}, ["appId"]),
    ),
    ToolDef(
        name=ToolName.SUBMIT_METADATA,
        description=(
            "Submit localized metadata (description, keywords, promotional text, release notes) "
            "to App Store Connect for an app and locale, optionally creating a new version"
        ),
        input_schema=_schema(
            {
                "appId": _APP_ID,
                "locale": _string("Locale to update (e.g., 'en-US')"),
                "description": _string("App description"),
                "keywords": _string("Comma-separated keywords (max 100 characters)"),
                "promotionalText": _string("Promotional text"),
                "whatsNew": _string("Release notes for the version"),
                "versionString": _string("New version number to create (e.g., '1.2.0'), optional"),
                "platform": {
                    "type": "string",
                    "enum": list(PLATFORMS),
                    "description": "Platform of the version. Defaults to IOS",
                },
            },
            ["appId", "locale"],
        ),
    ),
)

_BY_NAME: dict[ToolName, ToolDef] = {t.name: t for t in TOOLS}

if len(_BY_NAME) != len(TOOLS) or set(_BY_NAME) != set(ToolName):
    raise RuntimeError("tool catalog must declare each ToolName exactly once")


def get_tool(name: ToolName) -> ToolDef:
    return _BY_NAME[name]


def tool_list() -> list[dict[str, Any]]:
    return [t.to_wire() for t in TOOLS]
