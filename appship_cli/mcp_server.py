from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from typing import Any, Callable

from . import __version__
from .api import AppshipClient
from .catalog import ToolName, tool_list
from .cli_shared import (
    ApiError,
    NotAuthenticatedError,
    ProtocolError,
    Settings,
    ToolInputError,
    TransportError,
    _log,
)
from .credentials import CredentialStore
from .tool_inputs import (
    GenerateKeywordsInput,
    GenerateMetadataInput,
    GenerateWhatsNewInput,
    ListAppVersionsInput,
    NoInput,
    SubmitMetadataInput,
)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "appship"

ToolFunc = Callable[[Any], Any]


@dataclass(frozen=True)
class ToolOutcome:
    text: str
    is_error: bool = False
    code: str = "OK"

    def to_result(self) -> dict[str, Any]:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }


def _render(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2, ensure_ascii=False)


class AppshipMcp:
    def __init__(self, settings: Settings | None = None, client: AppshipClient | None = None) -> None:
        self.settings = settings or Settings.from_env()
        self.client = client or AppshipClient(self.settings, CredentialStore(self.settings))
        c = self.client
        self._handlers: dict[ToolName, tuple[Any, ToolFunc]] = {
            ToolName.GET_USER_INFO: (NoInput, lambda _i: c.get_user_info()),
            ToolName.LIST_APPLE_APPS: (NoInput, lambda _i: c.list_apple_apps()),
            ToolName.GENERATE_METADATA: (
                GenerateMetadataInput,
                lambda i: c.generate_metadata(i.app_name, i.app_description, i.locale),
            ),
            ToolName.GENERATE_WHATS_NEW: (
                GenerateWhatsNewInput,
                lambda i: c.generate_whats_new(i.app_name, i.changes, i.locale),
            ),
            ToolName.GENERATE_KEYWORDS: (
                GenerateKeywordsInput,
                lambda i: c.generate_keywords(i.app_name, i.app_description, i.current_keywords, i.locale),
            ),
            ToolName.LIST_APP_VERSIONS: (ListAppVersionsInput, lambda i: c.list_app_versions(i.app_id)),
            ToolName.SUBMIT_METADATA: (
                SubmitMetadataInput,
                lambda i: c.submit_metadata(
                    i.app_id,
                    i.locale,
                    description=i.description,
                    keywords=i.keywords,
                    promotional_text=i.promotional_text,
                    whats_new=i.whats_new,
                    version_string=i.version_string,
                    platform=i.platform,
                ),
            ),
        }

    @staticmethod
    def _error_code(err: Exception) -> str:
        if isinstance(err, NotAuthenticatedError):
            return "NOT_AUTHENTICATED"
        if isinstance(err, ToolInputError):
            return "INVALID_ARGUMENTS"
        if isinstance(err, ApiError):
            return "API_ERROR"
        if isinstance(err, ProtocolError):
            return "PROTOCOL_ERROR"
        if isinstance(err, TransportError):
            return "TRANSPORT_ERROR"
        return "UNEXPECTED"

    def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> ToolOutcome:
        tool = ToolName.parse(name)
        if tool is None:
            _log(self.settings, f"unknown tool requested: {name}")
            return ToolOutcome(f"Unknown tool: {name}", is_error=True, code="UNKNOWN_TOOL")

        input_cls, func = self._handlers[tool]
        try:
            tool_input = input_cls.from_arguments(arguments or {}, tool=tool.value)
            return ToolOutcome(_render(func(tool_input)))
        except Exception as e:
            code = self._error_code(e)
            message = str(e).strip() or "Unknown error occurred"
            _log(self.settings, f"{tool.value} failed ({code}): {message}")
            return ToolOutcome(f"Error: {message}", is_error=True, code=code)

    def handle_request(self, req: dict[str, Any]) -> dict[str, Any] | None:
        method = req.get("method")
        req_id = req.get("id")

        if method in {"initialized", "notifications/initialized"} and req_id is None:
            return None

        if method == "initialize":
            return {
                "jsonrpc": "2.0",
                "id": req_id,
                "result": {
                    "protocolVersion": PROTOCOL_VERSION,
                    "capabilities": {"tools": {}},
                    "serverInfo": {"name": SERVER_NAME, "version": __version__},
                },
            }

        if method == "ping":
            return {"jsonrpc": "2.0", "id": req_id, "result": {}}

        if method == "tools/list":
            return {"jsonrpc": "2.0", "id": req_id, "result": {"tools": tool_list()}}

        if method == "tools/call":
            params = req.get("params")
            if not isinstance(params, dict) or not isinstance(params.get("name"), str):
                return self._error(req_id, -32602, "invalid params: expected {name, arguments}")
            arguments = params.get("arguments")
            if not isinstance(arguments, dict):
                arguments = {}
            outcome = self.call_tool(params["name"], arguments)
            return {"jsonrpc": "2.0", "id": req_id, "result": outcome.to_result()}

        if req_id is None:
            return None
        return self._error(req_id, -32601, f"method not found: {method}")

    @staticmethod
    def _error(req_id: Any, code: int, message: str) -> dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": req_id,
            "error": {"code": code, "message": message},
        }


def _read_message(stdin: Any) -> dict[str, Any] | None:
    while True:
        line = stdin.readline()
        if not line:
            return None
        if line in (b"\r\n", b"\n"):
            continue
        decoded = line.decode("utf-8").strip()
        if not decoded:
            continue
        parsed = json.loads(decoded)
        break
    if not isinstance(parsed, dict):
        raise ValueError("message must be a JSON object")
    return parsed


def _write_message(stdout: Any, payload: dict[str, Any]) -> None:
    body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    stdout.write(body + b"\n")
    stdout.flush()


def serve_stdio(settings: Settings | None = None, *, stdin: Any = None, stdout: Any = None) -> int:
    server = AppshipMcp(settings)
    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout.buffer
    _log(server.settings, f"MCP server ready ({len(tool_list())} tools, api {server.settings.api_url})")

    while True:
        try:
            req = _read_message(stdin)
        except ValueError as exc:
            _write_message(
                stdout,
                {
                    "jsonrpc": "2.0",
                    "id": None,
                    "error": {"code": -32700, "message": "Parse error", "data": {"detail": str(exc)}},
                },
            )
            continue
        if req is None:
            break
        resp = server.handle_request(req)
        if resp is not None:
            _write_message(stdout, resp)
    return 0
