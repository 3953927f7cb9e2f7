#!/usr/bin/env python3
"""MCP (Model Context Protocol) stdio server for the preview gate.

Side-effecting GitHub tools never act directly. Calling one registers a pending
operation and returns its preview plus an operation id; the operator then
answers with `preview:ConfirmOrRevise` (confirm / cancel / revise).

One OperationRegistry is built per server process and injected into the
dispatcher, so every request shares the same pending operations.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TextIO

import jsonschema

from application.ports import IssueService
from config import get_ttl_seconds
from core import GateError
from core.gate.application.confirmation import ACTIONS, ConfirmationDispatcher, STATUS_INVALID
from core.gate.application.execution_adapter import ExecutionAdapter, strategy_for
from core.gate.application.operation_registry import OperationRegistry
from core.gate.application.preview_formatter import CONFIRM_TOOL
from core.gate.application.proposals import PROPOSAL_KINDS, propose

MCP_VERSION = "2024-11-05"
SERVER_NAME = "preview-gate-mcp"
SERVER_VERSION = "1.0.0"
LIST_TOOL = "preview:ListPending"

logger = logging.getLogger("preview_gate.mcp")


@dataclass
class JsonRpcRequest:
    """JSON-RPC 2.0 request."""

    jsonrpc: str
    method: str
    id: Optional[int | str] = None
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JsonRpcRequest":
        return cls(
            jsonrpc=str(data.get("jsonrpc", "2.0") or "2.0"),
            method=str(data["method"]),
            id=data.get("id"),
            params=data.get("params", {}) if isinstance(data.get("params", {}), dict) else {},
        )


def json_rpc_response(id: Optional[int | str], result: Any) -> Dict[str, Any]:
    """Create JSON-RPC success response."""
    return {"jsonrpc": "2.0", "id": id, "result": result}


def json_rpc_error(id: Optional[int | str], code: int, message: str, data: Any = None) -> Dict[str, Any]:
    """Create JSON-RPC error response."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": id, "error": error}


_STR = {"type": "string"}
_STR_LIST = {"type": "array", "items": {"type": "string"}}
_REPOSITORY = {"type": "string", "description": "Target repository (owner/repo). Defaults to config or git origin."}
_OWNER = {"type": "string", "description": "Repository owner."}
_REPO = {"type": "string", "description": "Repository name."}
_NUMBER = {"type": ["integer", "string"]}

_PROPOSAL_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "issue:CreateSimple": {
        "properties": {
            "initialInput": {"type": "string", "description": "What the issue is about (free text)."},
            "repository": _REPOSITORY,
        },
    },
    "issue:CreateFromThought": {
        "properties": {
            "thoughtContent": {"type": "string", "description": "Captured thought to turn into an issue."},
            "category": _STR,
            "suggestedTemplate": _STR,
            "suggestedPriority": {"type": "string", "enum": ["High", "Medium", "Low"]},
            "customTitle": _STR,
            "tags": _STR_LIST,
            "repository": _REPOSITORY,
        },
    },
    "issue:AppendToExistingIssue": {
        "properties": {
            "issueNumber": _NUMBER,
            "content": {"type": "string", "description": "Text to append."},
            "sectionTitle": {"type": "string", "default": "Additional Thoughts"},
            "repository": _REPOSITORY,
        },
    },
    "issue:CreateWithSubIssues": {
        "properties": {
            "title": _STR,
            "body": _STR,
            "labels": _STR_LIST,
            "assignees": _STR_LIST,
            "subIssues": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {"title": _STR, "body": _STR},
                    "required": ["title"],
                },
            },
            "repository": _REPOSITORY,
        },
    },
    "github:CreateIssue": {
        "properties": {
            "owner": _OWNER,
            "repo": _REPO,
            "title": _STR,
            "body": _STR,
            "labels": _STR_LIST,
            "assignees": _STR_LIST,
            "milestone": _NUMBER,
        },
    },
    "github:UpdateIssue": {
        "properties": {
            "owner": _OWNER,
            "repo": _REPO,
            "issue_number": _NUMBER,
            "title": _STR,
            "body": _STR,
            "labels": _STR_LIST,
            "assignees": _STR_LIST,
            "state": {"type": "string", "enum": ["open", "closed"]},
            "current": {"type": "object", "description": "Current issue snapshot, used only for the preview diff."},
        },
    },
    "github:AddComment": {
        "properties": {"owner": _OWNER, "repo": _REPO, "issue_number": _NUMBER, "body": _STR},
    },
    "github:CreatePullRequest": {
        "properties": {
            "owner": _OWNER,
            "repo": _REPO,
            "title": _STR,
            "body": _STR,
            "head": {"type": "string", "description": "Branch with the changes."},
            "base": {"type": "string", "description": "Branch to merge into."},
            "draft": {"type": "boolean", "default": False},
            "reviewers": _STR_LIST,
        },
    },
    "github:UpdatePullRequest": {
        "properties": {
            "owner": _OWNER,
            "repo": _REPO,
            "pullNumber": _NUMBER,
            "title": _STR,
            "body": _STR,
            "draft": {"type": "boolean"},
            "current": {"type": "object", "description": "Current PR snapshot, used only for the preview diff."},
        },
    },
}

_CONFIRM_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "operationId": {"type": "string", "description": "The ID of the pending operation to respond to."},
        "action": {
            "type": "string",
            "enum": list(ACTIONS),
            "description": "confirm to proceed, cancel to abort, revise to modify.",
        },
        "revisionInput": {
            "type": "string",
            "description": "Additional input or changes (required when action is 'revise').",
        },
    },
    "required": ["operationId", "action"],
}


def get_tool_definitions() -> List[Dict[str, Any]]:
    """Return MCP tool definitions: every proposal tool plus the decision tools."""
    tools: List[Dict[str, Any]] = []
    for tool_name, kind in sorted(PROPOSAL_KINDS.items()):
        schema = dict(_PROPOSAL_SCHEMAS.get(tool_name) or {"properties": {}})
        schema["type"] = "object"
        schema["required"] = list(kind.required)
        description = f"{kind.description} Returns a preview; nothing happens until confirmed via {CONFIRM_TOOL}."
        tools.append({"name": tool_name, "description": description, "inputSchema": schema})
    tools.append(
        {
            "name": CONFIRM_TOOL,
            "description": "Confirm, cancel, or revise a pending GitHub operation after seeing the preview.",
            "inputSchema": _CONFIRM_SCHEMA,
        }
    )
    tools.append(
        {
            "name": LIST_TOOL,
            "description": "List pending operations awaiting a decision.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "verbose": {"type": "boolean", "description": "Include original arguments and preview text."}
                },
                "required": [],
            },
        }
    )
    return tools


TOOL_SCHEMAS: Dict[str, Dict[str, Any]] = {tool["name"]: tool["inputSchema"] for tool in get_tool_definitions()}


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class MCPServer:
    """MCP stdio server exposing preview-gated GitHub tools."""

    def __init__(
        self,
        registry: Optional[OperationRegistry] = None,
        issue_service: Optional[IssueService] = None,
        adapter: Optional[ExecutionAdapter] = None,
    ):
        self.registry = registry or OperationRegistry(ttl_seconds=get_ttl_seconds())
        self.dispatcher = ConfirmationDispatcher(self.registry, adapter or ExecutionAdapter(issue_service))
        self._initialized = False

    @staticmethod
    def _json_content(payload: Any) -> Dict[str, Any]:
        return {"type": "text", "text": json.dumps(payload, ensure_ascii=False, indent=2)}

    def _tool_result(self, id: Optional[int | str], body: Dict[str, Any], is_error: bool) -> Dict[str, Any]:
        return json_rpc_response(id, {"content": [self._json_content(body)], "isError": is_error})

    def handle_request(self, request: JsonRpcRequest) -> Optional[Dict[str, Any]]:
        method = request.method
        params = request.params

        if method == "initialize":
            return json_rpc_response(
                request.id,
                {
                    "protocolVersion": MCP_VERSION,
                    "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
                    "capabilities": {"tools": {}},
                },
            )

        if not self._initialized and method != "notifications/initialized":
            return json_rpc_error(request.id, -32002, "Server not initialized")

        if method == "notifications/initialized":
            self._initialized = True
            return None

        if method == "tools/list":
            return json_rpc_response(request.id, {"tools": get_tool_definitions()})

        if method == "tools/call":
            try:
                return self._handle_tools_call(request.id, params)
            except Exception as exc:
                logger.exception("tools/call %s failed", params.get("name"))
                return json_rpc_error(request.id, -32603, f"Internal error: {exc}")

        if method == "ping":
            return json_rpc_response(request.id, {})

        return json_rpc_error(request.id, -32601, f"Method not found: {method}")

    def _handle_tools_call(self, id: Optional[int | str], params: Dict[str, Any]) -> Dict[str, Any]:
        tool_name = params.get("name")
        arguments = params.get("arguments", {})
        if tool_name not in TOOL_SCHEMAS:
            return json_rpc_error(id, -32602, f"Unknown tool: {tool_name}")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return json_rpc_error(id, -32602, "arguments must be an object")

        try:
            jsonschema.validate(instance=arguments, schema=TOOL_SCHEMAS[tool_name])
        except jsonschema.ValidationError as exc:
            return self._tool_result(id, {"status": STATUS_INVALID, "message": exc.message}, True)

        if tool_name == CONFIRM_TOOL:
            decision = self.dispatcher.handle_request(arguments)
            return self._tool_result(id, decision.to_dict(), not decision.ok)
        if tool_name == LIST_TOOL:
            return self._tool_result(id, self._list_pending(bool(arguments.get("verbose"))), False)
        return self._propose(id, str(tool_name), arguments)

    def _propose(self, id: Optional[int | str], tool_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        try:
            proposal = propose(self.registry, tool_name, arguments)
        except GateError as exc:
            return self._tool_result(id, {"status": STATUS_INVALID, "message": str(exc)}, True)
        logger.info("proposal %s registered for %s", proposal.operation_id, tool_name)
        body = {
            "status": "pending",
            "operationId": proposal.operation_id,
            "toolName": tool_name,
            "strategy": strategy_for(tool_name),
            "preview": proposal.preview,
            "expiresAt": _iso(proposal.expires_at),
            "next": f"Use {CONFIRM_TOOL} with operationId {proposal.operation_id} to confirm, cancel, or revise.",
        }
        return self._tool_result(id, body, False)

    def _list_pending(self, verbose: bool = False) -> Dict[str, Any]:
        now = self.registry.now()
        pending = self.registry.list_pending()
        items = [item.to_dict() if verbose else item.to_summary_dict(now) for item in pending]
        return {"status": "ok", "count": len(items), "operations": items}


def run_stdio(server: MCPServer, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    """Run MCP server over stdio (newline-delimited JSON-RPC)."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    def emit(payload: Dict[str, Any]) -> None:
        stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
        stdout.flush()

    for line in stdin:
        raw = line.strip()
        if not raw:
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            emit(json_rpc_error(None, -32700, f"Parse error: {exc}"))
            continue
        if not isinstance(data, dict) or "method" not in data:
            emit(json_rpc_error(data.get("id") if isinstance(data, dict) else None, -32600, "Invalid Request"))
            continue
        out = server.handle_request(JsonRpcRequest.from_dict(data))
        if out is not None:
            emit(out)
    return 0
