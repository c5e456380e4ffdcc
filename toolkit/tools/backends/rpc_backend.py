# ==============================
# RPC Relay Backend
# ==============================
"""
RPC backend: wraps the call in one relay envelope {action, body, headers, path, query}.

Rules:
- The reserved keys path/query/headers/body pick their bucket; every other
  top-level argument is merged into body.
- Caller-supplied Authorization is always dropped; credentials come from the
  transport, never from arguments.
- Dry run returns the envelope serialized as the request body instead of sending it.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Protocol

from toolkit.contracts.rpc_schema import RpcActionRequest
from toolkit.contracts.tool_schema import ExecuteOptions, RpcExecuteConfig
from toolkit.tools.headers import normalise_headers, strip_authorization
from toolkit.utils.errors import ToolSetConfigError

if TYPE_CHECKING:
    from toolkit.tools.base import Tool

_RESERVED = ("body", "headers", "path", "query")


class RpcTransport(Protocol):
    def rpc_action(self, request: RpcActionRequest) -> Dict[str, Any]:
        ...


def _extract_record(params: Mapping[str, Any], key: str) -> Optional[Dict[str, Any]]:
    value = params.get(key)
    if isinstance(value, Mapping):
        return dict(value)
    return None


def build_action_request(
    action: str, params: Mapping[str, Any], headers: Mapping[str, Any]
) -> RpcActionRequest:
    base_headers = strip_authorization(headers)
    extra_headers = strip_authorization(normalise_headers(_extract_record(params, "headers")))

    body = _extract_record(params, "body") or {}
    for key, value in params.items():
        if key not in _RESERVED:
            body[key] = value

    return RpcActionRequest(
        action=action,
        body=body,
        headers={**base_headers, **extra_headers},
        path=_extract_record(params, "path"),
        query=_extract_record(params, "query"),
    )


def envelope_for(config: RpcExecuteConfig, request: RpcActionRequest) -> Dict[str, Any]:
    keys = config.payload_keys
    slots = {
        keys.action: request.action,
        keys.body: request.body,
        keys.headers: request.headers,
        keys.path: request.path,
        keys.query: request.query,
    }
    return {k: v for k, v in slots.items() if v is not None}


class RpcBackend:
    name: str = "rpc"

    def __init__(self, *, transport: Optional[RpcTransport] = None) -> None:
        self.transport = transport

    def run(self, tool: "Tool", params: Dict[str, Any], options: ExecuteOptions) -> Any:
        config = tool.execute_config
        request = build_action_request(tool.name, params, {**tool.get_headers(), **options.headers})

        if options.dry_run:
            return {
                "url": config.url,
                "method": config.method,
                "headers": dict(request.headers or {}),
                "body": json.dumps(envelope_for(config, request), separators=(",", ":"), default=str),
                "mappedParams": dict(params),
            }

        if self.transport is None:
            raise ToolSetConfigError(f"No RPC transport configured for tool '{tool.name}'")
        return self.transport.rpc_action(request)
