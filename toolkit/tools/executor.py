# ==============================
# Tool Executor
# ==============================
"""
Central dispatch from Tool.execute to a backend.

Rules:
- ONE exhaustive switch over ExecuteConfig.kind (http | rpc | local).
- Emits a redacted trace event per call (tool.executed / tool.failed) with latency_ms.
- Errors propagate to Tool.execute, which owns wrapping into ToolkitError.
- No retries, no timeouts: those belong to the transport or the caller.
"""

from __future__ import annotations

import time
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Dict, Optional

import requests

from toolkit.contracts.tool_schema import ExecuteOptions, ToolMeta
from toolkit.contracts.trace_schema import TraceEvent, TraceLevel
from toolkit.logging.tracing import Tracer
from toolkit.tools.backends.http_backend import HttpBackend
from toolkit.tools.backends.local_backend import LocalToolBackend
from toolkit.tools.backends.rpc_backend import RpcBackend, RpcTransport
from toolkit.utils.errors import ToolkitError

if TYPE_CHECKING:
    from toolkit.tools.base import Tool


class ToolExecutor:
    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        rpc_transport: Optional[RpcTransport] = None,
        user_agent: Optional[str] = None,
        tracer: Optional[Tracer] = None,
    ) -> None:
        self.tracer = tracer or Tracer()
        self._http = HttpBackend(session=session, user_agent=user_agent)
        self._rpc = RpcBackend(transport=rpc_transport)
        self._local = LocalToolBackend()

    def execute(self, tool: "Tool", params: Dict[str, Any], options: ExecuteOptions) -> Any:
        config = tool.execute_config
        meta = ToolMeta(tool_name=tool.name, backend=config.kind, dry_run=options.dry_run)
        started = time.time()

        try:
            if config.kind == "http":
                result = self._http.run(tool, params, options)
            elif config.kind == "rpc":
                result = self._rpc.run(tool, params, options)
            elif config.kind == "local":
                result = self._local.run(tool, params, options)
            else:
                raise ToolkitError(f"Unknown execute kind: {config.kind}")
        except Exception as e:
            self._emit(meta, started, kind="tool.failed", payload={"params": params, "error": str(e)})
            raise

        self._emit(meta, started, kind="tool.executed", payload={"params": params})
        return result

    def _emit(self, meta: ToolMeta, started: float, *, kind: str, payload: Dict[str, Any]) -> None:
        meta = meta.model_copy(update={"latency_ms": int((time.time() - started) * 1000)})
        self.tracer.emit(
            TraceEvent(
                event_type=kind,
                tool=meta.tool_name,
                level=TraceLevel.ERROR if kind == "tool.failed" else TraceLevel.INFO,
                payload={**payload, "meta": meta.model_dump(mode="json")},
            )
        )


@lru_cache(maxsize=1)
def default_executor() -> ToolExecutor:
    """Shared executor for tools built without an explicit one (no rpc transport)."""
    return ToolExecutor()
