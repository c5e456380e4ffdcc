# ==============================
# Local Tool Backend
# ==============================
"""
Local backend executes the tool's own in-process handler.

Rules:
- No generic behaviour: each local tool supplies its handler.
- No direct logging of sensitive fields; executor handles redaction + tracing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from toolkit.contracts.tool_schema import ExecuteOptions
from toolkit.utils.errors import ToolkitError

if TYPE_CHECKING:
    from toolkit.tools.base import Tool


class LocalToolBackend:
    name: str = "local"

    def run(self, tool: "Tool", params: Dict[str, Any], options: ExecuteOptions) -> Any:
        if tool.local_handler is None:
            raise ToolkitError(f"Local tool '{tool.name}' has no handler")
        return tool.local_handler(params, options)
