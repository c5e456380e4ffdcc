# ==============================
# HTTP Tool Backend
# ==============================
"""
HTTP backend: delegates straight to the Request Builder.

Headers are read from the tool at call time and merged with per-call overrides;
the tool itself is never mutated.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import requests

from toolkit.contracts.tool_schema import ExecuteOptions
from toolkit.tools.request_builder import DEFAULT_USER_AGENT, RequestBuilder

if TYPE_CHECKING:
    from toolkit.tools.base import Tool


class HttpBackend:
    name: str = "http"

    def __init__(self, *, session: Optional[requests.Session] = None, user_agent: Optional[str] = None) -> None:
        self.session = session
        self.user_agent = user_agent or DEFAULT_USER_AGENT

    def run(self, tool: "Tool", params: Dict[str, Any], options: ExecuteOptions) -> Any:
        builder = RequestBuilder(tool.execute_config, user_agent=self.user_agent)
        headers = {**tool.get_headers(), **options.headers}
        return builder.execute(params, headers=headers, dry_run=options.dry_run, session=self.session)
