# ==============================
# Remote Catalog Client
# ==============================
"""
Fetch (name, description, inputSchema) triples from <base_url>/mcp.

Uses the MCP SDK over streamable HTTP:
  ClientSession.initialize() -> list_tools(cursor) until nextCursor is empty

Rules:
- The SDK owns the handshake, the session id and event-stream parsing.
- Each call opens its own connection and runs its own event loop, so one
  client per worker thread is safe.
- JSON-RPC errors and transport failures raise ToolSetLoadError.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Optional

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError
from pydantic import ValidationError

from toolkit.contracts.rpc_schema import CatalogEntry
from toolkit.tools.request_builder import DEFAULT_USER_AGENT
from toolkit.utils.errors import ToolSetLoadError

logger = logging.getLogger(__name__)

MAX_PAGES = 100

# (endpoint, headers) -> async context manager yielding a ClientSession
SessionFactory = Callable[[str, Dict[str, str]], Any]


@asynccontextmanager
async def open_session(endpoint: str, headers: Dict[str, str]) -> AsyncIterator[ClientSession]:
    async with streamablehttp_client(endpoint, headers=headers) as (read_stream, write_stream, _):
        async with ClientSession(read_stream, write_stream) as session:
            yield session


class CatalogClient:
    def __init__(
        self,
        *,
        base_url: str,
        headers: Optional[Mapping[str, str]] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.endpoint = f"{base_url.rstrip('/')}/mcp"
        self.headers = dict(headers or {})
        self.user_agent = user_agent
        self.session_factory = session_factory or open_session

    def request_headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent, **self.headers}

    async def _list_tools(self) -> List[CatalogEntry]:
        entries: List[CatalogEntry] = []
        async with self.session_factory(self.endpoint, self.request_headers()) as session:
            await session.initialize()
            cursor: Optional[str] = None
            for _ in range(MAX_PAGES):
                page = await session.list_tools(cursor=cursor)
                for tool in page.tools:
                    try:
                        entries.append(
                            CatalogEntry.model_validate(
                                {"name": tool.name, "description": tool.description or "", "inputSchema": tool.inputSchema}
                            )
                        )
                    except ValidationError as exc:
                        raise ToolSetLoadError(f"Invalid tool entry in catalog: {exc}") from exc
                cursor = page.nextCursor
                if not cursor:
                    break
        return entries

    # ==============================
    # Public API
    # ==============================
    def list_tools(self) -> List[CatalogEntry]:
        try:
            entries = asyncio.run(self._list_tools())
        except Exception as exc:
            error = _load_error(exc, self.endpoint)
            if error is exc:
                raise
            raise error from exc
        logger.info("listed %d tools from %s", len(entries), self.endpoint)
        return entries


def _load_error(exc: BaseException, endpoint: str) -> ToolSetLoadError:
    # anyio task groups wrap failures in exception groups
    cause = exc
    while getattr(cause, "exceptions", None):
        cause = cause.exceptions[0]
    if isinstance(cause, ToolSetLoadError):
        return cause
    if isinstance(cause, McpError):
        return ToolSetLoadError(f"Tool catalog error: {cause.error.message}")
    return ToolSetLoadError(f"Failed to list tools from {endpoint}: {cause}")
