# ==============================
# Remote Catalog Client Tests
# ==============================
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import pytest
from mcp import types
from mcp.shared.exceptions import McpError

from toolkit.toolsets import catalog_client
from toolkit.toolsets.catalog_client import CatalogClient
from toolkit.utils.errors import ToolSetLoadError


class FakeCatalogSession:
    def __init__(self, pages: List[types.ListToolsResult], *, error: Optional[Exception] = None) -> None:
        self.pages = list(pages)
        self.error = error
        self.calls: List[Any] = []

    async def initialize(self) -> None:
        self.calls.append("initialize")

    async def list_tools(self, cursor: Optional[str] = None) -> types.ListToolsResult:
        self.calls.append(("list_tools", cursor))
        if self.error is not None:
            raise self.error
        return self.pages.pop(0)


def _factory(session: FakeCatalogSession, opened: List[Dict[str, Any]]):
    @asynccontextmanager
    async def open_session(endpoint: str, headers: Dict[str, str]):
        opened.append({"endpoint": endpoint, "headers": headers})
        yield session

    return open_session


def _tool(name: str, description: Optional[str] = None) -> types.Tool:
    return types.Tool(name=name, description=description, inputSchema={"type": "object", "properties": {}})


def test_initialize_then_paged_listing() -> None:
    session = FakeCatalogSession(
        [
            types.ListToolsResult(tools=[_tool("hris_list_employees", "List")], nextCursor="c2"),
            types.ListToolsResult(tools=[_tool("crm_list_contacts")]),
        ]
    )
    opened: List[Dict[str, Any]] = []
    client = CatalogClient(
        base_url="https://api.example.com/",
        headers={"x-account-id": "acc_1", "Authorization": "Basic abc"},
        session_factory=_factory(session, opened),
    )

    entries = client.list_tools()

    assert [e.name for e in entries] == ["hris_list_employees", "crm_list_contacts"]
    assert entries[0].description == "List"
    assert entries[1].description == ""
    assert entries[1].input_schema == {"type": "object", "properties": {}}
    assert session.calls == ["initialize", ("list_tools", None), ("list_tools", "c2")]
    assert opened == [
        {
            "endpoint": "https://api.example.com/mcp",
            "headers": {"User-Agent": "toolkit-python", "x-account-id": "acc_1", "Authorization": "Basic abc"},
        }
    ]


def test_default_session_uses_streamable_http(monkeypatch) -> None:
    opened: List[Dict[str, Any]] = []
    session = FakeCatalogSession([types.ListToolsResult(tools=[_tool("ats_list_jobs")])])

    @asynccontextmanager
    async def fake_transport(url: str, headers: Optional[Dict[str, str]] = None):
        opened.append({"url": url, "headers": headers})
        yield "read", "write", lambda: "sess-1"

    class FakeClientSession:
        def __init__(self, read_stream, write_stream) -> None:
            assert (read_stream, write_stream) == ("read", "write")

        async def __aenter__(self) -> FakeCatalogSession:
            return session

        async def __aexit__(self, *exc_info) -> None:
            return None

    monkeypatch.setattr(catalog_client, "streamablehttp_client", fake_transport)
    monkeypatch.setattr(catalog_client, "ClientSession", FakeClientSession)

    entries = CatalogClient(base_url="https://api.example.com", headers={"x-account-id": "acc_2"}).list_tools()

    assert [e.name for e in entries] == ["ats_list_jobs"]
    assert opened[0]["url"] == "https://api.example.com/mcp"
    assert opened[0]["headers"]["x-account-id"] == "acc_2"


def test_json_rpc_error_is_load_error() -> None:
    session = FakeCatalogSession([], error=McpError(types.ErrorData(code=-32600, message="bad account")))
    client = CatalogClient(base_url="https://api.example.com", session_factory=_factory(session, []))
    with pytest.raises(ToolSetLoadError, match="Tool catalog error: bad account"):
        client.list_tools()


def test_transport_failure_is_load_error() -> None:
    @asynccontextmanager
    async def unreachable(endpoint: str, headers: Dict[str, str]):
        raise ConnectionError("connection refused")
        yield  # pragma: no cover

    client = CatalogClient(base_url="https://api.example.com", session_factory=unreachable)
    with pytest.raises(ToolSetLoadError, match="Failed to list tools from https://api.example.com/mcp: connection refused"):
        client.list_tools()
