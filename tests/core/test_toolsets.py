# ==============================
# ToolSet Tests
# ==============================
from __future__ import annotations

import base64
import logging
import textwrap
from typing import Dict, List, Mapping

import pytest

from tests.fakes import SAMPLE_CATALOG, FakeRpcTransport, FakeSession
from toolkit.config.schema import Settings
from toolkit.contracts.rpc_schema import CatalogEntry
from toolkit.toolsets.base import NO_API_KEY_MESSAGE, NO_FILTER_MESSAGE, ToolSet, apply_auth_headers, filter_tools
from toolkit.toolsets.catalog import CatalogToolSet, parse_catalog, read_catalog
from toolkit.toolsets.remote import RemoteToolSet
from toolkit.tools.feedback import FEEDBACK_TOOL_NAME
from toolkit.utils.errors import ToolSetConfigError, ToolSetError, ToolSetLoadError


def _basic(user: str, password: str = "") -> str:
    return "Basic " + base64.b64encode(f"{user}:{password}".encode()).decode("ascii")


# ==============================
# Base bootstrap
# ==============================
def test_basic_and_bearer_auth_headers() -> None:
    basic = ToolSet(auth={"type": "basic", "username": "key", "password": "pw"})
    assert basic.headers["Authorization"] == _basic("key", "pw")

    bearer = ToolSet(auth={"type": "bearer", "token": "tok"})
    assert bearer.headers["Authorization"] == "Bearer tok"


def test_explicit_authorization_wins_and_auth_headers_sit_beneath() -> None:
    toolset = ToolSet(
        auth={"type": "bearer", "token": "tok", "headers": {"X-Tenant": "auth", "X-Auth-Only": "1"}},
        headers={"Authorization": "Custom abc", "X-Tenant": "explicit"},
    )
    assert toolset.headers == {"Authorization": "Custom abc", "X-Tenant": "explicit", "X-Auth-Only": "1"}


def test_unsupported_auth_type_is_config_error() -> None:
    with pytest.raises(ToolSetConfigError):
        ToolSet(auth={"type": "digest"})


def test_account_id_and_account_ids_are_exclusive() -> None:
    with pytest.raises(ToolSetConfigError, match="Cannot provide both"):
        ToolSet(account_id="acc_1", account_ids=["acc_2"])
    assert ToolSet(account_id="acc_1").headers == {"x-account-id": "acc_1"}
    assert ToolSet().set_accounts(["a", "b"]).account_ids == ["a", "b"]


def test_apply_auth_headers_without_auth_is_identity() -> None:
    assert apply_auth_headers({"A": "1"}, None) == {"A": "1"}


def test_filter_tools_by_provider_and_action(hris_tools) -> None:
    assert filter_tools(hris_tools, providers=["HRIS"]).names()[0] == "hris_list_employees"
    assert filter_tools(hris_tools, providers=["crm"], actions=["*_search_*"]).names() == ["crm_search_contacts"]
    assert len(filter_tools(hris_tools)) == len(hris_tools)


# ==============================
# Catalog toolset
# ==============================
def test_catalog_toolset_from_sample_file() -> None:
    toolset = CatalogToolSet(
        catalog_file=SAMPLE_CATALOG,
        base_url="https://api.example.com/",
        auth={"type": "basic", "username": "key"},
        account_id="acc_1",
    )

    tools = toolset.get_tools("hris_*")

    assert tools.names() == ["hris_list_employees", "hris_get_employee", "hris_create_employee"]
    employee = tools.require("hris_get_employee")
    out = employee.execute({"id": "emp 1", "expand": "company"}, dry_run=True)
    assert out["url"] == "https://api.example.com/unified/hris/employees/emp%201?expand=company"
    assert out["headers"]["Authorization"] == _basic("key")
    assert out["headers"]["x-account-id"] == "acc_1"


def test_get_tools_without_pattern_warns(caplog) -> None:
    log = logging.getLogger("tests.toolsets")
    toolset = CatalogToolSet(catalog_file=SAMPLE_CATALOG, logger=log)
    with caplog.at_level(logging.WARNING, logger="tests.toolsets"):
        tools = toolset.get_tools()
    assert len(tools) == 5
    assert NO_FILTER_MESSAGE in caplog.text


def test_get_tools_account_override_and_get_tool() -> None:
    toolset = CatalogToolSet(catalog_file=SAMPLE_CATALOG, account_id="acc_1")
    tools = toolset.get_tools(["crm_*"], account_id="acc_2", headers={"X-Extra": "1"})
    assert tools.require("crm_update_contact").account_id == "acc_2"
    assert tools.require("crm_update_contact").get_headers()["X-Extra"] == "1"
    with pytest.raises(ToolSetError, match="Tool with name nope not found"):
        toolset.get_tool("nope")


def test_parse_catalog_accepts_bare_mapping_and_rejects_bad_entries() -> None:
    parsed = parse_catalog(
        {"x_ping": {"execute": {"kind": "http", "url": "/ping"}}},
        base_url="https://api.example.com",
    )
    assert parsed["x_ping"].execute.url == "https://api.example.com/ping"

    with pytest.raises(ToolSetLoadError, match="Invalid catalog entry 'bad'"):
        parse_catalog({"bad": {"execute": {"kind": "carrier-pigeon"}}}, base_url="https://x")
    with pytest.raises(ToolSetLoadError, match="must be a mapping"):
        parse_catalog({"bad": ["list"]}, base_url="https://x")


def test_read_catalog_errors(tmp_path) -> None:
    with pytest.raises(ToolSetLoadError, match="not found"):
        read_catalog(tmp_path / "missing.yaml")
    broken = tmp_path / "broken.yaml"
    broken.write_text("tools: [unclosed", encoding="utf-8")
    with pytest.raises(ToolSetLoadError, match="Failed to parse"):
        read_catalog(broken)
    as_list = tmp_path / "list.json"
    as_list.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ToolSetLoadError, match="mapping at top-level"):
        read_catalog(as_list)


def test_catalog_from_settings_uses_api_key(tmp_path) -> None:
    catalog = tmp_path / "catalog.yaml"
    catalog.write_text(
        textwrap.dedent(
            """\
            x_ping:
              description: Ping
              execute: {kind: http, url: /ping}
            """
        ),
        encoding="utf-8",
    )
    settings = Settings.model_validate(
        {
            "toolset": {"base_url": "https://api.example.com", "catalog_file": str(catalog)},
            "secrets": {"api_key": "key_1"},
        }
    )
    tool = CatalogToolSet.from_settings(settings).get_tools("*").require("x_ping")
    out = tool.execute({}, dry_run=True)
    assert out["url"] == "https://api.example.com/ping"
    assert out["headers"]["Authorization"] == _basic("key_1")
    assert out["headers"]["User-Agent"] == "toolkit-python"


# ==============================
# Remote toolset
# ==============================
def _fetcher(seen: List[Dict[str, str]]):
    def fetch(headers: Mapping[str, str]) -> List[CatalogEntry]:
        seen.append(dict(headers))
        account = headers.get("x-account-id", "none")
        return [
            CatalogEntry(
                name="hris_list_employees",
                description=f"List employees for {account}",
                inputSchema={"type": "object", "properties": {"limit": {"type": "number"}}},
            ),
            CatalogEntry(name="crm_list_contacts", description="List contacts", inputSchema={}),
        ]

    return fetch


def test_remote_fetch_builds_rpc_tools_per_account() -> None:
    seen: List[Dict[str, str]] = []
    transport = FakeRpcTransport({"data": []})
    toolset = RemoteToolSet(
        api_key="key_1",
        base_url="https://api.example.com",
        account_ids=["acc_1", "acc_2"],
        rpc_client=transport,  # type: ignore[arg-type]
        catalog_fetcher=_fetcher(seen),
    )

    tools = toolset.fetch_tools()

    assert sorted(h["x-account-id"] for h in seen) == ["acc_1", "acc_2"]
    assert all(h["Authorization"] == _basic("key_1") for h in seen)
    assert tools.names() == [
        "hris_list_employees",
        "crm_list_contacts",
        "hris_list_employees",
        "crm_list_contacts",
        FEEDBACK_TOOL_NAME,
    ]
    first = tools.require("hris_list_employees")
    assert first.account_id == "acc_1"
    assert first.execute_config.url == "https://api.example.com/actions/rpc"
    assert "execution" not in first.to_agent_framework()["hris_list_employees"]
    assert tools.to_array()[1].parameters.properties == {}

    first.execute({"limit": 5})
    assert transport.requests[0].action == "hris_list_employees"
    assert transport.requests[0].headers == {"x-account-id": "acc_1"}
    assert transport.requests[0].body == {"limit": 5}


def test_remote_fetch_filters_providers_and_actions() -> None:
    toolset = RemoteToolSet(
        api_key="key_1",
        rpc_client=FakeRpcTransport(),  # type: ignore[arg-type]
        catalog_fetcher=_fetcher([]),
    )
    tools = toolset.fetch_tools(providers=["crm"])
    assert tools.names() == ["crm_list_contacts", FEEDBACK_TOOL_NAME]
    tools = toolset.fetch_tools(actions=["hris_*"])
    assert tools.names() == ["hris_list_employees", FEEDBACK_TOOL_NAME]


def test_unified_tools_mean_misconfigured_account() -> None:
    toolset = RemoteToolSet(
        api_key="key_1",
        rpc_client=FakeRpcTransport(),  # type: ignore[arg-type]
        catalog_fetcher=lambda headers: [CatalogEntry(name="unified_hris_list_employees")],
    )
    with pytest.raises(ToolSetConfigError, match="unified API tool"):
        toolset.fetch_tools()


def test_missing_api_key_warns_or_raises(caplog) -> None:
    log = logging.getLogger("tests.remote")
    with caplog.at_level(logging.WARNING, logger="tests.remote"):
        toolset = RemoteToolSet(logger=log, catalog_fetcher=_fetcher([]))
    assert NO_API_KEY_MESSAGE in caplog.text
    with pytest.raises(ToolSetConfigError, match="An API key is required"):
        toolset.rpc_client()
    with pytest.raises(ToolSetConfigError):
        RemoteToolSet(strict=True)


def test_remote_rpc_client_built_from_credentials() -> None:
    toolset = RemoteToolSet(api_key="key_1", base_url="https://api.example.com", session=FakeSession())
    client = toolset.rpc_client()
    assert client.url == "https://api.example.com/actions/rpc"
    assert toolset.rpc_client() is client


def test_remote_from_settings() -> None:
    settings = Settings.model_validate(
        {"toolset": {"base_url": "https://api.example.com", "account_id": "acc_3"}, "secrets": {"api_key": "k"}}
    )
    toolset = RemoteToolSet.from_settings(settings, catalog_fetcher=_fetcher([]))
    assert toolset.headers["x-account-id"] == "acc_3"
    assert toolset.api_key == "k"
