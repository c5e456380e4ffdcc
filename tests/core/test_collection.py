# ==============================
# Tool Collection & Filter Tests
# ==============================
from __future__ import annotations

import logging

import pytest

from tests.fakes import make_http_tool
from toolkit.tools.collection import Tools
from toolkit.tools.filters import match_glob, matches_patterns
from toolkit.utils.errors import ToolNotFoundError


@pytest.mark.parametrize(
    "name,pattern,expected",
    [
        ("hris_list_employees", "hris_*", True),
        ("ats_list_candidates", "hris_*", False),
        ("hris_get_employee", "hris_???_employee", True),
        ("hris.get", "hris?get", True),
        ("hrisxget", "hris.get", False),
    ],
)
def test_match_glob(name: str, pattern: str, expected: bool) -> None:
    assert match_glob(name, pattern) is expected


def test_negation_and_positive_patterns() -> None:
    assert matches_patterns("hris_list_employees", ["hris_*", "!*_delete_*"])
    assert not matches_patterns("hris_delete_employee", ["hris_*", "!*_delete_*"])
    # negation only: everything else passes
    assert matches_patterns("crm_update_contact", ["!*_delete_*"])


def test_lookup_and_require(hris_tools: Tools) -> None:
    assert len(hris_tools) == 8
    assert "hris_get_employee" in hris_tools
    assert hris_tools.get_tool("nope") is None
    with pytest.raises(ToolNotFoundError, match="Tool not found: nope"):
        hris_tools.require("nope")


def test_duplicate_names_first_wins() -> None:
    first = make_http_tool("hris_list_employees", headers={"x-account-id": "acc_1"})
    second = make_http_tool("hris_list_employees", headers={"x-account-id": "acc_2"})
    tools = Tools([first, second])
    assert len(tools) == 2
    assert tools.get_tool("hris_list_employees") is first


def test_filter_by_patterns(hris_tools: Tools) -> None:
    selected = hris_tools.filter_by_patterns(["hris_*", "!*_delete_*"])
    assert selected.names() == ["hris_list_employees", "hris_get_employee", "hris_create_employee"]
    assert len(hris_tools) == 8


def test_empty_pattern_warns_through_injected_logger(hris_tools: Tools, caplog) -> None:
    log = logging.getLogger("tests.collection")
    with caplog.at_level(logging.WARNING, logger="tests.collection"):
        selected = hris_tools.filter_by_patterns([], logger=log)
    assert len(selected) == len(hris_tools)
    assert "No filter pattern provided" in caplog.text


def test_predicate_filter_and_with_tools(hris_tools: Tools) -> None:
    lists = hris_tools.filter(lambda t: "_list_" in t.name)
    assert lists.names() == ["hris_list_employees", "ats_list_candidates"]
    extended = lists.with_tools([make_http_tool("crm_list_accounts")])
    assert extended.names()[-1] == "crm_list_accounts"
    assert len(lists) == 2


def test_export_formats(hris_tools: Tools) -> None:
    openai = hris_tools.to_openai()
    assert [entry["function"]["name"] for entry in openai] == hris_tools.names()
    framework = hris_tools.to_agent_framework(executable=False)
    assert set(framework) == set(hris_tools.names())
    assert all("execute" not in entry for entry in framework.values())
    assert hris_tools.to_array()[0].name == "hris_list_employees"
