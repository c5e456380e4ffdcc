# ==============================
# Step Templating & Condition Tests
# ==============================
from __future__ import annotations

from typing import Any, List

import pytest

from toolkit.contracts.chain_schema import StepResult
from toolkit.orchestrator.conditions import evaluate_condition
from toolkit.orchestrator.templating import references, render_params, render_string, resolve_reference
from toolkit.utils.errors import ConditionError, TemplateResolutionError


def _ok(index: int, result: Any) -> StepResult:
    return StepResult(step_index=index, step_name=f"s{index}", tool_name="t", success=True, result=result)


def _failed(index: int) -> StepResult:
    return StepResult(step_index=index, step_name=f"s{index}", tool_name="t", success=False, error="boom")


def _skipped(index: int) -> StepResult:
    return StepResult(step_index=index, step_name=f"s{index}", tool_name="t", success=True, skipped=True)


RESULTS: List[StepResult] = [
    _ok(0, {"data": [{"id": "emp_1", "tags": ["a", "b"]}, {"id": "emp_2"}], "total": 2, "next": None}),
    _failed(1),
    _skipped(2),
]


# ==============================
# References
# ==============================
def test_references_are_listed_in_order() -> None:
    assert references("{{step0.result.total}} and {{ step2.skipped }}") == [
        "{{step0.result.total}}",
        "{{ step2.skipped }}",
    ]


@pytest.mark.parametrize(
    "path,expected",
    [
        (".result.total", 2),
        (".result.data.0.id", "emp_1"),
        (".result.data[1].id", "emp_2"),
        (".result.data[0].tags.length", 2),
        (".result.data.length", 2),
        (".result.next", None),
        (".success", True),
        (".step_name", "s0"),
    ],
)
def test_resolve_reference_paths(path: str, expected: Any) -> None:
    assert resolve_reference(0, path, RESULTS) == expected


def test_meta_fields_of_failed_and_skipped_steps_resolve() -> None:
    assert resolve_reference(1, ".success", RESULTS) is False
    assert resolve_reference(1, ".error", RESULTS) == "boom"
    assert resolve_reference(2, ".skipped", RESULTS) is True


@pytest.mark.parametrize(
    "index,path,reason",
    [
        (5, ".result", "has not run"),
        (1, ".result.id", "failed"),
        (2, ".result", "was skipped"),
        (0, ".result.data[9]", "out of range"),
        (0, ".result.missing", "'missing' not found"),
    ],
)
def test_unresolvable_references_raise(index: int, path: str, reason: str) -> None:
    with pytest.raises(TemplateResolutionError, match=reason) as info:
        resolve_reference(index, path, RESULTS)
    assert info.value.reference == f"step{index}{path}"


# ==============================
# Rendering
# ==============================
def test_full_match_preserves_type() -> None:
    assert render_string("{{step0.result.data}}", RESULTS) == RESULTS[0].result["data"]
    assert render_string(" {{ step0.result.total }} ", RESULTS) == 2


def test_embedded_references_are_stringified() -> None:
    assert render_string("id={{step0.result.data.0.id}}&n={{step0.result.total}}", RESULTS) == "id=emp_1&n=2"
    assert render_string("tags: {{step0.result.data.0.tags}}", RESULTS) == 'tags: ["a", "b"]'
    assert render_string("next={{step0.result.next}} ok={{step0.success}}", RESULTS) == "next=null ok=true"


def test_render_params_walks_nested_structures() -> None:
    params = {
        "id": "{{step0.result.data.0.id}}",
        "filter": {"ids": ["{{step0.result.data.1.id}}", "static"]},
        "limit": 10,
    }
    assert render_params(params, RESULTS) == {
        "id": "emp_1",
        "filter": {"ids": ["emp_2", "static"]},
        "limit": 10,
    }


def test_plain_strings_are_untouched() -> None:
    assert render_string("{{ not a reference }}", RESULTS) == "{{ not a reference }}"


# ==============================
# Conditions
# ==============================
@pytest.mark.parametrize(
    "condition,expected",
    [
        ("{{step0.success}} === true", True),
        ("{{step0.success}} !== true", False),
        ("{{step0.result.total}} > 1 && {{step0.result.data.length}} == 2", True),
        ("{{step1.success}} || {{step0.success}}", True),
        ("!{{step1.success}}", True),
        ("{{step0.result.next}} === null", True),
        ("'emp_1' in [{{step0.result.data.0.id}}, 'x']", True),
        ("len({{step0.result.data}}) >= 3", False),
        ("{{step0.result.total}} % 2 == 0", True),
        ("{{step2.skipped}} and not {{step1.success}}", True),
        ("'a && b' == 'a && b'", True),
    ],
)
def test_conditions(condition: str, expected: bool) -> None:
    assert evaluate_condition(condition, RESULTS) is expected


def test_referenced_values_cannot_inject_syntax() -> None:
    results = [_ok(0, {"name": "__import__('os').system('echo hi')"})]
    assert evaluate_condition("{{step0.result.name}} == 'x'", results) is False


@pytest.mark.parametrize(
    "condition",
    [
        "__import__('os')",
        "{{step0.result}}.keys()",
        "lambda: 1",
        "{{step0.result.total}} >",
        "",
        "unknown_name == 1",
        "{{step0.result.total}} / 0 == 1",
    ],
)
def test_unsupported_conditions_raise(condition: str) -> None:
    with pytest.raises(ConditionError):
        evaluate_condition(condition, RESULTS)


def test_condition_on_failed_step_result_raises_resolution_error() -> None:
    with pytest.raises(TemplateResolutionError):
        evaluate_condition("{{step1.result.id}} == 'x'", RESULTS)
