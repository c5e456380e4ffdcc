# ==============================
# Step Reference Templating
# ==============================
"""
Resolve {{stepN.<path>}} references against recorded StepResults.

Rules:
- <path> walks the StepResult dict: result, success, error, skipped, ...
- Segments are dotted keys; list indices may be written `.0` or `[0]`.
- `length` on a list, dict or string yields its size when no such key exists.
- A string that is exactly one reference keeps the referenced value's type;
  references embedded in longer text are stringified (JSON for dicts/lists).
- Anything unresolvable raises TemplateResolutionError. There is no lenient mode:
  an empty substitution would silently send wrong data to the next tool.
- A {{stepN...}} token whose path is not in the grammar above (negative
  indices, quoted keys, spaces) is malformed and raises as well.
"""

from __future__ import annotations

__all__ = [
    "TOKEN_RE",
    "check_references",
    "render_params",
    "render_string",
    "resolve_reference",
    "references",
]

import json
import re
from typing import Any, Dict, List, Mapping, Sequence

from toolkit.contracts.chain_schema import StepResult
from toolkit.utils.errors import TemplateResolutionError

TOKEN_RE = re.compile(r"\{\{\s*step(\d+)((?:\.[\w-]+|\[\d+\])*)\s*\}\}")
_SEGMENT_RE = re.compile(r"\.([\w-]+)|\[(\d+)\]")
# anything that opens like a step reference, closed or not
_CANDIDATE_RE = re.compile(r"\{\{\s*step\d+.*?(?:\}\}|$)", re.DOTALL)


def references(text: str) -> List[str]:
    return [m.group(0) for m in TOKEN_RE.finditer(text)]


def check_references(text: str) -> None:
    """Raise TemplateResolutionError for any step reference outside the grammar."""
    for candidate in _CANDIDATE_RE.finditer(text):
        token = candidate.group(0)
        if not TOKEN_RE.fullmatch(token):
            inner = token.strip("{} \t")
            raise TemplateResolutionError(inner, "malformed reference path")


def _segments(path: str) -> List[str]:
    return [m.group(1) if m.group(1) is not None else m.group(2) for m in _SEGMENT_RE.finditer(path)]


def resolve_reference(step_index: int, path: str, results: Sequence[StepResult]) -> Any:
    reference = f"step{step_index}{path}"
    if step_index >= len(results):
        raise TemplateResolutionError(reference, f"step {step_index} has not run")

    recorded = results[step_index]
    current: Any = recorded.model_dump(mode="json")
    segments = _segments(path)
    if segments and segments[0] == "result" and (not recorded.success or recorded.skipped):
        state = "was skipped" if recorded.skipped else "failed"
        raise TemplateResolutionError(reference, f"step {step_index} {state}")

    for part in segments:
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit():
            idx = int(part)
            if idx >= len(current):
                raise TemplateResolutionError(reference, f"index {idx} out of range (length {len(current)})")
            current = current[idx]
        elif part == "length" and isinstance(current, (list, dict, str)):
            current = len(current)
        else:
            raise TemplateResolutionError(reference, f"'{part}' not found")
    return current


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=True, default=str)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_string(value: str, results: Sequence[StepResult]) -> Any:
    check_references(value)
    full_match = TOKEN_RE.fullmatch(value.strip())
    if full_match:
        return resolve_reference(int(full_match.group(1)), full_match.group(2), results)

    def replace(match: re.Match[str]) -> str:
        resolved = resolve_reference(int(match.group(1)), match.group(2), results)
        return _stringify(resolved)

    return TOKEN_RE.sub(replace, value)


def render_params(params: Dict[str, Any], results: Sequence[StepResult]) -> Dict[str, Any]:
    def render(value: Any) -> Any:
        if isinstance(value, str):
            return render_string(value, results)
        if isinstance(value, dict):
            return {k: render(v) for k, v in value.items()}
        if isinstance(value, list):
            return [render(item) for item in value]
        return value

    return {k: render(v) for k, v in params.items()}
