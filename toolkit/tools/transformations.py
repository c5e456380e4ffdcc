# ==============================
# Parameter Transformation Pipeline
# ==============================
"""
Present a simpler argument shape to the agent, rebuild the real one before the call.

Two stages:
- schema override (creation time): ToolParameters -> ToolParameters, applied once
  by derive_tool before the tool is handed out.
- pre-execute (call time): simplified args -> original args, run once per execute,
  strictly before request construction, never retried.

fan_out is the declarative shorthand: one source field feeding N target fields.
It only builds a pre-execute function; there is a single mechanism underneath.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from toolkit.contracts.tool_schema import ToolParameters
from toolkit.tools.base import PreExecute, Tool
from toolkit.utils.errors import DerivationError, ToolkitError

logger = logging.getLogger(__name__)

SchemaOverride = Callable[[ToolParameters], ToolParameters]
TransformFn = Callable[[Any], Any]


# ==============================
# Tool Derivation
# ==============================
def derive_tool(
    tool: Tool,
    *,
    schema_override: Optional[SchemaOverride] = None,
    pre_execute: Optional[PreExecute] = None,
) -> Tool:
    """
    Clone `tool` with an overridden schema and/or a pre-execute derivation.

    The clone shares the original's execute config and headers; it owns its
    parameter schema and derivation function.
    """
    parameters = tool.parameters
    if schema_override is not None:
        overridden = schema_override(tool.parameters)
        if isinstance(overridden, Mapping):
            overridden = ToolParameters.model_validate(dict(overridden))
        if not isinstance(overridden, ToolParameters):
            raise ToolkitError(f"Schema override for tool {tool.name} must return ToolParameters")
        parameters = overridden

    chained = pre_execute or tool.pre_execute
    if pre_execute is not None and tool.pre_execute is not None:
        # newest simplification unwraps first
        chained = compose(pre_execute, tool.pre_execute)

    derived = tool.clone(parameters=parameters, pre_execute=chained)
    logger.debug("derived tool", extra={"tool": tool.name})
    return derived


def replace_fields(
    remove: Iterable[str],
    add: Mapping[str, Any],
    *,
    required: Iterable[str] = (),
) -> SchemaOverride:
    """
    Schema override that drops `remove`, adds `add`, and recomputes `required`.

    Required names from the original schema survive unless they were removed.
    """
    removed = set(remove)

    def override(original: ToolParameters) -> ToolParameters:
        properties = {k: v for k, v in original.properties.items() if k not in removed}
        properties.update(dict(add))
        keep = [r for r in original.required if r not in removed]
        for name in required:
            if name not in keep:
                keep.append(name)
        missing = [r for r in keep if r not in properties]
        if missing:
            raise ToolkitError(f"Required parameters missing from overridden schema: {', '.join(missing)}")
        extra = original.model_extra or {}
        return ToolParameters(type=original.type, properties=properties, required=keep, **extra)

    return override


# ==============================
# Declarative fan-out
# ==============================
def transform_parameter(source_value: Any, target: str, source: str, fn: TransformFn) -> Dict[str, Any]:
    """Apply one per-target function; None means "no value" and yields {}."""
    try:
        value = fn(source_value)
    except Exception as exc:
        raise DerivationError(target=target, source=source, cause=exc) from exc
    if value is None:
        return {}
    return {target: value}


def fan_out(source: str, transforms: Mapping[str, TransformFn], *, keep_source: bool = False) -> PreExecute:
    """
    Pre-execute function deriving several target params from one source param.

    - Runs only when `source` is present in the arguments.
    - Targets whose function returns None are omitted.
    - A raising function fails the call with DerivationError.
    - `source` is removed afterwards unless keep_source is set.
    """
    targets = dict(transforms)

    def pre_execute(params: Dict[str, Any]) -> Dict[str, Any]:
        if source not in params:
            return params
        out = dict(params)
        value = params[source]
        for target, fn in targets.items():
            out.update(transform_parameter(value, target, source, fn))
        if not keep_source and source not in targets:
            out.pop(source, None)
        return out

    return pre_execute


def compose(*steps: PreExecute) -> PreExecute:
    """Run several pre-execute functions in order."""

    def pre_execute(params: Dict[str, Any]) -> Dict[str, Any]:
        for step in steps:
            params = step(params)
        return params

    return pre_execute
