# ==============================
# Validation Helpers
# ==============================
"""
Reusable validators used across toolkit (non-domain).

No side effects.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional, Union

from toolkit.utils.errors import ToolkitError

# Tool arguments as callers hand them over: a JSON string, a mapping, or nothing.
RawArguments = Optional[Union[str, Mapping[str, Any]]]


def normalize_arguments(raw: RawArguments) -> Dict[str, Any]:
    """
    Normalize RawArguments once, at the top of execute.

    - None -> {}
    - str -> parsed JSON object
    - mapping -> shallow copy
    Anything else is rejected before any network activity.
    """
    if raw is None:
        return {}
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ToolkitError(f"Invalid JSON parameters: {exc}") from exc
        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ToolkitError(f"Invalid parameters type. Expected a JSON object, got {type(parsed).__name__}.")
        return parsed
    if isinstance(raw, Mapping):
        return dict(raw)
    raise ToolkitError(
        f"Invalid parameters type. Expected object or string, got {type(raw).__name__}. Parameters: {raw!r}"
    )
