# ==============================
# Header Helpers
# ==============================
"""
Header normalisation shared by the rpc backend and toolsets.
"""

from __future__ import annotations

import base64
import json
from typing import Any, Dict, Mapping, Optional


def normalise_headers(headers: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """None values are dropped, numbers/bools stringified, objects JSON-encoded."""
    out: Dict[str, str] = {}
    if not headers:
        return out
    for key, value in headers.items():
        if value is None:
            continue
        if isinstance(value, str):
            out[key] = value
        elif isinstance(value, bool):
            out[key] = "true" if value else "false"
        elif isinstance(value, (int, float)):
            out[key] = str(value)
        else:
            out[key] = json.dumps(value, separators=(",", ":"), default=str)
    return out


def strip_authorization(headers: Mapping[str, Any]) -> Dict[str, str]:
    """Drop any Authorization header (case-insensitive) and stringify the rest."""
    return {k: str(v) for k, v in headers.items() if k.lower() != "authorization"}


def has_header(headers: Mapping[str, Any], name: str) -> bool:
    lowered = name.lower()
    return any(k.lower() == lowered for k in headers)


def basic_auth_value(username: str, password: str = "") -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"
