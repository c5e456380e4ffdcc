# ==============================
# Error Taxonomy
# ==============================
"""
Exceptions raised by toolkit/.

Rules:
- Every error that leaves Tool.execute is a ToolkitError.
- Wrapped errors keep the original as __cause__ (raise ... from ...).
- Chain steps convert these into per-step error strings; nothing else swallows them.
"""

from __future__ import annotations

import json
import re
from typing import Any, List, Optional


class ToolkitError(Exception):
    """Base exception for toolkit errors."""


class ToolkitAPIError(ToolkitError):
    """
    Raised when the remote API answers with a non-2xx status.

    Carries the status code and the response body verbatim for inspection.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        response_body: Any = None,
        request_body: Any = None,
    ) -> None:
        if isinstance(response_body, dict) and isinstance(response_body.get("message"), str) and response_body["message"]:
            message = f"{message}: {response_body['message']}"
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_body = request_body
        self.provider_errors: Optional[List[Any]] = None
        if isinstance(response_body, dict) and isinstance(response_body.get("provider_errors"), list):
            self.provider_errors = response_body["provider_errors"]

    def __str__(self) -> str:
        url = self._url_from_message()
        headline = self.message.replace(f" for {url}", "") if url else self.message
        lines = [f"API Error: {self.status_code} - {headline}"]
        if url:
            lines.append(f"Endpoint: {url}")
        lines.append("")
        lines.append("Request Headers:")
        lines.append("- Authorization: [REDACTED]")
        out = "\n".join(lines)

        if self.request_body:
            out += "\n\nRequest Body:"
            if isinstance(self.request_body, (dict, list)):
                try:
                    out += "\n" + json.dumps(self.request_body, indent=2, default=str)
                except (TypeError, ValueError):
                    out += " [Unable to stringify request body]"
            else:
                out += f" {self.request_body}"

        if self.provider_errors:
            out += self._format_provider_error(self.provider_errors[0])
        return out

    def _format_provider_error(self, err: Any) -> str:
        if not isinstance(err, dict):
            return ""
        out = "\n\nProvider Error:"
        if isinstance(err.get("status"), int):
            out += f" {err['status']}"
        raw = err.get("raw")
        if isinstance(raw, dict) and isinstance(raw.get("error"), str):
            out += f" - {raw['error']}"
        if isinstance(err.get("url"), str):
            out += f"\nProvider Endpoint: {err['url']}"
        return out

    def _url_from_message(self) -> Optional[str]:
        match = re.search(r" for (https?://[^\s:]+)", self.message)
        return match.group(1) if match else None


class ParameterSerializationError(ToolkitError):
    """Raised when a query parameter cannot be serialized safely."""


class DerivationError(ToolkitError):
    """Raised when a pre-execute derivation cannot produce its target."""

    def __init__(self, *, target: str, source: str, cause: BaseException) -> None:
        super().__init__(f"Error deriving parameter {target} from {source}: {cause}")
        self.target = target
        self.source = source


class ToolNotFoundError(ToolkitError, KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Tool not found: {name}")
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])


class TemplateResolutionError(ToolkitError, KeyError):
    """Raised when a {{stepN...}} reference cannot be resolved."""

    def __init__(self, reference: str, reason: str) -> None:
        super().__init__(f"Unresolved reference '{{{{{reference}}}}}': {reason}")
        self.reference = reference

    def __str__(self) -> str:
        return str(self.args[0])


class ConditionError(ToolkitError):
    """Raised when a step condition uses unsupported syntax."""


# ==============================
# Toolset Errors
# ==============================
class ToolSetError(ToolkitError):
    """Base exception for toolset errors."""


class ToolSetConfigError(ToolSetError):
    """Raised when a toolset is misconfigured (credentials, accounts, catalog)."""


class ToolSetLoadError(ToolSetError):
    """Raised when a tool catalog cannot be fetched or parsed."""
