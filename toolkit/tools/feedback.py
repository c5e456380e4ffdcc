# ==============================
# Feedback Tool
# ==============================
"""
meta_collect_tool_feedback: send user feedback about tools, once per account.

Rules:
- Input is validated up front: feedback and account ids are trimmed non-empty
  strings, tool_names must keep at least one non-empty entry.
- One POST to <base_url>/ai/tool-feedback per account; failures are collected,
  not raised, unless every submission failed.
- Dry run returns every request that would be sent.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

import requests
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from toolkit.config.schema import DEFAULT_BASE_URL
from toolkit.contracts.tool_schema import BodyType, ExecuteOptions, HttpExecuteConfig, LocalExecuteConfig
from toolkit.tools.base import Tool
from toolkit.tools.headers import basic_auth_value
from toolkit.tools.request_builder import RequestBuilder, send
from toolkit.utils.errors import ToolkitAPIError, ToolkitError

logger = logging.getLogger(__name__)

FEEDBACK_TOOL_NAME = "meta_collect_tool_feedback"
FEEDBACK_PATH = "/ai/tool-feedback"

_DESCRIPTION = (
    "Collects user feedback on tool performance. First ask the user, "
    '"Are you ok with sending feedback?" and mention that the assistant will take care of sending it. '
    "Call this tool only when the user explicitly answers yes."
)

_PARAMETERS: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "account_id": {
            "oneOf": [
                {"type": "string", "description": 'Single account identifier (e.g., "acc_123456")'},
                {"type": "array", "items": {"type": "string"}, "description": "Array of account identifiers"},
            ],
            "description": "Account identifier(s) - a single string or an array of strings",
        },
        "feedback": {"type": "string", "description": "Verbatim feedback from the user."},
        "tool_names": {"type": "array", "items": {"type": "string"}, "description": "Tool names being reviewed"},
    },
    "required": ["feedback", "account_id", "tool_names"],
}


class FeedbackInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    feedback: str
    account_id: Union[str, List[str]]
    tool_names: List[str]

    @field_validator("feedback")
    @classmethod
    def _feedback(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Feedback must be a non-empty string.")
        return v

    @field_validator("account_id")
    @classmethod
    def _accounts(cls, v: Union[str, List[str]]) -> List[str]:
        values = [v] if isinstance(v, str) else list(v)
        if not values:
            raise ValueError("At least one account ID is required")
        out = [a.strip() for a in values]
        if any(not a for a in out):
            raise ValueError("Account ID must be a non-empty string.")
        return out

    @field_validator("tool_names")
    @classmethod
    def _tool_names(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("At least one tool name is required")
        out = [t.strip() for t in v if t.strip()]
        if not out:
            raise ValueError("Tool names must contain at least one non-empty string")
        return out


def create_feedback_tool(
    *,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    session: Optional[requests.Session] = None,
    user_agent: Optional[str] = None,
) -> Tool:
    url = f"{(base_url or DEFAULT_BASE_URL).rstrip('/')}{FEEDBACK_PATH}"
    builder_config = HttpExecuteConfig(method="POST", url=url, body_type=BodyType.JSON)
    headers = {"Authorization": basic_auth_value(api_key)} if api_key else {}

    def handler(params: Dict[str, Any], options: ExecuteOptions) -> Dict[str, Any]:
        try:
            parsed = FeedbackInput.model_validate(params)
        except ValidationError as exc:
            raise ToolkitError(f"Invalid feedback input: {exc.errors()[0].get('msg')}") from exc

        builder = RequestBuilder(builder_config, **({"user_agent": user_agent} if user_agent else {}))
        call_headers = {"Accept": "application/json", **tool.get_headers(), **options.headers}
        accounts: List[str] = parsed.account_id  # type: ignore[assignment]

        def body_for(account: str) -> Dict[str, Any]:
            return {"feedback": parsed.feedback, "account_id": account, "tool_names": parsed.tool_names}

        if options.dry_run:
            requests_out = []
            for account in accounts:
                built = builder.build(body_for(account), headers=call_headers)
                requests_out.append(
                    {"url": built.url, "method": built.method, "headers": built.headers, "body": body_for(account)}
                )
            return {"multiple_requests": requests_out, "total_accounts": len(accounts)}

        results: List[Dict[str, Any]] = []
        errors: List[Dict[str, Any]] = []
        for account in accounts:
            try:
                response = send(builder.build(body_for(account), headers=call_headers), session=session)
            except ToolkitAPIError as exc:
                errors.append({"account_id": account, "status": exc.status_code, "error": str(exc.response_body or exc.message)})
            except (ToolkitError, requests.RequestException) as exc:
                errors.append({"account_id": account, "error": str(exc)})
            else:
                results.append({"account_id": account, "status": "success", "result": response})

        if errors and not results:
            raise ToolkitError(f"Failed to submit feedback to any account. Errors: {errors}")
        if errors:
            logger.warning("feedback failed for %d of %d accounts", len(errors), len(accounts))

        return {
            "message": f"Feedback sent to {len(accounts)} account(s)",
            "total_accounts": len(accounts),
            "successful": len(results),
            "failed": len(errors),
            "results": [*results, *({"account_id": e["account_id"], "status": "error", "error": e["error"]} for e in errors)],
        }

    tool = Tool(
        FEEDBACK_TOOL_NAME,
        _DESCRIPTION,
        _PARAMETERS,
        LocalExecuteConfig(identifier=FEEDBACK_TOOL_NAME, description="POST " + FEEDBACK_PATH + " per account"),
        headers,
        local_handler=handler,
    )
    return tool
