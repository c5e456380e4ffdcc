# ==============================
# RPC Actions Client
# ==============================
"""
HTTP client for the remote actions relay: POST <base_url>/actions/rpc.

Rules:
- Credentials are Basic auth built here (api key as username); envelope headers
  never carry Authorization.
- Only whitelisted envelope headers (x-account-id) are forwarded onto the HTTP request.
- Non-2xx -> ToolkitAPIError("RPC action failed for <url>").
- A 2xx answer that is not a JSON object -> ToolkitAPIError("Invalid RPC action response for <url>").
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

import requests
from pydantic import ValidationError

from toolkit.config.schema import DEFAULT_BASE_URL
from toolkit.contracts.rpc_schema import FORWARDED_HEADER_KEYS, RpcActionRequest, RpcActionResponse
from toolkit.tools.request_builder import DEFAULT_USER_AGENT
from toolkit.tools.headers import basic_auth_value
from toolkit.utils.errors import ToolkitAPIError, ToolSetConfigError

logger = logging.getLogger(__name__)


class RpcClient:
    def __init__(
        self,
        *,
        api_key: str,
        password: str = "",
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        if not api_key:
            raise ToolSetConfigError("An API key is required to create an actions client")
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.session = session
        self.user_agent = user_agent
        self._auth_header = basic_auth_value(api_key, password)

    @property
    def url(self) -> str:
        return f"{self.base_url}/actions/rpc"

    def rpc_action(self, request: Union[RpcActionRequest, Mapping[str, Any]]) -> Dict[str, Any]:
        if not isinstance(request, RpcActionRequest):
            request = RpcActionRequest.model_validate(dict(request))
        envelope = request.to_envelope()

        forwarded = {k: request.headers[k] for k in FORWARDED_HEADER_KEYS if request.headers and k in request.headers}
        headers = {
            "Content-Type": "application/json",
            "Authorization": self._auth_header,
            "User-Agent": self.user_agent,
            **forwarded,
        }

        http = self.session if self.session is not None else requests
        logger.debug("rpc action %s", request.action, extra={"tool": request.action})
        response = http.request(
            "POST",
            self.url,
            headers=headers,
            data=json.dumps(envelope, default=str).encode("utf-8"),
        )

        try:
            body: Any = response.json()
        except ValueError:
            body = None

        if not 200 <= response.status_code < 300:
            raise ToolkitAPIError(f"RPC action failed for {self.url}", response.status_code, body, envelope)

        if not isinstance(body, dict):
            raise ToolkitAPIError(f"Invalid RPC action response for {self.url}", response.status_code, body, envelope)
        try:
            RpcActionResponse.model_validate(body)
        except ValidationError as exc:
            raise ToolkitAPIError(
                f"Invalid RPC action response for {self.url}", response.status_code, body, envelope
            ) from exc
        return body
