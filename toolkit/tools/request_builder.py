# ==============================
# Request Builder
# ==============================
"""
Turns (HttpExecuteConfig, argument map) into a transport-ready request.

Rules:
- Each argument is placed by its declared location: path, query, header, body
  (body is the default when the name is not declared).
- Object-valued query params use deep-bracket notation: filter[updated_after]=...
- Header-located args land on a per-call copy of the headers, never on the Tool.
- Dry run stops before the network and returns {url, method, headers, body, mappedParams}.
- Non-2xx responses raise ToolkitAPIError; nothing is retried here.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple
from urllib.parse import quote, urlencode

import requests

from toolkit.contracts.tool_schema import BodyType, HttpExecuteConfig, ParameterLocation
from toolkit.utils.errors import ParameterSerializationError, ToolkitAPIError, ToolkitError

DEFAULT_USER_AGENT = "toolkit-python"
MAX_QUERY_DEPTH = 10
FORM_DATA_PLACEHOLDER = "[FormData]"

_KEY_RE = re.compile(r"^[a-zA-Z0-9_.-]+$")


# ==============================
# Value Serialization
# ==============================
def _iso(value: date) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
    return value.isoformat()


def serialize_value(value: Any) -> str:
    """String-coerce one scalar for the query string, form body or path."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, datetime)):
        return _iso(value)
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/"
    if isinstance(value, (list, tuple)):
        return ",".join(serialize_value(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, separators=(",", ":"), default=str)
    if callable(value):
        raise ParameterSerializationError("Functions cannot be serialized as parameters")
    return str(value)


def _is_deep_object(value: Any) -> bool:
    return isinstance(value, Mapping)


def serialize_deep_object(
    obj: Any,
    prefix: str,
    *,
    depth: int = 0,
    max_depth: int = MAX_QUERY_DEPTH,
    _visited: Optional[Set[int]] = None,
) -> List[Tuple[str, str]]:
    """
    {"filter": {"updated_after": "2020-01-01"}} -> [("filter[updated_after]", "2020-01-01")]

    Nested keys are validated, None leaves are skipped, cycles and depth > max_depth raise.
    """
    if depth > max_depth:
        raise ParameterSerializationError(
            f"Maximum nesting depth ({max_depth}) exceeded for parameter serialization"
        )
    if obj is None:
        return []
    if not _is_deep_object(obj):
        return [(prefix, serialize_value(obj))]

    visited = _visited if _visited is not None else set()
    marker = id(obj)
    if marker in visited:
        raise ParameterSerializationError("Circular reference detected in parameter object")
    visited.add(marker)

    pairs: List[Tuple[str, str]] = []
    try:
        for key, value in obj.items():
            key = str(key)
            if not _KEY_RE.match(key):
                raise ParameterSerializationError(f"Invalid parameter key: {key}")
            if value is None:
                continue
            nested = f"{prefix}[{key}]"
            if _is_deep_object(value):
                pairs.extend(
                    serialize_deep_object(value, nested, depth=depth + 1, max_depth=max_depth, _visited=visited)
                )
            else:
                pairs.append((nested, serialize_value(value)))
    finally:
        # the same object may appear again in a sibling branch
        visited.discard(marker)
    return pairs


def build_query_parameters(query_params: Mapping[str, Any]) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    for key, value in query_params.items():
        if value is None:
            continue
        if _is_deep_object(value):
            pairs.extend(serialize_deep_object(value, key))
        else:
            pairs.append((key, serialize_value(value)))
    return pairs


# ==============================
# Built Request
# ==============================
@dataclass(frozen=True)
class HttpRequest:
    """Fully-built request. `body` is what dry run shows; `files` feeds multipart."""
    method: str
    url: str
    endpoint: str
    headers: Dict[str, str]
    body: Optional[str]
    body_params: Dict[str, Any] = field(default_factory=dict)
    files: Optional[Dict[str, Tuple[None, str]]] = None

    def describe(self, mapped_params: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "url": self.url,
            "method": self.method,
            "headers": dict(self.headers),
            "body": FORM_DATA_PLACEHOLDER if self.files is not None else self.body,
            "mappedParams": dict(mapped_params),
        }


class RequestBuilder:
    def __init__(self, config: HttpExecuteConfig, *, user_agent: str = DEFAULT_USER_AGENT) -> None:
        self.config = config
        self.user_agent = user_agent
        self._locations: Dict[str, ParameterLocation] = {p.name: p.location for p in config.params}

    def prepare_headers(self, headers: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        out = {"User-Agent": self.user_agent}
        out.update(headers or {})
        return out

    def prepare_request_params(
        self, params: Mapping[str, Any]
    ) -> Tuple[str, Dict[str, Any], Dict[str, Any], Dict[str, str]]:
        """Returns (url, body_params, query_params, header_params)."""
        url = self.config.url
        body: Dict[str, Any] = {}
        query: Dict[str, Any] = {}
        headers: Dict[str, str] = {}

        for key, value in params.items():
            location = self._locations.get(key, ParameterLocation.BODY)
            if location == ParameterLocation.PATH:
                url = url.replace(f"{{{key}}}", quote(serialize_value(value), safe="-_.!~*'()"))
            elif location == ParameterLocation.QUERY:
                query[key] = value
            elif location == ParameterLocation.HEADER:
                headers[key] = serialize_value(value)
            else:
                body[key] = value
        return url, body, query, headers

    def build(self, params: Mapping[str, Any], *, headers: Optional[Mapping[str, str]] = None) -> HttpRequest:
        endpoint, body_params, query_params, header_params = self.prepare_request_params(params)

        url = endpoint
        pairs = build_query_parameters(query_params)
        if pairs:
            url = f"{endpoint}{'&' if '?' in endpoint else '?'}{urlencode(pairs)}"

        out_headers = self.prepare_headers(headers)
        out_headers.update(header_params)

        body: Optional[str] = None
        files: Optional[Dict[str, Tuple[None, str]]] = None
        if body_params:
            if self.config.body_type == BodyType.JSON:
                out_headers["Content-Type"] = "application/json"
                body = json.dumps(body_params, separators=(",", ":"), ensure_ascii=False, default=str)
            elif self.config.body_type == BodyType.FORM:
                out_headers["Content-Type"] = "application/x-www-form-urlencoded"
                body = urlencode([(k, serialize_value(v)) for k, v in body_params.items()])
            elif self.config.body_type == BodyType.MULTIPART_FORM:
                # requests generates the boundary and the Content-Type header
                files = {k: (None, serialize_value(v)) for k, v in body_params.items()}
            else:
                raise ToolkitError(f"Unsupported body type: {self.config.body_type}")

        return HttpRequest(
            method=self.config.method.upper(),
            url=url,
            endpoint=endpoint,
            headers=out_headers,
            body=body,
            body_params=body_params,
            files=files,
        )

    def execute(
        self,
        params: Mapping[str, Any],
        *,
        headers: Optional[Mapping[str, str]] = None,
        dry_run: bool = False,
        session: Optional[requests.Session] = None,
    ) -> Any:
        request = self.build(params, headers=headers)
        if dry_run:
            return request.describe(params)
        return send(request, session=session)


# ==============================
# Transport
# ==============================
def send(request: HttpRequest, *, session: Optional[requests.Session] = None) -> Any:
    http = session if session is not None else requests
    data = request.body.encode("utf-8") if request.body is not None else None
    response = http.request(
        request.method,
        request.url,
        headers=request.headers,
        data=data,
        files=request.files,
    )

    if not 200 <= response.status_code < 300:
        raise ToolkitAPIError(
            f"API request failed with status {response.status_code} for {request.endpoint}",
            response.status_code,
            _parse_json(response),
            request.body_params,
        )

    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError as exc:
        raise ToolkitError(f"Invalid JSON response from {request.endpoint}") from exc


def _parse_json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
