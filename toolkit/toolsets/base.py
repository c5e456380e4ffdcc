# ==============================
# ToolSet Base
# ==============================
"""
Credential/header bootstrap shared by every toolset.

Rules:
- Auth headers: basic = base64(username:password), bearer = token. Never applied
  when an Authorization header is already present.
- Auth-config headers sit beneath explicit headers; explicit always wins.
- account_id becomes x-account-id; account_id and account_ids are exclusive.
- Warnings (no API key, no filter pattern) go through the injected logger.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from toolkit.config.schema import AuthConfig
from toolkit.tools.base import ACCOUNT_ID_HEADER, Tool
from toolkit.tools.collection import Tools
from toolkit.tools.filters import PatternArg, as_pattern_list, match_glob, matches_patterns
from toolkit.tools.headers import basic_auth_value, has_header
from toolkit.utils.errors import ToolSetConfigError, ToolSetError

NO_API_KEY_MESSAGE = (
    "No API key provided. Set STACKONE_API_KEY or TOOLKIT__SECRETS__API_KEY, or pass api_key explicitly."
)
NO_FILTER_MESSAGE = "No filter pattern provided. Loading all tools may exceed context windows in AI applications."

AuthArg = Union[AuthConfig, Mapping[str, object]]


# ==============================
# Helpers
# ==============================
def coerce_auth(auth: Optional[AuthArg]) -> Optional[AuthConfig]:
    if auth is None or isinstance(auth, AuthConfig):
        return auth
    try:
        return AuthConfig.model_validate(dict(auth))
    except ValidationError as exc:
        raise ToolSetConfigError(f"Unsupported authentication config: {exc.errors()[0].get('msg')}") from exc


def apply_auth_headers(headers: Mapping[str, str], auth: Optional[AuthConfig]) -> Dict[str, str]:
    """Return headers with Authorization (if absent) and auth-config headers merged beneath."""
    out = dict(headers)
    if auth is None:
        return out

    if not has_header(out, "Authorization"):
        if auth.type == "basic":
            if auth.username:
                out["Authorization"] = basic_auth_value(auth.username, auth.password or "")
        elif auth.type == "bearer":
            if auth.token:
                out["Authorization"] = f"Bearer {auth.token}"
        else:
            raise ToolSetConfigError(f"Unsupported authentication type: {auth.type}")

    if auth.headers:
        out = {**auth.headers, **out}
    return out


def check_api_key(api_key: Optional[str], *, strict: bool, logger: logging.Logger) -> None:
    if api_key:
        return
    if strict:
        raise ToolSetConfigError(NO_API_KEY_MESSAGE)
    logger.warning(NO_API_KEY_MESSAGE)


def filter_tools(
    tools: Tools,
    *,
    providers: Optional[Sequence[str]] = None,
    actions: Optional[Sequence[str]] = None,
) -> Tools:
    """
    providers: first "_" segment of the name, case-insensitive.
    actions: glob patterns; a tool passes when any pattern matches.
    """
    selected: List[Tool] = tools.to_array()
    if providers:
        wanted = {p.lower() for p in providers}
        selected = [t for t in selected if t.name.split("_", 1)[0].lower() in wanted]
    if actions:
        selected = [t for t in selected if any(match_glob(t.name, p) for p in actions)]
    return Tools(selected)


# ==============================
# Base Class
# ==============================
class ToolSet:
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        auth: Optional[AuthArg] = None,
        headers: Optional[Mapping[str, str]] = None,
        account_id: Optional[str] = None,
        account_ids: Optional[Sequence[str]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if account_id and account_ids:
            raise ToolSetConfigError(
                "Cannot provide both account_id and account_ids. "
                "Use account_id for a single account or account_ids for multiple accounts."
            )
        self.logger = logger or logging.getLogger(__name__)
        self.base_url = base_url.rstrip("/") if base_url else None
        self.auth = coerce_auth(auth)
        self.account_id = account_id
        self.account_ids: List[str] = list(account_ids or [])

        explicit = dict(headers or {})
        if account_id:
            explicit[ACCOUNT_ID_HEADER] = account_id
        self.headers: Dict[str, str] = apply_auth_headers(explicit, self.auth)
        self.tools: List[Tool] = []

    def set_accounts(self, account_ids: Sequence[str]) -> "ToolSet":
        self.account_ids = list(account_ids)
        return self

    def get_tools(
        self,
        filter_pattern: Optional[PatternArg] = None,
        *,
        account_id: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Tools:
        """Tools matching the pattern, with the toolset headers (and overrides) applied."""
        if not filter_pattern:
            self.logger.warning(NO_FILTER_MESSAGE)

        merged = {**self.headers, **dict(headers or {})}
        effective_account = account_id or self.account_id
        if effective_account:
            merged[ACCOUNT_ID_HEADER] = effective_account

        patterns = as_pattern_list(filter_pattern) if filter_pattern else []
        selected: List[Tool] = []
        for tool in self.tools:
            if patterns and not matches_patterns(tool.name, patterns):
                continue
            tool.set_headers(merged)
            selected.append(tool)
        return Tools(selected)

    def get_tool(self, name: str, *, headers: Optional[Mapping[str, str]] = None) -> Tool:
        for tool in self.tools:
            if tool.name == name:
                tool.set_headers({**self.headers, **dict(headers or {})})
                return tool
        raise ToolSetError(f"Tool with name {name} not found")
