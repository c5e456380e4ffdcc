# ==============================
# Catalog ToolSet
# ==============================
"""
Build http Tools from a declarative operation catalog.

Catalog format (YAML or JSON), optionally wrapped in a top-level `tools` key:

    hris_list_employees:
      description: List employees
      parameters: {type: object, properties: {...}, required: [...]}
      execute:
        kind: http
        method: GET
        url: /unified/hris/employees
        params: [{name: fields, location: query}]

Rules:
- Each entry is validated as a ToolDefinition; any invalid entry fails the load.
- Relative http URLs ("/...") resolve against base_url.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from toolkit.config.schema import DEFAULT_BASE_URL, Settings
from toolkit.contracts.tool_schema import HttpExecuteConfig, ToolDefinition
from toolkit.tools.base import Tool
from toolkit.tools.executor import ToolExecutor
from toolkit.tools.headers import basic_auth_value
from toolkit.toolsets.base import AuthArg, ToolSet
from toolkit.utils.errors import ToolSetLoadError


def read_catalog(path: Union[str, Path]) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ToolSetLoadError(f"Catalog file not found: {p}")
    text = p.read_text(encoding="utf-8")
    try:
        data = json.loads(text) if p.suffix.lower() == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ToolSetLoadError(f"Failed to parse catalog {p}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ToolSetLoadError(f"Catalog must be a mapping at top-level: {p}")
    return data


def parse_catalog(raw: Mapping[str, Any], *, base_url: str) -> Dict[str, ToolDefinition]:
    entries = raw["tools"] if isinstance(raw.get("tools"), Mapping) else raw
    out: Dict[str, ToolDefinition] = {}
    for name, body in entries.items():
        if not isinstance(body, Mapping):
            raise ToolSetLoadError(f"Catalog entry '{name}' must be a mapping")
        try:
            definition = ToolDefinition.model_validate(dict(body))
        except ValidationError as exc:
            raise ToolSetLoadError(f"Invalid catalog entry '{name}': {exc}") from exc
        config = definition.execute
        if isinstance(config, HttpExecuteConfig) and config.url.startswith("/"):
            definition = definition.model_copy(
                update={"execute": config.model_copy(update={"url": f"{base_url.rstrip('/')}{config.url}"})}
            )
        out[str(name)] = definition
    return out


class CatalogToolSet(ToolSet):
    def __init__(
        self,
        catalog: Optional[Mapping[str, Any]] = None,
        *,
        catalog_file: Optional[Union[str, Path]] = None,
        base_url: Optional[str] = None,
        auth: Optional[AuthArg] = None,
        headers: Optional[Mapping[str, str]] = None,
        account_id: Optional[str] = None,
        executor: Optional[ToolExecutor] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(
            base_url=base_url or DEFAULT_BASE_URL,
            auth=auth,
            headers=headers,
            account_id=account_id,
            logger=logger,
        )
        raw: Dict[str, Any] = dict(catalog or {})
        if catalog_file is not None:
            raw.update(read_catalog(catalog_file))

        self.definitions = parse_catalog(raw, base_url=self.base_url or DEFAULT_BASE_URL)
        self.tools = [
            Tool(
                name,
                definition.description,
                definition.parameters,
                definition.execute,
                self.headers,
                executor=executor,
            )
            for name, definition in self.definitions.items()
        ]
        self.logger.debug("loaded %d catalog tools", len(self.tools))

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        catalog: Optional[Mapping[str, Any]] = None,
        executor: Optional[ToolExecutor] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "CatalogToolSet":
        headers = dict(settings.toolset.headers)
        auth = settings.auth
        if auth.type == "basic" and not auth.username and settings.secrets.api_key:
            headers.setdefault("Authorization", basic_auth_value(settings.secrets.api_key))
        return cls(
            catalog,
            catalog_file=settings.toolset.catalog_file,
            base_url=settings.toolset.base_url,
            auth=auth,
            headers=headers,
            account_id=settings.toolset.account_id,
            executor=executor or ToolExecutor(user_agent=settings.http.user_agent),
            logger=logger,
        )
