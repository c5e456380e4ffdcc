# ==============================
# Tool Facade
# ==============================
"""
The unit of capability: name, description, parameter schema, execute config, headers.

Rules:
- execute_config.kind never changes after construction.
- Headers are copy-on-write: set_headers swaps in a new mapping, so an in-flight
  call keeps the headers it read. Per-call overrides go through ExecuteOptions.headers.
- RawArguments (None | JSON string | mapping) are normalised once, at the top of execute.
- Every error leaving execute is a ToolkitError; foreign errors are wrapped with the
  original kept as __cause__.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import TypeAdapter, ValidationError

from toolkit.contracts.tool_schema import (
    ExecuteConfig,
    ExecuteOptions,
    ToolExecution,
    ToolParameters,
)
from toolkit.tools.executor import ToolExecutor, default_executor
from toolkit.utils.errors import ToolkitError
from toolkit.utils.validation import RawArguments, normalize_arguments

ACCOUNT_ID_HEADER = "x-account-id"

PreExecute = Callable[[Dict[str, Any]], Dict[str, Any]]
LocalHandler = Callable[[Dict[str, Any], ExecuteOptions], Any]

_EXECUTE_CONFIG = TypeAdapter(ExecuteConfig)


class Tool:
    def __init__(
        self,
        name: str,
        description: str,
        parameters: Union[ToolParameters, Mapping[str, Any]],
        execute_config: Union[ExecuteConfig, Mapping[str, Any]],
        headers: Optional[Mapping[str, str]] = None,
        *,
        local_handler: Optional[LocalHandler] = None,
        pre_execute: Optional[PreExecute] = None,
        expose_execution_metadata: bool = True,
        executor: Optional[ToolExecutor] = None,
    ) -> None:
        self.name = name
        self.description = description
        self.parameters = (
            parameters if isinstance(parameters, ToolParameters) else ToolParameters.model_validate(dict(parameters))
        )
        if isinstance(execute_config, Mapping):
            execute_config = _EXECUTE_CONFIG.validate_python(dict(execute_config))
        self._execute_config = execute_config
        self._headers: Mapping[str, str] = MappingProxyType(dict(headers or {}))
        self.local_handler = local_handler
        self.pre_execute = pre_execute
        self.expose_execution_metadata = expose_execution_metadata
        self._executor = executor

    def __repr__(self) -> str:
        return f"Tool(name={self.name!r}, kind={self._execute_config.kind!r})"

    # ==============================
    # Properties
    # ==============================
    @property
    def execute_config(self) -> ExecuteConfig:
        return self._execute_config

    @property
    def executor(self) -> ToolExecutor:
        return self._executor or default_executor()

    # ==============================
    # Headers (copy-on-write)
    # ==============================
    def set_headers(self, headers: Mapping[str, str]) -> "Tool":
        self._headers = MappingProxyType({**self._headers, **{k: str(v) for k, v in headers.items()}})
        return self

    def get_headers(self) -> Dict[str, str]:
        return dict(self._headers)

    @property
    def account_id(self) -> Optional[str]:
        return self._headers.get(ACCOUNT_ID_HEADER)

    def set_account_id(self, account_id: str) -> "Tool":
        return self.set_headers({ACCOUNT_ID_HEADER: account_id})

    # ==============================
    # Execution
    # ==============================
    def execute(
        self,
        args: RawArguments = None,
        options: Optional[Union[ExecuteOptions, Mapping[str, Any]]] = None,
        *,
        dry_run: Optional[bool] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        try:
            opts = self._options(options, dry_run=dry_run, headers=headers)
            params = normalize_arguments(args)
            if self.pre_execute is not None:
                params = self._derive(params)
            return self.executor.execute(self, params, opts)
        except ToolkitError:
            raise
        except Exception as exc:
            raise ToolkitError(f"Error executing tool {self.name}: {exc}") from exc

    def _options(
        self,
        options: Optional[Union[ExecuteOptions, Mapping[str, Any]]],
        *,
        dry_run: Optional[bool],
        headers: Optional[Mapping[str, str]],
    ) -> ExecuteOptions:
        if isinstance(options, Mapping):
            try:
                options = ExecuteOptions.model_validate(dict(options))
            except ValidationError as exc:
                raise ToolkitError(f"Invalid execute options for tool {self.name}: {exc}") from exc
        opts = options or ExecuteOptions()
        if dry_run is not None or headers:
            opts = opts.model_copy(
                update={
                    "dry_run": opts.dry_run if dry_run is None else dry_run,
                    "headers": {**opts.headers, **dict(headers or {})},
                }
            )
        return opts

    def _derive(self, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            derived = self.pre_execute(dict(params))  # type: ignore[misc]
        except ToolkitError:
            raise
        except Exception as exc:
            raise ToolkitError(f"Pre-execute derivation failed for tool {self.name}: {exc}") from exc
        if not isinstance(derived, dict):
            raise ToolkitError(f"Pre-execute derivation for tool {self.name} must return a dict")
        return derived

    def clone(self, **overrides: Any) -> "Tool":
        """
        New Tool sharing this tool's execute config and current header mapping.

        overrides: name, description, parameters, pre_execute, local_handler,
        expose_execution_metadata, executor.
        """
        new = Tool(
            overrides.get("name", self.name),
            overrides.get("description", self.description),
            overrides.get("parameters", self.parameters),
            self._execute_config,
            local_handler=overrides.get("local_handler", self.local_handler),
            pre_execute=overrides.get("pre_execute", self.pre_execute),
            expose_execution_metadata=overrides.get("expose_execution_metadata", self.expose_execution_metadata),
            executor=overrides.get("executor", self._executor),
        )
        new._headers = self._headers
        return new

    # ==============================
    # Format Export
    # ==============================
    def to_openai(self) -> Dict[str, Any]:
        """Provider function-calling descriptor (no executable reference)."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": dict(self.parameters.properties),
                    "required": list(self.parameters.required),
                },
            },
        }

    def to_agent_framework(
        self, *, executable: bool = True, execution: Optional[bool] = None
    ) -> Dict[str, Dict[str, Any]]:
        """
        Agent-framework descriptor keyed by tool name.

        execution metadata is included when requested (default: the tool's own
        setting) and never for tools that suppress it.
        """
        entry: Dict[str, Any] = {
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": dict(self.parameters.properties),
                "required": list(self.parameters.required),
                "additionalProperties": False,
            },
        }
        if executable:
            entry["execute"] = lambda args=None: self.execute(args)

        include = self.expose_execution_metadata if execution is None else (execution and self.expose_execution_metadata)
        if include:
            entry["execution"] = ToolExecution(
                config=self._execute_config.model_dump(mode="json", by_alias=True),
                headers=self.get_headers(),
            ).model_dump()
        return {self.name: entry}
