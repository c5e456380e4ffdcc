# ==============================
# Meta Tools
# ==============================
"""
Local tools that let an agent discover and run the tools of a collection.

- meta_search_tools       {query, limit?, minScore?, filterPatterns?}
- meta_execute_tool       {toolName, params}
- meta_execute_tool_chain {steps, accountId?}

The discovery index is built once, over the collection as it was when the meta
tools were created. Dry run and per-call headers pass through to the target tool.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from pydantic import ValidationError

from toolkit.contracts.search_schema import SearchQuery
from toolkit.contracts.tool_schema import ExecuteOptions, LocalExecuteConfig
from toolkit.knowledge.discovery import DiscoveryIndex
from toolkit.orchestrator.chain import ChainOrchestrator
from toolkit.tools.base import Tool
from toolkit.utils.errors import ToolkitError
from toolkit.utils.validation import normalize_arguments

if TYPE_CHECKING:
    from toolkit.tools.collection import Tools


SEARCH_TOOL_NAME = "meta_search_tools"
EXECUTE_TOOL_NAME = "meta_execute_tool"
CHAIN_TOOL_NAME = "meta_execute_tool_chain"

_SEARCH_PARAMETERS: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "query": {"type": "string", "description": "Natural language description of the tools you need"},
        "limit": {"type": "number", "description": "Maximum number of tools to return (default: 5)", "default": 5},
        "minScore": {
            "type": "number",
            "description": "Minimum relevance score (0-1) for results (default: 0.3)",
            "default": 0.3,
        },
        "filterPatterns": {
            "oneOf": [{"type": "string"}, {"type": "array", "items": {"type": "string"}}],
            "description": 'Optional glob patterns to narrow results (e.g., "hris_*", "!*_delete_*")',
        },
    },
    "required": ["query"],
}

_SEARCH_KEYS = frozenset(_SEARCH_PARAMETERS["properties"])

_EXECUTE_PARAMETERS: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "toolName": {"type": "string", "description": "Name of the tool to execute"},
        "params": {"type": "object", "description": "Arguments for the tool"},
    },
    "required": ["toolName"],
}

_CHAIN_PARAMETERS: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "steps": {
            "type": "array",
            "description": "Tool execution steps, run in order",
            "items": {
                "type": "object",
                "properties": {
                    "toolName": {"type": "string", "description": "Name of the tool to execute"},
                    "parameters": {
                        "type": "object",
                        "description": "Arguments; use {{stepN.result.path}} to reference earlier results",
                    },
                    "condition": {
                        "type": "string",
                        "description": 'Optional condition (e.g., "{{step0.success}} === true")',
                    },
                    "stepName": {"type": "string", "description": "Optional display name for the step"},
                },
                "required": ["toolName", "parameters"],
            },
        },
        "accountId": {"type": "string", "description": "Account id sent with every step"},
    },
    "required": ["steps"],
}


def build_meta_tools(tools: "Tools", *, hybrid_alpha: Optional[float] = None, **index_kwargs: Any) -> "Tools":
    from toolkit.tools.collection import Tools

    if hybrid_alpha is not None:
        index_kwargs["hybrid_alpha"] = hybrid_alpha
    index = DiscoveryIndex(tools, **index_kwargs)
    orchestrator = ChainOrchestrator(tools)

    def search(params: Dict[str, Any], options: ExecuteOptions) -> Dict[str, Any]:
        try:
            query = SearchQuery.model_validate({k: v for k, v in params.items() if k in _SEARCH_KEYS})
        except ValidationError as exc:
            raise ToolkitError(f"Invalid search parameters: {exc.errors()[0].get('msg')}") from exc
        hits = index.run(query)
        return {
            "tools": [hit.model_dump() for hit in hits],
            "total": len(hits),
            "query": query.query,
        }

    def execute(params: Dict[str, Any], options: ExecuteOptions) -> Any:
        name = params.get("toolName")
        if not isinstance(name, str) or not name:
            raise ToolkitError("toolName is required")
        target = tools.require(name)
        return target.execute(normalize_arguments(params.get("params")), options)

    def chain(params: Dict[str, Any], options: ExecuteOptions) -> Dict[str, Any]:
        result = orchestrator.run(
            params.get("steps") or [],
            account_id=params.get("accountId"),
            dry_run=options.dry_run,
        )
        return result.to_dict()

    return Tools(
        [
            Tool(
                SEARCH_TOOL_NAME,
                "Search for relevant tools using a natural language query. "
                "Returns tool names, descriptions, parameter schemas and relevance scores.",
                _SEARCH_PARAMETERS,
                LocalExecuteConfig(identifier=SEARCH_TOOL_NAME),
                local_handler=search,
            ),
            Tool(
                EXECUTE_TOOL_NAME,
                "Execute a tool by name with the given parameters. Use meta_search_tools first to find it.",
                _EXECUTE_PARAMETERS,
                LocalExecuteConfig(identifier=EXECUTE_TOOL_NAME),
                local_handler=execute,
            ),
            Tool(
                CHAIN_TOOL_NAME,
                "Execute several tools in sequence, passing results between steps with {{stepN.result.path}}.",
                _CHAIN_PARAMETERS,
                LocalExecuteConfig(identifier=CHAIN_TOOL_NAME),
                local_handler=chain,
            ),
        ]
    )
