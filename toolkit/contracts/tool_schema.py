# ==============================
# Tool Contracts
# ==============================
"""
Tool contracts for toolkit/.

These models describe what a tool accepts (ToolParameters) and how it performs its
side effect (ExecuteConfig). ExecuteConfig is a closed tagged union over `kind`;
the executor switches on it exhaustively, there is no subclass per backend.

Intended usage:
- Toolsets/loaders build ToolDefinition -> Tool
- Tool.execute routes through ToolExecutor using ExecuteConfig.kind
"""

# ==============================
# Imports
# ==============================
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


# ==============================
# Enums
# ==============================
class ParameterLocation(str, Enum):
    """Where a declared http parameter is placed on the wire."""
    HEADER = "header"
    QUERY = "query"
    PATH = "path"
    BODY = "body"


class BodyType(str, Enum):
    """Body encoding for http tools."""
    JSON = "json"
    FORM = "form"
    MULTIPART_FORM = "multipart-form"


class ToolErrorCode(str, Enum):
    """Standard error codes surfaced by the gateway envelope."""
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    API_ERROR = "api_error"
    DERIVATION_ERROR = "derivation_error"
    BACKEND_ERROR = "backend_error"


# ==============================
# Parameter Schema
# ==============================
class ToolParameters(BaseModel):
    """
    JSON-schema-like description of accepted arguments.

    Frozen: a schema override produces a new instance, never edits this one.
    """
    model_config = ConfigDict(extra="allow", frozen=True)

    type: str = Field(default="object", description="Always 'object' for tool inputs.")
    properties: Dict[str, Any] = Field(default_factory=dict, description="Parameter name -> type descriptor.")
    required: List[str] = Field(default_factory=list, description="Names that must be supplied.")

    def to_schema(self) -> Dict[str, Any]:
        return {"type": self.type, "properties": dict(self.properties), "required": list(self.required)}


# ==============================
# Execute Configs (tagged union)
# ==============================
class HttpParam(BaseModel):
    """One declared http parameter and its wire location."""
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str
    location: ParameterLocation = Field(default=ParameterLocation.BODY)
    type: Optional[Union[str, List[str]]] = Field(default=None)


class HttpExecuteConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    kind: Literal["http"] = "http"
    method: str = Field(default="GET", description="HTTP method.")
    url: str = Field(..., description="URL template; may embed {param} placeholders.")
    body_type: BodyType = Field(default=BodyType.JSON, alias="bodyType")
    params: List[HttpParam] = Field(default_factory=list, description="Ordered wire placement of declared params.")


class RpcPayloadKeys(BaseModel):
    """Keys used for each logical slot of the relay envelope."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    action: str = "action"
    body: str = "body"
    headers: str = "headers"
    path: str = "path"
    query: str = "query"


class RpcExecuteConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    kind: Literal["rpc"] = "rpc"
    method: str = Field(default="POST")
    url: str = Field(..., description="Relay endpoint, e.g. <base_url>/actions/rpc.")
    payload_keys: RpcPayloadKeys = Field(default_factory=RpcPayloadKeys, alias="payloadKeys")


class LocalExecuteConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["local"] = "local"
    identifier: Optional[str] = None
    description: Optional[str] = None


ExecuteConfig = Annotated[
    Union[HttpExecuteConfig, RpcExecuteConfig, LocalExecuteConfig],
    Field(discriminator="kind"),
]


# ==============================
# Call-time Models
# ==============================
class ExecuteOptions(BaseModel):
    """Per-call options. Header overrides apply to this call only."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    dry_run: bool = Field(default=False, alias="dryRun")
    headers: Dict[str, str] = Field(default_factory=dict)


class ToolDefinition(BaseModel):
    """Declarative operation as supplied by a catalog."""
    model_config = ConfigDict(extra="forbid")

    description: str = Field(default="")
    parameters: ToolParameters = Field(default_factory=ToolParameters)
    execute: ExecuteConfig


class ToolExecution(BaseModel):
    """Execution metadata surfaced for introspection/debugging."""
    model_config = ConfigDict(extra="forbid")

    config: Dict[str, Any]
    headers: Dict[str, str]


class ToolMeta(BaseModel):
    """Metadata describing one tool call, used for trace events."""
    model_config = ConfigDict(extra="forbid")

    tool_name: str = Field(..., description="Tool name.")
    backend: str = Field(..., description="Execution backend (http|rpc|local).")
    request_id: str = Field(default_factory=lambda: str(uuid4()), description="Unique id for this tool call.")
    started_at: datetime = Field(default_factory=datetime.utcnow, description="Tool call start timestamp (UTC).")
    latency_ms: Optional[int] = Field(default=None, description="Measured latency in milliseconds.")
    dry_run: bool = Field(default=False)
