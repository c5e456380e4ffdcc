# ==============================
# RPC Relay Contracts
# ==============================
"""
Relay envelope exchanged with the remote actions endpoint.

The request is {action, body, headers, path, query}; the response is a loose
object with optional `data` and `next` plus whatever the connector returns.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Headers forwarded from the envelope onto the HTTP request itself.
FORWARDED_HEADER_KEYS = ("x-account-id",)


class RpcActionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: str
    body: Optional[Dict[str, Any]] = None
    headers: Optional[Dict[str, str]] = None
    path: Optional[Dict[str, Any]] = None
    query: Optional[Dict[str, Any]] = None

    def to_envelope(self) -> Dict[str, Any]:
        """Envelope with unset optional slots dropped."""
        return self.model_dump(exclude_none=True)


class RpcActionResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    next: Optional[str] = Field(default=None)
    data: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = Field(default=None)


class CatalogEntry(BaseModel):
    """One (name, description, inputSchema) triple from a remote catalog."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}}, alias="inputSchema")
