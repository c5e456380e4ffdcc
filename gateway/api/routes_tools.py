# ==============================
# Tool & Chain Routes
# ==============================
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from gateway.api.deps import get_discovery, get_orchestrator, get_redactor, get_tools
from toolkit.contracts.search_schema import SearchQuery
from toolkit.contracts.tool_schema import ToolErrorCode
from toolkit.governance.security import SecurityRedactor
from toolkit.knowledge.discovery import DiscoveryIndex
from toolkit.orchestrator.chain import ChainOrchestrator
from toolkit.tools.collection import Tools
from toolkit.utils.errors import DerivationError, ToolkitAPIError, ToolkitError, ToolNotFoundError

router = APIRouter()


class ExecuteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    params: Dict[str, Any] = Field(default_factory=dict)
    dry_run: bool = Field(default=False, alias="dryRun")
    headers: Dict[str, str] = Field(default_factory=dict, description="Per-call header overrides.")


class ChainRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    steps: List[Dict[str, Any]] = Field(default_factory=list)
    account_id: Optional[str] = Field(default=None, alias="accountId")
    dry_run: bool = Field(default=False, alias="dryRun")


def _ok(data: Union[Dict[str, Any], List[Any]], *, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"ok": True, "data": data, "error": None, "meta": meta or {}}


def _error(
    *,
    http_status: int,
    code: ToolErrorCode,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    payload = {
        "ok": False,
        "data": None,
        "error": {"code": code.value, "message": message, "details": details or {}},
        "meta": meta or {},
    }
    raise HTTPException(status_code=http_status, detail=payload)


def _describe(tools: Tools) -> List[Dict[str, Any]]:
    return [
        {"name": t.name, "description": t.description, "parameters": t.parameters.to_schema()}
        for t in tools
    ]


@router.get("/tools")
def list_tools(tools: Tools = Depends(get_tools)) -> Dict[str, Any]:
    described = _describe(tools)
    return _ok({"tools": described}, meta={"total": len(described)})


@router.post("/tools/search")
def search_tools(
    body: SearchQuery,
    index: DiscoveryIndex = Depends(get_discovery),
) -> Dict[str, Any]:
    if not body.query.strip():
        _error(http_status=status.HTTP_400_BAD_REQUEST, code=ToolErrorCode.INVALID_INPUT, message="query must be non-empty")
    hits = index.run(body)
    return _ok(
        {"tools": [hit.model_dump() for hit in hits], "query": body.query},
        meta={"total": len(hits)},
    )


@router.post("/tools/{name}/execute")
def execute_tool(
    name: str,
    body: ExecuteRequest,
    tools: Tools = Depends(get_tools),
    redactor: SecurityRedactor = Depends(get_redactor),
) -> Dict[str, Any]:
    try:
        tool = tools.require(name)
    except ToolNotFoundError as exc:
        _error(http_status=status.HTTP_404_NOT_FOUND, code=ToolErrorCode.NOT_FOUND, message=str(exc))

    try:
        result = tool.execute(body.params, dry_run=body.dry_run, headers=body.headers)
    except ToolkitAPIError as exc:
        _error(
            http_status=status.HTTP_502_BAD_GATEWAY,
            code=ToolErrorCode.API_ERROR,
            message=exc.message,
            details=redactor.redact_any({"status_code": exc.status_code, "response_body": exc.response_body}),
        )
    except DerivationError as exc:
        _error(http_status=status.HTTP_400_BAD_REQUEST, code=ToolErrorCode.DERIVATION_ERROR, message=str(exc))
    except ToolkitError as exc:
        _error(http_status=status.HTTP_400_BAD_REQUEST, code=ToolErrorCode.BACKEND_ERROR, message=str(exc))

    # Tool.execute never redacts; the gateway response does.
    return _ok(redactor.redact_any(result), meta={"tool": name, "dry_run": body.dry_run})


@router.post("/chains/run")
def run_chain(
    body: ChainRequest,
    orchestrator: ChainOrchestrator = Depends(get_orchestrator),
    redactor: SecurityRedactor = Depends(get_redactor),
) -> Dict[str, Any]:
    try:
        result = orchestrator.run(body.steps, account_id=body.account_id, dry_run=body.dry_run)
    except ToolkitError as exc:
        _error(http_status=status.HTTP_400_BAD_REQUEST, code=ToolErrorCode.INVALID_INPUT, message=str(exc))
    return _ok(redactor.redact_any(result.to_dict()), meta={"steps": len(result.step_results)})
