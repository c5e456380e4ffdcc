# ==============================
# RPC Backend & Client Tests
# ==============================
from __future__ import annotations

import base64
import json

import pytest

from tests.fakes import FakeResponse, FakeRpcTransport, FakeSession
from toolkit.contracts.rpc_schema import RpcActionRequest
from toolkit.contracts.tool_schema import RpcExecuteConfig
from toolkit.tools.backends.rpc_backend import build_action_request
from toolkit.tools.base import Tool
from toolkit.tools.executor import ToolExecutor
from toolkit.toolsets.rpc_client import RpcClient
from toolkit.utils.errors import ToolkitAPIError, ToolSetConfigError

RPC_URL = "https://api.example.com/actions/rpc"


def _rpc_tool(executor: ToolExecutor, **config) -> Tool:
    return Tool(
        "hris_get_employee",
        "Get one employee",
        {"type": "object", "properties": {"id": {"type": "string"}}},
        RpcExecuteConfig(url=RPC_URL, **config),
        {"Authorization": "Basic secret", "x-account-id": "acc_1"},
        executor=executor,
    )


def test_action_request_routes_reserved_keys() -> None:
    request = build_action_request(
        "hris_get_employee",
        {
            "path": {"id": "emp_1"},
            "query": {"expand": "company"},
            "headers": {"X-Trace": 5, "authorization": "Bearer nope", "X-Skip": None},
            "body": {"note": "hi"},
            "name": "Ada",
        },
        {"Authorization": "Basic secret", "x-account-id": "acc_1"},
    )

    assert request.action == "hris_get_employee"
    assert request.path == {"id": "emp_1"}
    assert request.query == {"expand": "company"}
    assert request.body == {"note": "hi", "name": "Ada"}
    assert request.headers == {"x-account-id": "acc_1", "X-Trace": "5"}


def test_rpc_dry_run_serialises_envelope(executor: ToolExecutor, rpc_transport: FakeRpcTransport) -> None:
    tool = _rpc_tool(executor)

    out = tool.execute({"path": {"id": "emp_1"}, "fields": "name"}, dry_run=True)

    assert out["url"] == RPC_URL
    assert out["method"] == "POST"
    assert "Authorization" not in out["headers"]
    assert json.loads(out["body"]) == {
        "action": "hris_get_employee",
        "body": {"fields": "name"},
        "headers": {"x-account-id": "acc_1"},
        "path": {"id": "emp_1"},
    }
    assert rpc_transport.requests == []


def test_rpc_custom_payload_keys(executor: ToolExecutor) -> None:
    tool = _rpc_tool(executor, payload_keys={"action": "op", "body": "data"})
    out = tool.execute({"name": "Ada"}, dry_run=True)
    envelope = json.loads(out["body"])
    assert envelope["op"] == "hris_get_employee"
    assert envelope["data"] == {"name": "Ada"}


def test_rpc_live_call_goes_through_transport(executor: ToolExecutor, rpc_transport: FakeRpcTransport) -> None:
    tool = _rpc_tool(executor)
    assert tool.execute({"name": "Ada"}, headers={"x-account-id": "acc_2"}) == {"data": {"ok": True}}
    sent = rpc_transport.requests[0]
    assert sent.headers == {"x-account-id": "acc_2"}


def test_rpc_without_transport_fails() -> None:
    tool = _rpc_tool(ToolExecutor())
    with pytest.raises(ToolSetConfigError, match="No RPC transport"):
        tool.execute({})


# ==============================
# RpcClient
# ==============================
def test_rpc_client_posts_envelope_with_basic_auth(fake_session: FakeSession) -> None:
    fake_session.queue(FakeResponse(200, {"data": [{"id": "1"}], "next": None}))
    client = RpcClient(api_key="key_123", base_url="https://api.example.com/", session=fake_session)

    out = client.rpc_action(
        RpcActionRequest(action="hris_list_employees", body={"limit": 1}, headers={"x-account-id": "acc_1", "X-Other": "y"})
    )

    assert out == {"data": [{"id": "1"}], "next": None}
    call = fake_session.calls[0]
    assert call.url == RPC_URL
    expected = base64.b64encode(b"key_123:").decode("ascii")
    assert call.headers["Authorization"] == f"Basic {expected}"
    assert call.headers["x-account-id"] == "acc_1"
    assert "X-Other" not in call.headers
    assert call.json()["action"] == "hris_list_employees"


def test_rpc_client_requires_api_key() -> None:
    with pytest.raises(ToolSetConfigError):
        RpcClient(api_key="")


def test_rpc_client_non_2xx_raises(fake_session: FakeSession) -> None:
    fake_session.queue(FakeResponse(403, {"message": "Forbidden"}))
    client = RpcClient(api_key="k", base_url="https://api.example.com", session=fake_session)
    with pytest.raises(ToolkitAPIError) as info:
        client.rpc_action({"action": "x"})
    assert info.value.status_code == 403
    assert info.value.message == f"RPC action failed for {RPC_URL}: Forbidden"


def test_rpc_client_rejects_non_object_response(fake_session: FakeSession) -> None:
    fake_session.queue(FakeResponse(200, [1, 2, 3]))
    client = RpcClient(api_key="k", base_url="https://api.example.com", session=fake_session)
    with pytest.raises(ToolkitAPIError, match="Invalid RPC action response"):
        client.rpc_action({"action": "x"})
