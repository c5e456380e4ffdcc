# ==============================
# Request Builder Tests
# ==============================
from __future__ import annotations

from datetime import datetime

import pytest

from tests.fakes import FakeResponse, FakeSession
from toolkit.contracts.tool_schema import BodyType, HttpExecuteConfig
from toolkit.tools.request_builder import (
    FORM_DATA_PLACEHOLDER,
    RequestBuilder,
    build_query_parameters,
    serialize_value,
)
from toolkit.utils.errors import ParameterSerializationError, ToolkitAPIError


def _config(**kwargs) -> HttpExecuteConfig:
    kwargs.setdefault("url", "https://api.example.com/employees")
    return HttpExecuteConfig(**kwargs)


def test_dry_run_places_path_and_query_params() -> None:
    builder = RequestBuilder(
        _config(
            url="https://api.example.com/employees/{id}",
            params=[{"name": "id", "location": "path"}, {"name": "fields", "location": "query"}],
        )
    )

    out = builder.execute(
        {"id": "a b", "fields": "name,email"},
        headers={"Authorization": "Basic abc"},
        dry_run=True,
    )

    assert out == {
        "url": "https://api.example.com/employees/a%20b?fields=name%2Cemail",
        "method": "GET",
        "headers": {"User-Agent": "toolkit-python", "Authorization": "Basic abc"},
        "body": None,
        "mappedParams": {"id": "a b", "fields": "name,email"},
    }


def test_tool_headers_override_default_user_agent() -> None:
    builder = RequestBuilder(_config(), user_agent="agent/1.0")
    built = builder.build({}, headers={"User-Agent": "custom"})
    assert built.headers["User-Agent"] == "custom"
    assert RequestBuilder(_config(), user_agent="agent/1.0").build({}).headers["User-Agent"] == "agent/1.0"


def test_deep_object_query_uses_bracket_notation() -> None:
    builder = RequestBuilder(_config(params=[{"name": "filter", "location": "query"}]))
    built = builder.build({"filter": {"updated_after": "2020-01-01T00:00:00.000Z", "type": {"name": "x"}}})

    assert built.url == (
        "https://api.example.com/employees"
        "?filter%5Bupdated_after%5D=2020-01-01T00%3A00%3A00.000Z&filter%5Btype%5D%5Bname%5D=x"
    )


def test_deep_object_skips_none_and_joins_lists() -> None:
    pairs = build_query_parameters({"filter": {"ids": [1, 2], "active": True, "gone": None}, "page": None})
    assert pairs == [("filter[ids]", "1,2"), ("filter[active]", "true")]


def test_deep_object_rejects_invalid_keys() -> None:
    with pytest.raises(ParameterSerializationError, match="Invalid parameter key"):
        build_query_parameters({"filter": {"bad key": 1}})


def test_deep_object_rejects_circular_reference() -> None:
    loop: dict = {"a": 1}
    loop["self"] = loop
    with pytest.raises(ParameterSerializationError, match="Circular reference"):
        build_query_parameters({"filter": loop})


def test_deep_object_rejects_excessive_depth() -> None:
    value: object = "leaf"
    for _ in range(12):
        value = {"a": value}
    with pytest.raises(ParameterSerializationError, match="Maximum nesting depth"):
        build_query_parameters({"filter": value})


def test_shared_object_in_sibling_branches_is_not_circular() -> None:
    shared = {"x": 1}
    pairs = build_query_parameters({"filter": {"a": shared, "b": shared}})
    assert pairs == [("filter[a][x]", "1"), ("filter[b][x]", "1")]


def test_serialize_value_scalars() -> None:
    assert serialize_value(False) == "false"
    assert serialize_value(datetime(2024, 1, 2, 3, 4, 5, 6000)) == "2024-01-02T03:04:05.006Z"
    assert serialize_value(["a", 1]) == "a,1"
    assert serialize_value(None) == ""
    with pytest.raises(ParameterSerializationError):
        serialize_value(lambda: None)


def test_json_body_and_content_type() -> None:
    builder = RequestBuilder(_config(method="post"))
    out = builder.execute({"first_name": "Ada"}, dry_run=True)
    assert out["method"] == "POST"
    assert out["body"] == '{"first_name":"Ada"}'
    assert out["headers"]["Content-Type"] == "application/json"


def test_form_body_is_urlencoded() -> None:
    builder = RequestBuilder(_config(method="POST", body_type=BodyType.FORM))
    out = builder.execute({"name": "Ada Lovelace", "active": True}, dry_run=True)
    assert out["body"] == "name=Ada+Lovelace&active=true"
    assert out["headers"]["Content-Type"] == "application/x-www-form-urlencoded"


def test_multipart_body_is_placeholder_in_dry_run() -> None:
    builder = RequestBuilder(_config(method="POST", body_type=BodyType.MULTIPART_FORM))
    out = builder.execute({"file_name": "cv.pdf"}, dry_run=True)
    assert out["body"] == FORM_DATA_PLACEHOLDER
    assert "Content-Type" not in out["headers"]


def test_header_params_land_on_request_headers_only() -> None:
    tool_headers = {"x-account-id": "acc_1"}
    builder = RequestBuilder(_config(params=[{"name": "x-trace", "location": "header"}]))
    built = builder.build({"x-trace": 42}, headers=tool_headers)
    assert built.headers["x-trace"] == "42"
    assert tool_headers == {"x-account-id": "acc_1"}


def test_live_call_returns_parsed_json(fake_session: FakeSession) -> None:
    fake_session.queue(FakeResponse(200, {"data": [{"id": "1"}]}))
    builder = RequestBuilder(_config(method="POST"))

    out = builder.execute({"name": "Ada"}, session=fake_session)

    assert out == {"data": [{"id": "1"}]}
    call = fake_session.calls[0]
    assert call.method == "POST"
    assert call.url == "https://api.example.com/employees"
    assert call.json() == {"name": "Ada"}


def test_live_call_empty_body_returns_empty_dict(fake_session: FakeSession) -> None:
    fake_session.queue(FakeResponse(204, text=""))
    assert RequestBuilder(_config()).execute({}, session=fake_session) == {}


def test_non_2xx_raises_api_error_with_body(fake_session: FakeSession) -> None:
    fake_session.queue(FakeResponse(404, {"message": "Employee not found"}))
    builder = RequestBuilder(_config(method="POST"))

    with pytest.raises(ToolkitAPIError) as info:
        builder.execute({"name": "Ada"}, session=fake_session)

    err = info.value
    assert err.status_code == 404
    assert err.response_body == {"message": "Employee not found"}
    assert err.request_body == {"name": "Ada"}
    assert err.message == (
        "API request failed with status 404 for https://api.example.com/employees: Employee not found"
    )


def test_non_json_error_body_is_none(fake_session: FakeSession) -> None:
    fake_session.queue(FakeResponse(500, text="<html>oops</html>", headers={"Content-Type": "text/html"}))
    with pytest.raises(ToolkitAPIError) as info:
        RequestBuilder(_config()).execute({}, session=fake_session)
    assert info.value.response_body is None
