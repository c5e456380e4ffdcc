# ==============================
# Testing Fixtures
# ==============================
from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from gateway.api import deps as gateway_deps
from gateway.api.http_app import create_app
from tests.fakes import FakeRpcTransport, FakeSession, make_http_tool
from toolkit.logging.tracing import CollectingTracer
from toolkit.tools.collection import Tools
from toolkit.tools.executor import ToolExecutor


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def rpc_transport() -> FakeRpcTransport:
    return FakeRpcTransport()


@pytest.fixture
def tracer() -> CollectingTracer:
    """Keeps sanitized trace events in memory without touching production logging."""
    return CollectingTracer(mirror_to_log=False)


@pytest.fixture
def executor(fake_session: FakeSession, rpc_transport: FakeRpcTransport, tracer: CollectingTracer) -> ToolExecutor:
    return ToolExecutor(session=fake_session, rpc_transport=rpc_transport, tracer=tracer)


@pytest.fixture
def hris_tools() -> Tools:
    """Small mixed catalog used by discovery, collection and gateway tests."""
    specs = [
        ("hris_list_employees", "List all employees in the HRIS system"),
        ("hris_get_employee", "Get a single employee by id"),
        ("hris_create_employee", "Create a new employee record"),
        ("hris_delete_employee", "Delete an employee record"),
        ("ats_list_candidates", "List candidates applying for jobs"),
        ("ats_create_application", "Create a job application for a candidate"),
        ("crm_update_contact", "Update an existing contact"),
        ("crm_search_contacts", "Search contacts by name or email"),
    ]
    return Tools(make_http_tool(name, desc) for name, desc in specs)


@pytest.fixture
def app_client(hris_tools: Tools) -> TestClient:
    """FastAPI test client serving the given tools."""
    gateway_deps.get_settings.cache_clear()
    gateway_deps.get_redactor.cache_clear()
    gateway_deps.get_tools.cache_clear()
    app = create_app(tools=hris_tools)
    return TestClient(app)
