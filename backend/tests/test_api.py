# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
API tests for the HTTP trigger

Runs the FastAPI app against the in-memory store and a mocked AI client.
"""

import pytest
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from flowrunner.core.errors import ExecutionError
from flowrunner.main import create_app
from flowrunner.services.workflow_service import WorkflowService
from flowrunner.workflow.models import ExecutionRecord, ExecutionStatus


@pytest.fixture
def service(executor, store, ai_client):
    return WorkflowService(executor, store, ai_client=ai_client)


@pytest.fixture
def client(service):
    """Create test client"""
    with TestClient(create_app(service)) as test_client:
        yield test_client


@pytest.fixture
def workflow_payload():
    return {
        "workflow_id": "wf-support",
        "nodes": [
            {"id": "in", "type": "input", "data": {"label": "Ticket"}},
            {"id": "a1", "type": "assistant", "data": {"assistantRole": "customer_support", "prompt": "Reply to {{ticket}}"}},
            {"id": "out", "type": "output", "data": {}},
        ],
        "edges": [
            {"source": "in", "target": "a1"},
            {"source": "a1", "target": "out"},
        ],
        "input_data": {"ticket": "My invoice is wrong"},
    }


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_execute_workflow(client, workflow_payload, ai_client):
    """POST /workflows/execute returns the outcome"""
    response = client.post("/workflows/execute", json=workflow_payload)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["execution_id"].startswith("exec_")
    assert data["output_data"]["a1"]["output"] == "AI response"
    ai_client.complete.assert_awaited_once_with("Reply to My invoice is wrong", "customer_support")


def test_execute_failure_is_reported_in_body(client, workflow_payload, ai_client):
    ai_client.complete.side_effect = RuntimeError("provider down")

    response = client.post("/workflows/execute", json=workflow_payload)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "AI processing failed: provider down"
    assert data["error_node_id"] == "a1"


def test_execute_requires_nodes(client):
    response = client.post("/workflows/execute", json={"nodes": [], "edges": []})

    assert response.status_code == 400
    assert response.json() == {
        "error": "ValidationError",
        "message": "Workflow must contain at least one node",
        "status_code": 400,
        "details": {"field": "nodes"},
    }


def test_execute_rejects_malformed_graph(client):
    response = client.post("/workflows/execute", json={"nodes": [{"type": "input"}]})
    assert response.status_code == 422


def test_execution_history(client, workflow_payload):
    """Run, then read back record, logs and listing"""
    execution_id = client.post("/workflows/execute", json=workflow_payload).json()["execution_id"]

    record = client.get(f"/executions/{execution_id}")
    assert record.status_code == 200
    assert record.json()["status"] == "completed"
    assert record.json()["workflow_id"] == "wf-support"
    assert record.json()["triggered_by"] == "api"

    logs = client.get(f"/executions/{execution_id}/logs")
    assert logs.status_code == 200
    assert [entry["status"] for entry in logs.json()] == ["started", "completed"] * 3

    listing = client.get("/executions", params={"workflow_id": "wf-support"})
    assert [r["execution_id"] for r in listing.json()] == [execution_id]


def test_unknown_execution_returns_404(client):
    assert client.get("/executions/exec_missing").status_code == 404
    assert client.get("/executions/exec_missing/logs").status_code == 404
    assert client.post("/executions/exec_missing/cancel").status_code == 404

    body = client.get("/executions/exec_missing").json()
    assert body == {
        "error": "NotFoundError",
        "message": "Execution not found: exec_missing",
        "status_code": 404,
        "details": {},
    }


def test_invalid_status_filter_returns_400(client):
    response = client.get("/executions", params={"status": "exploded"})

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"
    assert response.json()["details"] == {"field": "status"}


def test_server_errors_are_sanitized(client, service):
    service.run_request = AsyncMock(side_effect=ExecutionError("x" * 600))

    response = client.post("/workflows/execute", json={"nodes": [{"id": "in", "type": "input"}]})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "ExecutionError"
    assert body["message"] == "x" * 500 + "..."


def test_cancel_orphaned_execution(client, store):
    client.portal.call(store.create_run, ExecutionRecord(execution_id="exec_orphan", status=ExecutionStatus.RUNNING))

    response = client.post("/executions/exec_orphan/cancel")

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"


def test_cancel_finished_execution_returns_400(client, workflow_payload):
    execution_id = client.post("/workflows/execute", json=workflow_payload).json()["execution_id"]

    assert client.post(f"/executions/{execution_id}/cancel").status_code == 400
