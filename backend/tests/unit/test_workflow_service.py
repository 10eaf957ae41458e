# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for WorkflowService

Tests run orchestration, history queries and cancellation.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from flowrunner.core.config import Config
from flowrunner.core.errors import NotFoundError, ValidationError
from flowrunner.services.workflow_service import WorkflowService
from flowrunner.storage.execution_store import FileExecutionStore, InMemoryExecutionStore
from flowrunner.workflow.models import (
    ExecutionRecord,
    ExecutionStatus,
    WorkflowEdge,
    WorkflowNode,
    WorkflowRunRequest,
)


@pytest.fixture
def service(executor, store, ai_client):
    """Create WorkflowService around the shared executor"""
    return WorkflowService(executor, store, ai_client=ai_client)


@pytest.fixture
def simple_graph():
    nodes = [
        WorkflowNode(id="in", type="input"),
        WorkflowNode(id="a1", type="assistant", data={"prompt": "Summarize {{topic}}"}),
    ]
    edges = [WorkflowEdge(source="in", target="a1")]
    return nodes, edges


class TestRunWorkflow:
    """run_workflow / run_request"""

    @pytest.mark.asyncio
    async def test_runs_and_records(self, service, store, simple_graph):
        nodes, edges = simple_graph

        outcome = await service.run_workflow(nodes, edges, {"topic": "billing"}, workflow_id="wf-1")

        assert outcome.success is True
        record = await store.get_run(outcome.execution_id)
        assert record.triggered_by == "api"
        assert record.workflow_id == "wf-1"
        assert service.active_executions() == []

    @pytest.mark.asyncio
    async def test_run_request(self, service, simple_graph):
        nodes, edges = simple_graph
        request = WorkflowRunRequest(nodes=nodes, edges=edges, input_data={"topic": "x"}, triggered_by="webhook")

        outcome = await service.run_request(request)

        record = await service.get_execution(outcome.execution_id)
        assert record.triggered_by == "webhook"


class TestQueries:
    """get_execution / list_executions / get_logs"""

    @pytest.mark.asyncio
    async def test_get_missing_execution(self, service):
        with pytest.raises(NotFoundError):
            await service.get_execution("exec_missing")

    @pytest.mark.asyncio
    async def test_list_by_status(self, service, simple_graph):
        nodes, edges = simple_graph
        outcome = await service.run_workflow(nodes, edges, {})

        completed = await service.list_executions(status="completed")
        failed = await service.list_executions(status="failed")

        assert [r.execution_id for r in completed] == [outcome.execution_id]
        assert failed == []

    @pytest.mark.asyncio
    async def test_list_rejects_unknown_status(self, service):
        with pytest.raises(ValidationError):
            await service.list_executions(status="exploded")

    @pytest.mark.asyncio
    async def test_get_logs(self, service, simple_graph):
        nodes, edges = simple_graph
        outcome = await service.run_workflow(nodes, edges, {})

        logs = await service.get_logs(outcome.execution_id)

        assert len(logs) == 4


class TestCancellation:
    """cancel_execution"""

    @pytest.mark.asyncio
    async def test_cancels_active_run(self, service, store, ai_client):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_completion(prompt, role):
            started.set()
            await release.wait()
            return "done"

        ai_client.complete = AsyncMock(side_effect=slow_completion)
        nodes = [
            WorkflowNode(id="a1", type="assistant", data={"prompt": "first"}),
            WorkflowNode(id="a2", type="assistant", data={"prompt": "second"}),
        ]
        edges = [WorkflowEdge(source="a1", target="a2")]

        run = asyncio.create_task(service.run_workflow(nodes, edges, {}))
        await started.wait()

        (execution_id,) = service.active_executions()
        response = await service.cancel_execution(execution_id)
        assert response == {"execution_id": execution_id, "status": "cancelling"}

        release.set()
        outcome = await run

        assert outcome.success is False
        assert outcome.error == "Execution cancelled"
        assert ai_client.complete.await_count == 1
        record = await store.get_run(execution_id)
        assert record.status == ExecutionStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancels_orphaned_record(self, service, store):
        await store.create_run(ExecutionRecord(execution_id="exec_orphan", status=ExecutionStatus.RUNNING))

        response = await service.cancel_execution("exec_orphan")

        assert response["status"] == "cancelled"
        record = await store.get_run("exec_orphan")
        assert record.status == ExecutionStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cannot_cancel_finished_run(self, service, simple_graph):
        nodes, edges = simple_graph
        outcome = await service.run_workflow(nodes, edges, {})

        with pytest.raises(ValidationError):
            await service.cancel_execution(outcome.execution_id)


def test_from_config_builds_file_store(temp_executions_dir):
    config = Config(storage_backend="file", executions_dir=str(temp_executions_dir), parallel_execution=True)

    service = WorkflowService.from_config(config)

    assert isinstance(service.store, FileExecutionStore)
    assert service.executor.parallel is True
    assert service.executor.ai_client is service.ai_client


def test_from_config_defaults_to_memory():
    service = WorkflowService.from_config(Config())

    assert isinstance(service.store, InMemoryExecutionStore)
