# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Service - runs workflow graphs and exposes their history.

Single responsibility: execution orchestration for triggers (HTTP, CLI).
Keeps a registry of in-flight runs so they can be cancelled.
"""

from typing import Any, Dict, List, Optional, Sequence

from flowrunner.core.config import Config
from flowrunner.core.errors import ValidationError
from flowrunner.core.logging import get_service_logger
from flowrunner.llm.client import AICompletionClient, OpenAICompletionClient
from flowrunner.storage.execution_store import ExecutionStore, create_execution_store
from flowrunner.workflow.executor import CancellationToken, WorkflowExecutor, new_execution_id
from flowrunner.workflow.models import (
    ExecutionOutcome,
    ExecutionRecord,
    ExecutionStatus,
    NodeLogRecord,
    WorkflowEdge,
    WorkflowNode,
    WorkflowRunRequest,
)

logger = get_service_logger("workflow")


class WorkflowService:
    """
    Executes workflows and serves execution records.

    Responsibilities:
    - Run a workflow graph through the WorkflowExecutor
    - Track active runs and cancel them on request
    - Read execution records and node logs from the store
    """

    def __init__(self, executor: WorkflowExecutor, store: ExecutionStore, ai_client: Optional[AICompletionClient] = None):
        """
        Initialize WorkflowService.

        Args:
            executor: WorkflowExecutor used for every run
            store: ExecutionStore the executor writes to
            ai_client: Completion client owned by this service, closed on shutdown
        """
        self.executor = executor
        self.store = store
        self.ai_client = ai_client
        self._active_runs: Dict[str, CancellationToken] = {}
        logger.info(f"WorkflowService initialized with store: {type(store).__name__}")

    @classmethod
    def from_config(cls, config: Config, store: Optional[ExecutionStore] = None) -> "WorkflowService":
        """Wire store, AI client and executor from configuration"""
        store = store or create_execution_store(config.storage_backend, config.executions_dir)
        ai_client = OpenAICompletionClient.from_config(config)
        executor = WorkflowExecutor.from_config(config, store, ai_client)
        return cls(executor, store, ai_client=ai_client)

    async def run_workflow(
        self,
        nodes: Sequence[WorkflowNode],
        edges: Sequence[WorkflowEdge],
        input_data: Optional[Dict[str, Any]] = None,
        workflow_id: Optional[str] = None,
        triggered_by: str = "api",
    ) -> ExecutionOutcome:
        """
        Execute a workflow graph and wait for it to finish.

        Returns:
            ExecutionOutcome; node failures are reported there, not raised
        """
        execution_id = new_execution_id()
        token = CancellationToken()
        self._active_runs[execution_id] = token

        logger.info(f"Running workflow {workflow_id or '<inline>'} as {execution_id} (trigger: {triggered_by})")
        try:
            return await self.executor.execute(
                nodes,
                edges,
                input_data=input_data or {},
                workflow_id=workflow_id,
                triggered_by=triggered_by,
                execution_id=execution_id,
                cancel_token=token,
            )
        finally:
            self._active_runs.pop(execution_id, None)

    async def run_request(self, request: WorkflowRunRequest) -> ExecutionOutcome:
        return await self.run_workflow(
            request.nodes,
            request.edges,
            input_data=request.input_data,
            workflow_id=request.workflow_id,
            triggered_by=request.triggered_by,
        )

    async def get_execution(self, execution_id: str) -> ExecutionRecord:
        """
        Raises:
            NotFoundError: If no such execution exists
        """
        return await self.store.get_run(execution_id)

    async def list_executions(
        self,
        status: Optional[str] = None,
        workflow_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ExecutionRecord]:
        """
        List executions, newest first.

        Raises:
            ValidationError: If status or paging arguments are invalid
        """
        status_filter = None
        if status is not None:
            try:
                status_filter = ExecutionStatus(status)
            except ValueError:
                valid = ", ".join(s.value for s in ExecutionStatus)
                raise ValidationError(f"Invalid status '{status}'. Must be one of: {valid}", field="status")
        if limit < 1 or offset < 0:
            raise ValidationError("limit must be positive and offset non-negative", field="limit")

        return await self.store.list_runs(status=status_filter, workflow_id=workflow_id, limit=limit, offset=offset)

    async def get_logs(self, execution_id: str) -> List[NodeLogRecord]:
        return await self.store.get_node_logs(execution_id)

    async def cancel_execution(self, execution_id: str) -> Dict[str, Any]:
        """
        Cancel a pending or running execution.

        An active run stops before its next node. A record with no active
        run in this process (e.g. left over from a restart) is marked
        cancelled directly.

        Raises:
            NotFoundError: If no such execution exists
            ValidationError: If the execution already finished
        """
        record = await self.store.get_run(execution_id)
        if record.status.is_terminal:
            raise ValidationError(
                f"Execution {execution_id} is already {record.status.value}",
                field="execution_id",
            )

        token = self._active_runs.get(execution_id)
        if token is not None:
            token.cancel()
            logger.info(f"Cancellation requested for active execution {execution_id}")
            return {"execution_id": execution_id, "status": "cancelling"}

        await self.store.update_run_status(
            execution_id,
            ExecutionStatus.CANCELLED,
            error_message="Execution cancelled",
        )
        logger.info(f"Marked orphaned execution {execution_id} as cancelled")
        return {"execution_id": execution_id, "status": ExecutionStatus.CANCELLED.value}

    def active_executions(self) -> List[str]:
        return list(self._active_runs)

    async def close(self) -> None:
        """Cancel in-flight runs and release the AI client"""
        for token in self._active_runs.values():
            token.cancel()
        close = getattr(self.ai_client, "close", None)
        if close is not None:
            await close()
