# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Executor (run coordinator)

Drives one run: orders the graph, executes nodes one at a time in
dependency order, records every transition in the execution store and
stops at the first node failure. Parallel execution of independent
branches is available as an opt-in and changes log ordering.
"""

import asyncio
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from flowrunner.core.config import Config
from flowrunner.core.logging import get_service_logger, log_event
from flowrunner.llm.client import AICompletionClient
from flowrunner.storage.execution_store import ExecutionStore
from .context import ExecutionContext
from .exceptions import ExecutionCancelled, NodeExecutionError
from .models import (
    ExecutionOutcome,
    ExecutionRecord,
    ExecutionStatus,
    NodeExecutionResult,
    NodeLogStatus,
    NodeRunStatus,
    NodeType,
    WorkflowEdge,
    WorkflowNode,
)
from .nodes import NodeRunContext, get_executor
from .ordering import execution_order, execution_waves

logger = get_service_logger("executor")

NodeLike = Union[WorkflowNode, Mapping[str, Any]]
EdgeLike = Union[WorkflowEdge, Mapping[str, Any]]


def new_execution_id() -> str:
    return f"exec_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class CancellationToken:
    """Cooperative cancellation flag, checked before every node dispatch"""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


class WorkflowExecutor:
    """
    DAG workflow executor, sequential unless parallel=True.

    One executor can serve many runs concurrently: all run state lives in
    the per-run ExecutionContext.
    """

    def __init__(
        self,
        store: ExecutionStore,
        ai_client: Optional[AICompletionClient] = None,
        parallel: bool = False,
        strict_templates: bool = False,
    ):
        self.store = store
        self.ai_client = ai_client
        self.parallel = parallel
        self.strict_templates = strict_templates

    @classmethod
    def from_config(cls, config: Config, store: ExecutionStore, ai_client: Optional[AICompletionClient]) -> "WorkflowExecutor":
        return cls(
            store,
            ai_client=ai_client,
            parallel=config.parallel_execution,
            strict_templates=config.strict_templates,
        )

    async def execute(
        self,
        nodes: Sequence[NodeLike],
        edges: Sequence[EdgeLike],
        input_data: Any = None,
        workflow_id: Optional[str] = None,
        triggered_by: str = "manual",
        execution_id: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExecutionOutcome:
        """
        Execute a workflow graph.

        Never raises: failures come back as ExecutionOutcome(success=False)
        with the error message and the partial duration.
        """
        started = time.monotonic()
        execution_id = execution_id or new_execution_id()
        input_data = {} if input_data is None else input_data

        context: Optional[ExecutionContext] = None
        try:
            nodes = [n if isinstance(n, WorkflowNode) else WorkflowNode(**n) for n in nodes]
            edges = [e if isinstance(e, WorkflowEdge) else WorkflowEdge(**e) for e in edges]

            context = ExecutionContext(execution_id, input_data, edges, workflow_id=workflow_id)
            await self.store.create_run(ExecutionRecord(
                execution_id=execution_id,
                workflow_id=workflow_id,
                status=ExecutionStatus.PENDING,
                triggered_by=triggered_by,
                input_data=input_data,
            ))
            await self.store.update_run_status(execution_id, ExecutionStatus.RUNNING)
            log_event(logger, "run_started", execution_id=execution_id, workflow_id=workflow_id,
                      node_count=len(nodes), trigger=triggered_by)

            if self.parallel:
                await self._run_waves(nodes, edges, context, cancel_token)
            else:
                await self._run_sequential(nodes, edges, context, cancel_token)

            output_data = self._collect_output(nodes, context)
            duration_ms = _elapsed_ms(started)
            await self.store.update_run_status(
                execution_id,
                ExecutionStatus.COMPLETED,
                output_data=output_data,
                node_results=context.snapshot(),
                duration_ms=duration_ms,
                node_runs=context.node_run_snapshot(),
            )
            log_event(logger, "run_finished", execution_id=execution_id, status="completed", duration_ms=duration_ms)
            return ExecutionOutcome(
                success=True,
                execution_id=execution_id,
                output_data=output_data,
                duration_ms=duration_ms,
            )

        except ExecutionCancelled as e:
            duration_ms = _elapsed_ms(started)
            if context is not None:
                context.mark_skipped([node.id for node in nodes])
            await self._persist_terminal(execution_id, ExecutionStatus.CANCELLED, str(e), None, context, duration_ms)
            return ExecutionOutcome(success=False, execution_id=execution_id, error=str(e), duration_ms=duration_ms)

        except Exception as e:
            duration_ms = _elapsed_ms(started)
            error_node_id = e.node_id if isinstance(e, NodeExecutionError) else None
            if context is not None:
                context.mark_skipped([node.id for node in nodes])
            await self._persist_terminal(execution_id, ExecutionStatus.FAILED, str(e), error_node_id, context, duration_ms)
            return ExecutionOutcome(
                success=False,
                execution_id=execution_id,
                error=str(e),
                error_node_id=error_node_id,
                duration_ms=duration_ms,
            )

    # ========================================================================
    # Scheduling
    # ========================================================================

    async def _run_sequential(
        self,
        nodes: List[WorkflowNode],
        edges: List[WorkflowEdge],
        context: ExecutionContext,
        cancel_token: Optional[CancellationToken],
    ) -> None:
        node_index = {node.id: node for node in nodes}
        order = execution_order(nodes, edges)
        log_event(logger, "execution_order", level="DEBUG", execution_id=context.execution_id, order=order)

        for node_id in order:
            node = node_index.get(node_id)
            if node is None:
                # Edge source that was never declared as a node
                continue
            self._check_cancelled(cancel_token, context, node_id)
            await self._run_node(node, context)

    async def _run_waves(
        self,
        nodes: List[WorkflowNode],
        edges: List[WorkflowEdge],
        context: ExecutionContext,
        cancel_token: Optional[CancellationToken],
    ) -> None:
        node_index = {node.id: node for node in nodes}
        waves = execution_waves(nodes, edges)

        for wave in waves:
            wave_nodes = [node_index[node_id] for node_id in wave if node_id in node_index]
            if not wave_nodes:
                continue
            self._check_cancelled(cancel_token, context, wave_nodes[0].id)

            results = await asyncio.gather(
                *(self._run_node(node, context) for node in wave_nodes),
                return_exceptions=True,
            )
            # First failure in wave order fails the run
            for result in results:
                if isinstance(result, BaseException):
                    raise result

    def _check_cancelled(self, cancel_token: Optional[CancellationToken], context: ExecutionContext, next_node_id: str) -> None:
        if cancel_token is not None and cancel_token.is_cancelled:
            log_event(logger, "run_cancelled", level="WARNING",
                      execution_id=context.execution_id, next_node_id=next_node_id)
            raise ExecutionCancelled(context.execution_id, next_node_id)

    # ========================================================================
    # Node execution
    # ========================================================================

    async def _run_node(self, node: WorkflowNode, context: ExecutionContext) -> None:
        """
        Run one node and record its NodeExecutionResult, completed or failed.

        Raises:
            NodeExecutionError: With the executor's message, after the
                failure has been logged
        """
        execution_id = context.execution_id
        merged_input = context.merged_input(node.id)

        await self.store.log_node_event(execution_id, node.id, node.type, NodeLogStatus.STARTED, payload=merged_input)
        started = time.monotonic()

        try:
            executor = get_executor(node)
            result = await executor.execute(NodeRunContext(
                node=node,
                data=node.typed_data(),
                input=merged_input,
                run_input=context.input_data,
                results=context.results,
                ai_client=self.ai_client,
                strict_templates=self.strict_templates,
            ))
        except Exception as e:
            duration_ms = _elapsed_ms(started)
            context.record_node_run(NodeExecutionResult(
                node_id=node.id,
                status=NodeRunStatus.FAILED,
                error=str(e),
                duration_ms=duration_ms,
            ))
            await self.store.log_node_event(
                execution_id, node.id, node.type, NodeLogStatus.FAILED,
                payload=str(e), duration_ms=duration_ms,
            )
            log_event(logger, "node_failed", level="ERROR", execution_id=execution_id,
                      node_id=node.id, node_type=node.type, error=str(e), duration_ms=duration_ms)
            raise NodeExecutionError(node.id, node.type, str(e)) from e

        duration_ms = _elapsed_ms(started)
        context.mark_completed(node.id, result)
        context.record_node_run(NodeExecutionResult(
            node_id=node.id,
            status=NodeRunStatus.COMPLETED,
            output=result,
            duration_ms=duration_ms,
        ))

        await self.store.log_node_event(
            execution_id, node.id, node.type, NodeLogStatus.COMPLETED,
            payload=result, duration_ms=duration_ms,
        )
        await self.store.update_run_progress(execution_id, node.id, context.snapshot(), context.node_run_snapshot())
        log_event(logger, "node_completed", execution_id=execution_id,
                  node_id=node.id, node_type=node.type, duration_ms=duration_ms)

    def _collect_output(self, nodes: List[WorkflowNode], context: ExecutionContext) -> Any:
        """First output node's result, or the whole ResultMap"""
        output_node = next((n for n in nodes if n.type == NodeType.OUTPUT.value), None)
        if output_node is not None:
            return context.get_result(output_node.id)
        return context.snapshot()

    async def _persist_terminal(
        self,
        execution_id: str,
        status: ExecutionStatus,
        error_message: str,
        error_node_id: Optional[str],
        context: Optional[ExecutionContext],
        duration_ms: int,
    ) -> None:
        log_event(logger, "run_finished", level="ERROR" if status == ExecutionStatus.FAILED else "WARNING",
                  execution_id=execution_id, status=status.value, error=error_message,
                  error_node_id=error_node_id, duration_ms=duration_ms)
        snapshot: Dict[str, Any] = context.snapshot() if context is not None else {}
        node_runs = context.node_run_snapshot() if context is not None else None
        try:
            await self.store.update_run_status(
                execution_id,
                status,
                error_message=error_message,
                error_node_id=error_node_id,
                node_results=snapshot,
                duration_ms=duration_ms,
                node_runs=node_runs,
            )
        except Exception as e:
            logger.error(f"Failed to persist {status.value} status for {execution_id}: {e}")
