# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Execution Context

Tracks execution state for a single workflow run. The context is the only
writer of the run's ResultMap; everything else gets a read-only view.
"""

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .exceptions import WorkflowEngineError
from .models import NodeExecutionResult, NodeRunStatus, WorkflowEdge

INPUT_KEY = "input"


class ExecutionContext:
    """
    Execution context for a workflow run.

    Tracks:
    - ResultMap (node_id -> result, seeded with the run input)
    - Completed nodes, in completion order
    - Per-node execution results (completed, failed, skipped)
    """

    def __init__(self, execution_id: str, input_data: Any, edges: Sequence[WorkflowEdge], workflow_id: Optional[str] = None):
        self.execution_id = execution_id
        self.workflow_id = workflow_id
        self.current_node_id: Optional[str] = None

        self._edges = list(edges)
        self._results: Dict[str, Any] = {INPUT_KEY: input_data}
        self.completed_nodes: List[str] = []
        self._node_runs: Dict[str, NodeExecutionResult] = {}

    @property
    def input_data(self) -> Any:
        return self._results[INPUT_KEY]

    @property
    def results(self) -> Mapping[str, Any]:
        """Read-only view of the ResultMap"""
        return MappingProxyType(self._results)

    def mark_completed(self, node_id: str, result: Any) -> None:
        """Record a node result. Node entries are written once."""
        if node_id in self.completed_nodes:
            raise WorkflowEngineError(f"Result for node '{node_id}' already recorded", execution_id=self.execution_id)
        self._results[node_id] = result
        self.completed_nodes.append(node_id)
        self.current_node_id = node_id

    def get_result(self, node_id: str) -> Any:
        return self._results.get(node_id)

    def merged_input(self, node_id: str) -> Any:
        """
        Compute the input for a node from its parents.

        No parents: the run input. One parent: that parent's result as-is.
        Several parents: shallow merge in edge order, later parents
        overwrite earlier ones on overlapping keys.
        """
        parent_ids = [edge.source for edge in self._edges if edge.target == node_id]

        if not parent_ids:
            return self._results.get(INPUT_KEY) or {}

        if len(parent_ids) == 1:
            return self._results.get(parent_ids[0]) or {}

        merged: Dict[str, Any] = {}
        for parent_id in parent_ids:
            parent_result = self._results.get(parent_id)
            if isinstance(parent_result, Mapping):
                merged.update(parent_result)
        return merged

    def snapshot(self) -> Dict[str, Any]:
        """Copy of the ResultMap for persistence"""
        return dict(self._results)

    def record_node_run(self, result: NodeExecutionResult) -> None:
        self._node_runs[result.node_id] = result

    def mark_skipped(self, node_ids: Sequence[str]) -> None:
        """Record every node that never ran as skipped"""
        for node_id in node_ids:
            if node_id not in self._node_runs:
                self._node_runs[node_id] = NodeExecutionResult(node_id=node_id, status=NodeRunStatus.SKIPPED)

    def node_run_snapshot(self) -> Dict[str, NodeExecutionResult]:
        return dict(self._node_runs)
