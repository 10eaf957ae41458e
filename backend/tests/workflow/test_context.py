# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for ExecutionContext
"""

import pytest

from flowrunner.workflow.context import ExecutionContext
from flowrunner.workflow.exceptions import WorkflowEngineError
from flowrunner.workflow.models import NodeExecutionResult, NodeRunStatus, WorkflowEdge


def make_context(edges=(), input_data=None):
    edges = [WorkflowEdge(source=s, target=t) for s, t in edges]
    return ExecutionContext("exec_1", input_data if input_data is not None else {"topic": "x"}, edges)


def test_result_map_seeded_with_input():
    context = make_context()

    assert context.results == {"input": {"topic": "x"}}
    assert context.input_data == {"topic": "x"}


def test_results_view_is_read_only():
    context = make_context()

    with pytest.raises(TypeError):
        context.results["a"] = 1


def test_no_parents_gets_run_input():
    assert make_context().merged_input("a") == {"topic": "x"}


def test_single_parent_passes_result_verbatim():
    context = make_context([("a", "b")])
    context.mark_completed("a", "plain text")

    assert context.merged_input("b") == "plain text"


def test_single_parent_without_result_is_empty():
    assert make_context([("a", "b")]).merged_input("b") == {}


def test_multiple_parents_merge_in_edge_order():
    context = make_context([("a", "c"), ("b", "c")])
    context.mark_completed("a", {"shared": "from a", "only_a": 1})
    context.mark_completed("b", {"shared": "from b", "only_b": 2})

    assert context.merged_input("c") == {"shared": "from b", "only_a": 1, "only_b": 2}


def test_multiple_parents_skip_non_mapping_results():
    context = make_context([("a", "c"), ("b", "c")])
    context.mark_completed("a", {"k": 1})
    context.mark_completed("b", "text")

    assert context.merged_input("c") == {"k": 1}


def test_results_written_once():
    context = make_context()
    context.mark_completed("a", 1)

    with pytest.raises(WorkflowEngineError):
        context.mark_completed("a", 2)
    assert context.completed_nodes == ["a"]
    assert context.current_node_id == "a"


def test_snapshot_is_a_copy():
    context = make_context()
    snapshot = context.snapshot()
    snapshot["a"] = 1

    assert "a" not in context.results


def test_mark_skipped_keeps_recorded_runs():
    context = make_context()
    context.record_node_run(NodeExecutionResult(node_id="a", status=NodeRunStatus.COMPLETED, output=1))
    context.record_node_run(NodeExecutionResult(node_id="b", status=NodeRunStatus.FAILED, error="boom"))

    context.mark_skipped(["a", "b", "c"])

    runs = context.node_run_snapshot()
    assert [runs[n].status for n in ("a", "b", "c")] == [
        NodeRunStatus.COMPLETED, NodeRunStatus.FAILED, NodeRunStatus.SKIPPED,
    ]
