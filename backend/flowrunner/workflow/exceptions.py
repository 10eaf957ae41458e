# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Engine Exceptions

Every error raised inside a run derives from WorkflowEngineError. The
coordinator turns them into a failed ExecutionOutcome; none of them cross
the public execute() boundary.
"""

from typing import Optional

from flowrunner.core.errors import ExecutionError


class WorkflowEngineError(ExecutionError):
    """Base exception for the workflow engine"""
    pass


class CycleError(WorkflowEngineError):
    """Node graph is not a DAG"""
    def __init__(self, node_id: Optional[str] = None):
        self.node_id = node_id
        super().__init__("Circular dependency detected in workflow")


class UnknownNodeTypeError(WorkflowEngineError):
    """No executor registered for the node's type"""
    def __init__(self, node_id: str, node_type: str):
        self.node_id = node_id
        self.node_type = node_type
        super().__init__(f"Unknown node type: {node_type}")


class AIProviderError(WorkflowEngineError):
    """AI completion call failed"""
    pass


class NodeExecutionError(WorkflowEngineError):
    """A node's executor failed; carries the failing node for the run record"""
    def __init__(self, node_id: str, node_type: str, message: str):
        self.node_id = node_id
        self.node_type = node_type
        super().__init__(message)


class TemplateResolutionMiss(WorkflowEngineError):
    """Template reference could not be resolved (strict mode only)"""
    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Unresolved template reference: {{{{{reference}}}}}")


class ExecutionCancelled(WorkflowEngineError):
    """Run was cancelled before the next node was dispatched"""
    def __init__(self, execution_id: str, next_node_id: Optional[str] = None):
        self.next_node_id = next_node_id
        super().__init__("Execution cancelled", execution_id=execution_id)


class ExecutionStateError(WorkflowEngineError):
    """Attempt to mutate an execution record that is already terminal"""
    pass
