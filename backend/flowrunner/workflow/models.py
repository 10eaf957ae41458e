# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow Models

Pydantic models for the workflow engine: graph definition, per-type node
data, and the execution records the engine persists.
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import UnknownNodeTypeError


def utc_now() -> str:
    """ISO-8601 UTC timestamp used on every persisted record"""
    return datetime.now(timezone.utc).isoformat()


class NodeType(str, Enum):
    """
    Supported workflow node types.

        INPUT - Entry point, passes the run input through
        ASSISTANT - AI completion with a role preset
        CONDITION - Evaluates field/operator/value, no branch pruning
        OUTPUT - Collects results from the run
        CUSTOM - AI completion with the "custom" preset
    """
    INPUT = "input"
    ASSISTANT = "assistant"
    CONDITION = "condition"
    OUTPUT = "output"
    CUSTOM = "custom"


class ExecutionStatus(str, Enum):
    """Run-level status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED, ExecutionStatus.CANCELLED)


class NodeRunStatus(str, Enum):
    """Outcome of a single node"""
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class NodeLogStatus(str, Enum):
    """Status carried by a node log record"""
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


# ============================================================================
# Typed node data
# ============================================================================

class _NodeData(BaseModel):
    # The authoring UI stores positions, colors etc. next to the engine fields
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    label: Optional[str] = ""


class InputNodeData(_NodeData):
    """Input node - no engine fields beyond the label"""


class AssistantNodeData(_NodeData):
    """
    AI assistant node.

    Example:
        {
            "label": "Summarize",
            "assistantRole": "research",
            "prompt": "Summarize {{topic}} using {{node_1.output}}"
        }
    """
    assistant_role: Optional[str] = Field(default=None, alias="assistantRole")
    prompt: Optional[str] = None


class ConditionNodeData(_NodeData):
    """
    Condition node.

    Example:
        {"label": "Big deal?", "field": "amount", "operator": "greater_than", "value": 1000}
    """
    field: Optional[str] = None
    operator: Optional[str] = "equals"
    value: Any = None


class OutputNodeData(_NodeData):
    """Output node - optional list of fields to collect"""
    fields: Optional[List[Any]] = None


class CustomNodeData(_NodeData):
    """Custom node - AI call with the "custom" preset"""
    prompt: Optional[str] = None


NodeData = Union[InputNodeData, AssistantNodeData, ConditionNodeData, OutputNodeData, CustomNodeData]

NODE_DATA_CLASSES = {
    NodeType.INPUT: InputNodeData,
    NodeType.ASSISTANT: AssistantNodeData,
    NodeType.CONDITION: ConditionNodeData,
    NodeType.OUTPUT: OutputNodeData,
    NodeType.CUSTOM: CustomNodeData,
}


# ============================================================================
# Workflow Definition Models
# ============================================================================

class WorkflowNode(BaseModel):
    """Single node in a workflow"""
    model_config = ConfigDict(frozen=True)

    id: str
    type: str  # validated at dispatch so unknown types fail the node, not the request
    data: Dict[str, Any] = Field(default_factory=dict)

    def typed_data(self) -> NodeData:
        """
        Parse the data bag into the model for this node's type.

        Raises:
            UnknownNodeTypeError: If the type has no data model
        """
        try:
            node_type = NodeType(self.type)
        except ValueError:
            raise UnknownNodeTypeError(self.id, self.type)
        return NODE_DATA_CLASSES[node_type](**(self.data or {}))


class WorkflowEdge(BaseModel):
    """Connection between workflow nodes (source feeds target)"""
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    label: Optional[str] = None


class WorkflowDefinition(BaseModel):
    """Complete workflow definition as exported by the editor"""
    workflow_id: Optional[str] = None
    name: Optional[str] = None
    nodes: List[WorkflowNode]
    edges: List[WorkflowEdge] = Field(default_factory=list)


# ============================================================================
# Execution Models
# ============================================================================

class NodeExecutionResult(BaseModel):
    """Unit persisted per node"""
    node_id: str
    status: NodeRunStatus
    output: Any = None
    error: Optional[str] = None
    duration_ms: int = 0


class ExecutionRecord(BaseModel):
    """Run-level state as held by the execution store"""
    execution_id: str
    workflow_id: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.PENDING
    triggered_by: str = "manual"
    input_data: Any = None
    output_data: Any = None
    error_message: Optional[str] = None
    error_node_id: Optional[str] = None
    current_node_id: Optional[str] = None
    node_results: Dict[str, Any] = Field(default_factory=dict)
    node_runs: Dict[str, NodeExecutionResult] = Field(default_factory=dict)
    started_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)
    completed_at: Optional[str] = None
    duration_ms: Optional[int] = None


class NodeLogRecord(BaseModel):
    """Single node event (started / completed / failed)"""
    execution_id: str
    node_id: str
    node_type: str
    status: NodeLogStatus
    input_data: Any = None
    output_data: Any = None
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None
    timestamp: str = Field(default_factory=utc_now)


class ExecutionOutcome(BaseModel):
    """Structured result of execute() - returned on success and failure"""
    success: bool
    execution_id: str
    output_data: Any = None
    error: Optional[str] = None
    error_node_id: Optional[str] = None
    duration_ms: int = 0


class WorkflowRunRequest(BaseModel):
    """Request to execute a workflow graph"""
    workflow_id: Optional[str] = None
    nodes: List[WorkflowNode]
    edges: List[WorkflowEdge] = Field(default_factory=list)
    input_data: Dict[str, Any] = Field(default_factory=dict)
    triggered_by: str = "api"
