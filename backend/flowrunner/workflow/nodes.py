# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Node Executors - one strategy per node type.

Each executor gets a NodeRunContext holding the node, its typed data, the
merged parent input and a read-only view of the ResultMap, and returns the
value stored as the node's result.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from flowrunner.llm.client import DEFAULT_ROLE, AICompletionClient
from .conditions import evaluate_condition
from .exceptions import AIProviderError, UnknownNodeTypeError
from .models import (
    AssistantNodeData,
    ConditionNodeData,
    CustomNodeData,
    NodeData,
    NodeType,
    OutputNodeData,
    WorkflowNode,
)
from .templates import resolve


@dataclass(frozen=True)
class NodeRunContext:
    """Everything an executor may read while running one node"""
    node: WorkflowNode
    data: NodeData
    input: Any  # merged parent input
    run_input: Any
    results: Mapping[str, Any]
    ai_client: Optional[AICompletionClient] = None
    strict_templates: bool = False

    def render(self, template: str) -> str:
        return resolve(template, self.run_input or {}, self.results, strict=self.strict_templates)


class NodeExecutor:
    """Base class for node executors"""
    node_type: NodeType

    async def execute(self, ctx: NodeRunContext) -> Any:
        raise NotImplementedError


class InputNodeExecutor(NodeExecutor):
    """Pass the run input through unchanged"""
    node_type = NodeType.INPUT

    async def execute(self, ctx: NodeRunContext) -> Any:
        return ctx.run_input if ctx.run_input is not None else {}


def build_prompt_from_input(input_data: Any, label: Optional[str]) -> str:
    """Default assistant prompt when the node has none"""
    return (
        f"Task: {label or ''}\n\n"
        f"Input Data:\n{json.dumps(input_data, indent=2, default=str)}\n\n"
        f"Please process this data according to the task."
    )


async def _complete(ctx: NodeRunContext, prompt: str, role: str, failure_prefix: str) -> str:
    if ctx.ai_client is None:
        raise AIProviderError(f"{failure_prefix}AI completion client not configured")
    try:
        return await ctx.ai_client.complete(prompt, role)
    except Exception as e:
        # Surface the provider message verbatim behind the node's prefix
        raise AIProviderError(f"{failure_prefix}{e}") from e


class AssistantNodeExecutor(NodeExecutor):
    """AI processing with a role-selected system prompt"""
    node_type = NodeType.ASSISTANT

    async def execute(self, ctx: NodeRunContext) -> Dict[str, Any]:
        data: AssistantNodeData = ctx.data
        role = data.assistant_role or DEFAULT_ROLE

        prompt = data.prompt or build_prompt_from_input(ctx.input, data.label)
        prompt = ctx.render(prompt)

        output = await _complete(ctx, prompt, role, "AI processing failed: ")
        return {
            "nodeId": ctx.node.id,
            "type": NodeType.ASSISTANT.value,
            "role": role,
            "input": ctx.input,
            "output": output,
        }


class ConditionNodeExecutor(NodeExecutor):
    """
    Evaluate field/operator/value against the merged input.

    Downstream nodes run regardless of the outcome; the boolean is recorded
    for callers that want to act on it.
    """
    node_type = NodeType.CONDITION

    async def execute(self, ctx: NodeRunContext) -> Dict[str, Any]:
        data: ConditionNodeData = ctx.data
        operator_name = data.operator or "equals"

        result = evaluate_condition(ctx.input, data.field, operator_name, data.value)
        return {
            "nodeId": ctx.node.id,
            "type": NodeType.CONDITION.value,
            "condition": result,
            "field": data.field,
            "operator": operator_name,
            "value": data.value,
        }


class OutputNodeExecutor(NodeExecutor):
    """Collect selected fields, or every result, from the run"""
    node_type = NodeType.OUTPUT

    async def execute(self, ctx: NodeRunContext) -> Dict[str, Any]:
        data: OutputNodeData = ctx.data
        fields = data.fields or []

        if not fields:
            return dict(ctx.results)

        outputs: Dict[str, Any] = {}
        for field in fields:
            key = field if isinstance(field, str) else str(field)
            for result in ctx.results.values():
                found = _output_field(result, key)
                if found:
                    outputs[key] = found
                    break
        return outputs


def _output_field(result: Any, field: str) -> Any:
    if not isinstance(result, Mapping):
        return None
    output = result.get("output")
    if not isinstance(output, Mapping):
        return None
    return output.get(field)


class CustomNodeExecutor(NodeExecutor):
    """AI processing with the fixed "custom" preset"""
    node_type = NodeType.CUSTOM

    async def execute(self, ctx: NodeRunContext) -> Dict[str, Any]:
        data: CustomNodeData = ctx.data
        prompt = data.prompt or (
            f"Process the following data: {json.dumps(ctx.input, separators=(',', ':'), default=str)}"
        )
        prompt = ctx.render(prompt)

        output = await _complete(ctx, prompt, "custom", "Custom node execution failed: ")
        return {
            "nodeId": ctx.node.id,
            "type": NodeType.CUSTOM.value,
            "input": ctx.input,
            "output": output,
        }


NODE_EXECUTORS: Dict[NodeType, NodeExecutor] = {
    executor.node_type: executor
    for executor in (
        InputNodeExecutor(),
        AssistantNodeExecutor(),
        ConditionNodeExecutor(),
        OutputNodeExecutor(),
        CustomNodeExecutor(),
    )
}


def get_executor(node: WorkflowNode) -> NodeExecutor:
    """
    Look up the executor for a node.

    Raises:
        UnknownNodeTypeError: If no executor handles the node's type
    """
    try:
        return NODE_EXECUTORS[NodeType(node.type)]
    except ValueError:
        raise UnknownNodeTypeError(node.id, node.type)
