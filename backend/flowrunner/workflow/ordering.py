# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution ordering.

Depth-first topological sort that visits parents before children, starting
from input nodes and then sweeping every remaining node in list order so
disconnected components are still scheduled.
"""

from typing import Dict, List, Sequence

from .exceptions import CycleError
from .models import NodeType, WorkflowEdge, WorkflowNode


def build_parent_map(edges: Sequence[WorkflowEdge]) -> Dict[str, List[str]]:
    """Map node_id -> parent node_ids, in edge order"""
    parents: Dict[str, List[str]] = {}
    for edge in edges:
        parents.setdefault(edge.target, []).append(edge.source)
    return parents


def execution_order(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> List[str]:
    """
    Get topological execution order (dependency-first).

    Raises:
        CycleError: If a node is reached again while its own parents are
            still being visited
    """
    parents = build_parent_map(edges)

    order: List[str] = []
    visited = set()
    visiting = set()

    def visit(node_id: str):
        if node_id in visited:
            return
        if node_id in visiting:
            raise CycleError(node_id)

        visiting.add(node_id)
        for parent_id in parents.get(node_id, []):
            visit(parent_id)
        visiting.discard(node_id)

        visited.add(node_id)
        order.append(node_id)

    for node in nodes:
        if node.type == NodeType.INPUT.value:
            visit(node.id)

    for node in nodes:
        if node.id not in visited:
            visit(node.id)

    return order


def execution_waves(nodes: Sequence[WorkflowNode], edges: Sequence[WorkflowEdge]) -> List[List[str]]:
    """
    Group the execution order into waves for opt-in parallel execution.

    A node lands in the wave after the deepest of its parents, so every
    wave only depends on earlier waves. Within a wave nodes keep their
    relative execution_order position.
    """
    order = execution_order(nodes, edges)
    parents = build_parent_map(edges)

    depth: Dict[str, int] = {}
    for node_id in order:
        parent_depths = [depth[p] for p in parents.get(node_id, []) if p in depth]
        depth[node_id] = max(parent_depths) + 1 if parent_depths else 0

    waves: List[List[str]] = []
    for node_id in order:
        level = depth[node_id]
        while len(waves) <= level:
            waves.append([])
        waves[level].append(node_id)

    return waves
