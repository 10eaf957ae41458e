# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow API Routes

Handles workflow execution. The request carries the whole graph; the
response is the run outcome, including failures.
"""

from fastapi import APIRouter, Depends

from flowrunner.core.dependencies import get_workflow_service
from flowrunner.core.errors import ValidationError
from flowrunner.services.workflow_service import WorkflowService
from flowrunner.workflow.models import ExecutionOutcome, WorkflowRunRequest

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.post("/execute", response_model=ExecutionOutcome)
async def execute_workflow(
    request: WorkflowRunRequest,
    service: WorkflowService = Depends(get_workflow_service),
) -> ExecutionOutcome:
    """Execute a workflow graph (non-streaming)"""
    if not request.nodes:
        raise ValidationError("Workflow must contain at least one node", field="nodes")
    return await service.run_request(request)
