# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution API Routes

Execution history, node logs and cancellation.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from flowrunner.core.dependencies import get_workflow_service
from flowrunner.services.workflow_service import WorkflowService
from flowrunner.workflow.models import ExecutionRecord, NodeLogRecord

router = APIRouter(prefix="/executions", tags=["executions"])


@router.get("", response_model=List[ExecutionRecord])
async def list_executions(
    status: Optional[str] = None,
    workflow_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: WorkflowService = Depends(get_workflow_service),
) -> List[ExecutionRecord]:
    """List executions, newest first"""
    return await service.list_executions(status=status, workflow_id=workflow_id, limit=limit, offset=offset)


@router.get("/{execution_id}", response_model=ExecutionRecord)
async def get_execution(
    execution_id: str,
    service: WorkflowService = Depends(get_workflow_service),
) -> ExecutionRecord:
    """Get one execution record"""
    return await service.get_execution(execution_id)


@router.get("/{execution_id}/logs", response_model=List[NodeLogRecord])
async def get_execution_logs(
    execution_id: str,
    service: WorkflowService = Depends(get_workflow_service),
) -> List[NodeLogRecord]:
    """Node started/completed/failed events for an execution"""
    return await service.get_logs(execution_id)


@router.post("/{execution_id}/cancel")
async def cancel_execution(
    execution_id: str,
    service: WorkflowService = Depends(get_workflow_service),
) -> Dict[str, Any]:
    """Cancel a pending or running execution"""
    return await service.cancel_execution(execution_id)
