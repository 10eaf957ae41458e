# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
FastAPI application - HTTP trigger for workflow runs
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from flowrunner import __version__
from flowrunner.api import executions, workflows
from flowrunner.core.config import get_config
from flowrunner.core.errors import FlowRunnerError, sanitize_error_for_user
from flowrunner.core.logging import get_service_logger, log_event
from flowrunner.services.workflow_service import WorkflowService

logger = get_service_logger("api")


def create_app(service: Optional[WorkflowService] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        service: Pre-built WorkflowService; built from configuration at
            startup when omitted
    """
    app = FastAPI(
        title="flowrunner",
        description="DAG workflow execution engine",
        version=__version__,
    )
    app.include_router(workflows.router)
    app.include_router(executions.router)

    if service is not None:
        app.state.workflow_service = service

    @app.exception_handler(FlowRunnerError)
    async def handle_flowrunner_error(request: Request, exc: FlowRunnerError):
        log_event(logger, "request_failed", level="ERROR" if exc.status_code >= 500 else "WARNING",
                  path=request.url.path, method=request.method, status_code=exc.status_code,
                  error=exc.__class__.__name__, detail=exc.message)
        payload = exc.to_dict()
        if exc.status_code >= 500:
            payload["message"] = sanitize_error_for_user(exc, include_type=False)
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.on_event("startup")
    async def startup():
        if getattr(app.state, "workflow_service", None) is None:
            app.state.workflow_service = WorkflowService.from_config(get_config())
        logger.info("flowrunner API started")

    @app.on_event("shutdown")
    async def shutdown():
        await app.state.workflow_service.close()
        logger.info("flowrunner API stopped")

    @app.get("/health")
    async def health():
        """Health check"""
        return {"status": "healthy", "service": "flowrunner"}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
