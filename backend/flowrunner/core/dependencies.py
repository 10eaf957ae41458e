# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency injection for the flowrunner API.

Provides FastAPI dependencies for services.
"""

from fastapi import Request


def get_workflow_service(request: Request):
    """Get the WorkflowService created at startup"""
    # Shared instance so cancellation sees every active run
    return request.app.state.workflow_service
