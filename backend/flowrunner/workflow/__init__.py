# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Workflow engine: ordering, templates, node executors and the run coordinator.

Import from the submodules directly (flowrunner.workflow.executor etc.).
"""
