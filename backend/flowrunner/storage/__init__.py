# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution persistence back-ends
"""

from flowrunner.storage.execution_store import (
    ExecutionStore,
    FileExecutionStore,
    InMemoryExecutionStore,
    create_execution_store,
)

__all__ = [
    "ExecutionStore",
    "FileExecutionStore",
    "InMemoryExecutionStore",
    "create_execution_store",
]
