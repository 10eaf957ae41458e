# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared fixtures for flowrunner tests
"""

import pytest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import AsyncMock

from flowrunner.storage.execution_store import InMemoryExecutionStore
from flowrunner.workflow.executor import WorkflowExecutor


@pytest.fixture
def ai_client():
    """Mock AI completion client"""
    client = AsyncMock()
    client.complete = AsyncMock(return_value="AI response")
    return client


@pytest.fixture
def store():
    """In-memory execution store"""
    return InMemoryExecutionStore()


@pytest.fixture
def executor(store, ai_client):
    """Sequential executor wired to the in-memory store and mock client"""
    return WorkflowExecutor(store, ai_client=ai_client)


@pytest.fixture
def temp_executions_dir():
    """Create temporary directory for file-backed executions"""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
