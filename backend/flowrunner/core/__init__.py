# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Core utilities and shared modules for flowrunner.

This package contains:
- config: Configuration management
- errors: Custom exceptions
- logging: Structured logging
"""

from flowrunner.core.config import get_config, Config
from flowrunner.core.errors import FlowRunnerError, NotFoundError, ValidationError
from flowrunner.core.logging import get_logger

__all__ = [
    "get_config",
    "Config",
    "FlowRunnerError",
    "NotFoundError",
    "ValidationError",
    "get_logger",
]
