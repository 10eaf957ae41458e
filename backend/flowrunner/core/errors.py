# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Custom exceptions for flowrunner.

All exceptions inherit from FlowRunnerError for consistent error handling.
"""

from typing import Optional


class FlowRunnerError(Exception):
    """Base exception for all flowrunner errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        """
        Initialize flowrunner error.

        Args:
            message: Human-readable error message
            status_code: HTTP status code
            details: Additional error details
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for API response."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details
        }


class NotFoundError(FlowRunnerError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str, details: Optional[dict] = None):
        """
        Initialize not found error.

        Args:
            resource: Type of resource (e.g., "Execution")
            identifier: Resource identifier
            details: Additional error details
        """
        message = f"{resource} not found: {identifier}"
        super().__init__(message, status_code=404, details=details)
        self.resource = resource
        self.identifier = identifier


class ValidationError(FlowRunnerError):
    """Validation failed. The offending field, if known, is reported in details."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        details = dict(details or {})
        if field is not None:
            details.setdefault("field", field)
        super().__init__(message, status_code=400, details=details)
        self.field = field


class ConfigurationError(FlowRunnerError):
    """Configuration error."""

    def __init__(self, message: str, config_file: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=500, details=details)
        self.config_file = config_file


class ExecutionError(FlowRunnerError):
    """Execution error."""

    def __init__(self, message: str, execution_id: Optional[str] = None, details: Optional[dict] = None):
        """
        Initialize execution error.

        Args:
            message: Execution error message
            execution_id: Execution identifier
            details: Additional error details
        """
        super().__init__(message, status_code=500, details=details)
        self.execution_id = execution_id


# Error Message Utilities

def sanitize_error_for_user(error: Exception, include_type: bool = True) -> str:
    """
    Sanitize error messages for user display.
    Removes stack traces and long payloads.

    Args:
        error: The exception to sanitize
        include_type: Whether to include exception type

    Returns:
        User-friendly error message without stack trace
    """
    error_msg = str(error).strip()

    # Limit message length
    if len(error_msg) > 500:
        error_msg = error_msg[:500] + "..."

    if include_type:
        return f"{error.__class__.__name__}: {error_msg}"

    return error_msg
