"""
Type system for toolplan.

This module provides the shared type aliases, collaborator signatures and the
exception hierarchy used by the planner and the executor.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

# Type Aliases and Custom Types
TaskId = str  # Type alias for task ids ("task_0", "task_1", ...)
ToolName = str  # Type alias for tool identifiers
TypeTag = str  # Opaque catalog input/output type tag
Arguments = Any  # Structured tool arguments (JSON-like value)
ResultMap = Dict[TaskId, Any]  # task id -> tool result or {"error": message}

# Collaborator Types
ToolCallFn = Callable[[ToolName, Arguments], Awaitable[Any]]  # (tool, args) -> result
ProgressFn = Callable[[int, int], None]  # (completed, total) -> None


# Exception Hierarchy
class ToolPlanError(Exception):
    """Base exception class for toolplan."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(ToolPlanError):
    """
    Raised when there's an issue with configuration.

    Examples:
        - Invalid config values
        - Config file that cannot be parsed
        - Environment override of the wrong type
    """


class CatalogError(ToolPlanError):
    """
    Raised when a tool catalog cannot be built or loaded.

    Examples:
        - Duplicate tool names
        - Catalog file missing required fields
    """


class PlanError(ToolPlanError):
    """
    Raised when a plan is structurally invalid.

    Examples:
        - Dependency on an unknown task id
        - Dependency cycle in a hand-assembled plan
        - Malformed invocation in a batch
    """


class SchedulingError(ToolPlanError):
    """Errors raised by the executor itself, never by a single task."""


class InvalidTransitionError(SchedulingError):
    """Raised when a task is moved to a status its current status does not allow."""
