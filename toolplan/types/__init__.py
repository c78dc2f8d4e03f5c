"""Type definitions for toolplan."""

from .types import (
    Arguments,
    CatalogError,
    ConfigurationError,
    InvalidTransitionError,
    PlanError,
    ProgressFn,
    ResultMap,
    SchedulingError,
    TaskId,
    ToolCallFn,
    ToolName,
    ToolPlanError,
    TypeTag,
)

__all__ = [
    "TaskId",
    "ToolName",
    "TypeTag",
    "Arguments",
    "ResultMap",
    "ToolCallFn",
    "ProgressFn",
    "ToolPlanError",
    "ConfigurationError",
    "CatalogError",
    "PlanError",
    "SchedulingError",
    "InvalidTransitionError",
]
