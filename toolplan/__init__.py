"""
toolplan: dependency-aware parallel execution of LLM tool calls.

A batch of tool calls is analyzed for data dependencies, turned into a plan
whose independent calls run concurrently, and executed with references to
earlier results substituted just before each call.
"""

__version__ = "0.1.0"

from .catalog import DEFAULT_CATALOG, ToolCatalog, ToolSpec, get_quick_plan  # noqa: F401
from .catalog import match_tools_by_keywords  # noqa: F401
from .execution import (  # noqa: F401
    ParallelToolCompiler,
    PlanExecutor,
    ReferenceResolver,
    resolve_references,
)
from .planning import (  # noqa: F401
    DependencyAnalyzer,
    Plan,
    PlanBuilder,
    SavingsEstimate,
    Task,
    TaskStatus,
    ToolInvocation,
    estimate_time_savings,
)
from .types import (  # noqa: F401
    CatalogError,
    ConfigurationError,
    InvalidTransitionError,
    PlanError,
    SchedulingError,
    ToolPlanError,
)

__all__ = [
    "__version__",
    "DEFAULT_CATALOG",
    "ToolCatalog",
    "ToolSpec",
    "get_quick_plan",
    "match_tools_by_keywords",
    "ParallelToolCompiler",
    "PlanExecutor",
    "ReferenceResolver",
    "resolve_references",
    "DependencyAnalyzer",
    "Plan",
    "PlanBuilder",
    "SavingsEstimate",
    "Task",
    "TaskStatus",
    "ToolInvocation",
    "estimate_time_savings",
    "ToolPlanError",
    "ConfigurationError",
    "CatalogError",
    "PlanError",
    "SchedulingError",
    "InvalidTransitionError",
]
