"""Planning: dependency analysis, plan building and savings estimation."""

from .dependency_analyzer import DEFAULT_REFERENCE_MARKERS, DependencyAnalyzer
from .models import Plan, Task, TaskStatus, ToolInvocation, chain_lengths, task_id_for
from .plan_builder import PlanBuilder, compute_levels, estimate_parallelism
from .savings import DEFAULT_TASK_DURATION_MS, SavingsEstimate, estimate_time_savings, max_depth

__all__ = [
    "DEFAULT_REFERENCE_MARKERS",
    "DependencyAnalyzer",
    "Plan",
    "Task",
    "TaskStatus",
    "ToolInvocation",
    "chain_lengths",
    "task_id_for",
    "PlanBuilder",
    "compute_levels",
    "estimate_parallelism",
    "DEFAULT_TASK_DURATION_MS",
    "SavingsEstimate",
    "estimate_time_savings",
    "max_depth",
]
