"""
Plan builder: turns an ordered batch of invocations into a task graph.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from toolplan.planning.dependency_analyzer import DependencyAnalyzer
from toolplan.planning.models import Plan, Task, ToolInvocation, chain_lengths, task_id_for
from toolplan.types import PlanError, TaskId

logger = logging.getLogger(__name__)

InvocationLike = Union[ToolInvocation, Mapping[str, Any]]


def _coerce(call: InvocationLike) -> ToolInvocation:
    if isinstance(call, ToolInvocation):
        return call
    if isinstance(call, Mapping):
        return ToolInvocation.from_dict(call)
    raise PlanError(
        f"Unsupported invocation type: {type(call).__name__}",
        context={"call": repr(call)[:100]},
    )


def compute_levels(tasks: Mapping[TaskId, Task]) -> Dict[TaskId, int]:
    """Level of every task: 0 for roots, 1 + deepest dependency level otherwise."""
    return chain_lengths(tasks, base=0)


def estimate_parallelism(tasks: Mapping[TaskId, Task]) -> int:
    """Width of the widest level; never below 1."""
    level_counts = Counter(compute_levels(tasks).values())
    return max(level_counts.values(), default=1)


class PlanBuilder:
    """
    Builds a :class:`Plan` from a batch of tool invocations.

    Example:
        >>> plan = PlanBuilder().build([
        ...     {"toolName": "sf_search", "arguments": {"term": "Acme"}},
        ...     {"toolName": "research_company", "arguments": {"name": "Acme"}},
        ... ])
        >>> plan.root_ids, plan.estimated_parallelism
        (['task_0', 'task_1'], 2)
    """

    def __init__(self, analyzer: Optional[DependencyAnalyzer] = None):
        self.analyzer = analyzer or DependencyAnalyzer()

    def build(self, invocations: Iterable[InvocationLike]) -> Plan:
        """
        Create tasks in batch order, infer their dependencies and size the graph.

        Raises:
            PlanError: If an invocation cannot be interpreted
        """
        calls: List[ToolInvocation] = []
        tasks: Dict[TaskId, Task] = {}
        root_ids: List[TaskId] = []

        for position, raw in enumerate(invocations):
            call = _coerce(raw)
            task_id = task_id_for(position)
            dependency_ids = self.analyzer.analyze(call, calls, list(tasks.values()))

            tasks[task_id] = Task(
                id=task_id,
                tool_name=call.tool_name,
                arguments=call.arguments,
                dependency_ids=frozenset(dependency_ids),
            )
            calls.append(call)
            if not dependency_ids:
                root_ids.append(task_id)

        plan = Plan(
            tasks=tasks,
            root_ids=root_ids,
            estimated_parallelism=estimate_parallelism(tasks),
        )
        logger.debug(
            "Planned %d tasks: %d roots, parallelism %d",
            len(tasks),
            len(root_ids),
            plan.estimated_parallelism,
        )
        return plan
