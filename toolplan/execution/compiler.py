"""
ParallelToolCompiler: one entry point for planning, executing and reporting.

Wraps :class:`PlanBuilder`, :class:`PlanExecutor` and the savings estimator,
keeps running statistics across batches, and exposes the quick-plan and
keyword-matching fast paths.

Example:
    >>> compiler = ParallelToolCompiler.from_config()
    >>> plan = compiler.plan(tool_calls)
    >>> results = await compiler.execute(plan, tool_call)
    >>> compiler.get_stats()["parallel_executions"]
    1
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from toolplan.catalog import DEFAULT_CATALOG, QuickPlan, ToolCatalog, get_quick_plan
from toolplan.catalog import match_tools_by_keywords
from toolplan.execution.scheduler import PlanExecutor
from toolplan.planning import (
    DEFAULT_TASK_DURATION_MS,
    DependencyAnalyzer,
    Plan,
    PlanBuilder,
    SavingsEstimate,
    TaskStatus,
    estimate_time_savings,
)
from toolplan.planning.plan_builder import InvocationLike
from toolplan.types import ProgressFn, ResultMap, ToolCallFn, ToolName
from toolplan.utils.config import ConfigManager
from toolplan.utils.logging_config import get_structured_logger

logger = logging.getLogger(__name__)
stats_logger = get_structured_logger(f"{__name__}.stats")


class ParallelToolCompiler:
    """Plans and runs batches of tool calls, tracking latency savings."""

    def __init__(
        self,
        catalog: ToolCatalog = DEFAULT_CATALOG,
        builder: Optional[PlanBuilder] = None,
        executor: Optional[PlanExecutor] = None,
        average_task_duration_ms: float = DEFAULT_TASK_DURATION_MS,
    ):
        self.catalog = catalog
        self.builder = builder or PlanBuilder(DependencyAnalyzer(catalog))
        self.executor = executor or PlanExecutor()
        self.average_task_duration_ms = average_task_duration_ms
        self._stats: Dict[str, float] = {
            "plans_built": 0,
            "parallel_executions": 0,
            "tasks_executed": 0,
            "tasks_failed": 0,
            "avg_latency_saved_ms": 0.0,
        }

    @classmethod
    def from_config(cls, config: Optional[ConfigManager] = None) -> "ParallelToolCompiler":
        """Build a compiler from the ``analyzer``, ``scheduler``, ``estimator`` and ``catalog`` settings."""
        config = config or ConfigManager.get_instance()

        catalog_path = config.get("catalog.path")
        if catalog_path:
            catalog = ToolCatalog.from_yaml(config.resolve_path(catalog_path))
        else:
            catalog = DEFAULT_CATALOG

        markers = config.get("analyzer.reference_markers")
        analyzer = DependencyAnalyzer(
            catalog, reference_markers=list(markers) if markers is not None else None
        )
        executor = PlanExecutor(
            task_timeout=config.get("scheduler.task_timeout_s"),
            max_concurrency=config.get("scheduler.max_concurrency"),
        )
        return cls(
            catalog=catalog,
            builder=PlanBuilder(analyzer),
            executor=executor,
            average_task_duration_ms=config.get(
                "estimator.average_task_duration_ms", DEFAULT_TASK_DURATION_MS
            ),
        )

    def plan(self, tool_calls: Iterable[InvocationLike]) -> Plan:
        """Build the execution plan for a batch of tool calls."""
        plan = self.builder.build(tool_calls)
        self._stats["plans_built"] += 1
        return plan

    def estimate(self, plan: Plan) -> SavingsEstimate:
        return estimate_time_savings(plan, self.average_task_duration_ms)

    async def execute(
        self,
        plan: Plan,
        tool_call: ToolCallFn,
        on_progress: Optional[ProgressFn] = None,
    ) -> ResultMap:
        """Run ``plan`` and fold its estimated savings into the statistics."""
        estimate = self.estimate(plan)
        logger.info(
            "Executing %d tools, estimated savings: %.0f%%", len(plan), estimate.savings_percent
        )

        results = await self.executor.execute(plan, tool_call, on_progress)

        self._stats["parallel_executions"] += 1
        runs = self._stats["parallel_executions"]
        self._stats["avg_latency_saved_ms"] = (
            self._stats["avg_latency_saved_ms"] * (runs - 1) + estimate.savings
        ) / runs
        failed = sum(1 for task in plan if task.status is TaskStatus.FAILED)
        self._stats["tasks_executed"] += len(plan)
        self._stats["tasks_failed"] += failed
        stats_logger.debug(
            "Plan executed",
            tasks=len(plan),
            failed=failed,
            parallelism=plan.estimated_parallelism,
            estimated_savings_ms=estimate.savings,
        )
        return results

    async def run(
        self,
        tool_calls: Iterable[InvocationLike],
        tool_call: ToolCallFn,
        on_progress: Optional[ProgressFn] = None,
    ) -> ResultMap:
        """Plan and execute in one step."""
        return await self.execute(self.plan(tool_calls), tool_call, on_progress)

    def quick_plan(self, intent: Optional[str], query: str = "") -> Optional[QuickPlan]:
        return get_quick_plan(intent, query)

    def match_tools(
        self, query: str, available_tools: Optional[Iterable[ToolName]] = None, limit: int = 5
    ) -> List[ToolName]:
        return match_tools_by_keywords(query, available_tools, catalog=self.catalog, limit=limit)

    def get_stats(self) -> Dict[str, Any]:
        """Return a snapshot of the running statistics."""
        stats: Dict[str, Any] = dict(self._stats)
        executed = stats["tasks_executed"]
        stats["failure_rate"] = (stats["tasks_failed"] / executed) * 100 if executed else 0.0
        stats["catalog_size"] = len(self.catalog)
        return stats
