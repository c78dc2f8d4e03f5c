"""
Dependency-aware concurrent executor for tool plans.

Every task of a plan runs as its own asyncio task. A task waits on one-shot
completion events of its dependencies, which fire when the dependency reaches a
terminal state (completed *or* failed), then resolves its argument
placeholders and awaits the tool call. Failures are recorded in the result map
as ``{"error": message}`` and never escape :meth:`PlanExecutor.execute`.

Key Features:
1. Roots start immediately, dependents start as soon as their inputs are terminal
2. Per-task failure isolation
3. Optional per-task timeout (the task is marked failed)
4. Optional semaphore-based concurrency limit (unbounded by default)
5. Synchronous progress callback after each terminal transition

Example:
    >>> plan = PlanBuilder().build(calls)
    >>> results = await PlanExecutor().execute(plan, tool_call)
    >>> failed = {tid: r for tid, r in results.items() if isinstance(r, dict) and "error" in r}
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Dict, List, Optional

from toolplan.execution.reference_resolver import ReferenceResolver
from toolplan.planning.models import Plan, Task, TaskStatus
from toolplan.types import (
    PlanError,
    ProgressFn,
    ResultMap,
    SchedulingError,
    TaskId,
    ToolCallFn,
)

logger = logging.getLogger(__name__)


class _ToolTimeout(Exception):
    """A ``TimeoutError`` raised by the tool itself, not by the task deadline."""

    def __init__(self, error: BaseException):
        super().__init__(str(error))
        self.error = error


async def _shield_timeout(call: Awaitable[Any]) -> Any:
    # Under wait_for the builtin TimeoutError would be mistaken for the deadline
    try:
        return await call
    except asyncio.TimeoutError as e:
        raise _ToolTimeout(e) from e


def _error_message(error: BaseException) -> str:
    return str(error) or error.__class__.__name__


class PlanExecutor:
    """
    Runs a :class:`Plan` with maximum safe parallelism.

    Args:
        task_timeout: Seconds a single tool call may take; None disables it
        max_concurrency: Upper bound on tool calls in flight; None is unbounded
        resolver: Placeholder resolver applied right before dispatch
    """

    def __init__(
        self,
        task_timeout: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        resolver: Optional[ReferenceResolver] = None,
    ):
        if task_timeout is not None and task_timeout <= 0:
            raise ValueError("task_timeout must be positive")
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.task_timeout = task_timeout
        self.max_concurrency = max_concurrency
        self.resolver = resolver or ReferenceResolver()

    async def execute(
        self,
        plan: Plan,
        tool_call: ToolCallFn,
        on_progress: Optional[ProgressFn] = None,
    ) -> ResultMap:
        """
        Execute every task of ``plan`` and return the result map.

        Args:
            plan: Plan whose tasks are all pending
            tool_call: ``async (tool_name, arguments) -> result``
            on_progress: Optional ``(completed, total)`` callback

        Returns:
            One entry per task: the tool result, or ``{"error": message}``

        Raises:
            SchedulingError: If the plan is invalid or was already executed
        """
        self._check_plan(plan)

        results: ResultMap = {}
        total = len(plan)
        if total == 0:
            return results

        done: Dict[TaskId, asyncio.Event] = {task_id: asyncio.Event() for task_id in plan.tasks}
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        completed = 0
        started = time.perf_counter()

        async def run_task(task: Task) -> None:
            nonlocal completed
            try:
                if task.dependency_ids:
                    await asyncio.gather(*(done[dep].wait() for dep in task.dependency_ids))
                if semaphore is None:
                    await self._run_task(task, tool_call, results)
                else:
                    async with semaphore:
                        await self._run_task(task, tool_call, results)

                completed += 1
                if on_progress is not None:
                    self._report_progress(on_progress, completed, total)
            finally:
                done[task.id].set()

        # One runner per task; roots first so they are dispatched before any dependent
        ordered: List[Task] = sorted(plan.tasks.values(), key=lambda task: not task.is_root)
        runners = [asyncio.ensure_future(run_task(task)) for task in ordered]
        try:
            await asyncio.gather(*runners)
        except BaseException:
            for runner in runners:
                runner.cancel()
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        failed = sum(1 for task in plan if task.status is TaskStatus.FAILED)
        logger.info(
            "Executed %d tools in %.0fms (parallelism: %d, failed: %d)",
            total,
            elapsed_ms,
            plan.estimated_parallelism,
            failed,
        )
        return results

    async def _run_task(self, task: Task, tool_call: ToolCallFn, results: ResultMap) -> None:
        task.mark_running()
        try:
            arguments = self.resolver(task.arguments, results)
            logger.debug("Dispatching %s (%s)", task.id, task.tool_name)
            if self.task_timeout is None:
                result = await tool_call(task.tool_name, arguments)
            else:
                result = await asyncio.wait_for(
                    _shield_timeout(tool_call(task.tool_name, arguments)),
                    timeout=self.task_timeout,
                )
        except _ToolTimeout as e:
            self._fail(task, _error_message(e.error), results)
        except asyncio.TimeoutError as e:
            if self.task_timeout is not None:
                message = f"Task timed out after {self.task_timeout}s"
            else:
                message = _error_message(e)
            self._fail(task, message, results)
        except Exception as e:
            self._fail(task, _error_message(e), results)
        else:
            task.mark_completed(result)
            results[task.id] = result

    @staticmethod
    def _fail(task: Task, message: str, results: ResultMap) -> None:
        task.mark_failed(message)
        results[task.id] = task.result
        logger.warning("Task %s (%s) failed: %s", task.id, task.tool_name, message)

    @staticmethod
    def _report_progress(on_progress: ProgressFn, completed: int, total: int) -> None:
        try:
            on_progress(completed, total)
        except Exception as e:
            logger.warning("Progress callback failed at %d/%d: %s", completed, total, e)

    @staticmethod
    def _check_plan(plan: Plan) -> None:
        try:
            plan.validate()
        except PlanError as e:
            raise SchedulingError(f"Cannot execute invalid plan: {e.message}", cause=e)

        started = [task.id for task in plan if task.status is not TaskStatus.PENDING]
        if started:
            raise SchedulingError(
                "Plan contains tasks that are not pending; plans execute once",
                context={"tasks": started},
            )
