"""
Savings estimator: theoretical sequential vs. graph-parallel time for a plan.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from toolplan.planning.models import Plan, chain_lengths

DEFAULT_TASK_DURATION_MS = 300.0


@dataclass(frozen=True)
class SavingsEstimate:
    """
    Estimated effect of running a plan in parallel.

    Attributes:
        sequential_time: Time to run every task one after another (ms)
        parallel_time: Time along the longest dependency chain (ms)
        savings: ``sequential_time - parallel_time``
        savings_percent: Savings relative to sequential time, 0-100
    """

    sequential_time: float
    parallel_time: float
    savings: float
    savings_percent: float

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary."""
        return {
            "sequentialTime": self.sequential_time,
            "parallelTime": self.parallel_time,
            "savings": self.savings,
            "savingsPercent": self.savings_percent,
        }


def max_depth(plan: Plan) -> int:
    """Longest dependency chain in the plan, counted in tasks (0 if empty)."""
    return max(chain_lengths(plan.tasks, base=1).values(), default=0)


def estimate_time_savings(
    plan: Plan, average_task_duration_ms: float = DEFAULT_TASK_DURATION_MS
) -> SavingsEstimate:
    """
    Compare sequential and parallel execution time for ``plan``.

    Args:
        plan: Plan to estimate
        average_task_duration_ms: Assumed duration of every task

    Returns:
        SavingsEstimate; all zeros for an empty plan

    Raises:
        ValueError: If the duration is negative
    """
    if average_task_duration_ms < 0:
        raise ValueError("average_task_duration_ms must be non-negative")

    plan.validate()
    sequential_time = len(plan) * average_task_duration_ms
    parallel_time = max_depth(plan) * average_task_duration_ms
    savings = sequential_time - parallel_time
    savings_percent = (savings / sequential_time) * 100 if sequential_time > 0 else 0.0

    return SavingsEstimate(
        sequential_time=sequential_time,
        parallel_time=parallel_time,
        savings=savings,
        savings_percent=savings_percent,
    )
