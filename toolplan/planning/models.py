"""
Plan data model: invocations, tasks and the task graph.

A :class:`Task` moves through a fixed set of states. The allowed transitions
are encoded in ``_TRANSITIONS`` and enforced by the ``mark_*`` methods, so a
task can only become terminal once.
"""

from __future__ import annotations

import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from toolplan.types import Arguments, InvalidTransitionError, PlanError, TaskId, ToolName

TASK_ID_PREFIX = "task_"


def task_id_for(position: int) -> TaskId:
    """Return the task id for a batch position."""
    return f"{TASK_ID_PREFIX}{position}"


@dataclass(frozen=True)
class ToolInvocation:
    """A single tool call proposed by the model."""

    tool_name: ToolName
    arguments: Arguments = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToolInvocation":
        """
        Build an invocation from a raw tool-call dict.

        Accepts ``toolName``, ``tool_name`` or ``name`` for the tool and
        ``arguments`` or ``args`` for the arguments.

        Raises:
            PlanError: If no tool name is present
        """
        name = data.get("toolName") or data.get("tool_name") or data.get("name")
        if not name or not isinstance(name, str):
            raise PlanError("Tool invocation is missing a tool name", context={"call": dict(data)})
        if "arguments" in data:
            arguments = data["arguments"]
        else:
            arguments = data.get("args", {})
        return cls(tool_name=name, arguments=arguments)


class TaskStatus(str, Enum):
    """Scheduling state of a task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


_TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.RUNNING}),
    TaskStatus.RUNNING: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


@dataclass
class Task:
    """
    One invocation plus its scheduling state.

    Attributes:
        id: Position-derived identifier (``task_0``, ``task_1``, ...)
        tool_name: Tool to call
        arguments: Arguments as submitted, placeholders unresolved
        dependency_ids: Tasks that must be terminal before this one starts
        status: Current status
        result: Tool result, or ``{"error": message}`` when failed
        started_at: ``time.perf_counter()`` when the task started running
        ended_at: ``time.perf_counter()`` when the task became terminal
    """

    id: TaskId
    tool_name: ToolName
    arguments: Arguments = field(default_factory=dict)
    dependency_ids: FrozenSet[TaskId] = field(default_factory=frozenset)
    status: TaskStatus = TaskStatus.PENDING
    result: Any = None
    started_at: Optional[float] = None
    ended_at: Optional[float] = None

    @property
    def is_root(self) -> bool:
        return not self.dependency_ids

    @property
    def duration_ms(self) -> Optional[float]:
        if self.started_at is None or self.ended_at is None:
            return None
        return (self.ended_at - self.started_at) * 1000

    def _transition(self, target: TaskStatus) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Task '{self.id}' cannot move from {self.status.value} to {target.value}",
                context={"task_id": self.id, "from": self.status.value, "to": target.value},
            )
        self.status = target

    def mark_running(self) -> None:
        self._transition(TaskStatus.RUNNING)
        self.started_at = time.perf_counter()

    def mark_completed(self, result: Any) -> None:
        self._transition(TaskStatus.COMPLETED)
        self.result = result
        self.ended_at = time.perf_counter()

    def mark_failed(self, message: str) -> None:
        self._transition(TaskStatus.FAILED)
        self.result = {"error": message}
        self.ended_at = time.perf_counter()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "tool_name": self.tool_name,
            "arguments": self.arguments,
            "dependency_ids": sorted(self.dependency_ids),
            "status": self.status.value,
            "result": self.result,
            "duration_ms": self.duration_ms,
        }


@dataclass
class Plan:
    """
    Dependency graph for one batch of invocations.

    Attributes:
        tasks: Tasks keyed by id, in batch order
        root_ids: Ids of tasks without dependencies, in batch order
        estimated_parallelism: Width of the widest level of the graph
    """

    tasks: Dict[TaskId, Task] = field(default_factory=dict)
    root_ids: List[TaskId] = field(default_factory=list)
    estimated_parallelism: int = 1

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self):
        return iter(self.tasks.values())

    def get(self, task_id: TaskId) -> Task:
        return self.tasks[task_id]

    @property
    def dependents(self) -> Dict[TaskId, List[TaskId]]:
        """Reverse edges: task id -> ids of tasks depending on it."""
        reverse: Dict[TaskId, List[TaskId]] = defaultdict(list)
        for task in self.tasks.values():
            for dep_id in task.dependency_ids:
                reverse[dep_id].append(task.id)
        return dict(reverse)

    def validate(self) -> None:
        """
        Check structural invariants of the plan.

        Plans from :class:`~toolplan.planning.plan_builder.PlanBuilder` always
        pass; this guards hand-assembled plans.

        Raises:
            PlanError: On unknown dependency ids, wrong roots or a cycle
        """
        for task in self.tasks.values():
            unknown = task.dependency_ids - self.tasks.keys()
            if unknown:
                raise PlanError(
                    f"Task '{task.id}' depends on unknown tasks: {sorted(unknown)}",
                    context={"task_id": task.id, "unknown": sorted(unknown)},
                )

        # root_ids is an ordered set: each dependency-free task once, in batch order
        expected_roots = [t.id for t in self.tasks.values() if t.is_root]
        if list(self.root_ids) != expected_roots:
            raise PlanError(
                "Plan roots do not match tasks without dependencies",
                context={"root_ids": list(self.root_ids), "expected": expected_roots},
            )

        # Kahn's algorithm; anything left unvisited sits on a cycle
        remaining = {tid: len(t.dependency_ids) for tid, t in self.tasks.items()}
        dependents = self.dependents
        ready = deque(expected_roots)
        visited = 0
        while ready:
            current = ready.popleft()
            visited += 1
            for child in dependents.get(current, ()):
                remaining[child] -= 1
                if remaining[child] == 0:
                    ready.append(child)

        if visited != len(self.tasks):
            stuck = sorted(tid for tid, count in remaining.items() if count > 0)
            raise PlanError("Plan contains a dependency cycle", context={"tasks": stuck})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "tasks": [task.to_dict() for task in self.tasks.values()],
            "root_ids": list(self.root_ids),
            "estimated_parallelism": self.estimated_parallelism,
        }


def chain_lengths(tasks: Mapping[TaskId, Task], base: int) -> Dict[TaskId, int]:
    """
    Longest dependency chain ending at each task.

    Roots get ``base``; every other task gets one more than its deepest
    dependency. Memoized by task id, so each task is computed once and the
    recursion depth is bounded by the longest chain.

    Args:
        tasks: Acyclic task mapping
        base: Value assigned to roots (0 for levels, 1 for depths)
    """
    lengths: Dict[TaskId, int] = {}

    def length_of(task_id: TaskId) -> int:
        if task_id in lengths:
            return lengths[task_id]
        deps = tasks[task_id].dependency_ids
        value = base if not deps else 1 + max(length_of(dep) for dep in deps)
        lengths[task_id] = value
        return value

    for task_id in tasks:
        length_of(task_id)
    return lengths
