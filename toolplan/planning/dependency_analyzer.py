"""
Dependency inference for a batch of tool invocations.

Two heuristics decide whether an earlier call must finish before a later one:

1. **Textual**: the later call's arguments mention a reference marker (``$`` or
   ``result``). Explicit ``$task_N.field`` placeholders pin the edge to the
   named tasks; any other marker makes every earlier task a dependency.
2. **Type compatibility**: the catalog says the earlier tool produces a type
   the later tool consumes (``record_id`` is satisfied by ``records``).

The analysis only looks backward, so the resulting graph cannot contain a
cycle. Edges may be spurious; they only lower parallelism.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Iterable, List, Optional, Sequence, Set

from toolplan.catalog import DEFAULT_CATALOG, ToolCatalog
from toolplan.planning.models import Task, ToolInvocation
from toolplan.types import Arguments, TaskId

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_MARKERS = ("$", "result")

# Same shape the reference resolver substitutes; case-sensitive like the resolver
PLACEHOLDER_PATTERN = re.compile(r"\$(\w+)\.(\w+)")


class DependencyAnalyzer:
    """
    Infers predecessor ids for one invocation of a batch.

    Example:
        >>> analyzer = DependencyAnalyzer()
        >>> calls = [ToolInvocation("sf_search", {"q": "Acme"})]
        >>> tasks = [Task(id="task_0", tool_name="sf_search")]
        >>> analyzer.analyze(ToolInvocation("sf_get_record", {"id": "x"}), calls, tasks)
        {'task_0'}
    """

    def __init__(
        self,
        catalog: ToolCatalog = DEFAULT_CATALOG,
        reference_markers: Optional[Iterable[str]] = None,
    ):
        self.catalog = catalog
        markers = DEFAULT_REFERENCE_MARKERS if reference_markers is None else reference_markers
        self.reference_markers = tuple(m.lower() for m in markers if m)

    def analyze(
        self,
        call: ToolInvocation,
        preceding_calls: Sequence[ToolInvocation],
        preceding_tasks: Sequence[Task],
    ) -> Set[TaskId]:
        """
        Return the ids of preceding tasks ``call`` depends on.

        Args:
            call: Candidate invocation
            preceding_calls: Invocations earlier in the batch, in order
            preceding_tasks: Tasks already created for ``preceding_calls``

        Returns:
            Set of task ids, all strictly earlier in the batch
        """
        dependencies = self._textual_dependencies(call.arguments, preceding_tasks)

        for prev_call, prev_task in zip(preceding_calls, preceding_tasks):
            if prev_task.id in dependencies:
                continue
            if self.catalog.satisfies(call.tool_name, prev_call.tool_name):
                dependencies.add(prev_task.id)

        if dependencies:
            logger.debug("%s depends on %s", call.tool_name, sorted(dependencies))
        return dependencies

    def _textual_dependencies(
        self, arguments: Arguments, preceding_tasks: Sequence[Task]
    ) -> Set[TaskId]:
        text = self._serialize(arguments)
        if not self._has_marker(text.lower()):
            return set()

        preceding_ids: List[TaskId] = [task.id for task in preceding_tasks]
        known = set(preceding_ids)
        named = {m.group(1) for m in PLACEHOLDER_PATTERN.finditer(text)} & known

        if named:
            leftover = PLACEHOLDER_PATTERN.sub(
                lambda m: "" if m.group(1) in named else m.group(0), text
            )
            if not self._has_marker(leftover.lower()):
                return named

        return set(preceding_ids)

    def _has_marker(self, text: str) -> bool:
        return any(marker in text for marker in self.reference_markers)

    @staticmethod
    def _serialize(arguments: Arguments) -> str:
        if isinstance(arguments, str):
            return arguments
        return json.dumps(arguments, default=str)
