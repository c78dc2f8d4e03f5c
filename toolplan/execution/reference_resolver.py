"""
Reference resolver: substitutes ``$<taskId>.<field>`` placeholders in tool
arguments with values from earlier task results.

This is best-effort templating. A placeholder whose task or field is missing
is left in place and reaches the tool call untouched; no error is raised.
Only the first placeholder in a string is substituted.

Example:
    >>> resolve_references({"id": "$task_0.id"}, {"task_0": {"id": "abc123"}})
    {'id': 'abc123'}
    >>> resolve_references({"id": "$task_0.id"}, {"task_0": {}})
    {'id': '$task_0.id'}
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from toolplan.types import Arguments, ResultMap

REFERENCE_PATTERN = re.compile(r"\$(\w+)\.(\w+)")


def _resolve_string(value: str, results: Mapping) -> str:
    match = REFERENCE_PATTERN.search(value)
    if match is None:
        return value

    task_id, field_name = match.group(1), match.group(2)
    result = results.get(task_id)
    if not isinstance(result, Mapping):
        return value
    replacement = result.get(field_name)
    if replacement is None:
        return value
    return value[: match.start()] + str(replacement) + value[match.end() :]


def resolve_references(arguments: Arguments, results: ResultMap) -> Any:
    """
    Return a copy of ``arguments`` with placeholders resolved against ``results``.

    Args:
        arguments: Strings, lists, tuples and mappings are walked recursively;
            any other value is returned as is
        results: Results accumulated so far, keyed by task id

    Returns:
        Resolved arguments; the input is never mutated
    """
    if isinstance(arguments, str):
        return _resolve_string(arguments, results)
    if isinstance(arguments, list):
        return [resolve_references(item, results) for item in arguments]
    if isinstance(arguments, tuple):
        return tuple(resolve_references(item, results) for item in arguments)
    if isinstance(arguments, Mapping):
        return {key: resolve_references(value, results) for key, value in arguments.items()}
    return arguments


class ReferenceResolver:
    """Callable wrapper so the executor can take a resolver as a collaborator."""

    def resolve(self, arguments: Arguments, results: ResultMap) -> Any:
        return resolve_references(arguments, results)

    __call__ = resolve
