"""Execution: reference resolution, scheduling and the compiler facade."""

from .compiler import ParallelToolCompiler
from .reference_resolver import REFERENCE_PATTERN, ReferenceResolver, resolve_references
from .scheduler import PlanExecutor

__all__ = [
    "ParallelToolCompiler",
    "PlanExecutor",
    "REFERENCE_PATTERN",
    "ReferenceResolver",
    "resolve_references",
]
