"""Tool catalog and fast-path groupings."""

from .quick_plans import QUICK_PLANS, QuickPlan, get_quick_plan
from .tool_catalog import (
    DEFAULT_CATALOG,
    RECORD_ID,
    RECORDS,
    ToolCatalog,
    ToolSpec,
    match_tools_by_keywords,
)

__all__ = [
    "DEFAULT_CATALOG",
    "RECORD_ID",
    "RECORDS",
    "ToolCatalog",
    "ToolSpec",
    "match_tools_by_keywords",
    "QUICK_PLANS",
    "QuickPlan",
    "get_quick_plan",
]
